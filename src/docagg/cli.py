"""
docagg command line.

Run with: docagg run PIPELINE --input FILE [--collection NAME=FILE ...] [--table]

PIPELINE is a JSON file holding a list of stage literals. Document files
may be JSON (a list of documents), JSON Lines, or Parquet.

::: This is-in-layer UI-Layer.
::: This depends-on rich.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pyarrow as pa
import pyarrow.parquet as pq
from rich.console import Console
from rich.table import Table

from . import __version__
from .docagg_exceptions import DocAggError
from .dsl import compile_pipeline, run
from .logging_config import configure_logging, restore_stderr_logging, suppress_stderr_logging
from .services.config_loader import get_config_loader

logger = logging.getLogger(__name__)


class CliError(Exception):
    """Input file problems reported by the command line.

    ::: This is-in-layer UI-Layer.
    ::: This is a exception.
    """


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise CliError(f"Invalid JSON in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise CliError(f"{path} is not UTF-8 text: {e}") from e


def load_documents(path: Path) -> List[Dict[str, Any]]:
    """Read a document file by extension: .parquet, .jsonl/.ndjson, or JSON."""
    if not path.exists():
        raise CliError(f"File not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        try:
            return pq.read_table(path).to_pylist()
        except pa.ArrowException as e:
            raise CliError(f"Cannot read Parquet file {path}: {e}") from e
    if suffix in (".jsonl", ".ndjson"):
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CliError(f"{path} is not UTF-8 text: {e}") from e
        documents = []
        for line_no, line in enumerate(text.splitlines(), 1):
            if not line.strip():
                continue
            try:
                documents.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise CliError(f"Invalid JSON on line {line_no} of {path}: {e}") from e
        return documents
    data = _read_json(path)
    if not isinstance(data, list):
        raise CliError(f"{path} must hold a JSON list of documents")
    return data


def parse_collection(value: str):
    """argparse type for NAME=FILE collection arguments."""
    name, sep, file_name = value.partition("=")
    if not sep or not name or not file_name:
        raise argparse.ArgumentTypeError(f"expected NAME=FILE, got {value!r}")
    return name, Path(file_name)


def render_table(documents: List[Dict[str, Any]], console: Console) -> None:
    """Print documents as a rich table, one column per field."""
    columns: List[str] = []
    for doc in documents:
        for key in doc:
            if key not in columns:
                columns.append(key)

    table = Table(title=f"{len(documents)} document(s)")
    for column in columns:
        table.add_column(column)
    for doc in documents:
        table.add_row(*[_cell(doc[c]) if c in doc else "" for c in columns])
    console.print(table)


def _cell(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str, ensure_ascii=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docagg", description="Run aggregation pipelines over document files")
    parser.add_argument("--version", action="version", version=f"docagg {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a pipeline over a document file")
    run_parser.add_argument("pipeline", type=Path, help="JSON file with a list of stages")
    run_parser.add_argument("--input", "-i", type=Path, required=True, help="Source documents file")
    run_parser.add_argument("--collection", "-c", type=parse_collection, action="append", default=[],
                            metavar="NAME=FILE", help="Named collection for $lookup (repeatable)")
    run_parser.add_argument("--project", "-p", type=Path, help="Directory holding docagg.json (default: current directory)")
    run_parser.add_argument("--table", action="store_true", help="Render results as a table")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def cmd_run(args: argparse.Namespace, out: Console) -> int:
    loader = get_config_loader()
    loader.load(args.project)
    settings = loader.get_settings()
    configure_logging(
        logging.DEBUG if args.verbose else settings.log_level,
        file_log=loader.file_log_enabled(),
        log_dir=loader.log_directory(),
    )

    try:
        stages = compile_pipeline(_read_json(args.pipeline))
        documents = load_documents(args.input)
        collections = {name: load_documents(path) for name, path in args.collection}
        results = run(documents, stages, collections=collections, settings=settings)
    except (CliError, DocAggError, OSError) as e:
        logger.error("%s", e)
        return 1

    if args.table:
        suppress_stderr_logging()
        try:
            render_table(results, out)
        finally:
            restore_stderr_logging()
    else:
        out.print_json(json.dumps(results, default=str, ensure_ascii=False))
    return 0


def main(argv: Optional[Sequence[str]] = None, console: Optional[Console] = None) -> int:
    """Command line entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    out = console or Console()
    if args.command == "run":
        return cmd_run(args, out)
    return 2


if __name__ == "__main__":
    sys.exit(main())
