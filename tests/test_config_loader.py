"""
Tests for ConfigLoader and logging configuration.
"""

import json
import logging

from docagg.logging_config import (
    FlushingStreamHandler,
    configure_logging,
    restore_stderr_logging,
    suppress_stderr_logging,
)
from docagg.services.config_loader import (
    ConfigLoader,
    EvaluatorSettings,
    get_config_loader,
    get_settings,
    reset_config_loader,
)


def write_config(root, data):
    path = root / ConfigLoader.CONFIG_FILENAME
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestConfigLoader:
    """Tests for configuration precedence."""

    def test_defaults_without_file(self, isolated_config):
        loader = ConfigLoader()
        assert loader.load() is False
        assert loader.get_settings() == EvaluatorSettings(strict_fields=True, log_level="INFO")

    def test_file_values(self, isolated_config):
        path = write_config(isolated_config, {"strict_fields": False, "log_level": "debug"})
        loader = ConfigLoader()
        assert loader.load() is True
        assert loader.config_path == path
        assert loader.get_settings() == EvaluatorSettings(strict_fields=False, log_level="DEBUG")

    def test_file_string_booleans(self, isolated_config):
        write_config(isolated_config, {"strict_fields": "false"})
        loader = ConfigLoader()
        loader.load()
        assert loader.get("strict_fields") is False

    def test_environment_overrides_file(self, isolated_config, monkeypatch):
        write_config(isolated_config, {"strict_fields": False})
        monkeypatch.setenv("DOCAGG_STRICT_FIELDS", "true")
        loader = ConfigLoader()
        loader.load()
        assert loader.get_settings().strict_fields is True

    def test_explicit_project_root(self, tmp_path):
        other = tmp_path / "other"
        other.mkdir()
        write_config(other, {"log_level": "WARNING"})
        loader = ConfigLoader()
        assert loader.load(other) is True
        assert loader.get("log_level") == "WARNING"

    def test_invalid_json_is_ignored(self, isolated_config, caplog):
        (isolated_config / ConfigLoader.CONFIG_FILENAME).write_text("{not json", encoding="utf-8")
        loader = ConfigLoader()
        with caplog.at_level(logging.WARNING, logger="docagg"):
            assert loader.load() is False
        assert "Invalid JSON" in caplog.text
        assert loader.get("strict_fields") is True

    def test_non_object_is_ignored(self, isolated_config):
        write_config(isolated_config, ["strict_fields"])
        assert ConfigLoader().load() is False

    def test_config_is_a_copy(self, isolated_config):
        write_config(isolated_config, {"log_level": "INFO"})
        loader = ConfigLoader()
        loader.load()
        loader.config["log_level"] = "DEBUG"
        assert loader.get("log_level") == "INFO"

    def test_log_directory_relative_to_project(self, tmp_path):
        project = tmp_path / "proj"
        project.mkdir()
        write_config(project, {"log_dir": "logs"})
        loader = ConfigLoader()
        loader.load(project)
        assert loader.log_directory() == project / "logs"

    def test_log_directory_default_and_absolute(self, isolated_config, tmp_path):
        loader = ConfigLoader()
        loader.load()
        assert loader.log_directory() == isolated_config / ".docagg"
        write_config(isolated_config, {"log_dir": str(tmp_path / "abs")})
        loader = ConfigLoader()
        loader.load()
        assert loader.log_directory() == tmp_path / "abs"

    def test_file_log_switch(self, isolated_config, monkeypatch):
        monkeypatch.delenv("DOCAGG_DEBUG_LOG", raising=False)
        loader = ConfigLoader()
        loader.load()
        assert loader.file_log_enabled() is True
        write_config(isolated_config, {"debug_log": ""})
        loader = ConfigLoader()
        loader.load()
        assert loader.file_log_enabled() is False
        monkeypatch.setenv("DOCAGG_DEBUG_LOG", "1")
        assert loader.file_log_enabled() is True

    def test_global_loader(self, isolated_config):
        write_config(isolated_config, {"strict_fields": False})
        assert get_config_loader() is get_config_loader()
        assert get_settings().strict_fields is False
        reset_config_loader()
        write_config(isolated_config, {"strict_fields": True})
        assert get_settings().strict_fields is True


class TestLoggingConfig:
    """Tests for configure_logging."""

    def test_stderr_handler_only_when_file_log_off(self):
        logger = configure_logging("WARNING")
        handlers = [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]
        assert len(handlers) == 1
        assert isinstance(handlers[0], FlushingStreamHandler)
        assert handlers[0].level == logging.WARNING

    def test_file_log(self, isolated_config, monkeypatch):
        log_dir = isolated_config / "logs"
        monkeypatch.setenv("DOCAGG_LOG_DIR", str(log_dir))
        logger = configure_logging(logging.INFO, file_log=True)
        logging.getLogger("docagg.dsl.core").debug("trace line")
        for handler in logger.handlers:
            handler.flush()
        assert "trace line" in (log_dir / "pipeline_trace.log").read_text(encoding="utf-8")

    def test_explicit_log_dir_overrides_environment(self, isolated_config, monkeypatch):
        monkeypatch.setenv("DOCAGG_LOG_DIR", str(isolated_config / "env_logs"))
        configure_logging(logging.INFO, file_log=True, log_dir=isolated_config / "given")
        assert (isolated_config / "given" / "pipeline_trace.log").exists()
        assert not (isolated_config / "env_logs").exists()

    def test_reconfigure_replaces_handlers(self):
        configure_logging("INFO")
        logger = configure_logging("DEBUG")
        streams = [h for h in logger.handlers if isinstance(h, FlushingStreamHandler)]
        assert len(streams) == 1

    def test_suppress_and_restore(self):
        logger = configure_logging("INFO")
        handler = next(h for h in logger.handlers if isinstance(h, FlushingStreamHandler))
        suppress_stderr_logging()
        assert handler.level > logging.CRITICAL
        restore_stderr_logging()
        assert handler.level == logging.INFO
