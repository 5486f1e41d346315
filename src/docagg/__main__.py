"""
docagg entry point.

Run with: python -m docagg run PIPELINE --input FILE
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
