"""
Entry point for running pg_transfer as a module.

Usage:
    python -m pg_transfer discover --url postgresql://localhost/mydb
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
