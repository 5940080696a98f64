"""
UI module - Rich console interface for pg_transfer.

Provides:
- Banner and section headers
- Schema summary table and relation tree
- Error and warning display
"""

from .console import ConsoleUI

__all__ = ["ConsoleUI"]
