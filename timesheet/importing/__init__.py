"""Import row interpretation package."""

from timesheet.importing.rows import parse_rows

__all__ = ["parse_rows"]
