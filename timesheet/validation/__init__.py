"""Validation package."""

from timesheet.validation.validator import (
    MonthChecker,
    require_calculation_mode,
    require_color,
    require_number,
    require_positive,
    require_text,
)

__all__ = [
    "MonthChecker",
    "require_calculation_mode",
    "require_color",
    "require_number",
    "require_positive",
    "require_text",
]
