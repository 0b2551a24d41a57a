"""
Import Row Interpretation

Turns raw spreadsheet rows (already read into lists of cells) into
OriginalData snapshots.

Row conventions of the timesheet export:
- The first row is a header
- A task cell starting with "CLIENTE:" sets the running client
- A task cell starting with "TOTALE" is a subtotal and is skipped
- A row without a date is skipped

Columns: 0 task, 1 date, 2 collaborator, 3 reason code, 4 description,
5 duration, 8 amount.
"""

from typing import Any, Iterable, Sequence

from timesheet.engine.calculator import parse_leading_float
from timesheet.models.timesheet import OriginalData


CLIENT_MARKER = "CLIENTE:"
TOTAL_MARKER = "TOTALE"

COL_TASK = 0
COL_DATE = 1
COL_COLLABORATOR = 2
COL_REASON_CODE = 3
COL_DESCRIPTION = 4
COL_DURATION = 5
COL_AMOUNT = 8


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_rows(raw_rows: Iterable[Sequence[Any]]) -> list[OriginalData]:
    """Interpret raw rows, header included, into activity snapshots."""
    activities: list[OriginalData] = []
    current_client = ""

    for index, row in enumerate(raw_rows):
        if index == 0 or not row:
            continue

        task = _text(_cell(row, COL_TASK)).strip()
        if task.startswith(CLIENT_MARKER):
            current_client = task[len(CLIENT_MARKER):].strip()
            continue
        if task.startswith(TOTAL_MARKER):
            continue

        date = _cell(row, COL_DATE)
        if date in (None, "", 0):
            continue

        activities.append(OriginalData(
            client=current_client,
            task=task,
            date=_text(date),
            collaborator=_text(_cell(row, COL_COLLABORATOR)),
            reason_code=_text(_cell(row, COL_REASON_CODE)),
            description=_text(_cell(row, COL_DESCRIPTION)),
            duration=_text(_cell(row, COL_DURATION)),
            original_amount=parse_leading_float(_cell(row, COL_AMOUNT)),
        ))

    return activities
