"""
Shared fixtures for the Timesheet Reconciler tests.

Fixtures build small, fully in-memory projects. File-store tests use
pytest's tmp_path and never touch the working directory.
"""

import pytest

from timesheet.events import EventLogger
from timesheet.models.timesheet import CalculationMode, Project
from timesheet.services.storage import InMemoryProjectStorage

from tests.factories import HEADER, TODAY


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def project():
    return Project(name="Acme Portal", daily_rate=500.0, hours_per_day=8.0)


@pytest.fixture
def collaborator_project():
    return Project(
        name="Acme Support",
        daily_rate=500.0,
        hours_per_day=8.0,
        calculation_mode=CalculationMode.COLLABORATOR_RATE,
        collaborator_rates={"Mario": 400.0, "Luigi": 0.0},
    )


@pytest.fixture
def raw_rows():
    """A small spreadsheet export: header, client marker, activities, subtotal."""
    return [
        HEADER,
        ["CLIENTE: Acme", None, None, None, None, None, None, None, None],
        ["Development", "04/03/2024", "Mario", "DEV", "API work", "4:00", "", "", 250],
        ["Development", "05/03/2024", "Luigi", "DEV", "Frontend", "8:00", "", "", 500],
        ["Meeting", "06/03/2024", "Mario", "MTG", "Kick-off", "2,5", "", "", "156.25 EUR"],
        ["TOTALE Acme", None, None, None, None, None, None, None, 906.25],
        ["Note", "", "Mario", "", "no date", "", "", "", 10],
    ]


@pytest.fixture
def storage(project):
    return InMemoryProjectStorage([project])


class RecordingEventLogger(EventLogger):
    """EventLogger that also keeps every event for assertions."""

    def __init__(self):
        super().__init__("timesheet.tests")
        self.events = []

    def log(self, event):
        self.events.append(event)
        super().log(event)

    def types(self):
        return [event.event_type for event in self.events]


@pytest.fixture
def events():
    return RecordingEventLogger()
