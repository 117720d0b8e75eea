"""Shared pytest fixtures for all tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Tuple

import pytest

from metastore.config import Settings
from metastore.database import Database
from metastore.factory import build_services
from metastore.notifications import NotificationSink
from metastore.types import MetadataChangeRequest, Ownership


class FakeClock:
    """
    Deterministic clock. Every call returns the current instant and then
    moves forward by step.
    """

    def __init__(self, start: datetime = None, step: timedelta = timedelta(seconds=1)):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value

    def rewind(self, delta: timedelta) -> None:
        self.current = self.current - delta


class RecordingSink(NotificationSink):
    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        self.events.append((event_kind, payload))

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.events]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def settings(tmp_path):
    """
    Settings pointing at a temporary database file.
    """
    return Settings(database_path=str(tmp_path / "metadata.db"))


@pytest.fixture
def db(settings):
    database = Database(settings.database_path)
    database.init_schema()
    return database


@pytest.fixture
def services(settings, clock, sink):
    """
    Fully wired service graph on a temporary database.
    """
    built = build_services(settings, notifier=sink, clock=clock)
    yield built
    built.close()


def _make_request(
    file_id: str = "f1",
    checksum: str = "c1",
    path: str = "/data/report.txt",
    owner: str = "alice",
    group: str = "staff",
    version_number: int = None,
    details: str = None,
) -> MetadataChangeRequest:
    return MetadataChangeRequest(
        file_id=file_id,
        path=path,
        checksum=checksum,
        ownership=Ownership(owner=owner, group=group),
        version_number=version_number,
        details=details,
    )


@pytest.fixture
def make_request():
    return _make_request
