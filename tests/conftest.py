"""pytest configuration for drive assistant tests."""

import os
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add src directory to path so tests can import driveassist
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Keep tests isolated from real services
os.environ["DUCKDB_PATH"] = ":memory:"
os.environ["REDIS_ENABLED"] = "false"
os.environ["TWILIO_VALIDATE_SIGNATURE"] = "false"

from driveassist.commands import (  # noqa: E402
    ActionHandlerSet,
    CommandParser,
    CommandRouter,
    ConfirmationTracker,
    FileEntry,
    ResponseFormatter,
)
from driveassist.service import MessageService  # noqa: E402


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 9, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeDrive:
    """In-memory collaborators recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.audit: list = []
        self.listing = [
            FileEntry(name="Q1", is_folder=True),
            FileEntry(name="report.pdf", size=2048),
        ]
        self.fail_with: Exception | None = None

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def list_files(self, path):
        self._record("list_files", path)
        return self.listing

    def delete_file(self, path):
        self._record("delete_file", path)

    def move_file(self, source, destination):
        self._record("move_file", source, destination)

    def summarize_files(self, path):
        self._record("summarize_files", path)
        return f"Summary of {path}"

    def append_audit_entry(self, entry):
        self.audit.append(entry)

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def handler_set(self) -> ActionHandlerSet:
        return ActionHandlerSet(
            list_files=self.list_files,
            delete_file=self.delete_file,
            move_file=self.move_file,
            summarize_files=self.summarize_files,
            append_audit_entry=self.append_audit_entry,
        )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def tracker(clock: ManualClock) -> ConfirmationTracker:
    """Tracker with a five minute window and a manual clock."""
    return ConfirmationTracker(window_seconds=300, clock=clock)


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def router(drive: FakeDrive, tracker: ConfirmationTracker):
    """Router over fake collaborators."""
    router = CommandRouter(drive.handler_set(), tracker, handler_timeout=2.0)
    yield router
    router.close()


@pytest.fixture
def parser() -> CommandParser:
    return CommandParser()


@pytest.fixture
def service(parser: CommandParser, router: CommandRouter) -> MessageService:
    return MessageService(parser, router, ResponseFormatter())


@pytest.fixture
def sender_id() -> str:
    return "whatsapp:+15550001111"


@pytest.fixture
def other_sender_id() -> str:
    return "whatsapp:+15550002222"
