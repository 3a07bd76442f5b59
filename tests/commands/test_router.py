"""Tests for the command router."""

import threading

import pytest

from driveassist.commands import (
    Command,
    CommandParser,
    CommandRouter,
    CommandSpec,
    CommandType,
    ConfirmationTracker,
)
from driveassist.errors import CollaboratorError, SummaryTooLargeError

SENDER = "whatsapp:+15550001111"
OTHER = "whatsapp:+15550002222"


def send(router: CommandRouter, parser: CommandParser, text: str, sender: str = SENDER):
    return router.route(parser.parse(text, sender))


class TestDeleteConfirmationFlow:
    """Test that deletes only run after a matching confirmation."""

    def test_delete_then_confirm_deletes_once(self, router, parser, drive) -> None:
        first = send(router, parser, "DELETE /a/b.pdf")
        assert first.success
        assert "CONFIRM DELETE /a/b.pdf" in first.message
        assert "5 minutes" in first.message
        assert drive.calls_to("delete_file") == []

        second = send(router, parser, "CONFIRM DELETE /a/b.pdf")
        assert second.success
        assert drive.calls_to("delete_file") == [("delete_file", "/a/b.pdf")]

        third = send(router, parser, "CONFIRM DELETE /a/b.pdf")
        assert not third.success
        assert len(drive.calls_to("delete_file")) == 1

    def test_confirm_with_other_path_is_mismatch(self, router, parser, drive) -> None:
        send(router, parser, "DELETE /a/b.pdf")

        result = send(router, parser, "CONFIRM DELETE /a/c.pdf")

        assert not result.success
        assert "/a/b.pdf" in result.message
        assert result.audit_entry.outcome == "rejected"
        assert result.audit_entry.detail == "PathMismatch"
        assert drive.calls_to("delete_file") == []

    def test_repeated_slashes_confirm_canonical_path(self, router, parser, drive) -> None:
        send(router, parser, "DELETE /a//b.pdf")

        result = send(router, parser, "CONFIRM DELETE /a/b.pdf")

        assert result.success
        assert drive.calls_to("delete_file") == [("delete_file", "/a/b.pdf")]

    def test_confirm_without_delete(self, router, parser, drive) -> None:
        result = send(router, parser, "CONFIRM DELETE /a/b.pdf")

        assert not result.success
        assert result.audit_entry.detail == "NoPendingConfirmation"
        assert "DELETE" in result.message
        assert drive.calls_to("delete_file") == []

    def test_expired_confirmation(self, router, parser, drive, clock) -> None:
        send(router, parser, "DELETE /a/b.pdf")
        clock.advance(301)

        result = send(router, parser, "CONFIRM DELETE /a/b.pdf")

        assert not result.success
        assert result.audit_entry.detail == "ConfirmationExpired"
        assert "expired" in result.message
        assert "DELETE <path> again" in result.message
        assert drive.calls_to("delete_file") == []

    def test_second_delete_supersedes_first(self, router, parser, drive) -> None:
        send(router, parser, "DELETE /first.pdf")
        send(router, parser, "DELETE /second.pdf")

        mismatch = send(router, parser, "CONFIRM DELETE /first.pdf")
        assert not mismatch.success
        assert mismatch.audit_entry.detail == "PathMismatch"

        ok = send(router, parser, "CONFIRM DELETE /second.pdf")
        assert ok.success
        assert drive.calls_to("delete_file") == [("delete_file", "/second.pdf")]

    def test_confirmation_is_per_sender(self, router, parser, drive) -> None:
        send(router, parser, "DELETE /a.pdf", sender=SENDER)

        result = send(router, parser, "CONFIRM DELETE /a.pdf", sender=OTHER)

        assert not result.success
        assert drive.calls_to("delete_file") == []

    def test_delete_handler_failure_after_confirmation(self, router, parser, drive) -> None:
        send(router, parser, "DELETE /a.pdf")
        drive.fail_with = RuntimeError("backend exploded: token=secret")

        result = send(router, parser, "CONFIRM DELETE /a.pdf")

        assert not result.success
        assert "secret" not in result.message
        assert "exploded" not in result.message
        assert result.audit_entry.outcome == "error"


class TestDirectCommands:
    """Test LIST, MOVE, SUMMARY, HELP and INVALID routing."""

    def test_list(self, router, parser, drive) -> None:
        result = send(router, parser, "LIST /Reports")

        assert result.success
        assert result.items == drive.listing
        assert "/Reports" in result.message
        assert drive.calls_to("list_files") == [("list_files", "/Reports")]

    def test_empty_listing(self, router, parser, drive) -> None:
        drive.listing = []
        result = send(router, parser, "LIST /Empty")
        assert result.success
        assert result.message == "📁 /Empty is empty."

    def test_move(self, router, parser, drive) -> None:
        result = send(router, parser, "MOVE /a.pdf /Archive")

        assert result.success
        assert result.message == "✅ Moved /a.pdf to /Archive."
        assert drive.calls_to("move_file") == [("move_file", "/a.pdf", "/Archive")]

    def test_identical_move_never_reaches_handler(self, router, parser, drive) -> None:
        result = send(router, parser, "MOVE /a /a")

        assert not result.success
        assert "HELP" in result.message
        assert drive.calls == []

    def test_summary(self, router, parser, drive) -> None:
        result = send(router, parser, "SUMMARY /notes.txt")

        assert result.success
        assert "Summary of /notes.txt" in result.message

    def test_summary_too_large_shows_reason(self, router, parser, drive) -> None:
        drive.fail_with = SummaryTooLargeError("/big.txt", 20 * 1024 * 1024, 10 * 1024 * 1024)

        result = send(router, parser, "SUMMARY /big.txt")

        assert not result.success
        assert "too large" in result.message

    def test_collaborator_error_is_generic(self, router, parser, drive) -> None:
        drive.fail_with = CollaboratorError("Drive API request failed with status 500")

        result = send(router, parser, "LIST /Reports")

        assert not result.success
        assert "500" not in result.message
        assert "failed" in result.message
        assert "CollaboratorError" in result.audit_entry.detail

    def test_help(self, router, parser) -> None:
        result = send(router, parser, "HELP")

        assert result.success
        for usage in ("LIST <path>", "DELETE <path>", "CONFIRM DELETE <path>", "MOVE"):
            assert usage in result.message

    def test_help_ignores_pending_state(self, router, parser) -> None:
        before = send(router, parser, "HELP").message
        send(router, parser, "DELETE /a.pdf")
        after = send(router, parser, "HELP").message
        assert before == after

    def test_hand_built_help(self, router) -> None:
        command = Command(command_type=CommandType.HELP, sender_id=SENDER, raw_text="HELP")

        result = router.route(command)

        assert result.success
        assert result.message == router.help_text()

    def test_hand_built_list(self, router, drive) -> None:
        command = Command(
            command_type=CommandType.LIST, sender_id=SENDER, raw_text="LIST /x", path="/x"
        )

        result = router.route(command)

        assert result.success
        assert drive.calls_to("list_files") == [("list_files", "/x")]
        assert result.audit_entry.command == "LIST"

    def test_hand_built_command_missing_path(self, router, drive) -> None:
        command = Command(command_type=CommandType.SUMMARY, sender_id=SENDER, raw_text="SUMMARY")

        result = router.route(command)

        assert not result.success
        assert "Missing path" in result.message
        assert drive.calls == []

    def test_invalid(self, router, parser, drive) -> None:
        result = send(router, parser, "LIST /a/../b")

        assert not result.success
        assert ".." in result.message
        assert "Send HELP" in result.message
        assert result.audit_entry.outcome == "invalid"
        assert drive.calls == []


class TestTimeoutsAndAudit:
    """Test handler timeouts and best-effort auditing."""

    def test_handler_timeout(self, drive, tracker, parser) -> None:
        release = threading.Event()
        handlers = drive.handler_set()
        handlers.list_files = lambda path: release.wait(5)
        router = CommandRouter(handlers, tracker, handler_timeout=0.05)
        try:
            result = router.route(parser.parse("LIST /slow", SENDER))
        finally:
            release.set()
            router.close()

        assert not result.success
        assert "timed out" in result.message
        assert "CollaboratorTimeout" in result.audit_entry.detail

    def test_audit_entries_are_appended(self, router, parser, drive) -> None:
        send(router, parser, "LIST /Reports")
        send(router, parser, "DELETE /a.pdf")
        send(router, parser, "CONFIRM DELETE /a.pdf")
        router.close()

        # Audit appends run on the worker pool, so their order is not fixed
        outcomes = sorted((e.command, e.outcome, e.target) for e in drive.audit)
        assert outcomes == [
            ("CONFIRM_DELETE", "success", "/a.pdf"),
            ("DELETE", "pending_confirmation", "/a.pdf"),
            ("LIST", "success", "/Reports"),
        ]
        assert all(e.sender_id == SENDER for e in drive.audit)

    def test_audit_failure_does_not_affect_result(self, drive, tracker, parser) -> None:
        handlers = drive.handler_set()

        def broken_audit(entry):
            raise CollaboratorError("sheet unavailable")

        handlers.append_audit_entry = broken_audit
        router = CommandRouter(handlers, tracker)
        try:
            result = router.route(parser.parse("LIST /Reports", SENDER))
        finally:
            router.close()

        assert result.success


class TestRegistryExtension:
    """Test adding a command without touching the router."""

    def test_copy_command(self, drive, tracker: ConfirmationTracker) -> None:
        copied = []
        handlers = drive.handler_set()
        handlers.extra["copy_file"] = lambda src, dst: copied.append((src, dst))

        router = CommandRouter(handlers, tracker)
        router.registry.register(
            CommandSpec(
                verb="COPY",
                command_type="COPY",
                arg_names=("path", "destination"),
                handler_name="copy_file",
                distinct_args=True,
                description="copy a file",
            )
        )
        parser = CommandParser(router.registry)
        try:
            result = router.route(parser.parse("copy /a.pdf /b.pdf", SENDER))
            help_text = router.help_text()
        finally:
            router.close()

        assert result.success
        assert result.message == "✅ COPY /a.pdf /b.pdf done."
        assert copied == [("/a.pdf", "/b.pdf")]
        assert "COPY <path> <destination>" in help_text

    def test_duplicate_registration_rejected(self, router) -> None:
        with pytest.raises(ValueError):
            router.registry.register(CommandSpec(verb="LIST", command_type="LIST", handler_name="x"))
