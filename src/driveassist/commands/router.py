"""Command router: dispatch parsed commands to external handlers."""

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import replace
from typing import Any, Protocol

from driveassist.errors import CollaboratorError, CollaboratorTimeout, ConfirmationError
from driveassist.logging_utils import log_error, log_info, log_warning, redact_secrets

from .command_parser import HELP_HINT
from .confirmations import PendingConfirmation
from .registry import CommandRegistry, CommandSpec, Flow, default_registry, render_default
from .types import ActionHandlerSet, ActionResult, AuditEntry, Command

logger = logging.getLogger(__name__)


class ConfirmationStore(Protocol):
    """What the router needs from a confirmation tracker."""

    window_seconds: int

    def request_delete(self, sender_id: str, path: str) -> PendingConfirmation: ...

    def confirm(self, sender_id: str, path: str) -> PendingConfirmation: ...

    def sweep_expired(self) -> int: ...


def _describe_window(seconds: int) -> str:
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} seconds"


class CommandRouter:
    """Route commands to handlers and build ActionResults.

    The router keeps no state of its own: pending deletes live in the injected
    confirmation store. Handler calls run on a worker pool so each one can be
    bounded by ``handler_timeout``.
    """

    def __init__(
        self,
        handlers: ActionHandlerSet,
        confirmations: ConfirmationStore,
        registry: CommandRegistry | None = None,
        handler_timeout: float = 20.0,
        max_workers: int = 8,
    ) -> None:
        """Initialize the router.

        Args:
            handlers: External collaborators (file store, summarizer, audit log)
            confirmations: Store for pending delete confirmations
            registry: Command registry (default: built-in file commands)
            handler_timeout: Seconds before a handler call is treated as failed
            max_workers: Size of the worker pool for handler calls
        """
        self.handlers = handlers
        self.confirmations = confirmations
        self.registry = registry or default_registry()
        self.handler_timeout = handler_timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="driveassist-handler"
        )
        self._flows: dict[Flow, Callable[[Command, CommandSpec], ActionResult]] = {
            Flow.DIRECT: self._run_direct,
            Flow.REQUEST_CONFIRMATION: self._request_confirmation,
            Flow.CONFIRM: self._run_confirmed,
            Flow.HELP: self._help,
        }

    def route(self, command: Command) -> ActionResult:
        """Execute a command and return its result.

        Never raises for handler or confirmation failures; those become
        unsuccessful results.
        """
        spec = self._spec_for(command)
        if spec is None:
            result = self._invalid(command)
        elif len(command.args) < len(spec.arg_names):
            missing = spec.arg_names[len(command.args)]
            result = self._invalid(
                replace(command, validation_error=f"Missing {missing}. Usage: {spec.usage}")
            )
        else:
            if command.verb != spec.verb:
                command = replace(command, verb=spec.verb)
            result = self._flows[spec.flow](command, spec)

        if result.audit_entry is not None:
            self._append_audit(result.audit_entry)
        return result

    def help_text(self) -> str:
        return self.registry.help_text()

    def _spec_for(self, command: Command) -> CommandSpec | None:
        """Look up by verb, falling back to the command variant."""
        if not command.is_valid:
            return None
        return self.registry.get(command.verb) or self.registry.for_type(command.command_type)

    def close(self) -> None:
        """Wait for in-flight handler and audit calls, then stop the pool."""
        self._executor.shutdown(wait=True)

    def _audit(
        self, command: Command, outcome: str, detail: str | None = None
    ) -> AuditEntry:
        target = " -> ".join(command.args) or None
        return AuditEntry(
            sender_id=command.sender_id,
            command=str(getattr(command.command_type, "value", command.command_type)),
            outcome=outcome,
            target=target,
            detail=detail,
        )

    def _call(self, name: str, *args: Any) -> Any:
        """Run a handler with the router's timeout.

        Raises:
            CollaboratorTimeout: The handler did not finish in time
            Exception: Whatever the handler raised
        """
        handler = self.handlers.get(name)
        future = self._executor.submit(handler, *args)
        try:
            return future.result(timeout=self.handler_timeout)
        except FuturesTimeoutError as e:
            future.cancel()
            raise CollaboratorTimeout(
                f"Handler {name} timed out after {self.handler_timeout}s"
            ) from e

    def _failure(self, command: Command, spec: CommandSpec, error: Exception) -> ActionResult:
        log_error(
            logger,
            "Handler failed",
            command=spec.verb,
            sender_id=command.sender_id,
            error_type=type(error).__name__,
            error=str(error),
        )
        user_message = getattr(error, "user_message", None)
        if isinstance(error, CollaboratorTimeout):
            message = f"{spec.verb} {' '.join(command.args)} timed out. Please try again."
        elif isinstance(error, CollaboratorError) and user_message:
            message = user_message
        else:
            message = (
                f"Sorry, {spec.verb} {' '.join(command.args)} failed. Please try again later."
            )
        return ActionResult(
            success=False,
            message=message,
            audit_entry=self._audit(
                command, "error", f"{type(error).__name__}: {redact_secrets(str(error))}"
            ),
        )

    def _render(self, command: Command, spec: CommandSpec, value: Any) -> ActionResult:
        render = spec.render or render_default
        result = render(command, value)
        if result.audit_entry is None:
            result.audit_entry = self._audit(command, "success")
        return result

    def _run_direct(self, command: Command, spec: CommandSpec) -> ActionResult:
        try:
            value = self._call(spec.handler_name, *command.args)
        except Exception as e:
            return self._failure(command, spec, e)
        log_info(logger, "Command executed", command=spec.verb, sender_id=command.sender_id)
        return self._render(command, spec, value)

    def _request_confirmation(self, command: Command, spec: CommandSpec) -> ActionResult:
        try:
            pending = self.confirmations.request_delete(command.sender_id, command.path)
        except CollaboratorError as e:
            return self._failure(command, spec, e)

        window = _describe_window(self.confirmations.window_seconds)
        log_info(
            logger,
            "Delete awaiting confirmation",
            sender_id=command.sender_id,
            path=pending.target_path,
        )
        return ActionResult(
            success=True,
            message=(
                f"⚠️ Delete {pending.target_path}? "
                f"Reply CONFIRM DELETE {pending.target_path} within {window} to proceed."
            ),
            audit_entry=self._audit(command, "pending_confirmation"),
        )

    def _run_confirmed(self, command: Command, spec: CommandSpec) -> ActionResult:
        try:
            self.confirmations.confirm(command.sender_id, command.path)
        except ConfirmationError as e:
            log_warning(
                logger,
                "Confirmation rejected",
                sender_id=command.sender_id,
                reason=type(e).__name__,
            )
            return ActionResult(
                success=False,
                message=e.user_message,
                audit_entry=self._audit(command, "rejected", type(e).__name__),
            )
        except CollaboratorError as e:
            return self._failure(command, spec, e)

        return self._run_direct(command, spec)

    def _help(self, command: Command, spec: CommandSpec) -> ActionResult:
        return ActionResult(success=True, message=self.help_text())

    def _invalid(self, command: Command) -> ActionResult:
        error = command.validation_error or "Unrecognized command."
        return ActionResult(
            success=False,
            message=f"{error} {HELP_HINT}",
            audit_entry=self._audit(command, "invalid", error),
        )

    def _append_audit(self, entry: AuditEntry) -> None:
        """Submit the entry to the audit handler without waiting for it."""
        try:
            future = self._executor.submit(self.handlers.append_audit_entry, entry)
        except RuntimeError as e:
            # Pool already shut down
            logger.warning("Audit entry dropped: %s", e)
            return
        future.add_done_callback(_log_audit_failure)


def _log_audit_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.warning("Failed to append audit entry: %s", redact_secrets(str(error)))
