"""Message handling: one inbound message -> parse, route, format -> one reply."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from driveassist.commands import (
    CommandParser,
    CommandRouter,
    ResponseFormatter,
)
from driveassist.commands.formatter import ERROR_MARKER
from driveassist.logging_utils import log_error, log_info

logger = logging.getLogger(__name__)

GENERIC_FAILURE = f"{ERROR_MARKER} Something went wrong. Please try again."


class SenderLocks:
    """Keyed locks so messages from one sender are handled one at a time.

    Locks are created on demand and dropped once no request holds or waits
    on them.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}  # sender_id -> [lock, users]

    @contextmanager
    def hold(self, sender_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(sender_id, [threading.Lock(), 0])
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[sender_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


@dataclass
class MessageReply:
    """Outbound reply plus what was understood."""

    reply: str
    command: str
    success: bool


class MessageService:
    """Run the parse -> route -> format cycle for each inbound message."""

    def __init__(
        self,
        parser: CommandParser,
        router: CommandRouter,
        formatter: ResponseFormatter,
        locks: SenderLocks | None = None,
    ) -> None:
        self.parser = parser
        self.router = router
        self.formatter = formatter
        self.locks = locks or SenderLocks()

    def handle_message(self, sender_id: str, text: str) -> MessageReply:
        """Handle one message. Never raises; failures become an error reply."""
        with self.locks.hold(sender_id):
            command = self.parser.parse(text, sender_id)
            command_name = str(getattr(command.command_type, "value", command.command_type))
            log_info(logger, "Message received", sender_id=sender_id, command=command_name)
            try:
                self.router.confirmations.sweep_expired()
                result = self.router.route(command)
                reply = self.formatter.format(result)
            except Exception as e:
                log_error(
                    logger,
                    "Unhandled error while handling message",
                    sender_id=sender_id,
                    command=command_name,
                    error=repr(e),
                )
                return MessageReply(reply=GENERIC_FAILURE, command=command_name, success=False)

        return MessageReply(reply=reply, command=command_name, success=result.success)

    def close(self) -> None:
        self.router.close()
