"""Pending delete confirmations, keyed by sender.

Each sender has at most one pending confirmation. A new delete request
replaces the previous one; a confirmation consumes it exactly once.
"""

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import redis

from driveassist.config import DEFAULT_CONFIRMATION_WINDOW_SECONDS
from driveassist.errors import (
    CollaboratorError,
    ConfirmationExpired,
    NoPendingConfirmation,
    PathMismatch,
)

from .types import CommandType

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PendingConfirmation:
    """A destructive action awaiting confirmation."""

    sender_id: str
    target_path: str
    created_at: datetime
    expires_at: datetime
    action: CommandType = CommandType.DELETE

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if this confirmation has expired."""
        return (now or _utcnow()) >= self.expires_at

    def to_dict(self) -> dict[str, str]:
        return {
            "sender_id": self.sender_id,
            "target_path": self.target_path,
            "action": self.action.value,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> "PendingConfirmation":
        return cls(
            sender_id=data["sender_id"],
            target_path=data["target_path"],
            action=CommandType(data.get("action", CommandType.DELETE.value)),
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )


def _check_match(pending: PendingConfirmation, path: str, now: datetime) -> None:
    """Raise the right ConfirmationError if ``pending`` cannot be confirmed for ``path``."""
    if pending.is_expired(now):
        raise ConfirmationExpired(
            f"The delete request for {pending.target_path} expired.", path=path
        )
    if pending.target_path != path:
        raise PathMismatch(
            f"{path} does not match the pending delete.",
            path=path,
            expected=pending.target_path,
        )


class ConfirmationTracker:
    """In-memory confirmation table guarded by a single lock."""

    def __init__(
        self,
        window_seconds: int = DEFAULT_CONFIRMATION_WINDOW_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the tracker.

        Args:
            window_seconds: Time a delete request stays confirmable
            clock: Returns the current UTC time (injectable for tests)
        """
        self.window_seconds = window_seconds
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._pending: dict[str, PendingConfirmation] = {}

    def request_delete(self, sender_id: str, path: str) -> PendingConfirmation:
        """Create or replace the sender's pending delete."""
        now = self._clock()
        pending = PendingConfirmation(
            sender_id=sender_id,
            target_path=path,
            created_at=now,
            expires_at=now + timedelta(seconds=self.window_seconds),
        )
        with self._lock:
            replaced = self._pending.get(sender_id)
            self._pending[sender_id] = pending
        if replaced is not None and replaced.target_path != path:
            logger.debug("Replaced pending delete %s for sender", replaced.target_path)
        return pending

    def confirm(self, sender_id: str, path: str) -> PendingConfirmation:
        """Consume the sender's pending delete if it matches ``path``.

        Returns:
            The consumed PendingConfirmation

        Raises:
            NoPendingConfirmation: Nothing pending for the sender
            ConfirmationExpired: The pending entry expired (it is removed)
            PathMismatch: The pending entry is for another path (it is kept)
        """
        with self._lock:
            pending = self._pending.get(sender_id)
            if pending is None:
                raise NoPendingConfirmation("No delete is waiting for confirmation.", path=path)
            try:
                _check_match(pending, path, self._clock())
            except ConfirmationExpired:
                del self._pending[sender_id]
                raise
            del self._pending[sender_id]
            return pending

    def get(self, sender_id: str) -> PendingConfirmation | None:
        """Return the sender's pending delete, or None if absent or expired."""
        with self._lock:
            pending = self._pending.get(sender_id)
            if pending is not None and pending.is_expired(self._clock()):
                del self._pending[sender_id]
                return None
            return pending

    def cancel(self, sender_id: str) -> bool:
        """Drop the sender's pending delete. Returns True if one was removed."""
        with self._lock:
            return self._pending.pop(sender_id, None) is not None

    def sweep_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [s for s, p in self._pending.items() if p.is_expired(now)]
            for sender_id in expired:
                del self._pending[sender_id]
        if expired:
            logger.debug("Swept %d expired confirmations", len(expired))
        return len(expired)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)


class RedisConfirmationTracker:
    """Redis-backed confirmation table.

    Entries carry a Redis TTL equal to the window. Confirmation uses
    WATCH/MULTI so that concurrent confirms consume an entry at most once.
    Falls back to the in-memory tracker when no client is given.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        window_seconds: int = DEFAULT_CONFIRMATION_WINDOW_SECONDS,
        key_prefix: str = "driveassist:confirm:",
        clock: Clock | None = None,
    ) -> None:
        self.redis = redis_client
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self._clock = clock or _utcnow

        if self.redis is None:
            logger.warning("Redis not available, using in-memory fallback for confirmations")
            self._fallback: ConfirmationTracker | None = ConfirmationTracker(
                window_seconds, clock=self._clock
            )
        else:
            logger.info("Using Redis-backed confirmation storage")
            self._fallback = None

    def _key(self, sender_id: str) -> str:
        return f"{self.key_prefix}{sender_id}"

    @staticmethod
    def _decode(data: bytes | str) -> PendingConfirmation:
        if isinstance(data, bytes):
            data = data.decode()
        return PendingConfirmation.from_dict(json.loads(data))

    def request_delete(self, sender_id: str, path: str) -> PendingConfirmation:
        if self._fallback is not None:
            return self._fallback.request_delete(sender_id, path)

        now = self._clock()
        pending = PendingConfirmation(
            sender_id=sender_id,
            target_path=path,
            created_at=now,
            expires_at=now + timedelta(seconds=self.window_seconds),
        )
        try:
            self.redis.setex(
                self._key(sender_id), self.window_seconds, json.dumps(pending.to_dict())
            )
        except redis.RedisError as e:
            logger.error("Redis error storing confirmation: %s", e)
            raise CollaboratorError(f"Confirmation store unavailable: {e}") from e
        return pending

    def confirm(self, sender_id: str, path: str) -> PendingConfirmation:
        if self._fallback is not None:
            return self._fallback.confirm(sender_id, path)

        key = self._key(sender_id)
        try:
            with self.redis.pipeline() as pipe:
                pipe.watch(key)
                data = pipe.get(key)
                if data is None:
                    pipe.unwatch()
                    raise NoPendingConfirmation(
                        "No delete is waiting for confirmation.", path=path
                    )

                pending = self._decode(data)
                try:
                    _check_match(pending, path, self._clock())
                except ConfirmationExpired:
                    pipe.unwatch()
                    self.redis.delete(key)
                    raise
                except PathMismatch:
                    pipe.unwatch()
                    raise

                pipe.multi()
                pipe.delete(key)
                pipe.execute()
                return pending
        except redis.WatchError as e:
            # Another request consumed or replaced the entry first
            logger.debug("Concurrent confirmation detected for sender")
            raise NoPendingConfirmation(
                "No delete is waiting for confirmation.", path=path
            ) from e
        except redis.RedisError as e:
            logger.error("Redis error confirming delete: %s", e)
            raise CollaboratorError(f"Confirmation store unavailable: {e}") from e
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error("Corrupt confirmation entry: %s", e)
            self.redis.delete(key)
            raise NoPendingConfirmation(
                "No delete is waiting for confirmation.", path=path
            ) from e

    def get(self, sender_id: str) -> PendingConfirmation | None:
        if self._fallback is not None:
            return self._fallback.get(sender_id)
        try:
            data = self.redis.get(self._key(sender_id))
        except redis.RedisError as e:
            logger.error("Redis error reading confirmation: %s", e)
            return None
        if data is None:
            return None
        try:
            pending = self._decode(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error("Corrupt confirmation entry: %s", e)
            return None
        return None if pending.is_expired(self._clock()) else pending

    def cancel(self, sender_id: str) -> bool:
        if self._fallback is not None:
            return self._fallback.cancel(sender_id)
        try:
            return self.redis.delete(self._key(sender_id)) > 0
        except redis.RedisError as e:
            logger.error("Redis error cancelling confirmation: %s", e)
            return False

    def sweep_expired(self) -> int:
        """Redis expires keys itself; only the fallback needs sweeping."""
        if self._fallback is not None:
            return self._fallback.sweep_expired()
        return 0

    def pending_count(self) -> int | None:
        if self._fallback is not None:
            return self._fallback.pending_count()
        return None
