"""Tests for the Redis-backed confirmation tracker."""

import threading
from unittest.mock import MagicMock

import pytest
import redis

from driveassist.commands.confirmations import RedisConfirmationTracker
from driveassist.errors import (
    CollaboratorError,
    ConfirmationExpired,
    NoPendingConfirmation,
    PathMismatch,
)
from driveassist.redis_client import get_redis_client


@pytest.fixture
def redis_client():
    """Create a Redis client for testing."""
    try:
        client = redis.Redis(host="localhost", port=6379, db=15, decode_responses=False)
        client.ping()
        for key in client.scan_iter(match="test_confirm:*"):
            client.delete(key)
        yield client
        for key in client.scan_iter(match="test_confirm:*"):
            client.delete(key)
    except redis.ConnectionError:
        pytest.skip("Redis not available for testing")


@pytest.fixture
def redis_tracker(redis_client, clock):
    return RedisConfirmationTracker(
        redis_client, window_seconds=300, key_prefix="test_confirm:", clock=clock
    )


@pytest.fixture
def fallback_tracker(clock):
    """Tracker with no Redis (uses in-memory fallback)."""
    return RedisConfirmationTracker(None, window_seconds=300, clock=clock)


class TestRedisConfirmations:
    """Test the Redis backend."""

    def test_request_sets_ttl(self, redis_tracker, redis_client) -> None:
        redis_tracker.request_delete("alice", "/old.txt")
        ttl = redis_client.ttl("test_confirm:alice")
        assert 0 < ttl <= 300

    def test_confirm_consumes(self, redis_tracker) -> None:
        redis_tracker.request_delete("alice", "/old.txt")

        pending = redis_tracker.confirm("alice", "/old.txt")

        assert pending.target_path == "/old.txt"
        assert redis_tracker.get("alice") is None
        with pytest.raises(NoPendingConfirmation):
            redis_tracker.confirm("alice", "/old.txt")

    def test_mismatch_keeps_entry(self, redis_tracker) -> None:
        redis_tracker.request_delete("alice", "/old.txt")
        with pytest.raises(PathMismatch):
            redis_tracker.confirm("alice", "/other.txt")
        assert redis_tracker.get("alice") is not None

    def test_expired_by_clock(self, redis_tracker, clock) -> None:
        redis_tracker.request_delete("alice", "/old.txt")
        clock.advance(300)
        with pytest.raises(ConfirmationExpired):
            redis_tracker.confirm("alice", "/old.txt")
        assert redis_tracker.get("alice") is None

    def test_senders_are_independent(self, redis_tracker) -> None:
        redis_tracker.request_delete("alice", "/a.txt")
        with pytest.raises(NoPendingConfirmation):
            redis_tracker.confirm("bob", "/a.txt")

    def test_concurrent_confirm_consumes_once(self, redis_tracker) -> None:
        redis_tracker.request_delete("alice", "/old.txt")
        results = []

        def confirm():
            try:
                redis_tracker.confirm("alice", "/old.txt")
                results.append("ok")
            except NoPendingConfirmation:
                results.append("missing")

        threads = [threading.Thread(target=confirm) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1

    def test_sweep_is_noop(self, redis_tracker) -> None:
        assert redis_tracker.sweep_expired() == 0
        assert redis_tracker.pending_count() is None


class TestFallback:
    """Test the in-memory fallback."""

    def test_fallback_round_trip(self, fallback_tracker) -> None:
        fallback_tracker.request_delete("alice", "/old.txt")
        assert fallback_tracker.pending_count() == 1
        assert fallback_tracker.confirm("alice", "/old.txt").target_path == "/old.txt"
        assert fallback_tracker.pending_count() == 0

    def test_fallback_expiry(self, fallback_tracker, clock) -> None:
        fallback_tracker.request_delete("alice", "/old.txt")
        clock.advance(301)
        assert fallback_tracker.sweep_expired() == 1


class TestRedisErrors:
    """Test Redis failures surface as collaborator errors."""

    def test_store_unavailable(self, clock) -> None:
        client = MagicMock()
        client.setex.side_effect = redis.ConnectionError("down")
        tracker = RedisConfirmationTracker(client, clock=clock)

        with pytest.raises(CollaboratorError):
            tracker.request_delete("alice", "/old.txt")


def test_client_factory_respects_disable_switch(monkeypatch) -> None:
    monkeypatch.setenv("REDIS_ENABLED", "false")
    assert get_redis_client("redis://localhost:6379/15") is None


class TestCorruptEntries:
    """Test unreadable entries are treated as absent."""

    @pytest.mark.parametrize("raw", [b"not json", b"[1, 2]", b'{"sender_id": "alice"}'])
    def test_get_ignores_corrupt_entry(self, clock, raw) -> None:
        client = MagicMock()
        client.get.return_value = raw
        tracker = RedisConfirmationTracker(client, clock=clock)

        assert tracker.get("alice") is None

    def test_get_reads_valid_entry(self, redis_tracker, redis_client) -> None:
        redis_tracker.request_delete("alice", "/old.txt")
        assert redis_tracker.get("alice").target_path == "/old.txt"

    def test_corrupt_entry_in_redis(self, redis_tracker, redis_client) -> None:
        redis_client.set("test_confirm:alice", b"{broken")
        assert redis_tracker.get("alice") is None
        with pytest.raises(NoPendingConfirmation):
            redis_tracker.confirm("alice", "/old.txt")
