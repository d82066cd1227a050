"""Tests for the per-practitioner booking lock."""

import threading
from datetime import date
from unittest.mock import MagicMock

import pytest
from redis.exceptions import LockError, RedisError

from ayursutra.booking_lock import BookingLock, lock_name
from ayursutra.errors import ServiceUnavailableError

DAY = date(2025, 3, 11)


class TestLocalLock:
    """Tests for the in-process lock registry."""

    def test_hold_releases_on_exit(self):
        lock = BookingLock(wait=0.05)
        with lock.hold(1, DAY):
            pass
        with lock.hold(1, DAY):
            pass

    def test_releases_when_body_raises(self):
        lock = BookingLock(wait=0.05)
        with pytest.raises(RuntimeError):
            with lock.hold(1, DAY):
                raise RuntimeError("boom")
        with lock.hold(1, DAY):
            pass

    def test_same_key_is_exclusive(self):
        lock = BookingLock(wait=0.05)
        held = threading.Event()
        release = threading.Event()

        def holder():
            with lock.hold(1, DAY):
                held.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert held.wait(2)
            with pytest.raises(ServiceUnavailableError):
                with lock.hold(1, DAY):
                    pass
        finally:
            release.set()
            thread.join()

    def test_different_keys_do_not_block(self):
        lock = BookingLock(wait=0.05)
        with lock.hold(1, DAY):
            with lock.hold(2, DAY):
                pass
            with lock.hold(1, date(2025, 3, 12)):
                pass

    def test_registry_is_emptied_after_release(self):
        lock = BookingLock(wait=0.05)
        for practitioner_id in range(1, 4):
            with lock.hold(practitioner_id, DAY):
                assert lock_name(practitioner_id, DAY) in lock._locks
        assert lock._locks == {}
        assert lock._users == {}

    def test_registry_is_emptied_after_timeout(self):
        lock = BookingLock(wait=0.05)
        held = threading.Event()
        release = threading.Event()

        def holder():
            with lock.hold(1, DAY):
                held.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert held.wait(2)
            with pytest.raises(ServiceUnavailableError):
                with lock.hold(1, DAY):
                    pass
            # Still held by the other thread
            assert lock._users == {lock_name(1, DAY): 1}
        finally:
            release.set()
            thread.join()
        assert lock._locks == {}

    def test_not_distributed_without_redis(self):
        assert not BookingLock().distributed


class TestRedisLock:
    """Tests for the Redis-backed lock using a mocked client."""

    def make_lock(self, acquired=True):
        client = MagicMock()
        redis_lock = client.lock.return_value
        redis_lock.acquire.return_value = acquired
        return BookingLock(redis_client=client, timeout=10, wait=5), client, redis_lock

    def test_acquires_and_releases(self):
        lock, client, redis_lock = self.make_lock()
        with lock.hold(7, DAY):
            redis_lock.release.assert_not_called()

        client.lock.assert_called_once_with("booking-lock:7:2025-03-11", timeout=10, blocking_timeout=5)
        redis_lock.release.assert_called_once()
        assert lock.distributed

    def test_timeout_is_service_unavailable(self):
        lock, _, redis_lock = self.make_lock(acquired=False)
        with pytest.raises(ServiceUnavailableError):
            with lock.hold(7, DAY):
                pass
        redis_lock.release.assert_not_called()

    def test_redis_failure_fails_closed(self):
        lock, _, redis_lock = self.make_lock()
        redis_lock.acquire.side_effect = RedisError("connection refused")
        with pytest.raises(ServiceUnavailableError):
            with lock.hold(7, DAY):
                pass

    def test_expired_lock_on_release_is_tolerated(self):
        lock, _, redis_lock = self.make_lock()
        redis_lock.release.side_effect = LockError("Cannot release an unlocked lock")
        with lock.hold(7, DAY):
            pass


def test_lock_name():
    assert lock_name(3, DAY) == "booking-lock:3:2025-03-11"
