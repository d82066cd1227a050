"""
Per-practitioner, per-day booking lock

Conflict checks and the commit that follows them must not interleave for the
same practitioner and date. With Redis configured the lock is shared by every
worker process; otherwise a process-local lock registry is used.
"""

import logging
from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Iterator, Optional

import redis
from redis.exceptions import LockError, RedisError

from .config import (
    BOOKING_LOCK_TIMEOUT,
    BOOKING_LOCK_WAIT,
    REDIS_DB,
    REDIS_HOST,
    REDIS_PASSWORD,
    REDIS_PORT,
    REDIS_SSL,
    REDIS_URL,
)
from .errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

LOCK_PREFIX = "booking-lock"


def lock_name(practitioner_id: int, day: date) -> str:
    return f"{LOCK_PREFIX}:{practitioner_id}:{day.isoformat()}"


class BookingLock:
    """Serializes conflict-sensitive writes per (practitioner, date)"""

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        timeout: float = BOOKING_LOCK_TIMEOUT,
        wait: float = BOOKING_LOCK_WAIT,
    ):
        self.redis_client = redis_client
        self.timeout = timeout
        self.wait = wait
        # Process-local fallback: {lock name: Lock} and how many holders or waiters use each
        self._locks: dict[str, Lock] = {}
        self._users: dict[str, int] = {}
        self._registry_lock = Lock()

    @property
    def distributed(self) -> bool:
        return self.redis_client is not None

    @contextmanager
    def hold(self, practitioner_id: int, day: date) -> Iterator[None]:
        name = lock_name(practitioner_id, day)
        if self.redis_client is not None:
            with self._hold_redis(name):
                yield
        else:
            with self._hold_local(name):
                yield

    @contextmanager
    def _hold_local(self, name: str) -> Iterator[None]:
        with self._registry_lock:
            lock = self._locks.setdefault(name, Lock())
            self._users[name] = self._users.get(name, 0) + 1

        try:
            if not lock.acquire(timeout=self.wait):
                logger.warning(f"⚠️ Timed out waiting for {name}")
                raise ServiceUnavailableError("Schedule is busy, please retry")
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._registry_lock:
                self._users[name] -= 1
                if not self._users[name]:
                    del self._users[name]
                    del self._locks[name]

    @contextmanager
    def _hold_redis(self, name: str) -> Iterator[None]:
        lock = self.redis_client.lock(name, timeout=self.timeout, blocking_timeout=self.wait)
        try:
            acquired = lock.acquire()
        except RedisError as e:
            logger.error(f"❌ Booking lock error for {name}: {str(e)}")
            # Fail closed: never book without the lock
            raise ServiceUnavailableError("Booking temporarily unavailable") from e

        if not acquired:
            logger.warning(f"⚠️ Timed out waiting for {name}")
            raise ServiceUnavailableError("Schedule is busy, please retry")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # Expired before release; the write already finished
                logger.warning(f"⚠️ Booking lock {name} expired before release")


def get_redis_client() -> Optional[redis.Redis]:
    """
    Create a Redis client from REDIS_URL or REDIS_HOST settings.
    Returns None when neither is configured.
    """
    if REDIS_URL:
        # Mask password in URL for logging
        if "@" in REDIS_URL:
            url_parts = REDIS_URL.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection for booking lock: {masked_url}")

        try:
            client = redis.from_url(
                REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
            client.ping()
            logger.info("✅ Redis connected successfully via URL")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis via URL: {str(e)}")
            raise
        return client

    if REDIS_HOST:
        logger.info(f"📡 Using Redis at {REDIS_HOST}:{REDIS_PORT} db={REDIS_DB} for booking lock")
        try:
            client = redis.Redis(
                host=REDIS_HOST,
                port=REDIS_PORT,
                password=REDIS_PASSWORD,
                db=REDIS_DB,
                ssl=REDIS_SSL,
                decode_responses=True,
                socket_connect_timeout=15,
                socket_timeout=30,
                retry_on_timeout=True,
                health_check_interval=30,
                max_connections=20,
            )
            client.ping()
            ssl_status = "with SSL" if REDIS_SSL else "without SSL"
            logger.info(f"✅ Redis connected successfully at {REDIS_HOST}:{REDIS_PORT} ({ssl_status})")
        except Exception as e:
            logger.error(f"❌ Failed to connect to Redis: {str(e)}")
            raise
        return client

    return None


def create_booking_lock() -> BookingLock:
    client = get_redis_client()
    if client is None:
        logger.info("🔒 Redis not configured, using in-process booking lock")
    return BookingLock(redis_client=client)
