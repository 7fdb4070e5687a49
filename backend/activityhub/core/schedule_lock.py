"""
Booking mutexes.

Every booking attempt runs its check-then-insert while holding the capacity
lock of its schedule, and keeps holding it until the transaction has
committed. A booking that spends a pack session also holds the lock of that
customer's pack usage, taken after the schedule lock so two bookings always
acquire in the same order. Payment settlement holds a lock per payment
reference so redelivered callbacks apply one at a time. Two backends:

- ``redis``: ``SET key token NX EX ttl`` polled until the wait budget runs out,
  released with a compare-and-delete so an expired holder cannot free a lock
  it no longer owns. Works across processes and hosts.
- ``memory``: a process-local ``threading.Lock`` per resource. Used for tests
  and single-process deployments.

Waiting longer than ``settings.capacity_lock_timeout_seconds`` raises
``CapacityCheckTimeout`` for booking locks and ``SettlementLockTimeout`` for
payment locks.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Callable, Dict, Iterator, Optional

from redis import Redis
from redis.exceptions import RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings
from .exceptions import CapacityCheckTimeout, DomainException, SettlementLockTimeout
from .ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

_POLL_INTERVAL_S = 0.02

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_MEMORY_LOCKS: Dict[str, threading.Lock] = {}
_MEMORY_LOCKS_GUARD = threading.Lock()

_TimeoutFactory = Callable[[float], DomainException]


def schedule_resource(schedule_id: str) -> str:
    return f"schedule:{schedule_id}:capacity"


def pack_resource(pack_id: str, customer_id: str) -> str:
    return f"pack:{pack_id}:customer:{customer_id}:usage"


def payment_resource(reference: str) -> str:
    return f"payment:{reference}:settlement"


def _lock_key(resource: str) -> str:
    return f"{settings.redis_namespace}:lock:{resource}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
            client.ping()
        except RedisError as exc:
            logger.warning("schedule_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _memory_lock_for(resource: str) -> threading.Lock:
    with _MEMORY_LOCKS_GUARD:
        lock = _MEMORY_LOCKS.get(resource)
        if lock is None:
            lock = threading.Lock()
            _MEMORY_LOCKS[resource] = lock
        return lock


@contextmanager
def _memory_lock(resource: str, on_timeout: _TimeoutFactory, timeout_s: float) -> Iterator[None]:
    lock = _memory_lock_for(resource)
    started = time.monotonic()
    if not lock.acquire(timeout=timeout_s):
        waited = time.monotonic() - started
        prometheus_metrics.record_schedule_lock("acquire", "timeout", waited)
        raise on_timeout(waited)
    prometheus_metrics.record_schedule_lock("acquire", "success", time.monotonic() - started)
    try:
        yield
    finally:
        lock.release()
        prometheus_metrics.record_schedule_lock("release", "success")


def _acquire_redis(
    client: Redis,
    resource: str,
    token: str,
    on_timeout: _TimeoutFactory,
    timeout_s: float,
    ttl_s: int,
) -> bool:
    """Poll ``SET NX`` until acquired. False means Redis errored and the lock is skipped."""
    key = _lock_key(resource)
    started = time.monotonic()
    deadline = started + timeout_s
    try:
        while not client.set(key, token, nx=True, ex=ttl_s):
            if time.monotonic() >= deadline:
                waited = time.monotonic() - started
                prometheus_metrics.record_schedule_lock("acquire", "timeout", waited)
                raise on_timeout(waited)
            time.sleep(_POLL_INTERVAL_S)
    except RedisError as exc:
        prometheus_metrics.record_schedule_lock("acquire", "error")
        logger.warning(
            "schedule_lock_acquire_failed",
            extra={"resource": resource, "error": str(exc), "error_type": type(exc).__name__},
        )
        return False
    prometheus_metrics.record_schedule_lock("acquire", "success", time.monotonic() - started)
    return True


def _release_redis(client: Redis, resource: str, token: str) -> None:
    try:
        released = client.eval(_RELEASE_SCRIPT, 1, _lock_key(resource), token)
        prometheus_metrics.record_schedule_lock("release", "success" if released else "not_found")
    except RedisError as exc:
        prometheus_metrics.record_schedule_lock("release", "error")
        logger.warning(
            "schedule_lock_release_failed",
            extra={"resource": resource, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def _redis_lock(
    resource: str, on_timeout: _TimeoutFactory, timeout_s: float, ttl_s: int
) -> Iterator[None]:
    client = _get_sync_redis()
    if client is None:
        # Row-level locking in the database still serializes on PostgreSQL.
        prometheus_metrics.record_schedule_lock("acquire", "redis_unavailable")
        logger.warning("schedule_lock_redis_unavailable", extra={"resource": resource})
        yield
        return

    token = generate_ulid()
    acquired = _acquire_redis(client, resource, token, on_timeout, timeout_s, ttl_s)
    try:
        yield
    finally:
        if acquired:
            _release_redis(client, resource, token)


@contextmanager
def resource_lock(
    resource: str,
    on_timeout: _TimeoutFactory,
    timeout_s: Optional[float] = None,
    ttl_s: Optional[int] = None,
) -> Iterator[None]:
    """Hold the mutex for ``resource``. A timed-out wait raises ``on_timeout(waited)``."""
    timeout = settings.capacity_lock_timeout_seconds if timeout_s is None else timeout_s
    if settings.schedule_lock_backend == "memory":
        with _memory_lock(resource, on_timeout, timeout):
            yield
        return
    ttl = settings.capacity_lock_ttl_seconds if ttl_s is None else ttl_s
    with _redis_lock(resource, on_timeout, timeout, ttl):
        yield


@contextmanager
def schedule_lock(
    schedule_id: str,
    timeout_s: Optional[float] = None,
    ttl_s: Optional[int] = None,
) -> Iterator[None]:
    """Hold the capacity mutex for ``schedule_id`` for the duration of the block."""
    resource = schedule_resource(schedule_id)
    with resource_lock(
        resource,
        lambda waited: CapacityCheckTimeout(schedule_id, waited, resource=resource),
        timeout_s,
        ttl_s,
    ):
        yield


@contextmanager
def pack_lock(
    pack_id: str,
    customer_id: str,
    schedule_id: str,
    timeout_s: Optional[float] = None,
    ttl_s: Optional[int] = None,
) -> Iterator[None]:
    """Hold the mutex over one customer's use of a pack. Take it after ``schedule_lock``."""
    resource = pack_resource(pack_id, customer_id)
    with resource_lock(
        resource,
        lambda waited: CapacityCheckTimeout(schedule_id, waited, resource=resource),
        timeout_s,
        ttl_s,
    ):
        yield


@contextmanager
def payment_lock(
    reference: str, timeout_s: Optional[float] = None, ttl_s: Optional[int] = None
) -> Iterator[None]:
    """Serialize settlement of one payment so redelivered callbacks apply once."""
    with resource_lock(
        payment_resource(reference),
        lambda waited: SettlementLockTimeout(reference, waited),
        timeout_s,
        ttl_s,
    ):
        yield
