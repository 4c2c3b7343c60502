"""
Per-order settlement mutex backed by Redis.

Only one worker finalizes a given order at a time. When Redis cannot be
reached the lock degrades to "acquired": the conditional slot transitions
still prevent double booking, the lock only avoids duplicated work.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterator, Optional

from redis import Redis

from .config import settings
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(order_id: str) -> str:
    return f"drivebook:lock:settlement:{order_id}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=1,
            )
            client.ping()
        except Exception as exc:
            logger.warning("settlement_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_settlement_lock(order_id: str, ttl_s: Optional[int] = None) -> bool:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_settlement_lock("acquire", "redis_unavailable")
        return True
    try:
        acquired = bool(
            client.set(
                _lock_key(order_id),
                str(time.time()),
                nx=True,
                ex=ttl_s or settings.settlement_lock_ttl_s,
            )
        )
    except Exception as exc:
        prometheus_metrics.record_settlement_lock("acquire", "error")
        logger.warning(
            "settlement_lock_acquire_failed",
            extra={"order_id": order_id, "error": str(exc), "error_type": type(exc).__name__},
        )
        return True
    prometheus_metrics.record_settlement_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_settlement_lock(order_id: str) -> None:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_settlement_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.delete(_lock_key(order_id))
        prometheus_metrics.record_settlement_lock("release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_settlement_lock("release", "error")
        logger.warning(
            "settlement_lock_release_failed",
            extra={"order_id": order_id, "error": str(exc), "error_type": type(exc).__name__},
        )


@contextmanager
def settlement_lock(order_id: str, ttl_s: Optional[int] = None) -> Iterator[bool]:
    acquired = acquire_settlement_lock(order_id, ttl_s=ttl_s)
    try:
        yield acquired
    finally:
        if acquired:
            release_settlement_lock(order_id)
