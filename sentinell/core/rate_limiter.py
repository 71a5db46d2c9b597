"""
Per-client throttle for model-bound requests (analyses, transcriptions,
scam checks). Redis-backed when configured, in-memory sliding window otherwise.

The Redis client is read through the integration module at call time so it
picks up the instance created during the FastAPI lifespan.
"""

import time
import logging
from typing import Dict, List

from fastapi import HTTPException, Request

from sentinell.config import settings
from sentinell.integrations import redis_client as redis_module

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = "Too many requests. Please try again in a minute."

# In-memory store: {identifier: [timestamp, ...]}
_rate_limits: Dict[str, List[float]] = {}


def client_identifier(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def check_rate_limit(identifier: str) -> None:
    """Raises HTTPException(429) once `identifier` exceeds the window budget."""
    rc = redis_module.client
    if rc:
        _check_rate_limit_redis(rc, identifier)
    else:
        _check_rate_limit_memory(identifier)


def _check_rate_limit_redis(rc, identifier: str) -> None:
    key = f"sentinell:rate_limit:{identifier}"
    try:
        current_count = rc.incr(key)
        if current_count == 1:
            rc.expire(key, settings.rate_limit_request_window_sec)

        if current_count > settings.rate_limit_max_requests:
            logger.warning(f"Redis rate limit exceeded for {identifier}")
            raise HTTPException(status_code=429, detail=TOO_MANY_REQUESTS)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Redis rate limit error: {e}. Falling back to memory.")
        _check_rate_limit_memory(identifier)


def _check_rate_limit_memory(identifier: str) -> None:
    now = time.time()
    window = settings.rate_limit_request_window_sec

    if len(_rate_limits) > settings.rate_limit_memory_limit:
        _cleanup_all_limits(now)

    recent = [t for t in _rate_limits.get(identifier, []) if now - t < window]
    if len(recent) >= settings.rate_limit_max_requests:
        _rate_limits[identifier] = recent
        logger.warning(f"Memory rate limit exceeded for {identifier}")
        raise HTTPException(status_code=429, detail=TOO_MANY_REQUESTS)

    recent.append(now)
    _rate_limits[identifier] = recent


def _cleanup_all_limits(now: float) -> None:
    """Drop identifiers that have been idle for the full window."""
    window = settings.rate_limit_request_window_sec
    expired_keys = [k for k, v in _rate_limits.items() if not v or now - v[-1] > window]
    for k in expired_keys:
        del _rate_limits[k]
    logger.info(f"Rate limit cleanup: removed {len(expired_keys)} idle clients.")


def reset() -> None:
    _rate_limits.clear()
