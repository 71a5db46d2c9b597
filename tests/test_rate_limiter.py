"""
Pure unit tests for sentinell/core/rate_limiter.py.

The memory path runs with redis_client.client set to None; the Redis path
uses MockRedis. Time is frozen with unittest.mock.patch to test window
sliding without sleeping.
"""

import time
import uuid
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from sentinell.config import settings
from sentinell.core.rate_limiter import _cleanup_all_limits, _rate_limits, check_rate_limit
from tests.mocks.redis_mock import FailingRedis, MockRedis


def _uid() -> str:
    return f"rl_test_{uuid.uuid4().hex}"


def _with_redis(monkeypatch, client):
    from sentinell.integrations import redis_client as rc
    monkeypatch.setattr(rc, "client", client)


# ---------------------------------------------------------------------------
# Memory fallback
# ---------------------------------------------------------------------------


def test_requests_under_limit_pass(monkeypatch):
    _with_redis(monkeypatch, None)
    uid = _uid()
    for _ in range(settings.rate_limit_max_requests):
        check_rate_limit(uid)


def test_request_exceeding_limit_raises_429(monkeypatch):
    _with_redis(monkeypatch, None)
    uid = _uid()
    for _ in range(settings.rate_limit_max_requests):
        check_rate_limit(uid)

    with pytest.raises(HTTPException) as exc:
        check_rate_limit(uid)
    assert exc.value.status_code == 429


def test_new_window_allows_requests_again(monkeypatch):
    _with_redis(monkeypatch, None)
    uid = _uid()
    for _ in range(settings.rate_limit_max_requests):
        check_rate_limit(uid)

    future_time = time.time() + settings.rate_limit_request_window_sec + 1
    with patch("sentinell.core.rate_limiter.time") as mock_time:
        mock_time.time.return_value = future_time
        check_rate_limit(uid)  # should not raise in the new window


def test_cleanup_removes_idle_clients(monkeypatch):
    _with_redis(monkeypatch, None)
    uid = _uid()
    _rate_limits[uid] = [time.time() - settings.rate_limit_request_window_sec - 5]

    _cleanup_all_limits(time.time())

    assert uid not in _rate_limits


# ---------------------------------------------------------------------------
# Redis path
# ---------------------------------------------------------------------------


def test_redis_counts_and_limits(monkeypatch):
    redis = MockRedis()
    _with_redis(monkeypatch, redis)
    uid = _uid()

    for _ in range(settings.rate_limit_max_requests):
        check_rate_limit(uid)
    with pytest.raises(HTTPException) as exc:
        check_rate_limit(uid)

    assert exc.value.status_code == 429
    assert uid not in _rate_limits


def test_redis_error_falls_back_to_memory(monkeypatch):
    _with_redis(monkeypatch, FailingRedis())
    uid = _uid()

    check_rate_limit(uid)

    assert len(_rate_limits[uid]) == 1
