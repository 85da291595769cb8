# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the Redis service and the submission guard built on it.
"""

import pytest
from unittest.mock import MagicMock, patch

from services.redis import (
    RedisService,
    RedisSubmissionGuard,
    RedisConnectionError,
    SUBMISSION_LOCK_PREFIX
)


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.ping.return_value = "PONG"
    return client


@pytest.fixture
def redis_service(redis_client):
    with patch("services.redis.Redis", return_value=redis_client):
        service = RedisService(redis_url="https://example.upstash.io", redis_token="token")
    return service


class TestRedisService:
    """Test Redis service operations."""

    def test_disabled_without_url(self, disabled_redis_service):
        assert disabled_redis_service.is_available() is False
        assert disabled_redis_service.get("key") is None
        assert disabled_redis_service.set_with_ttl("key", "value", 10) is False

    def test_failed_ping_disables_client(self, redis_client):
        redis_client.ping.return_value = "NOPE"

        with patch("services.redis.Redis", return_value=redis_client):
            service = RedisService(redis_url="https://example.upstash.io", redis_token="token")

        assert service.is_available() is False

    def test_set_with_ttl_serializes_json(self, redis_service, redis_client):
        redis_client.setex.return_value = "OK"

        assert redis_service.set_with_ttl("key", {"a": 1}, 30) is True
        redis_client.setex.assert_called_once_with("key", 30, '{"a": 1}')

    def test_errors_fail_gracefully(self, redis_service, redis_client):
        redis_client.get.side_effect = Exception("timeout")

        assert redis_service.get("key") is None

    def test_acquire_submission_lock_uses_set_nx(self, redis_service, redis_client):
        redis_client.set.return_value = True

        assert redis_service.acquire_submission_lock("sub-1", 45) is True
        redis_client.set.assert_called_once_with(
            f"{SUBMISSION_LOCK_PREFIX}sub-1", "1", ex=45, nx=True
        )

    def test_lock_already_held(self, redis_service, redis_client):
        redis_client.set.return_value = None

        assert redis_service.acquire_submission_lock("sub-1") is False

    def test_lock_error_raises(self, redis_service, redis_client):
        redis_client.set.side_effect = Exception("connection reset")

        with pytest.raises(RedisConnectionError):
            redis_service.acquire_submission_lock("sub-1")

    def test_release_submission_lock(self, redis_service, redis_client):
        redis_client.delete.return_value = 1

        assert redis_service.release_submission_lock("sub-1") is True
        redis_client.delete.assert_called_once_with(f"{SUBMISSION_LOCK_PREFIX}sub-1")

    def test_health_check_unavailable(self, disabled_redis_service):
        assert disabled_redis_service.health_check()["status"] == "unavailable"


class TestRedisSubmissionGuard:
    """Test per-token duplicate suppression."""

    def test_acquire_and_release_through_redis(self, redis_service, redis_client):
        redis_client.set.side_effect = [True, None]
        redis_client.delete.return_value = 1
        guard = RedisSubmissionGuard(redis_service, ttl_seconds=20)

        assert guard.acquire("sub-1") is True
        assert guard.acquire("sub-1") is False

        guard.release("sub-1")
        redis_client.delete.assert_called_once_with(f"{SUBMISSION_LOCK_PREFIX}sub-1")

    def test_falls_back_to_local_keys_without_redis(self, disabled_redis_service):
        guard = RedisSubmissionGuard(disabled_redis_service)

        assert guard.acquire("sub-1") is True
        assert guard.acquire("sub-1") is False
        assert guard.acquire("sub-2") is True

        guard.release("sub-1")
        assert guard.acquire("sub-1") is True

    def test_falls_back_when_redis_errors(self, redis_service, redis_client):
        redis_client.set.side_effect = Exception("connection reset")
        guard = RedisSubmissionGuard(redis_service)

        assert guard.acquire("sub-1") is True
        assert guard.acquire("sub-1") is False

        guard.release("sub-1")
        redis_client.delete.assert_not_called()
