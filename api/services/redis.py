# SPDX-License-Identifier: Apache-2.0

"""
Redis service for short-lived submission locks.

This module provides Redis operations using Upstash HTTP client for serverless
compatibility. Its main use is suppressing duplicate donation submissions
across application instances while a prior call is still outstanding.
"""

import os
import json
import threading
import time
from typing import Optional, List, Dict, Any, Union
from upstash_redis import Redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

SUBMISSION_LOCK_PREFIX = "submission:lock:"
DEFAULT_LOCK_TTL_SECONDS = 30


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class RedisService:
    """
    Redis service with Upstash HTTP client for serverless compatibility.

    Operations fail gracefully: when Redis is not configured or a call
    errors, methods log and return a neutral value instead of raising.
    """

    def __init__(self, redis_url: Optional[str] = None, redis_token: Optional[str] = None):
        """
        Initialize the Redis service.

        Args:
            redis_url: Upstash Redis HTTP URL
            redis_token: Upstash Redis authentication token
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL")
        self.redis_token = redis_token or os.getenv("REDIS_TOKEN")

        if not self.redis_url:
            logger.warning("No REDIS_URL configured, Redis operations will be disabled")
            self.client = None
            return

        try:
            if self.redis_token:
                self.client = Redis(url=self.redis_url, token=self.redis_token)
            else:
                self.client = Redis.from_env()

            self._test_connection()

            logger.info("Redis service initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Redis service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        """Test Redis connection."""
        if not self.client:
            return

        try:
            result = self.client.ping()
            if result != "PONG":
                raise RedisConnectionError("Redis ping failed")
        except Exception as e:
            logger.error(f"Redis connection test failed: {str(e)}")
            raise RedisConnectionError(f"Redis connection failed: {str(e)}")

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def _handle_redis_error(self, operation: str, error: Exception) -> None:
        """Log a failed Redis operation without raising."""
        logger.error(f"Redis {operation} failed: {str(error)}")

    def set_with_ttl(self, key: str, value: Union[str, Dict, List], ttl_seconds: int) -> bool:
        """
        Set a key-value pair with TTL.

        Args:
            key: Redis key
            value: Value to store (will be JSON serialized if not string)
            ttl_seconds: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.is_available():
            return False

        with tracer.start_as_current_span("redis.set_with_ttl") as span:
            span.set_attributes({
                "redis.operation": "set_with_ttl",
                "redis.key": key,
                "redis.ttl": ttl_seconds
            })

            try:
                if isinstance(value, (dict, list)):
                    value = json.dumps(value)

                result = self.client.setex(key, ttl_seconds, value)

                span.set_attribute("redis.result", "success")
                logger.debug(f"Redis SET successful: {key} (TTL: {ttl_seconds}s)")

                return result == "OK" or result is True

            except Exception as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("SET", e)
                return False

    def get(self, key: str) -> Optional[str]:
        """Get value by key, or None if missing or Redis is down."""
        if not self.is_available():
            return None

        with tracer.start_as_current_span("redis.get") as span:
            span.set_attributes({
                "redis.operation": "get",
                "redis.key": key
            })

            try:
                result = self.client.get(key)

                span.set_attribute("redis.result", "hit" if result else "miss")
                logger.debug(f"Redis GET: {key} -> {'hit' if result else 'miss'}")

                return result

            except Exception as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("GET", e)
                return None

    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if a key was removed."""
        if not self.is_available():
            return False

        with tracer.start_as_current_span("redis.delete") as span:
            span.set_attributes({
                "redis.operation": "delete",
                "redis.key": key
            })

            try:
                result = self.client.delete(key)

                span.set_attribute("redis.result", "success")
                logger.debug(f"Redis DELETE: {key} -> {result}")

                return result > 0

            except Exception as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("DELETE", e)
                return False

    # Submission lock methods

    def acquire_submission_lock(self, submission_id: str, ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS) -> bool:
        """
        Atomically mark a submission as in flight (SET NX with expiry).

        Args:
            submission_id: Submission token
            ttl_seconds: Lock expiry, so a crashed caller cannot hold it forever

        Returns:
            True if this caller now holds the lock, False if another caller does

        Raises:
            RedisConnectionError: if Redis is unavailable or the call fails
        """
        if not self.is_available():
            raise RedisConnectionError("Redis client not initialized")

        with tracer.start_as_current_span("redis.acquire_submission_lock") as span:
            span.set_attributes({
                "redis.operation": "acquire_submission_lock",
                "submission.id": submission_id,
                "redis.ttl": ttl_seconds
            })

            key = f"{SUBMISSION_LOCK_PREFIX}{submission_id}"
            try:
                result = self.client.set(key, "1", ex=ttl_seconds, nx=True)
            except Exception as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("SET NX", e)
                raise RedisConnectionError(str(e)) from e

            acquired = result is True or result == "OK"
            span.set_attribute("submission.lock_acquired", acquired)
            logger.debug(f"Submission lock {submission_id} -> {'acquired' if acquired else 'held'}")
            return acquired

    def release_submission_lock(self, submission_id: str) -> bool:
        """Release a submission lock. Returns True if a lock was removed."""
        return self.delete(f"{SUBMISSION_LOCK_PREFIX}{submission_id}")

    # Health Check Methods

    def ping(self) -> bool:
        """Ping Redis server."""
        if not self.is_available():
            return False

        try:
            result = self.client.ping()
            return result == "PONG"
        except Exception as e:
            logger.error(f"Redis ping failed: {str(e)}")
            return False

    def health_check(self) -> Dict[str, Any]:
        """
        Perform Redis health check.

        Returns:
            Health check results
        """
        if not self.is_available():
            return {
                "status": "unavailable",
                "message": "Redis client not initialized",
                "timestamp": time.time()
            }

        try:
            start_time = time.time()

            test_key = f"health:check:{int(start_time)}"
            self.set_with_ttl(test_key, "test", 10)
            value = self.get(test_key)
            self.delete(test_key)

            response_time = (time.time() - start_time) * 1000  # ms

            if value == "test":
                return {
                    "status": "healthy",
                    "response_time_ms": round(response_time, 2),
                    "timestamp": time.time()
                }
            return {
                "status": "degraded",
                "message": "Redis operations not working correctly",
                "response_time_ms": round(response_time, 2),
                "timestamp": time.time()
            }

        except Exception as e:
            return {
                "status": "unhealthy",
                "message": str(e),
                "timestamp": time.time()
            }


class RedisSubmissionGuard:
    """
    Per-token submission guard shared across application instances.

    Falls back to an in-process key set when Redis is unavailable, so
    duplicates are still suppressed within a single instance.
    """

    def __init__(self, redis_service: RedisService, ttl_seconds: int = DEFAULT_LOCK_TTL_SECONDS):
        self.redis = redis_service
        self.ttl_seconds = ttl_seconds
        self._local_keys = set()
        self._local_lock = threading.Lock()

    def acquire(self, key: str) -> bool:
        if self.redis.is_available():
            try:
                return self.redis.acquire_submission_lock(key, self.ttl_seconds)
            except RedisConnectionError:
                logger.warning(
                    "Redis lock unavailable, using in-process submission guard",
                    extra={"submission_id": key}
                )

        with self._local_lock:
            if key in self._local_keys:
                return False
            self._local_keys.add(key)
            return True

    def release(self, key: str) -> None:
        with self._local_lock:
            if key in self._local_keys:
                self._local_keys.discard(key)
                return
        self.redis.release_submission_lock(key)
