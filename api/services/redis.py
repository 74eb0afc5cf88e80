# SPDX-License-Identifier: Apache-2.0

"""
Redis service for read-through caching.

This module wraps the redis-py client with JSON helpers, TTL writes and
the counters used to version cache keys. Cache failures never fail a
request: they are logged and the caller falls back to the primary store.
"""

import os
import json
from typing import Optional, List, Dict, Any, Union
import redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class RedisConnectionError(Exception):
    """Raised when a required Redis connection cannot be established."""
    pass


class RedisService:
    """
    Redis service with the redis-py client.

    A service built without a URL (or whose connection failed) is disabled:
    reads miss and writes are no-ops.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        required: bool = False
    ):
        """
        Initialize the Redis service.

        Args:
            redis_url: Redis connection URL (redis://host:port/db)
            client: Pre-built client, used instead of connecting to redis_url
            required: Raise RedisConnectionError instead of disabling the cache
        """
        self.redis_url = redis_url if redis_url is not None else os.getenv("REDIS_URL", "")
        self.client = client

        if self.client is not None:
            return

        if not self.redis_url:
            logger.warning("No REDIS_URL configured, caching will be disabled")
            return

        try:
            self.client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self._test_connection()
            logger.info("Redis service initialized successfully")

        except Exception as e:
            self.client = None
            if required:
                raise RedisConnectionError(f"Redis connection failed: {str(e)}")
            logger.warning(f"Redis unavailable, caching disabled: {str(e)}")

    def _test_connection(self) -> None:
        """Test Redis connection."""
        if not self.client.ping():
            raise RedisConnectionError("Redis ping failed")

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def _handle_redis_error(self, operation: str, error: Exception) -> None:
        """Handle Redis operation errors with logging."""
        logger.error(f"Redis {operation} failed: {str(error)}")
        # Don't raise exceptions for cache operations - fail gracefully

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
                    value = json.dumps(value, default=str)

                result = self.client.setex(key, ttl_seconds, value)

                span.set_attribute("redis.result", "success")
                logger.debug(f"Redis SET successful: {key} (TTL: {ttl_seconds}s)")

                return bool(result)

            except Exception as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("SET", e)
                return False

    def get(self, key: str) -> Optional[str]:
        """Get value by key, None on miss or error."""
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

    def get_json(self, key: str) -> Optional[Union[Dict, List]]:
        """
        Get and deserialize JSON value by key.

        Args:
            key: Redis key

        Returns:
            Deserialized JSON value or None if not found
        """
        value = self.get(key)
        if value is None:
            return None

        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to deserialize JSON from Redis key {key}: {str(e)}")
            return None

    def get_counter(self, key: str) -> Optional[int]:
        """
        Read an integer counter.

        Args:
            key: Redis key of the counter

        Returns:
            Counter value (0 when never incremented), or None if Redis is unavailable
        """
        if not self.is_available():
            return None

        try:
            value = self.client.get(key)
            return int(value) if value is not None else 0
        except Exception as e:
            self._handle_redis_error("GET", e)
            return None

    def incr(self, key: str) -> Optional[int]:
        """
        Atomically increment a counter.

        Args:
            key: Redis key of the counter

        Returns:
            New counter value, or None if the increment failed
        """
        if not self.is_available():
            return None

        with tracer.start_as_current_span("redis.incr") as span:
            span.set_attributes({
                "redis.operation": "incr",
                "redis.key": key
            })

            try:
                value = self.client.incr(key)
                span.set_attribute("redis.result", "success")
                return int(value)
            except Exception as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("INCR", e)
                return None

    def health_check(self) -> Dict[str, Any]:
        """Check Redis connection health."""
        if not self.is_available():
            return {'status': 'disabled'}

        try:
            self.client.ping()
            return {'status': 'healthy'}
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return {'status': 'unhealthy', 'error': str(e)}

    def close(self) -> None:
        """Close the connection pool."""
        if self.client is not None:
            self.client.close()
            self.client = None
            logger.info("Redis connection closed")
