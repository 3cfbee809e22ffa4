"""
Valkey client for per-tenant invoice counters.

Thin layer over redis-py (Valkey speaks the same protocol). Errors are
raised as redis exceptions; ValkeyCounterStore turns them into
CounterUnavailable and the allocator decides whether to fall back.
"""

import logging
from typing import Mapping, Sequence

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    String-in, string-out access to Valkey.

        valkey = ValkeyClient(get_valkey_url(), socket_timeout=2.0)
        valkey.set_if_absent("invoice_counter:<tenant>:next", "1001")
        claimed_plus_one = valkey.incr("invoice_counter:<tenant>:next")
    """

    def __init__(self, url: str, socket_timeout: float | None = None):
        """
        Connect and ping. socket_timeout bounds both connecting and every
        command; None waits indefinitely.

        Raises:
            redis.ConnectionError: Valkey is unreachable
        """
        self._client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        self._client.ping()
        logger.info("Connected to Valkey (timeout=%s)", socket_timeout)

    def ping(self) -> bool:
        self._client.ping()
        return True

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def get_many(self, keys: Sequence[str]) -> list[str | None]:
        """MGET: one round trip, values in key order, None for missing keys."""
        return self._client.mget(list(keys))

    def set_many(self, values: Mapping[str, str]) -> None:
        """MSET: all keys are written together or not at all."""
        self._client.mset(dict(values))

    def set_if_absent(self, key: str, value: str) -> bool:
        """SET NX. True if this call created the key."""
        return bool(self._client.set(key, value, nx=True))

    def incr(self, key: str) -> int:
        """Atomic INCR; a missing key counts from 0. Returns the new value."""
        return self._client.incr(key)

    def close(self) -> None:
        self._client.close()
