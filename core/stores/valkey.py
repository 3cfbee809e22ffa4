"""
Valkey-backed counter store.

INCR is atomic on the server, so concurrent claims for one tenant can never
share a number. Keys:

    invoice_counter:{tenant}:next    next number to hand out
    invoice_counter:{tenant}:prefix  invoice number prefix

Command timeouts are set on the ValkeyClient (socket_timeout); the
per-call timeout argument is not used here.
"""

import logging
from uuid import UUID

import redis

from clients.valkey_client import ValkeyClient
from core.errors import CounterUnavailable
from core.models import SequenceCounter

logger = logging.getLogger(__name__)

_KEY_PREFIX = "invoice_counter"


def _next_key(tenant_id: UUID) -> str:
    return f"{_KEY_PREFIX}:{tenant_id}:next"


def _prefix_key(tenant_id: UUID) -> str:
    return f"{_KEY_PREFIX}:{tenant_id}:prefix"


class ValkeyCounterStore:
    """Sequence counters in Valkey."""

    def __init__(self, valkey: ValkeyClient):
        self.valkey = valkey

    def read_counter(self, tenant_id: UUID) -> SequenceCounter | None:
        try:
            next_number, prefix = self.valkey.get_many([_next_key(tenant_id), _prefix_key(tenant_id)])
        except redis.RedisError as e:
            raise CounterUnavailable(f"Could not read counter for {tenant_id}: {e}") from e

        if next_number is None or prefix is None:
            return None
        return SequenceCounter(prefix=prefix, next_number=int(next_number))

    def write_counter(self, tenant_id: UUID, counter: SequenceCounter) -> None:
        try:
            self.valkey.set_many({
                _prefix_key(tenant_id): counter.prefix,
                _next_key(tenant_id): str(counter.next_number),
            })
        except redis.RedisError as e:
            raise CounterUnavailable(f"Could not write counter for {tenant_id}: {e}") from e

    def claim_next(
        self,
        tenant_id: UUID,
        initial: SequenceCounter,
        timeout: float | None = None,
    ) -> SequenceCounter:
        try:
            self.valkey.set_if_absent(_prefix_key(tenant_id), initial.prefix)
            self.valkey.set_if_absent(_next_key(tenant_id), str(initial.next_number))
            after = self.valkey.incr(_next_key(tenant_id))
            prefix = self.valkey.get(_prefix_key(tenant_id)) or initial.prefix
        except redis.RedisError as e:
            raise CounterUnavailable(f"Could not increment counter for {tenant_id}: {e}") from e

        return SequenceCounter(prefix=prefix, next_number=after - 1)
