from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel

from tracker.core.errors import ConfigurationAbsent, PermanentLocalFailure, TrackerError
from tracker.schemas.events import ContactSubmission, VisitorSnapshot
from tracker.services.retry import Debouncer, RetryPolicy
from tracker.services.sinks import LocalQueueSink, Sink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivered:
    store: str
    status = "delivered"


@dataclass(frozen=True)
class Queued:
    reason: str
    status = "queued"


@dataclass(frozen=True)
class Dropped:
    reason: str
    status = "dropped"


DeliveryOutcome = Union[Delivered, Queued, Dropped]

Payload = Union[BaseModel, Mapping[str, Any]]


class DeliveryPipeline:
    """
    Ships one payload through primary -> secondary -> local queue.

    The primary store gets `retry` (3 attempts with 1s x attempt backoff by
    default), the secondary a single attempt. `deliver` always returns a
    DeliveryOutcome and never raises.
    """

    def __init__(
        self,
        primary: Sink,
        secondary: Sink,
        local: LocalQueueSink,
        retry: Optional[RetryPolicy] = None,
        debouncer: Optional[Debouncer] = None,
    ):
        self.chain: List[Tuple[Sink, Optional[RetryPolicy]]] = [
            (primary, retry or RetryPolicy()),
            (secondary, None),
        ]
        self.local = local
        self.debouncer = debouncer or Debouncer()

    @staticmethod
    def validate(payload: Payload) -> Optional[str]:
        if isinstance(payload, ContactSubmission) and not payload.is_valid():
            return "missing required fields (name/phone)"
        return None

    @staticmethod
    def _collection(payload: Payload, store_kind: Optional[str]) -> str:
        if store_kind:
            return store_kind
        collection = getattr(payload, "collection", None)
        if not collection:
            raise ValueError("store_kind is required for plain mapping payloads")
        return collection

    async def _write(self, sink: Sink, policy: Optional[RetryPolicy], data: Mapping[str, Any], collection: str) -> None:
        if policy is None:
            await sink.write(data, collection)
            return
        await policy.run(lambda: sink.write(data, collection), label=f"{sink.name} write to {collection}")

    async def deliver(self, payload: Payload, store_kind: Optional[str] = None) -> DeliveryOutcome:
        try:
            problem = self.validate(payload)
            if problem:
                logger.warning("dropped before delivery: %s", problem)
                return Dropped(problem)

            collection = self._collection(payload, store_kind)
            data = payload.model_dump() if isinstance(payload, BaseModel) else dict(payload)

            last_error = "no remote store configured"
            for sink, policy in self.chain:
                try:
                    await self._write(sink, policy, data, collection)
                except ConfigurationAbsent as e:
                    logger.info("%s skipped for %s: %s", sink.name, collection, e)
                    continue
                except TrackerError as e:
                    last_error = str(e)
                    logger.error("%s gave up on %s: %s", sink.name, collection, e)
                    continue
                logger.info("%s delivered to %s store", collection, sink.name)
                return Delivered(sink.name)

            try:
                await self.local.write(data, collection)
            except PermanentLocalFailure as e:
                logger.error("all save methods failed for %s, payload lost: %s", collection, e)
                return Dropped("local storage unavailable")
            logger.warning("%s stored in local queue for later sync", collection)
            return Queued(last_error)
        except Exception as e:
            logger.exception("unexpected delivery error")
            return Dropped(f"internal error: {e!r}")

    async def heartbeat(self, snapshot: VisitorSnapshot) -> Optional[DeliveryOutcome]:
        """Debounced visitor snapshot. Returns None when suppressed."""
        if not self.debouncer.allow():
            return None
        return await self.deliver(snapshot)
