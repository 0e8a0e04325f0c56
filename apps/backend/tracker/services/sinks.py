from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

import requests

from tracker.core.errors import ConfigurationAbsent, PermanentLocalFailure, TransientStoreFailure
from tracker.core.storage import KeyValueStorage
from tracker.store import save_document

logger = logging.getLogger(__name__)

# localStorage keys of the pending queues, per collection
PENDING_KEYS = {
    "form_submissions": "birla_pending_submissions",
    "visitors": "birla_visitor_data",
    "traffic_logs": "birla_pending_traffic",
}

# Fields the collector's traffic endpoint understands (form-urlencoded)
TRAFFIC_FORM_FIELDS = ("page", "action", "session_id", "device_type", "browser", "label")


class Sink(Protocol):
    name: str

    async def write(self, payload: Mapping[str, Any], collection: str) -> None:
        """Persist one payload. Raises a TrackerError subclass on failure."""
        ...


class PrimaryStoreSink:
    """The SQL document store, reached through a SQLAlchemy session factory."""

    name = "primary"

    def __init__(self, session_factory: Optional[Callable[[], Any]]):
        self.session_factory = session_factory

    def _write_sync(self, payload: Mapping[str, Any], collection: str) -> int:
        db = self.session_factory()
        try:
            return save_document(db, collection, payload)
        finally:
            db.close()

    async def write(self, payload: Mapping[str, Any], collection: str) -> None:
        if self.session_factory is None:
            raise ConfigurationAbsent("primary store not configured")
        try:
            doc_id = await asyncio.to_thread(self._write_sync, payload, collection)
        except Exception as e:
            raise TransientStoreFailure(f"primary write to {collection} failed: {e!r}") from e
        logger.debug("primary: %s/%s written", collection, doc_id)


class CollectorSink:
    """
    The collector HTTP endpoint.

    Traffic events go to /traffic_logger as a form-urlencoded body; everything
    else goes to /collect-data as JSON tagged with collectionType.
    """

    name = "secondary"

    def __init__(self, base_url: Optional[str], timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _post(self, payload: Mapping[str, Any], collection: str) -> requests.Response:
        if collection == "traffic_logs":
            form = {k: str(payload[k]) for k in TRAFFIC_FORM_FIELDS if payload.get(k) is not None}
            if "action" not in form and payload.get("kind"):
                form["action"] = str(payload["kind"])
            # the collector stamps user agent and referer from request headers
            headers = {}
            if payload.get("user_agent") and payload["user_agent"] != "unknown":
                headers["User-Agent"] = str(payload["user_agent"])
            if payload.get("referer") and payload["referer"] != "direct":
                headers["Referer"] = str(payload["referer"])
            return self.http.post(f"{self.base_url}/traffic_logger", data=form, headers=headers, timeout=self.timeout)
        body = dict(payload)
        body["collectionType"] = collection
        return self.http.post(f"{self.base_url}/collect-data", json=body, timeout=self.timeout)

    async def write(self, payload: Mapping[str, Any], collection: str) -> None:
        if not self.base_url:
            raise ConfigurationAbsent("collector url not configured")
        try:
            r = await asyncio.to_thread(self._post, payload, collection)
        except requests.RequestException as e:
            raise TransientStoreFailure(f"collector unreachable: {e!r}") from e
        if not r.ok:
            raise TransientStoreFailure(f"collector responded with status: {r.status_code}")


class LocalQueueSink:
    """Append-only JSON arrays in local durable storage, one key per collection."""

    name = "local"

    def __init__(self, storage: KeyValueStorage, keys: Optional[Dict[str, str]] = None):
        self.storage = storage
        self.keys = dict(keys or PENDING_KEYS)

    def key_for(self, collection: str) -> str:
        return self.keys.get(collection, f"birla_pending_{collection}")

    def pending(self, collection: str) -> list:
        raw = self.storage.get_item(self.key_for(collection))
        return json.loads(raw) if raw else []

    async def write(self, payload: Mapping[str, Any], collection: str) -> None:
        try:
            items = self.pending(collection)
            if not isinstance(items, list):
                items = []
            items.append(dict(payload))
            self.storage.set_item(self.key_for(collection), json.dumps(items, ensure_ascii=False))
        except Exception as e:
            raise PermanentLocalFailure(f"local queue write failed: {e!r}") from e
