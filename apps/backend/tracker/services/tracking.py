from typing import Any, Callable, Optional

from tracker import db
from tracker.core.config import Settings, settings as default_settings
from tracker.core.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from tracker.services.bus import PageContext, TrackingBus
from tracker.services.pipeline import DeliveryPipeline
from tracker.services.retry import Debouncer, RetryPolicy, linear_backoff
from tracker.services.session import SessionIdentity
from tracker.services.sinks import CollectorSink, LocalQueueSink, PrimaryStoreSink


def build_pipeline(
    config: Settings = default_settings,
    session_factory: Optional[Callable[[], Any]] = None,
    local_storage: Optional[KeyValueStorage] = None,
) -> DeliveryPipeline:
    """Pipeline wired from settings. The primary store defaults to tracker.db.SessionLocal."""
    return DeliveryPipeline(
        primary=PrimaryStoreSink(session_factory or db.SessionLocal),
        secondary=CollectorSink(config.collector_base_url, timeout=config.http_timeout),
        local=LocalQueueSink(local_storage or JsonFileStorage(config.local_store_path)),
        retry=RetryPolicy(config.retry_max_attempts, linear_backoff(config.retry_backoff_base)),
        debouncer=Debouncer(config.heartbeat_debounce_seconds),
    )


def build_bus(
    page: PageContext,
    pipeline: Optional[DeliveryPipeline] = None,
    session_storage: Optional[KeyValueStorage] = None,
    navigate: Optional[Callable[[str], None]] = None,
    config: Settings = default_settings,
) -> TrackingBus:
    return TrackingBus(
        pipeline=pipeline or build_pipeline(config),
        page=page,
        session=SessionIdentity(session_storage or MemoryStorage()),
        navigate=navigate,
        config=config,
    )
