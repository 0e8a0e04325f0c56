from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl

from tracker.services.session import new_session_id

# Pages that never produce tracking events (dashboards, status, confirmation).
EXCLUDED_PAGES = (
    "/firebase-dashboard.html",
    "/traffic_dashboard.html",
    "/firebase-test.html",
    "/index.html",
    "/server-status.html",
    "/thank-you.html",
)


def is_excluded_page(path: str | None) -> bool:
    p = (path or "").lower()
    return any(page in p for page in EXCLUDED_PAGES)


def iso_now() -> str:
    """ISO-8601, UTC, second precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def log_timestamp(now: datetime | None = None) -> str:
    """Collector format: YYYY-MM-DD HH:MM:SS (UTC)."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%d %H:%M:%S")


def client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return peer or "unknown"


def parse_form_body(body: bytes | str) -> dict[str, str]:
    # pairs with an empty value are skipped
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else (body or "")
    return {k: v for k, v in parse_qsl(text) if k and v}


def build_log_entry(data: Mapping[str, Any], headers: Mapping[str, str], peer: Optional[str] = None) -> dict[str, Any]:
    """Server-side stamping of a traffic log entry."""
    return {
        "timestamp": log_timestamp(),
        "ip": client_ip(headers, peer),
        "user_agent": headers.get("user-agent") or "unknown",
        "referer": headers.get("referer") or "direct",
        "page": data.get("page") or "unknown",
        "action": data.get("action") or "visit",
        "session_id": data.get("session_id") or data.get("sessionId") or new_session_id(),
        "device_type": data.get("device_type") or data.get("deviceType") or "unknown",
        "browser": data.get("browser") or "unknown",
        "label": data.get("label") or None,
    }
