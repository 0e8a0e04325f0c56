from __future__ import annotations

from typing import Any, Dict, List, Mapping

from sqlalchemy.orm import Session

from tracker.models.records import FormSubmission, TrafficLog, VisitorRecord

COLLECTIONS = {
    "traffic_logs": TrafficLog,
    "form_submissions": FormSubmission,
    "visitors": VisitorRecord,
}

# client payload key -> column
_ALIASES = {
    "traffic_logs": {"kind": "action", "sessionId": "session_id", "deviceType": "device_type", "userAgent": "user_agent"},
    "form_submissions": {"formType": "form_type", "sessionId": "session_id"},
    "visitors": {"sessionId": "session_id", "deviceType": "device_type"},
}


def _columns(model) -> set[str]:
    return {c.name for c in model.__table__.columns if c.name not in ("id", "created_at")}


def to_row(collection: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    if collection not in COLLECTIONS:
        raise KeyError(f"unknown collection: {collection}")
    model = COLLECTIONS[collection]
    aliases = _ALIASES.get(collection, {})
    cols = _columns(model)

    row: Dict[str, Any] = {}
    for k, v in payload.items():
        k = aliases.get(k, k)
        if k in cols and v is not None:
            row[k] = v
    return row


def save_document(db: Session, collection: str, payload: Mapping[str, Any]) -> int:
    """Insert one document and return its id. Raises on any DB error."""
    obj = COLLECTIONS[collection](**to_row(collection, payload))
    db.add(obj)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(obj)
    return obj.id


def traffic_log_to_dict(row: TrafficLog) -> Dict[str, Any]:
    return {
        "id": str(row.id),
        "timestamp": row.timestamp,
        "ip": row.ip,
        "user_agent": row.user_agent,
        "referer": row.referer,
        "page": row.page,
        "action": row.action,
        "label": row.label,
        "session_id": row.session_id,
        "device_type": row.device_type,
        "browser": row.browser,
    }


def list_traffic_logs(db: Session, limit: int = 1000) -> List[Dict[str, Any]]:
    rows = (
        db.query(TrafficLog)
        .order_by(TrafficLog.created_at.desc(), TrafficLog.id.desc())
        .limit(limit)
        .all()
    )
    return [traffic_log_to_dict(r) for r in rows]
