from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from tracker.db import get_db
from tracker.store import COLLECTIONS, list_traffic_logs, save_document
from tracker.telemetry_utils import build_log_entry, parse_form_body

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

READ_LIMIT = 1000

NOT_CONFIGURED = "Document store not configured. Set DATABASE_URL to enable persistence."
STORE_FAILED = "Document store write failed. Check the server log."


def _json(content: Dict[str, Any], status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


async def _read_payload(request: Request) -> Dict[str, Any]:
    if "application/json" in (request.headers.get("content-type") or ""):
        data = await request.json()
        return data if isinstance(data, dict) else {}
    return parse_form_body(await request.body())


def _read_logs(db: Optional[Session]) -> JSONResponse:
    if db is None:
        return _json({"status": "success", "data": [], "message": NOT_CONFIGURED})
    try:
        return _json({"status": "success", "data": list_traffic_logs(db, READ_LIMIT)})
    except Exception as e:
        logger.error("error reading traffic logs: %r", e)
        return _json({"status": "success", "data": [], "message": "Document store read failed. Check the server log."})


async def _write_log(request: Request, db: Optional[Session]) -> JSONResponse:
    data = await _read_payload(request)
    peer = request.client.host if request.client else None
    entry = build_log_entry(data, request.headers, peer)

    if db is None:
        reason, detail = "document store not configured", NOT_CONFIGURED
    else:
        try:
            save_document(db, "traffic_logs", entry)
            return _json({"status": "success", "message": "Traffic logged successfully", "timestamp": entry["timestamp"]})
        except Exception as e:
            # the request still succeeds, the entry is lost
            logger.error("error saving traffic log: %r", e)
            reason, detail = "document store write failed", STORE_FAILED

    return _json(
        {
            "status": "success",
            "message": f"Traffic logged (not persisted - {reason})",
            "timestamp": entry["timestamp"],
            "warning": "Data not persisted. " + detail,
        }
    )


@router.api_route("/traffic_logger", methods=["GET", "POST", "OPTIONS", "PUT", "PATCH", "DELETE"])
async def traffic_logger(request: Request, db: Optional[Session] = Depends(get_db)):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    try:
        if request.method == "GET":
            return _read_logs(db)
        if request.method == "POST":
            return await _write_log(request, db)
        return _json({"status": "error", "message": "Method not allowed"}, status_code=405)
    except Exception as e:
        logger.exception("traffic logger error")
        return _json({"status": "error", "message": str(e) or "Internal server error"}, status_code=500)


@router.post("/collect-data")
async def collect_data(request: Request, db: Optional[Session] = Depends(get_db)):
    """
    JSON fallback used by the client pipeline when the primary store is out
    of reach. Answers 503 when it cannot persist so the client keeps the
    payload in its local queue.
    """
    try:
        payload = await request.json()
    except Exception:
        return _json({"status": "error", "message": "Invalid JSON body"}, status_code=400)
    if not isinstance(payload, dict):
        return _json({"status": "error", "message": "Invalid JSON body"}, status_code=400)

    collection = payload.pop("collectionType", None) or "visitors"
    if collection not in COLLECTIONS:
        return _json({"status": "error", "message": f"Unknown collectionType: {collection}"}, status_code=400)

    if db is None:
        return _json({"status": "error", "message": NOT_CONFIGURED}, status_code=503)

    try:
        doc_id = save_document(db, collection, payload)
    except Exception as e:
        logger.error("error saving %s: %r", collection, e)
        return _json({"status": "error", "message": "Write failed"}, status_code=503)

    return _json({"status": "success", "collection": collection, "id": str(doc_id)})
