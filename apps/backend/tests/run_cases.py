#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")

# Used when no --cases file is given
DEFAULT_CASES: List[Dict[str, Any]] = [
    {
        "id": "form_page_view",
        "encoding": "form",
        "body": {"page": "/", "action": "page_view", "session_id": "session_smoke_1", "device_type": "mobile", "browser": "Chrome"},
        "headers": {"X-Forwarded-For": "203.0.113.9"},
    },
    {
        "id": "json_scroll",
        "encoding": "json",
        "body": {"page": "/", "action": "scroll_50", "sessionId": "session_smoke_1", "deviceType": "desktop"},
    },
    {
        "id": "empty_body_defaults",
        "encoding": "form",
        "body": {},
    },
]


def load_cases(path: Optional[Path]) -> List[Dict[str, Any]]:
    if path is None:
        return DEFAULT_CASES
    data = json.loads(path.read_text(encoding="utf-8"))
    if "cases" not in data or not isinstance(data["cases"], list):
        raise ValueError("Invalid cases file: missing 'cases' list")
    return data["cases"]


def post_log(base_url: str, case: Dict[str, Any], timeout: float = 10.0) -> requests.Response:
    url = base_url.rstrip("/") + "/api/traffic_logger"
    headers = case.get("headers") or {}
    if case.get("encoding") == "json":
        return requests.post(url, json=case.get("body") or {}, headers=headers, timeout=timeout)
    return requests.post(url, data=case.get("body") or {}, headers=headers, timeout=timeout)


def validate_post(resp: requests.Response) -> List[str]:
    errs: List[str] = []
    if resp.status_code != 200:
        errs.append(f"status expected 200, got {resp.status_code}")
        return errs
    body = resp.json()
    if body.get("status") != "success":
        errs.append(f"status field expected 'success', got {body.get('status')!r}")
    ts = body.get("timestamp")
    if not isinstance(ts, str) or not TIMESTAMP_RE.match(ts):
        errs.append(f"timestamp not in 'YYYY-MM-DD HH:MM:SS' form: {ts!r}")
    if resp.headers.get("access-control-allow-origin") != "*":
        errs.append("missing CORS header on POST response")
    return errs


def validate_protocol(base_url: str, timeout: float) -> List[str]:
    url = base_url.rstrip("/") + "/api/traffic_logger"
    errs: List[str] = []

    r = requests.options(url, timeout=timeout)
    if r.status_code != 200:
        errs.append(f"OPTIONS expected 200, got {r.status_code}")

    r = requests.put(url, timeout=timeout)
    if r.status_code != 405:
        errs.append(f"PUT expected 405, got {r.status_code}")

    r = requests.get(url, timeout=timeout)
    if r.status_code != 200:
        errs.append(f"GET expected 200, got {r.status_code}")
    else:
        data = r.json().get("data")
        if not isinstance(data, list):
            errs.append(f"GET data expected list, got {type(data).__name__}")
        elif len(data) > 1000:
            errs.append(f"GET returned {len(data)} rows, limit is 1000")
    return errs


def main() -> int:
    ap = argparse.ArgumentParser(description="Smoke-test a running collector endpoint")
    ap.add_argument("--base-url", default="http://localhost:8000", help="API base URL (default: http://localhost:8000)")
    ap.add_argument("--cases", default=None, help="Optional JSON file with a 'cases' list")
    ap.add_argument("--timeout", type=float, default=10.0, help="Request timeout seconds (default: 10)")
    ap.add_argument("--fail-fast", action="store_true", help="Stop at first failure")
    args = ap.parse_args()

    cases_path = Path(args.cases) if args.cases else None
    if cases_path is not None and not cases_path.exists():
        print(f"ERROR: cases file not found: {cases_path}", file=sys.stderr)
        return 2

    cases = load_cases(cases_path)
    total = 0
    failed = 0

    print(f"Running {len(cases)} cases against {args.base_url} ...")

    for case in cases:
        total += 1
        cid = case.get("id", f"case_{total}")
        try:
            errs = validate_post(post_log(args.base_url, case, timeout=args.timeout))
        except Exception as e:
            errs = [f"request/error: {e}"]

        if errs:
            failed += 1
            print(f"\n[FAIL] {cid}")
            for e in errs:
                print(f"  - {e}")
            if args.fail_fast:
                print(f"\nStopped (fail-fast). {failed}/{total} failed.")
                return 1
        else:
            print(f"[PASS] {cid}")

    total += 1
    try:
        errs = validate_protocol(args.base_url, args.timeout)
    except Exception as e:
        errs = [f"request/error: {e}"]
    if errs:
        failed += 1
        print("\n[FAIL] protocol")
        for e in errs:
            print(f"  - {e}")
    else:
        print("[PASS] protocol")

    print(f"\nDone. {failed}/{total} failed.")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
