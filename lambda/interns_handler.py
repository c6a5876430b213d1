from __future__ import annotations

import base64
import json
import os
import time
from typing import Any

from ids import new_document_id
from intern_repository import InternRepository
from intern_store import InternStore
from results import INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE, OpResult
from router import RESOURCE, ROUTE_CREATE, ROUTE_SUMMARY, route
from task_codec import now_iso
from task_summary import TaskSummaryAggregator

INTERNS_TABLE_NAME = os.environ.get("INTERNS_TABLE_NAME", "")
SCHEMA_VERSION = os.environ.get("INTERNS_SCHEMA_VERSION", "2025-08-01")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PATCH, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _headers() -> dict[str, str]:
    return {
        "content-type": "application/json",
        "cache-control": "no-store",
        **CORS_HEADERS,
    }


def _response(status_code: int, body: dict[str, Any], request_id: str) -> dict[str, Any]:
    payload = dict(body)
    payload.setdefault("requestId", request_id)
    return {
        "statusCode": int(status_code),
        "headers": _headers(),
        "body": json.dumps(payload),
    }


def _request_id(event: dict[str, Any]) -> str:
    rc = event.get("requestContext") or {}
    if isinstance(rc, dict):
        rid = str(rc.get("requestId") or "").strip()
        if rid:
            return rid
    return new_document_id()


def _parse_body(event: dict[str, Any]) -> dict[str, Any]:
    # Anything that is not a JSON object is treated as an empty body.
    raw = event.get("body")
    if not isinstance(raw, str):
        return {}
    if bool(event.get("isBase64Encoded")):
        try:
            raw = base64.b64decode(raw.encode("utf-8")).decode("utf-8")
        except ValueError:
            return {}
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _segments(event: dict[str, Any]) -> list[str]:
    path = str(event.get("path") or "").strip()
    segments = [s for s in path.split("/") if s]
    # Best effort for custom-domain base paths in front of the resource.
    if RESOURCE in segments:
        segments = segments[segments.index(RESOURCE):]
    return segments


def _query_params(event: dict[str, Any]) -> dict[str, str]:
    qs = event.get("queryStringParameters") or {}
    if not isinstance(qs, dict):
        return {}
    return {str(k): str(v) for k, v in qs.items() if v is not None}


def handler(event: dict[str, Any], _context: Any) -> dict[str, Any]:
    start = time.time()
    request_id = _request_id(event)
    method = str(event.get("httpMethod") or "").upper()
    path = str(event.get("path") or "")
    wide_event: dict[str, Any] = {
        "event": "interns_api_request",
        "schema_version": SCHEMA_VERSION,
        "ts": now_iso(),
        "request_id": request_id,
        "method": method,
        "path": path,
    }

    try:
        if method == "OPTIONS":
            wide_event["outcome"] = "preflight"
            wide_event["status_code"] = 200
            return {"statusCode": 200, "headers": _headers(), "body": ""}

        if not INTERNS_TABLE_NAME:
            wide_event["outcome"] = "misconfigured"
            wide_event["status_code"] = 500
            return _response(
                500,
                {
                    "success": False,
                    "error": "INTERNS_TABLE_NAME env var is required",
                    "errorCode": "MISCONFIGURED",
                },
                request_id,
            )

        store = InternStore()
        aggregator = TaskSummaryAggregator(store)
        route_name, result = route(
            method,
            _segments(event),
            _query_params(event),
            _parse_body(event),
            repository=InternRepository(store),
            aggregator=aggregator,
        )
        status_code = result.status_code(201 if route_name == ROUTE_CREATE else 200)

        wide_event["route"] = route_name or ""
        wide_event["outcome"] = "success" if result.ok else result.error_kind
        wide_event["status_code"] = status_code
        if not result.ok:
            wide_event["error"] = {"type": result.error_kind, "message": result.detail or result.error}
        if route_name == ROUTE_SUMMARY and aggregator.last_skipped:
            wide_event["skipped"] = dict(aggregator.last_skipped)
        return _response(status_code, result.to_envelope(), request_id)
    except Exception as exc:
        wide_event["outcome"] = "error"
        wide_event["status_code"] = 500
        wide_event["error"] = {"type": type(exc).__name__, "message": str(exc)}
        failure = OpResult.failure(INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)
        return _response(500, failure.to_envelope(), request_id)
    finally:
        wide_event["duration_ms"] = int((time.time() - start) * 1000)
        print(json.dumps(wide_event, separators=(",", ":"), sort_keys=True))
