from __future__ import annotations

from typing import Any, Mapping

from query_builder import build_queries
from results import INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE, METHOD_NOT_ALLOWED, ROUTE_NOT_FOUND, OpResult

RESOURCE = "interns"
COUNT_SEGMENT = "count"

ROUTE_LIST = "list"
ROUTE_GET = "get"
ROUTE_COUNT = "count"
ROUTE_SUMMARY = "summary"
ROUTE_CREATE = "create"
ROUTE_UPDATE = "update"
ROUTE_DELETE = "delete"


def _is_collection(segments: list[str]) -> bool:
    return segments == [] or segments == [RESOURCE]


def _is_item(segments: list[str]) -> bool:
    return len(segments) == 2 and segments[0] == RESOURCE and segments[1] != COUNT_SEGMENT


def match_route(method: str, segments: list[str]) -> tuple[str | None, OpResult | None]:
    """Resolve the route name, or the routing failure when nothing applies."""
    m = method.upper()
    if _is_collection(segments):
        if m == "GET":
            return ROUTE_LIST, None
        if m == "POST":
            return ROUTE_CREATE, None
        return None, OpResult.failure(METHOD_NOT_ALLOWED, "Method not allowed")

    if segments == [RESOURCE, COUNT_SEGMENT]:
        if m == "GET":
            return ROUTE_COUNT, None
        return None, OpResult.failure(METHOD_NOT_ALLOWED, "Method not allowed")

    if segments == [RESOURCE, "tasks", "summary"]:
        if m == "GET":
            return ROUTE_SUMMARY, None
        return None, OpResult.failure(METHOD_NOT_ALLOWED, "Method not allowed")

    if _is_item(segments):
        route = {"GET": ROUTE_GET, "PATCH": ROUTE_UPDATE, "DELETE": ROUTE_DELETE}.get(m)
        if route:
            return route, None
        return None, OpResult.failure(METHOD_NOT_ALLOWED, "Method not allowed")

    return None, OpResult.failure(ROUTE_NOT_FOUND, "Route not found")


def route(
    method: str,
    segments: list[str],
    query: Mapping[str, Any] | None,
    body: dict[str, Any] | None,
    *,
    repository: Any,
    aggregator: Any,
) -> tuple[str | None, OpResult]:
    """Dispatch one request to exactly one repository or aggregator call."""
    name, failure = match_route(method, segments)
    if failure is not None:
        return None, failure
    payload = body if isinstance(body, dict) else {}

    try:
        if name == ROUTE_LIST:
            return name, repository.list(build_queries(query))
        if name == ROUTE_COUNT:
            return name, repository.count()
        if name == ROUTE_SUMMARY:
            return name, aggregator.summarize()
        if name == ROUTE_CREATE:
            return name, repository.create(payload, payload.get("documentId"))
        if name == ROUTE_GET:
            return name, repository.get(segments[1])
        if name == ROUTE_UPDATE:
            return name, repository.update(segments[1], payload)
        if name == ROUTE_DELETE:
            return name, repository.delete(segments[1])
    except Exception as e:
        return name, OpResult.failure(INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE, detail=f"{type(e).__name__}: {e}")
    return name, OpResult.failure(ROUTE_NOT_FOUND, "Route not found")
