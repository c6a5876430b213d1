from __future__ import annotations

import json
import re
from typing import Any, Mapping

ORDER_DESC = "desc"

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_EXPR_RE = re.compile(r"^([A-Za-z]+)\((.*)\)$", re.DOTALL)


def _param(params: Mapping[str, Any] | None, key: str) -> str:
    if not params:
        return ""
    val = params.get(key)
    return str(val).strip() if val is not None else ""


def _leading_int(raw: str) -> int | None:
    m = _LEADING_INT_RE.match(raw)
    if not m:
        return None
    return int(m.group(1))


def _q(value: str) -> str:
    return json.dumps(value)


def build_queries(params: Mapping[str, Any] | None) -> list[str]:
    """Translate list query-string parameters into store query expressions."""
    queries: list[str] = []

    batch = _param(params, "batch")
    if batch:
        queries.append(f"equal({_q('batch')}, {_q(batch)})")

    search = _param(params, "search")
    if search:
        queries.append(f"search({_q('internName')}, {_q(search)})")

    limit = _leading_int(_param(params, "limit"))
    if limit is not None:
        queries.append(f"limit({limit})")

    offset = _leading_int(_param(params, "offset"))
    if offset is not None:
        queries.append(f"offset({offset})")

    sort = _param(params, "sort")
    if sort:
        method = "orderDesc" if _param(params, "order").lower() == ORDER_DESC else "orderAsc"
        queries.append(f"{method}({_q(sort)})")

    return queries


def parse_query(expr: str) -> tuple[str, list[Any]]:
    """Split ``method("attr", value)`` into its method name and decoded arguments."""
    m = _EXPR_RE.match(str(expr or "").strip())
    if not m:
        raise ValueError(f"malformed query: {expr}")
    method, raw_args = m.group(1), m.group(2).strip()
    if not raw_args:
        return method, []
    try:
        args = json.loads(f"[{raw_args}]")
    except ValueError as e:
        raise ValueError(f"malformed query arguments: {expr}") from e
    return method, args
