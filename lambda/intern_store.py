"""DynamoDB-backed document store for intern records.

Exposes the narrow CRUD + query surface the repository consumes. Query
expressions come from ``query_builder`` and are evaluated here: ``equal`` is
pushed down as a scan filter, everything else is applied once the scan has
collected the full match set so ``total`` never depends on the page size.
"""

from __future__ import annotations

import contextlib
import functools
import operator
import os
from decimal import Decimal
from typing import Any, Callable, Iterator

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from query_builder import parse_query
from results import ConflictError, NotFoundError, StoreError
from task_codec import now_iso

INTERNS_TABLE_NAME = os.environ.get("INTERNS_TABLE_NAME", "")
DEFAULT_STORE_TIMEOUT_SECONDS = 5.0

QUERYABLE_ATTRIBUTES = {"id", "internName", "batch", "createdAt", "updatedAt"}
SYSTEM_ATTRIBUTES = {"id", "createdAt", "updatedAt"}

_ddb_resource: Any | None = None


def _store_timeout_seconds() -> float:
    raw = os.environ.get("STORE_TIMEOUT_SECONDS", "")
    try:
        val = float(raw)
    except ValueError:
        return DEFAULT_STORE_TIMEOUT_SECONDS
    return val if val > 0 else DEFAULT_STORE_TIMEOUT_SECONDS


def _ddb() -> Any:
    global _ddb_resource
    if _ddb_resource is None:
        timeout = _store_timeout_seconds()
        _ddb_resource = boto3.resource(
            "dynamodb",
            region_name=os.environ.get("AWS_REGION") or None,
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )
    return _ddb_resource


def _interns_table() -> Any:
    return _ddb().Table(INTERNS_TABLE_NAME)


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, set):
        return sorted(_plain(v) for v in value)
    return value


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code") or "")


@contextlib.contextmanager
def _store_errors(action: str, on_condition_failed: Callable[[], Exception] | None = None) -> Iterator[None]:
    try:
        yield
    except ClientError as e:
        if on_condition_failed is not None and _error_code(e) == "ConditionalCheckFailedException":
            raise on_condition_failed() from e
        raise StoreError(f"{action} failed: {e}") from e
    except BotoCoreError as e:
        raise StoreError(f"{action} failed: {e}") from e
    except (TypeError, ValueError) as e:
        # Unserializable values (floats, unsupported types) fail in boto3 before any request.
        raise StoreError(f"{action} failed: {e}") from e


def _sort_value(value: Any) -> tuple[int, str]:
    # Missing values sort after present ones.
    if value is None or value == "":
        return 1, ""
    return 0, str(value)


def _sort_by(items: list[dict[str, Any]], attr: str, desc: bool) -> list[dict[str, Any]]:
    # Missing values stay after present ones in both directions.
    present = [i for i in items if _sort_value(i.get(attr))[0] == 0]
    missing = [i for i in items if _sort_value(i.get(attr))[0] == 1]
    present.sort(key=lambda i: str(i.get(attr)), reverse=desc)
    return present + missing


class ListPlan:
    """Evaluation plan for a list of query expressions."""

    def __init__(self) -> None:
        self.conditions: list[Any] = []
        self.searches: list[tuple[str, str]] = []
        self.orders: list[tuple[str, bool]] = []
        self.limit: int | None = None
        self.offset = 0

    @classmethod
    def from_queries(cls, queries: list[str] | None) -> ListPlan:
        plan = cls()
        for expr in queries or []:
            try:
                method, args = parse_query(expr)
            except ValueError as e:
                raise StoreError(f"Invalid query: {e}") from e
            plan._apply(method, args, expr)
        return plan

    def _apply(self, method: str, args: list[Any], expr: str) -> None:
        if method == "equal":
            attr = _queryable_attr(args, expr)
            values = args[1:]
            if not values:
                raise StoreError(f"Invalid query: equal requires a value: {expr}")
            if len(values) == 1:
                self.conditions.append(Attr(attr).eq(values[0]))
            else:
                self.conditions.append(Attr(attr).is_in(values))
        elif method == "search":
            attr = _queryable_attr(args, expr)
            if len(args) < 2 or not isinstance(args[1], str):
                raise StoreError(f"Invalid query: search requires a string: {expr}")
            self.searches.append((attr, args[1].lower()))
        elif method in ("orderAsc", "orderDesc"):
            attr = _queryable_attr(args, expr)
            self.orders.append((attr, method == "orderDesc"))
        elif method == "limit":
            self.limit = _non_negative_int(args, expr)
        elif method == "offset":
            self.offset = _non_negative_int(args, expr)
        else:
            raise StoreError(f"Invalid query: unsupported method {method!r}")

    def matches(self, item: dict[str, Any]) -> bool:
        for attr, needle in self.searches:
            if needle not in str(item.get(attr) or "").lower():
                return False
        return True

    def order(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        out = sorted(items, key=lambda i: (_sort_value(i.get("createdAt")), str(i.get("id") or "")))
        # Stable sorts applied last-key-first give multi-key ordering.
        for attr, desc in reversed(self.orders):
            out = _sort_by(out, attr, desc)
        return out

    def page(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        end = None if self.limit is None else self.offset + self.limit
        return items[self.offset:end]


def _queryable_attr(args: list[Any], expr: str) -> str:
    if not args or not isinstance(args[0], str):
        raise StoreError(f"Invalid query: missing attribute: {expr}")
    attr = args[0]
    if attr not in QUERYABLE_ATTRIBUTES:
        raise StoreError(f"Invalid query: attribute not queryable: {attr}")
    return attr


def _non_negative_int(args: list[Any], expr: str) -> int:
    if len(args) != 1 or isinstance(args[0], bool) or not isinstance(args[0], int) or args[0] < 0:
        raise StoreError(f"Invalid query: expected a non-negative integer: {expr}")
    return args[0]


class InternStore:
    def __init__(self, table_factory: Callable[[], Any] | None = None):
        self._table_factory = table_factory or _interns_table

    def _table(self) -> Any:
        return self._table_factory()

    def scan_all(self, conditions: list[Any] | None = None) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        start_key: dict[str, Any] | None = None
        with _store_errors("scan"):
            table = self._table()
            while True:
                kwargs: dict[str, Any] = {"ConsistentRead": True}
                if conditions:
                    kwargs["FilterExpression"] = functools.reduce(operator.and_, conditions)
                if start_key:
                    kwargs["ExclusiveStartKey"] = start_key
                page = table.scan(**kwargs)
                for item in page.get("Items", []) or []:
                    if isinstance(item, dict):
                        items.append(_plain(item))
                start_key = page.get("LastEvaluatedKey")
                if not start_key:
                    break
        return items

    def list_documents(self, queries: list[str] | None = None) -> dict[str, Any]:
        plan = ListPlan.from_queries(queries)
        matched = [item for item in self.scan_all(plan.conditions) if plan.matches(item)]
        ordered = plan.order(matched)
        return {"documents": plan.page(ordered), "total": len(ordered)}

    def get_document(self, intern_id: str) -> dict[str, Any]:
        with _store_errors("get"):
            out = self._table().get_item(Key={"id": intern_id}, ConsistentRead=True)
        item = out.get("Item") if isinstance(out, dict) else None
        if not item:
            raise NotFoundError(f"Intern not found: {intern_id}")
        return _plain(item)

    def create_document(self, intern_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        now = now_iso()
        item = {k: v for k, v in fields.items() if k not in SYSTEM_ATTRIBUTES}
        item.update({"id": intern_id, "createdAt": now, "updatedAt": now})
        with _store_errors("create", lambda: ConflictError(f"Intern already exists: {intern_id}")):
            self._table().put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(#id)",
                ExpressionAttributeNames={"#id": "id"},
            )
        return _plain(item)

    def update_document(self, intern_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        names = {"#id": "id", "#updatedAt": "updatedAt"}
        values: dict[str, Any] = {":updatedAt": now_iso()}
        assignments = ["#updatedAt = :updatedAt"]
        for i, (key, value) in enumerate(sorted(fields.items())):
            if key in SYSTEM_ATTRIBUTES:
                continue
            names[f"#f{i}"] = key
            values[f":v{i}"] = value
            assignments.append(f"#f{i} = :v{i}")

        with _store_errors("update", lambda: NotFoundError(f"Intern not found: {intern_id}")):
            out = self._table().update_item(
                Key={"id": intern_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(#id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        return _plain(out.get("Attributes") or {})

    def delete_document(self, intern_id: str) -> None:
        with _store_errors("delete", lambda: NotFoundError(f"Intern not found: {intern_id}")):
            self._table().delete_item(
                Key={"id": intern_id},
                ConditionExpression="attribute_exists(#id)",
                ExpressionAttributeNames={"#id": "id"},
            )
