from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from ids import new_task_id
from results import TaskValidationError

STATUS_OPEN = "open"
STATUS_COMPLETED = "completed"
STATUS_TODO = "todo"
STATUS_WORKING = "working"
STATUS_DEFERRED = "deferred"
STATUS_PENDING = "pending"

# Ordered; summary keys and validation messages follow this order.
TASK_STATUSES = (
    STATUS_OPEN,
    STATUS_COMPLETED,
    STATUS_TODO,
    STATUS_WORKING,
    STATUS_DEFERRED,
    STATUS_PENDING,
)

MISSING_FIELD = "MissingField"
INVALID_STATUS = "InvalidStatus"


def now_iso() -> str:
    # Millisecond precision, "Z" suffix.
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_valid_status(value: Any) -> bool:
    return isinstance(value, str) and value in TASK_STATUSES


def validate(task: Any) -> None:
    if not isinstance(task, dict):
        raise TaskValidationError(MISSING_FIELD, "Task must be an object with title and status")
    if not task.get("title"):
        raise TaskValidationError(MISSING_FIELD, "Task title is required")
    if not task.get("status"):
        raise TaskValidationError(MISSING_FIELD, "Task status is required")
    if not is_valid_status(task["status"]):
        raise TaskValidationError(
            INVALID_STATUS,
            f"Invalid task status. Must be one of: {', '.join(TASK_STATUSES)}",
        )


def encode(task: dict[str, Any], *, now: str | None = None) -> str:
    validate(task)
    ts = now or now_iso()
    record = {
        "id": task.get("id") or new_task_id(),
        "title": task["title"],
        "description": task.get("description") or "",
        "status": task["status"],
        "assignedAt": task.get("assignedAt") or ts,
        "updatedAt": ts,
    }
    return json.dumps(record, separators=(",", ":"))


def encode_all(tasks: list[Any], *, now: str | None = None) -> list[str]:
    """Encode a whole task list; the first invalid task fails the batch."""
    ts = now or now_iso()
    return [encode(task, now=ts) for task in tasks]


def decode(raw: Any) -> Any:
    """Best-effort decode of one stored task; returns ``raw`` unchanged on failure."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        return raw
    try:
        parsed = json.loads(raw)
    except ValueError:
        return raw
    if not isinstance(parsed, dict):
        return raw
    return parsed


def decode_all(value: Any) -> Any:
    if not isinstance(value, list):
        return value
    return [decode(item) for item in value]
