"""Task-status summary across every stored intern.

The stored shape of ``tasksAssigned`` changed over time and old items were
never migrated. Each value is classified into one of the shapes below and
converted to per-task outcomes; anything that cannot be decoded, or carries a
status outside ``TASK_STATUSES``, becomes an explicit skip.
"""

from __future__ import annotations

import json
from typing import Any, NamedTuple

from results import InternsError, OpResult
from task_codec import TASK_STATUSES, is_valid_status

SHAPE_MISSING = "missing"
SHAPE_RAW_STRING = "raw_string"  # one JSON string holding the whole array
SHAPE_ARRAY_OF_OBJECTS = "array_of_objects"
SHAPE_ARRAY_OF_STRINGS = "array_of_strings"  # current shape
SHAPE_UNSUPPORTED = "unsupported"

COUNTED = "counted"
SKIPPED_UNDECODABLE = "skipped_undecodable"
SKIPPED_INVALID_STATUS = "skipped_invalid_status"


class TaskOutcome(NamedTuple):
    kind: str
    status: str = ""


def classify(value: Any) -> str:
    if value is None:
        return SHAPE_MISSING
    if isinstance(value, str):
        return SHAPE_RAW_STRING
    if isinstance(value, list):
        if all(isinstance(v, str) for v in value):
            return SHAPE_ARRAY_OF_STRINGS
        return SHAPE_ARRAY_OF_OBJECTS
    return SHAPE_UNSUPPORTED


def _outcome_for_task(task: Any) -> TaskOutcome:
    if not isinstance(task, dict):
        return TaskOutcome(SKIPPED_UNDECODABLE)
    status = task.get("status")
    if not is_valid_status(status):
        return TaskOutcome(SKIPPED_INVALID_STATUS)
    return TaskOutcome(COUNTED, status)


def _outcome_for_element(element: Any) -> TaskOutcome:
    if isinstance(element, str):
        try:
            element = json.loads(element)
        except ValueError:
            return TaskOutcome(SKIPPED_UNDECODABLE)
    return _outcome_for_task(element)


def _from_array(value: list[Any]) -> list[TaskOutcome]:
    # Elements are handled one by one, so arrays mixing strings and objects work too.
    return [_outcome_for_element(v) for v in value]


def _from_raw_string(value: str) -> list[TaskOutcome]:
    try:
        parsed = json.loads(value)
    except ValueError:
        return [TaskOutcome(SKIPPED_UNDECODABLE)]
    if not isinstance(parsed, list):
        return [TaskOutcome(SKIPPED_UNDECODABLE)]
    return _from_array(parsed)


def task_outcomes(value: Any) -> list[TaskOutcome]:
    shape = classify(value)
    if shape == SHAPE_MISSING:
        return []
    if shape == SHAPE_RAW_STRING:
        return _from_raw_string(value)
    if shape in (SHAPE_ARRAY_OF_OBJECTS, SHAPE_ARRAY_OF_STRINGS):
        return _from_array(value)
    return [TaskOutcome(SKIPPED_UNDECODABLE)]


def empty_summary() -> dict[str, int]:
    summary = {status: 0 for status in TASK_STATUSES}
    summary["total"] = 0
    return summary


def tally(documents: list[dict[str, Any]]) -> tuple[dict[str, int], dict[str, int]]:
    summary = empty_summary()
    skipped = {SKIPPED_UNDECODABLE: 0, SKIPPED_INVALID_STATUS: 0}
    for document in documents:
        if not isinstance(document, dict):
            continue
        for outcome in task_outcomes(document.get("tasksAssigned")):
            if outcome.kind == COUNTED:
                summary[outcome.status] += 1
                summary["total"] += 1
            else:
                skipped[outcome.kind] += 1
    return summary, skipped


class TaskSummaryAggregator:
    def __init__(self, store: Any):
        self.store = store
        self.last_skipped: dict[str, int] = {}

    def summarize(self) -> OpResult:
        try:
            documents = self.store.list_documents([]).get("documents") or []
        except InternsError as e:
            return OpResult.from_exception(e)
        summary, self.last_skipped = tally(documents)
        return OpResult.success(summary=summary)
