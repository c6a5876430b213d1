from __future__ import annotations

from typing import Any

import task_codec
from ids import is_valid_document_id, new_document_id
from results import VALIDATION_ERROR, InternsError, OpResult

REQUIRED_FIELDS = ("internName", "batch")
UPDATABLE_FIELDS = ("internName", "batch", "roles", "currentProjects")
STRING_FIELDS = ("internName", "batch")
STRING_LIST_FIELDS = ("roles", "currentProjects")
COUNT_QUERIES = ["limit(1)"]


def _decoded(document: dict[str, Any]) -> dict[str, Any]:
    out = dict(document)
    if isinstance(out.get("tasksAssigned"), list):
        out["tasksAssigned"] = task_codec.decode_all(out["tasksAssigned"])
    return out


def _list_field(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def _validate_fields(data: dict[str, Any], *, partial: bool) -> str | None:
    """Return the first type violation in ``data``, or None.

    With ``partial`` set, absent and null fields are left alone (PATCH semantics).
    """
    for name in STRING_FIELDS:
        value = data.get(name)
        if value is None and partial:
            continue
        if not isinstance(value, str) or not value.strip():
            return f"Invalid attribute: {name} must be a non-empty string"
    for name in STRING_LIST_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            return f"Invalid attribute: {name} must be a list of strings"
    tasks = data.get("tasksAssigned")
    if tasks is not None and not isinstance(tasks, list):
        return "Invalid attribute: tasksAssigned must be a list of tasks"
    return None


class InternRepository:
    """CRUD over the intern collection; every call returns an ``OpResult``."""

    def __init__(self, store: Any):
        self.store = store

    def list(self, queries: list[str] | None = None) -> OpResult:
        try:
            out = self.store.list_documents(list(queries or []))
        except InternsError as e:
            return OpResult.from_exception(e)
        documents = [_decoded(d) for d in out.get("documents") or []]
        return OpResult.success(data=documents, total=int(out.get("total") or 0))

    def get(self, intern_id: str) -> OpResult:
        try:
            document = self.store.get_document(intern_id)
        except InternsError as e:
            return OpResult.from_exception(e)
        return OpResult.success(data=_decoded(document))

    def create(self, intern_data: dict[str, Any], explicit_id: str | None = None) -> OpResult:
        intern_id = intern_data.get("documentId") or explicit_id or new_document_id()
        if not is_valid_document_id(intern_id):
            return OpResult.failure(
                VALIDATION_ERROR,
                "Invalid documentId. Use up to 36 chars of a-z, A-Z, 0-9, period, hyphen "
                "and underscore; it cannot start with a special char",
            )
        for required in REQUIRED_FIELDS:
            if not intern_data.get(required):
                return OpResult.failure(VALIDATION_ERROR, f"Missing required attribute: {required}")
        invalid = _validate_fields(intern_data, partial=False)
        if invalid:
            return OpResult.failure(VALIDATION_ERROR, invalid)
        try:
            tasks = task_codec.encode_all(_list_field(intern_data.get("tasksAssigned")))
            fields = {
                "internName": intern_data.get("internName"),
                "batch": intern_data.get("batch"),
                "roles": _list_field(intern_data.get("roles")),
                "currentProjects": _list_field(intern_data.get("currentProjects")),
                "tasksAssigned": tasks,
            }
            document = self.store.create_document(intern_id, fields)
        except InternsError as e:
            return OpResult.from_exception(e)
        return OpResult.success(data=_decoded(document), message="Intern created successfully")

    def update(self, intern_id: str, patch: dict[str, Any]) -> OpResult:
        invalid = _validate_fields(patch, partial=True)
        if invalid:
            return OpResult.failure(VALIDATION_ERROR, invalid)
        fields = {k: patch[k] for k in UPDATABLE_FIELDS if k in patch and patch[k] is not None}
        try:
            if isinstance(patch.get("tasksAssigned"), list):
                fields["tasksAssigned"] = task_codec.encode_all(patch["tasksAssigned"])
            document = self.store.update_document(intern_id, fields)
        except InternsError as e:
            return OpResult.from_exception(e)
        return OpResult.success(data=_decoded(document), message="Intern updated successfully")

    def delete(self, intern_id: str) -> OpResult:
        try:
            self.store.delete_document(intern_id)
        except InternsError as e:
            return OpResult.from_exception(e)
        return OpResult.success(message="Intern deleted successfully")

    def count(self) -> OpResult:
        try:
            out = self.store.list_documents(COUNT_QUERIES)
        except InternsError as e:
            return OpResult.from_exception(e)
        return OpResult.success(count=int(out.get("total") or 0))
