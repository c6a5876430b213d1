import copy
import importlib
import sys

import pytest
from botocore.exceptions import ClientError

LAMBDA_MODULES = (
    "ids",
    "results",
    "task_codec",
    "query_builder",
    "intern_store",
    "intern_repository",
    "task_summary",
    "router",
    "interns_handler",
)


def _condition_failed(op: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
        op,
    )


def _matches(cond, item: dict) -> bool:
    expr = cond.get_expression()
    op = expr["operator"]
    values = expr["values"]
    if op == "AND":
        return _matches(values[0], item) and _matches(values[1], item)
    if op == "=":
        return item.get(values[0].name) == values[1]
    if op == "IN":
        return item.get(values[0].name) in values[1]
    raise AssertionError(f"unsupported condition operator in fake: {op}")


class FakeInternsTable:
    """In-memory stand-in for the DynamoDB interns table."""

    def __init__(self, items: list[dict] | None = None, *, page_size: int = 2):
        self.items: dict[str, dict] = {}
        for item in items or []:
            self.items[item["id"]] = copy.deepcopy(item)
        self.page_size = page_size
        self.calls: list[str] = []

    def scan(self, **kwargs):
        self.calls.append("scan")
        ids = sorted(self.items)
        start = kwargs.get("ExclusiveStartKey")
        if start:
            ids = [i for i in ids if i > start["id"]]
        page_ids = ids[: self.page_size]
        out = [copy.deepcopy(self.items[i]) for i in page_ids]
        cond = kwargs.get("FilterExpression")
        if cond is not None:
            out = [i for i in out if _matches(cond, i)]
        resp = {"Items": out}
        if len(ids) > self.page_size:
            resp["LastEvaluatedKey"] = {"id": page_ids[-1]}
        return resp

    def get_item(self, *, Key, ConsistentRead=False):
        self.calls.append("get_item")
        item = self.items.get(Key["id"])
        return {"Item": copy.deepcopy(item)} if item else {}

    def put_item(self, *, Item, ConditionExpression=None, ExpressionAttributeNames=None):
        self.calls.append("put_item")
        if ConditionExpression and Item["id"] in self.items:
            raise _condition_failed("PutItem")
        self.items[Item["id"]] = copy.deepcopy(Item)

    def update_item(
        self,
        *,
        Key,
        UpdateExpression,
        ConditionExpression,
        ExpressionAttributeNames,
        ExpressionAttributeValues,
        ReturnValues,
    ):
        self.calls.append("update_item")
        item = self.items.get(Key["id"])
        if item is None:
            raise _condition_failed("UpdateItem")
        assert UpdateExpression.startswith("SET ")
        for assignment in UpdateExpression[len("SET "):].split(", "):
            name_ref, value_ref = assignment.split(" = ")
            item[ExpressionAttributeNames[name_ref]] = copy.deepcopy(ExpressionAttributeValues[value_ref])
        assert ReturnValues == "ALL_NEW"
        return {"Attributes": copy.deepcopy(item)}

    def delete_item(self, *, Key, ConditionExpression=None, ExpressionAttributeNames=None):
        self.calls.append("delete_item")
        if Key["id"] not in self.items:
            raise _condition_failed("DeleteItem")
        del self.items[Key["id"]]


@pytest.fixture
def load_lambda(monkeypatch):
    monkeypatch.setenv("INTERNS_TABLE_NAME", "Interns")
    monkeypatch.setenv("INTERNS_SCHEMA_VERSION", "2025-08-01")
    monkeypatch.setenv("AWS_REGION", "us-east-2")
    if "lambda" not in sys.path:
        sys.path.insert(0, "lambda")

    def _load(name: str):
        # Reload every module in dependency order so env reads and exception classes stay in sync.
        for dep in LAMBDA_MODULES:
            importlib.reload(importlib.import_module(dep))
        return sys.modules[name]

    return _load


@pytest.fixture
def make_table():
    def _make(items: list[dict] | None = None, *, page_size: int = 2) -> FakeInternsTable:
        return FakeInternsTable(items, page_size=page_size)

    return _make
