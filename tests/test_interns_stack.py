import pytest
from aws_cdk import App
from aws_cdk import assertions
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stacks.interns_stack import InternsStack


def _synth_template(monkeypatch, mode: str | None) -> assertions.Template:
    monkeypatch.setenv("STAGE", "test")
    if mode is None:
        monkeypatch.delenv("DATA_RETENTION_MODE", raising=False)
    else:
        monkeypatch.setenv("DATA_RETENTION_MODE", mode)
    app = App()
    stack = InternsStack(app, "InternsTestStack")
    return assertions.Template.from_stack(stack)


def _deletion_policies(template: dict, resource_type: str) -> list[str]:
    return [
        resource.get("DeletionPolicy", "")
        for resource in template["Resources"].values()
        if resource.get("Type") == resource_type
    ]


def test_default_data_retention_mode_is_destroy(monkeypatch):
    template = _synth_template(monkeypatch, mode=None).to_json()

    assert set(_deletion_policies(template, "AWS::DynamoDB::Table")) == {"Delete"}
    assert set(_deletion_policies(template, "AWS::Logs::LogGroup")) == {"Delete"}


def test_data_retention_mode_retain(monkeypatch):
    template = _synth_template(monkeypatch, mode="RETAIN").to_json()

    assert set(_deletion_policies(template, "AWS::DynamoDB::Table")) == {"Retain"}
    assert set(_deletion_policies(template, "AWS::Logs::LogGroup")) == {"Retain"}


def test_invalid_data_retention_mode_fails_fast(monkeypatch):
    monkeypatch.setenv("STAGE", "test")
    monkeypatch.setenv("DATA_RETENTION_MODE", "keep-forever")

    app = App()
    with pytest.raises(ValueError, match="DATA_RETENTION_MODE"):
        InternsStack(app, "InternsInvalidStack")


def test_table_keyed_by_id_with_on_demand_billing(monkeypatch):
    template = _synth_template(monkeypatch, mode=None)

    template.resource_count_is("AWS::DynamoDB::Table", 1)
    template.has_resource_properties(
        "AWS::DynamoDB::Table",
        {
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "BillingMode": "PAY_PER_REQUEST",
        },
    )


def test_handler_function_environment(monkeypatch):
    monkeypatch.delenv("STORE_TIMEOUT_SECONDS", raising=False)
    template = _synth_template(monkeypatch, mode=None)

    template.has_resource_properties(
        "AWS::Lambda::Function",
        {
            "Handler": "interns_handler.handler",
            "Environment": {
                "Variables": assertions.Match.object_like(
                    {
                        "INTERNS_TABLE_NAME": assertions.Match.any_value(),
                        "INTERNS_SCHEMA_VERSION": "2025-08-01",
                        "STORE_TIMEOUT_SECONDS": "5",
                    }
                )
            },
        },
    )


def test_api_exposes_every_route(monkeypatch):
    template = _synth_template(monkeypatch, mode=None).to_json()

    path_parts = sorted(
        resource["Properties"]["PathPart"]
        for resource in template["Resources"].values()
        if resource.get("Type") == "AWS::ApiGateway::Resource"
    )
    methods = [
        resource["Properties"]["HttpMethod"]
        for resource in template["Resources"].values()
        if resource.get("Type") == "AWS::ApiGateway::Method"
        and resource["Properties"]["HttpMethod"] != "OPTIONS"
    ]

    assert path_parts == ["count", "interns", "summary", "tasks", "{internId}", "{proxy+}"]
    assert methods == ["ANY"] * 7


def test_unmatched_paths_reach_the_function(monkeypatch):
    template = _synth_template(monkeypatch, mode=None)

    template.has_resource_properties("AWS::ApiGateway::Resource", {"PathPart": "{proxy+}"})
    template.has_resource_properties(
        "AWS::ApiGateway::Method",
        {
            "HttpMethod": "ANY",
            "AuthorizationType": "NONE",
            "Integration": assertions.Match.object_like({"Type": "AWS_PROXY"}),
        },
    )
