import os

from aws_cdk import (
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_apigateway as apigw,
    aws_dynamodb as ddb,
    aws_lambda as _lambda,
    aws_logs as logs,
)
from constructs import Construct


class InternsStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        stage_name = os.getenv("STAGE", "prod")
        data_retention_mode = os.getenv("DATA_RETENTION_MODE", "destroy").strip().lower()
        if data_retention_mode not in {"destroy", "retain"}:
            raise ValueError(
                "DATA_RETENTION_MODE must be 'destroy' or 'retain' (case-insensitive)"
            )
        # Dev-first default: delete the table on teardown. Production sets DATA_RETENTION_MODE=retain.
        stateful_removal_policy = (
            RemovalPolicy.DESTROY
            if data_retention_mode == "destroy"
            else RemovalPolicy.RETAIN
        )
        schema_version = "2025-08-01"
        store_timeout_seconds = os.getenv("STORE_TIMEOUT_SECONDS", "5")

        interns_table = ddb.Table(
            self,
            "Interns",
            partition_key=ddb.Attribute(name="id", type=ddb.AttributeType.STRING),
            billing_mode=ddb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=True,
            removal_policy=stateful_removal_policy,
        )

        interns_log_group = logs.LogGroup(
            self,
            "InternsHandlerLogs",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=stateful_removal_policy,
        )

        interns_fn = _lambda.Function(
            self,
            "InternsHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="interns_handler.handler",
            code=_lambda.Code.from_asset("lambda"),
            # Store calls are bounded by STORE_TIMEOUT_SECONDS well inside this limit.
            timeout=Duration.seconds(20),
            log_group=interns_log_group,
            environment={
                "INTERNS_TABLE_NAME": interns_table.table_name,
                "INTERNS_SCHEMA_VERSION": schema_version,
                "STORE_TIMEOUT_SECONDS": store_timeout_seconds,
            },
        )
        interns_table.grant_read_write_data(interns_fn)

        rest_api = apigw.RestApi(
            self,
            "InternsApi",
            rest_api_name=f"{construct_id}-{stage_name}-interns",
            deploy_options=apigw.StageOptions(stage_name=stage_name),
            default_cors_preflight_options=apigw.CorsOptions(
                allow_origins=apigw.Cors.ALL_ORIGINS,
                allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
                allow_headers=["Content-Type", "Authorization"],
            ),
        )
        interns_integration = apigw.LambdaIntegration(interns_fn)

        interns = rest_api.root.add_resource("interns")
        interns_count = interns.add_resource("count")
        interns_tasks = interns.add_resource("tasks")
        interns_tasks_summary = interns_tasks.add_resource("summary")
        intern = interns.add_resource("{internId}")

        # Every method and unmatched path reaches the function, which owns 404/405 responses.
        for resource in (
            rest_api.root,
            interns,
            interns_count,
            interns_tasks,
            interns_tasks_summary,
            intern,
        ):
            resource.add_method(
                "ANY",
                interns_integration,
                authorization_type=apigw.AuthorizationType.NONE,
            )
        rest_api.root.add_proxy(
            any_method=True,
            default_integration=interns_integration,
            default_method_options=apigw.MethodOptions(
                authorization_type=apigw.AuthorizationType.NONE,
            ),
        )

        CfnOutput(
            self,
            "InternsTableName",
            value=interns_table.table_name,
        )

        CfnOutput(
            self,
            "InternsApiUrl",
            value=rest_api.url,
        )
