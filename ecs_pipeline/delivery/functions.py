"""Leaf Lambda functions invoked by the release pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from aws_cdk import Duration, aws_lambda as lambda_, aws_logs as logs
from constructs import Construct

from ecs_pipeline.core.iam.policies import AccessPolicy, invalidation_policy, notifier_policy

REPO_ROOT = Path(__file__).resolve().parents[2]
FUNCTIONS_ROOT = REPO_ROOT / "src" / "lambda" / "functions"
COMMON_LAYER_ROOT = REPO_ROOT / "src" / "lambda" / "layers" / "common"

HANDLER = "handler.main"
RUNTIME = lambda_.Runtime.PYTHON_3_12


def common_layer(scope: Construct, construct_id: str = "CommonLayer") -> lambda_.LayerVersion:
    """Layer exposing the ``shared`` package (structured logger) to handlers."""
    return lambda_.LayerVersion(
        scope,
        construct_id,
        code=lambda_.Code.from_asset(str(COMMON_LAYER_ROOT)),
        compatible_runtimes=[RUNTIME],
        description="Shared utilities for pipeline functions",
    )


def _attach(function: lambda_.Function, policy: AccessPolicy) -> None:
    for statement in policy.to_statements():
        function.add_to_role_policy(statement)


class InvalidateDistributionFunction(lambda_.Function):
    """Invalidate every path of a CloudFront distribution and report to CodePipeline."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        distribution_id: str,
        layer: Optional[lambda_.ILayerVersion] = None,
        log_retention: logs.RetentionDays = logs.RetentionDays.ONE_MONTH,
    ) -> None:
        super().__init__(
            scope,
            construct_id,
            runtime=RUNTIME,
            handler=HANDLER,
            code=lambda_.Code.from_asset(str(FUNCTIONS_ROOT / "invalidate_distribution")),
            layers=[layer] if layer is not None else None,
            timeout=Duration.seconds(60),
            memory_size=128,
            log_retention=log_retention,
            environment={"DISTRO_ID": distribution_id},
        )
        self.policy = invalidation_policy()
        _attach(self, self.policy)


class PipelineNotifierFunction(lambda_.Function):
    """Relay pipeline state changes to the webhooks stored in SSM parameters."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        app_url: str,
        hook_environment: Mapping[str, str],
        layer: Optional[lambda_.ILayerVersion] = None,
        log_retention: logs.RetentionDays = logs.RetentionDays.ONE_MONTH,
    ) -> None:
        environment = dict(hook_environment)
        environment["APP_URL"] = app_url
        super().__init__(
            scope,
            construct_id,
            runtime=RUNTIME,
            handler=HANDLER,
            code=lambda_.Code.from_asset(str(FUNCTIONS_ROOT / "pipeline_notifier")),
            layers=[layer] if layer is not None else None,
            timeout=Duration.seconds(30),
            memory_size=128,
            log_retention=log_retention,
            environment=environment,
        )
        self.policy = notifier_policy(tuple(hook_environment.values()))
        _attach(self, self.policy)
