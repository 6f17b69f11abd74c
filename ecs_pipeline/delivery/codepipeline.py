"""Release pipeline: a pure stage plan and the construct that renders it.

``plan_stages`` decides which stages and actions exist from the normalized
settings alone, so the ordering rules can be checked without synthesizing.
``PipelineConstruct`` turns the plan into CodePipeline stages plus a
state-change rule for the notification relay.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from aws_cdk import (
    Stack,
    aws_codebuild as codebuild,
    aws_codecommit as codecommit,
    aws_codepipeline as codepipeline,
    aws_codepipeline_actions as cp_actions,
    aws_ecs as ecs,
    aws_events as events,
    aws_events_targets as targets,
    aws_lambda as lambda_,
    aws_logs as logs,
    aws_s3 as s3,
)
from constructs import Construct

from ecs_pipeline.config.settings import DeploymentSettings
from ecs_pipeline.core.iam import utils as iam_utils
from ecs_pipeline.delivery.functions import InvalidateDistributionFunction, PipelineNotifierFunction
from ecs_pipeline.logging_utils import get_logger

logger = get_logger(__name__)

HOOK_URL_VARIABLE_PREFIX = "HOOK_URL_PARAMETER_PATH"
NOTIFY_STATES: Tuple[str, ...] = ("SUCCEEDED", "FAILED")

SOURCE_ACTION = "CodeCommit"
BUILD_ACTION = "CodeBuild"
WEB_DEPLOY_ACTION = "WebEcsDeploy"
QUEUE_DEPLOY_ACTION = "QueueEcsDeploy"
INVALIDATE_ACTION = "InvalidateDistroAction"
NOTIFY_ACTION = "PipelineNotifier"


@dataclass(frozen=True)
class ActionSpec:
    name: str
    kind: str
    run_order: int = 1
    image_file: Optional[str] = None


@dataclass(frozen=True)
class StagePlan:
    name: str
    actions: Tuple[ActionSpec, ...]

    @property
    def run_orders(self) -> Tuple[int, ...]:
        return tuple(sorted({action.run_order for action in self.actions}))

    def action(self, name: str) -> ActionSpec:
        for spec in self.actions:
            if spec.name == name:
                return spec
        raise KeyError(name)


@dataclass(frozen=True)
class NotificationBinding:
    """One webhook parameter: the env var naming it and the ARN the relay may read."""

    variable: str
    parameter_path: str
    parameter_arn: str


@dataclass(frozen=True)
class PipelinePlan:
    stages: Tuple[StagePlan, ...]
    notifications: Tuple[NotificationBinding, ...] = ()

    @property
    def stage_names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def stage(self, name: str) -> StagePlan:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def has_stage(self, name: str) -> bool:
        return name in self.stage_names


def notification_bindings(parameter_paths: Sequence[str]) -> Tuple[NotificationBinding, ...]:
    """Bind each webhook parameter path to ``HOOK_URL_PARAMETER_PATH_{i}``."""
    return tuple(
        NotificationBinding(
            variable=f"{HOOK_URL_VARIABLE_PREFIX}_{index}",
            parameter_path=path,
            parameter_arn=iam_utils.ssm_parameter_arn(path),
        )
        for index, path in enumerate(parameter_paths)
    )


def plan_stages(settings: DeploymentSettings) -> PipelinePlan:
    deploy_actions = [
        ActionSpec(WEB_DEPLOY_ACTION, "ecs_deploy", run_order=1, image_file="web.json"),
        ActionSpec(QUEUE_DEPLOY_ACTION, "ecs_deploy", run_order=1, image_file="queue.json"),
    ]
    if settings.invalidation_enabled:
        # Invalidate only after both services picked up the new image.
        deploy_actions.append(ActionSpec(INVALIDATE_ACTION, "lambda_invoke", run_order=2))

    stages = [
        StagePlan("Source", (ActionSpec(SOURCE_ACTION, "source"),)),
        StagePlan("Build", (ActionSpec(BUILD_ACTION, "build"),)),
        StagePlan("Deploy", tuple(deploy_actions)),
    ]

    bindings: Tuple[NotificationBinding, ...] = ()
    if settings.notifications_enabled:
        bindings = notification_bindings(settings.notification_parameter_paths)
        stages.append(StagePlan("Notify", (ActionSpec(NOTIFY_ACTION, "state_change"),)))

    return PipelinePlan(stages=tuple(stages), notifications=bindings)


class PipelineConstruct(Construct):
    """Render a ``PipelinePlan`` against the build project and the two services."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        plan: PipelinePlan,
        artifact_bucket_name: str,
        repository_name: str,
        branch: str,
        build_project: codebuild.IProject,
        web_service: ecs.IBaseService,
        queue_service: ecs.IBaseService,
        app_url: str,
        distribution_id: Optional[str] = None,
        layer: Optional[lambda_.ILayerVersion] = None,
        log_retention: logs.RetentionDays = logs.RetentionDays.ONE_MONTH,
    ) -> None:
        super().__init__(scope, construct_id)
        stack = Stack.of(self)

        self.plan = plan
        self.invalidate_function: Optional[InvalidateDistributionFunction] = None
        self.notifier_function: Optional[PipelineNotifierFunction] = None
        self.notify_rule: Optional[events.Rule] = None

        artifact_bucket = s3.Bucket.from_bucket_name(self, "ArtifactBucket", artifact_bucket_name)
        repository = codecommit.Repository.from_repository_name(self, "Repository", repository_name)

        self.pipeline = codepipeline.Pipeline(
            self,
            "Pipeline",
            pipeline_name=stack.stack_name,
            artifact_bucket=artifact_bucket,
        )

        self._source_output = codepipeline.Artifact("Source")
        self._build_output = codepipeline.Artifact("Build")
        self._services = {WEB_DEPLOY_ACTION: web_service, QUEUE_DEPLOY_ACTION: queue_service}
        self._repository = repository
        self._branch = branch
        self._build_project = build_project

        if any(action.kind == "lambda_invoke" for action in plan.stage("Deploy").actions):
            if not distribution_id:
                raise ValueError("Invalidation action needs a distribution id")
            self.invalidate_function = InvalidateDistributionFunction(
                self,
                "InvalidateDistroFunction",
                distribution_id=distribution_id,
                layer=layer,
                log_retention=log_retention,
            )

        for stage in plan.stages:
            if stage.name == "Notify":
                self._create_notify_rule(plan.notifications, app_url, layer, log_retention)
                continue
            self.pipeline.add_stage(
                stage_name=stage.name,
                actions=[self._render_action(action) for action in stage.actions],
            )

        logger.info(
            "Rendered release pipeline",
            extra={
                "stages": list(plan.stage_names),
                "deploy_actions": [action.name for action in plan.stage("Deploy").actions],
                "notification_endpoints": len(plan.notifications),
            },
        )

    def _render_action(self, action: ActionSpec) -> codepipeline.IAction:
        if action.kind == "source":
            return cp_actions.CodeCommitSourceAction(
                action_name=action.name,
                repository=self._repository,
                branch=self._branch,
                output=self._source_output,
                run_order=action.run_order,
            )
        if action.kind == "build":
            return cp_actions.CodeBuildAction(
                action_name=action.name,
                project=self._build_project,
                input=self._source_output,
                outputs=[self._build_output],
                run_order=action.run_order,
            )
        if action.kind == "ecs_deploy":
            return cp_actions.EcsDeployAction(
                action_name=action.name,
                service=self._services[action.name],
                image_file=self._build_output.at_path(action.image_file),
                run_order=action.run_order,
            )
        if action.kind == "lambda_invoke":
            return cp_actions.LambdaInvokeAction(
                action_name=action.name,
                lambda_=self.invalidate_function,
                run_order=action.run_order,
            )
        raise ValueError(f"Unknown pipeline action kind: {action.kind}")

    def _create_notify_rule(
        self,
        bindings: Sequence[NotificationBinding],
        app_url: str,
        layer: Optional[lambda_.ILayerVersion],
        log_retention: logs.RetentionDays,
    ) -> None:
        hook_environment: Dict[str, str] = {binding.variable: binding.parameter_path for binding in bindings}
        self.notifier_function = PipelineNotifierFunction(
            self,
            "PipelineNotifierFunction",
            app_url=app_url,
            hook_environment=hook_environment,
            layer=layer,
            log_retention=log_retention,
        )

        self.notify_rule = self.pipeline.on_state_change(
            "PipelineStateChange",
            description=f"Pipeline state change: {Stack.of(self).stack_name}",
            event_pattern=events.EventPattern(detail={"state": list(NOTIFY_STATES)}),
        )
        self.notify_rule.add_target(targets.LambdaFunction(self.notifier_function))
