"""Root stack composing the cluster, services, release pipeline and DNS."""

from typing import Optional, Sequence

from aws_cdk import (
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
    aws_iam as iam,
    aws_lambda as lambda_,
    aws_logs as logs,
)
from constructs import Construct

from ecs_pipeline.config.settings import DeploymentSettings
from ecs_pipeline.core import sizing
from ecs_pipeline.core.network import NetworkLayerConstruct
from ecs_pipeline.delivery.codebuild import CodeBuildConstruct
from ecs_pipeline.delivery.codepipeline import PipelineConstruct, plan_stages
from ecs_pipeline.delivery.functions import common_layer
from ecs_pipeline.delivery.registry import RegistryConstruct
from ecs_pipeline.dns import AliasTarget, bind_dns_record
from ecs_pipeline.ecs.cluster import ClusterConstruct
from ecs_pipeline.ecs.services import ServicesConstruct
from ecs_pipeline.ecs.task_definitions import TaskDefinitionsConstruct
from ecs_pipeline.logging_utils import get_logger

logger = get_logger(__name__)


class EcsPipelineStack(Stack):
    """ECS application topology with its build and release pipeline.

    Every optional branch (TLS routing, ops task, invalidation, notification
    relay, DNS record) is decided by ``DeploymentSettings`` flags; the stack
    only wires the pieces together.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: DeploymentSettings,
        extra_task_role_statements: Sequence[iam.PolicyStatement] = (),
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.settings = settings
        self.units = sizing.resolve(settings.instance_type)
        removal_policy = RemovalPolicy.DESTROY if settings.removal_policy == "destroy" else RemovalPolicy.RETAIN

        self.log_group = logs.LogGroup(
            self,
            "LogGroup",
            log_group_name=self.stack_name,
            retention=self._log_retention(),
            removal_policy=removal_policy,
        )

        self.network = NetworkLayerConstruct(self, "Network", vpc_id=settings.vpc_id)
        self.registry = RegistryConstruct(self, "Registry", removal_policy=removal_policy)

        self.cluster = ClusterConstruct(
            self,
            "Cluster",
            vpc=self.network.vpc,
            instance_type=settings.instance_type,
            capacity=settings.capacity,
            key_name=settings.instance_key_name,
            whitelist_cidrs=settings.whitelist_cidrs,
            allow_ingress=settings.allow_ingress,
        )

        self.tasks = TaskDefinitionsConstruct(
            self,
            "Tasks",
            cluster=self.cluster.cluster,
            log_group=self.log_group,
            parameter_path=settings.env_parameter_path,
            units=self.units,
            prioritize_https=settings.prioritize_https,
            ops_backup_command=settings.ops_backup_command,
            devops_bucket=settings.artifact_bucket_name,
            app_image=settings.app_container_image,
            ops_image=settings.ops_container_image,
            resource_scopes=settings.task_role_scopes,
            extra_task_role_statements=extra_task_role_statements,
        )

        self.services = ServicesConstruct(
            self,
            "Services",
            cluster=self.cluster.cluster,
            vpc=self.network.vpc,
            web_task_definition=self.tasks.web_task_definition,
            queue_task_definition=self.tasks.queue_task_definition,
            routing=settings.routing,
            min_desired_web_tasks=settings.min_desired_web_tasks,
            min_desired_queue_tasks=settings.min_desired_queue_tasks,
            stickiness_cookie_duration=Duration.seconds(settings.stickiness_cookie_seconds),
        )

        self.build = CodeBuildConstruct(
            self,
            "Build",
            env_name=settings.env_name,
            parameter_path=settings.env_parameter_path,
            artifact_bucket_name=settings.artifact_bucket_name,
            repository_name=self.registry.repository.repository_name,
            repository_uri=self.registry.repository.repository_uri,
            log_group=self.log_group,
        )

        self.pipeline_plan = plan_stages(settings)
        self.layer: Optional[lambda_.LayerVersion] = None
        if settings.invalidation_enabled or settings.notifications_enabled:
            self.layer = common_layer(self)

        self.release = PipelineConstruct(
            self,
            "Release",
            plan=self.pipeline_plan,
            artifact_bucket_name=settings.artifact_bucket_name,
            repository_name=settings.codecommit_repo,
            branch=settings.codecommit_branch,
            build_project=self.build.project,
            web_service=self.services.web_service,
            queue_service=self.services.queue_service,
            app_url=settings.domain_name or self.services.load_balancer.load_balancer_dns_name,
            distribution_id=settings.distribution_id,
            layer=self.layer,
            log_retention=self._log_retention(),
        )

        CfnOutput(self, "VpcId", export_name=f"{self.stack_name}-VpcId", value=self.network.vpc.vpc_id)

        self.domain_record = bind_dns_record(self, settings.dns, AliasTarget(self.services.load_balancer))

        logger.info(
            "Composed ECS pipeline stack",
            extra={
                "stack_name": self.stack_name,
                "cpu_shares": self.units.cpu_shares,
                "memory_reservation_mib": self.units.memory_reservation_mib,
                "stages": list(self.pipeline_plan.stage_names),
            },
        )

    def _log_retention(self) -> logs.RetentionDays:
        """Map retention days from settings to the CloudWatch Logs enum; unknown values fall back to a month."""
        retention_map = {
            1: logs.RetentionDays.ONE_DAY,
            3: logs.RetentionDays.THREE_DAYS,
            5: logs.RetentionDays.FIVE_DAYS,
            7: logs.RetentionDays.ONE_WEEK,
            14: logs.RetentionDays.TWO_WEEKS,
            30: logs.RetentionDays.ONE_MONTH,
            90: logs.RetentionDays.THREE_MONTHS,
            180: logs.RetentionDays.SIX_MONTHS,
            365: logs.RetentionDays.ONE_YEAR,
        }
        return retention_map.get(self.settings.log_retention_days, logs.RetentionDays.ONE_MONTH)
