"""Task definitions for the web, queue, cron and ops task families."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple

from aws_cdk import (
    CfnOutput,
    Duration,
    Stack,
    aws_ecs as ecs,
    aws_events as events,
    aws_events_targets as targets,
    aws_iam as iam,
    aws_logs as logs,
)
from constructs import Construct

from ecs_pipeline.config.settings import DEFAULT_APP_IMAGE, DEFAULT_OPS_IMAGE
from ecs_pipeline.core.iam.task_roles import TaskRolesConstruct
from ecs_pipeline.core.sizing import ResourceUnitProfile

HTTP_PORT = 80
HTTPS_PORT = 443
OPS_SCHEDULE = events.Schedule.rate(Duration.hours(4))
MULTILINE_PATTERN = "^(dddd-dd-dd dd:dd:dd|S+:443 \\bd{1,3}.d{1,3}.d{1,3}.d{1,3}\\b)"


def web_port_order(prioritize_https: bool) -> Tuple[int, int]:
    """Return container ports for the web task, primary port first."""
    return (HTTPS_PORT, HTTP_PORT) if prioritize_https else (HTTP_PORT, HTTPS_PORT)


@dataclass(frozen=True)
class TaskFamilySpec:
    name: str
    family_suffix: str
    image: str
    units: ResourceUnitProfile
    stream_prefix: str
    multiline: bool = True


class TaskDefinitionsConstruct(Construct):
    """Provision every task family for one deployment.

    Web and queue run the application image with the full unit profile; cron
    and ops get half of it. The ops family only exists when a backup command
    is configured and is scheduled every four hours with that command.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        cluster: ecs.ICluster,
        log_group: logs.ILogGroup,
        parameter_path: str,
        units: ResourceUnitProfile,
        prioritize_https: bool = False,
        ops_backup_command: Optional[Sequence[str]] = None,
        devops_bucket: Optional[str] = None,
        app_image: str = DEFAULT_APP_IMAGE,
        ops_image: str = DEFAULT_OPS_IMAGE,
        resource_scopes: Optional[Mapping[str, Sequence[str]]] = None,
        extra_task_role_statements: Sequence[iam.PolicyStatement] = (),
    ) -> None:
        super().__init__(scope, construct_id)
        self.stack = Stack.of(self)
        self.log_group = log_group
        self.parameter_path = parameter_path

        self.roles = TaskRolesConstruct(
            self,
            "TaskRoles",
            parameter_path=parameter_path,
            log_group=log_group,
            resource_scopes=resource_scopes,
            extra_statements=extra_task_role_statements,
        )

        self.task_definitions: Dict[str, ecs.Ec2TaskDefinition] = {}
        self.containers: Dict[str, ecs.ContainerDefinition] = {}

        half_units = units.halved()
        for spec in (
            TaskFamilySpec("Web", "WebApp", app_image, units, "web"),
            TaskFamilySpec("Queue", "QueueApp", app_image, units, "queue"),
            TaskFamilySpec("Cron", "Cron", app_image, half_units, "cron"),
        ):
            self._create_family(spec)

        self.web_container.add_port_mappings(
            *[ecs.PortMapping(container_port=port) for port in web_port_order(prioritize_https)]
        )

        self.ops_rule: Optional[events.Rule] = None
        if ops_backup_command:
            self._create_family(
                TaskFamilySpec("Ops", "Ops", ops_image, half_units, "ops", multiline=False),
                extra_environment={"DEVOPS_BUCKET": devops_bucket} if devops_bucket else None,
            )
            self.ops_rule = self._schedule_ops(cluster, ops_backup_command)

        self._create_outputs()

    @property
    def web_task_definition(self) -> ecs.Ec2TaskDefinition:
        return self.task_definitions["Web"]

    @property
    def queue_task_definition(self) -> ecs.Ec2TaskDefinition:
        return self.task_definitions["Queue"]

    @property
    def cron_task_definition(self) -> ecs.Ec2TaskDefinition:
        return self.task_definitions["Cron"]

    @property
    def ops_task_definition(self) -> Optional[ecs.Ec2TaskDefinition]:
        return self.task_definitions.get("Ops")

    @property
    def web_container(self) -> ecs.ContainerDefinition:
        return self.containers["Web"]

    def _environment(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        environment = {
            "STACK_NAME": self.stack.stack_name,
            "AWS_PARAMETER_PATH": self.parameter_path,
            "AWS_DEFAULT_REGION": self.stack.region,
        }
        if extra:
            environment.update(extra)
        return environment

    def _create_family(self, spec: TaskFamilySpec, extra_environment: Optional[Mapping[str, str]] = None) -> None:
        task_definition = ecs.Ec2TaskDefinition(
            self,
            f"{spec.name}TaskDefinition",
            family=f"{self.stack.stack_name}-{spec.family_suffix}",
            task_role=self.roles.task_role,
            execution_role=self.roles.execution_role,
        )

        container = task_definition.add_container(
            f"{spec.name}Container",
            image=ecs.ContainerImage.from_registry(spec.image),
            cpu=spec.units.cpu_shares,
            memory_reservation_mib=spec.units.memory_reservation_mib,
            essential=True,
            environment=self._environment(extra_environment),
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix=spec.stream_prefix,
                log_group=self.log_group,
                multiline_pattern=MULTILINE_PATTERN if spec.multiline else None,
            ),
        )

        self.task_definitions[spec.name] = task_definition
        self.containers[spec.name] = container

    def _schedule_ops(self, cluster: ecs.ICluster, command: Sequence[str]) -> events.Rule:
        rule = events.Rule(self, "OpsSchedule", schedule=OPS_SCHEDULE)
        rule.add_target(
            targets.EcsTask(
                cluster=cluster,
                task_definition=self.task_definitions["Ops"],
                container_overrides=[
                    targets.ContainerOverride(
                        container_name=self.containers["Ops"].container_name,
                        command=list(command),
                    )
                ],
            )
        )
        return rule

    def _create_outputs(self) -> None:
        stack_name = self.stack.stack_name
        CfnOutput(
            self,
            "TaskRoleArnOutput",
            export_name=f"{stack_name}TaskRoleArn",
            value=self.roles.task_role.role_arn,
            description="Task Role Arn",
        )
        for name, task_definition in self.task_definitions.items():
            CfnOutput(
                self,
                f"{name}TaskArnOutput",
                export_name=f"{stack_name}{name}TaskArn",
                value=task_definition.task_definition_arn,
                description=f"{name} Task Arn",
            )
