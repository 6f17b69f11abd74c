"""Construct providing the roles shared by every ECS task family."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from aws_cdk import aws_iam as iam, aws_logs as logs
from constructs import Construct

from ecs_pipeline.core.iam.policies import ScopeHints, task_execution_policy, task_runtime_policy


class TaskRolesConstruct(Construct):
    """Provision the task runtime role and the task execution role."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        parameter_path: str,
        log_group: logs.ILogGroup,
        resource_scopes: Optional[Mapping[str, Sequence[str]]] = None,
        extra_statements: Sequence[iam.PolicyStatement] = (),
    ) -> None:
        super().__init__(scope, construct_id)

        hints = ScopeHints(parameter_path=parameter_path, log_group_arn=log_group.log_group_arn)
        self.runtime_policy = task_runtime_policy(hints, resource_scopes)
        self.execution_policy = task_execution_policy()

        self._task_role = self.runtime_policy.create_role(self, "TaskRole")
        for statement in extra_statements:
            self._task_role.add_to_policy(statement)

        self._execution_role = self.execution_policy.create_role(self, "ExecutionRole")

    @property
    def task_role(self) -> iam.Role:
        """Return the role the application containers assume."""
        return self._task_role

    @property
    def execution_role(self) -> iam.Role:
        """Return the role the ECS agent uses to start tasks."""
        return self._execution_role
