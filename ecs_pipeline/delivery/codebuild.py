"""Image build project driven by the release pipeline."""

from __future__ import annotations

from typing import Optional

from aws_cdk import Stack, aws_codebuild as codebuild, aws_logs as logs
from constructs import Construct

from ecs_pipeline.core.iam import utils as iam_utils
from ecs_pipeline.core.iam.policies import ScopeHints, build_policy


class CodeBuildConstruct(Construct):
    """Privileged ``PipelineProject`` that builds and pushes the app image.

    The build role is derived from ``build_policy``: logs and registry auth on
    all resources, artifact objects in the configured bucket, parameters under
    the environment path and push/pull on the stack's repository only.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        env_name: str,
        parameter_path: str,
        artifact_bucket_name: str,
        repository_name: str,
        repository_uri: str,
        log_group: Optional[logs.ILogGroup] = None,
    ) -> None:
        super().__init__(scope, construct_id)
        stack = Stack.of(self)

        repository_arn = iam_utils.ecr_repository_arn(stack.region, stack.account, repository_name)
        self.policy = build_policy(
            ScopeHints(
                parameter_path=parameter_path,
                artifact_bucket=artifact_bucket_name,
                repository_arn=repository_arn,
            )
        )
        self.role = self.policy.create_role(self, "ServiceRole")

        plaintext = codebuild.BuildEnvironmentVariableType.PLAINTEXT
        self.project = codebuild.PipelineProject(
            self,
            "Project",
            project_name=stack.stack_name,
            role=self.role,
            environment=codebuild.BuildEnvironment(
                privileged=True,
                compute_type=codebuild.ComputeType.SMALL,
                build_image=codebuild.LinuxBuildImage.STANDARD_7_0,
                environment_variables={
                    "AWS_DEFAULT_REGION": codebuild.BuildEnvironmentVariable(type=plaintext, value=stack.region),
                    "REPOSITORY_URI": codebuild.BuildEnvironmentVariable(type=plaintext, value=repository_uri),
                    "ENV_NAME": codebuild.BuildEnvironmentVariable(type=plaintext, value=env_name),
                },
            ),
            logging=codebuild.LoggingOptions(cloud_watch=codebuild.CloudWatchLoggingOptions(log_group=log_group))
            if log_group is not None
            else None,
        )
