"""Container image registry for the application images."""

from __future__ import annotations

from aws_cdk import RemovalPolicy, Stack, aws_ecr as ecr
from constructs import Construct


class RegistryConstruct(Construct):
    """ECR repository named after the lower-cased stack name."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        removal_policy: RemovalPolicy = RemovalPolicy.RETAIN,
    ) -> None:
        super().__init__(scope, construct_id)

        self.repository = ecr.Repository(
            self,
            "Repository",
            repository_name=Stack.of(self).stack_name.lower(),
            removal_policy=removal_policy,
        )
