"""Access policy derivation for each compute role.

Policies are plain frozen records so they can be inspected and tested without
synthesizing a stack; ``AccessPolicy.to_policy_document`` renders them for CDK.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Tuple

from aws_cdk import aws_iam as iam

from ecs_pipeline.core.iam import utils as iam_utils

ALL_RESOURCES: Tuple[str, ...] = ("*",)

ECS_TASKS_PRINCIPAL = "ecs-tasks.amazonaws.com"
CODEBUILD_PRINCIPAL = "codebuild.amazonaws.com"
LAMBDA_PRINCIPAL = "lambda.amazonaws.com"

TASK_EXECUTION_MANAGED_POLICY = "service-role/AmazonECSTaskExecutionRolePolicy"

LOG_WRITE_ACTIONS: Tuple[str, ...] = (
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
    "logs:DescribeLogStreams",
)

ARTIFACT_READ_WRITE_ACTIONS: Tuple[str, ...] = (
    "s3:GetObject",
    "s3:PutObject",
    "s3:PutObjectAcl",
    "s3:PutObjectTagging",
    "s3:PutObjectVersionAcl",
    "s3:PutObjectVersionTagging",
    "s3:GetObjectVersion",
    "s3:ListBucket",
)

FILE_MANAGEMENT_ACTIONS: Tuple[str, ...] = (
    "s3:AbortMultipartUpload",
    "s3:DeleteObject",
    "s3:DeleteObjectTagging",
    "s3:DeleteObjectVersion",
    "s3:DeleteObjectVersionTagging",
    "s3:GetObject",
    "s3:GetObjectAcl",
    "s3:GetObjectTagging",
    "s3:GetObjectTorrent",
    "s3:GetObjectVersion",
    "s3:GetObjectVersionAcl",
    "s3:GetObjectVersionTagging",
    "s3:GetObjectVersionTorrent",
    "s3:ListMultipartUploadParts",
    "s3:PutObject",
    "s3:PutObjectAcl",
    "s3:PutObjectTagging",
    "s3:PutObjectVersionAcl",
    "s3:PutObjectVersionTagging",
    "s3:RestoreObject",
    "s3:ListBucket",
    "s3:ListBucketVersions",
    "s3:ListAllMyBuckets",
    "s3:ListBucketMultipartUploads",
)

PARAMETER_READ_ACTIONS: Tuple[str, ...] = (
    "ssm:GetParameter",
    "ssm:GetParameters",
    "ssm:GetParametersByPath",
)

REGISTRY_AUTH_ACTIONS: Tuple[str, ...] = ("ecr:GetAuthorizationToken",)

REGISTRY_PUSH_PULL_ACTIONS: Tuple[str, ...] = (
    "ecr:GetDownloadUrlForLayer",
    "ecr:BatchGetImage",
    "ecr:BatchCheckLayerAvailability",
    "ecr:PutImage",
    "ecr:InitiateLayerUpload",
    "ecr:UploadLayerPart",
    "ecr:CompleteLayerUpload",
)

MESSAGING_ACTIONS: Tuple[str, ...] = (
    "sqs:ChangeMessageVisibility",
    "sqs:DeleteMessage",
    "sqs:GetQueueAttributes",
    "sqs:GetQueueUrl",
    "sqs:ListDeadLetterSourceQueues",
    "sqs:ListQueues",
    "sqs:ListQueueTags",
    "sqs:ReceiveMessage",
    "sqs:SendMessage",
)

NOTIFICATION_ACTIONS: Tuple[str, ...] = ("sns:*",)

EMAIL_ACTIONS: Tuple[str, ...] = ("ses:SendEmail", "ses:SendRawEmail")

INVALIDATION_ACTIONS: Tuple[str, ...] = ("cloudfront:CreateInvalidation",)

# Task runtime categories that default to ALL_RESOURCES unless a scope is configured.
BROAD_CATEGORIES: Tuple[str, ...] = ("content_delivery", "artifacts", "notification", "email", "messaging")


@dataclass(frozen=True)
class StatementSpec:
    sid: str
    actions: Tuple[str, ...]
    resources: Tuple[str, ...]
    effect: str = "Allow"
    conditions: Optional[Mapping[str, Mapping[str, object]]] = None

    @property
    def grants_all_resources(self) -> bool:
        return self.resources == ALL_RESOURCES

    def to_statement(self) -> iam.PolicyStatement:
        return iam.PolicyStatement(
            sid=self.sid,
            effect=iam.Effect.ALLOW if self.effect == "Allow" else iam.Effect.DENY,
            actions=list(self.actions),
            resources=list(self.resources),
            conditions=dict(self.conditions) if self.conditions else None,
        )


@dataclass(frozen=True)
class AccessPolicy:
    """A role purpose, its trusted principal and an ordered statement set."""

    purpose: str
    principal: str
    statements: Tuple[StatementSpec, ...]
    managed_policies: Tuple[str, ...] = field(default_factory=tuple)

    def statement(self, sid: str) -> StatementSpec:
        for spec in self.statements:
            if spec.sid == sid:
                return spec
        raise KeyError(sid)

    def to_statements(self) -> list[iam.PolicyStatement]:
        return [spec.to_statement() for spec in self.statements]

    def to_policy_document(self) -> iam.PolicyDocument:
        return iam.PolicyDocument(statements=self.to_statements())

    def create_role(self, scope, construct_id: str, **kwargs) -> iam.Role:
        """Create an IAM role assumed by this policy's principal."""
        inline_policies = {f"{self.purpose}Policy": self.to_policy_document()} if self.statements else None
        return iam.Role(
            scope,
            construct_id,
            assumed_by=iam.ServicePrincipal(self.principal),
            inline_policies=inline_policies,
            managed_policies=[iam.ManagedPolicy.from_aws_managed_policy_name(name) for name in self.managed_policies]
            or None,
            **kwargs,
        )


@dataclass(frozen=True)
class ScopeHints:
    """Concrete resource identifiers supplied by the composing stack."""

    parameter_path: str
    artifact_bucket: Optional[str] = None
    log_group_arn: Optional[str] = None
    repository_arn: Optional[str] = None


def _scoped(scopes: Mapping[str, Sequence[str]], category: str) -> Tuple[str, ...]:
    resources = iam_utils.dedupe(scopes.get(category, ()))
    return tuple(resources) if resources else ALL_RESOURCES


def build_policy(hints: ScopeHints) -> AccessPolicy:
    """Policy for the image build project."""
    if not hints.artifact_bucket:
        raise ValueError("Build policy needs the artifact bucket")
    if not hints.repository_arn:
        raise ValueError("Build policy needs the image repository ARN")

    return AccessPolicy(
        purpose="Build",
        principal=CODEBUILD_PRINCIPAL,
        statements=(
            StatementSpec("LogWriteAndRegistryAuth", LOG_WRITE_ACTIONS + REGISTRY_AUTH_ACTIONS, ALL_RESOURCES),
            StatementSpec(
                "ArtifactReadWrite",
                ARTIFACT_READ_WRITE_ACTIONS,
                (iam_utils.bucket_objects_arn(hints.artifact_bucket),),
            ),
            StatementSpec(
                "ParameterRead",
                PARAMETER_READ_ACTIONS,
                tuple(iam_utils.ssm_parameter_tree_arns(hints.parameter_path)),
            ),
            StatementSpec("RegistryPushPull", REGISTRY_PUSH_PULL_ACTIONS, (hints.repository_arn,)),
        ),
    )


def task_runtime_policy(
    hints: ScopeHints,
    scopes: Optional[Mapping[str, Sequence[str]]] = None,
) -> AccessPolicy:
    """Policy for the role the application containers run as.

    Categories in ``BROAD_CATEGORIES`` grant over all resources unless
    ``scopes`` names concrete ARNs for them.
    """
    scopes = scopes or {}
    log_resources = (hints.log_group_arn,) if hints.log_group_arn else ALL_RESOURCES

    return AccessPolicy(
        purpose="TaskRuntime",
        principal=ECS_TASKS_PRINCIPAL,
        statements=(
            StatementSpec("ContentDeliveryInvalidation", INVALIDATION_ACTIONS, _scoped(scopes, "content_delivery")),
            StatementSpec("LogWrite", LOG_WRITE_ACTIONS, log_resources),
            StatementSpec("FileManagement", FILE_MANAGEMENT_ACTIONS, _scoped(scopes, "artifacts")),
            StatementSpec(
                "ParameterRead",
                PARAMETER_READ_ACTIONS,
                tuple(iam_utils.ssm_parameter_tree_arns(hints.parameter_path)),
            ),
            StatementSpec("Notification", NOTIFICATION_ACTIONS, _scoped(scopes, "notification")),
            StatementSpec("Email", EMAIL_ACTIONS, _scoped(scopes, "email")),
            StatementSpec("Messaging", MESSAGING_ACTIONS, _scoped(scopes, "messaging")),
        ),
    )


def task_execution_policy() -> AccessPolicy:
    """Policy for the agent role that pulls images and ships logs."""
    return AccessPolicy(
        purpose="TaskExecution",
        principal=ECS_TASKS_PRINCIPAL,
        statements=(),
        managed_policies=(TASK_EXECUTION_MANAGED_POLICY,),
    )


def notifier_policy(parameter_paths: Sequence[str]) -> AccessPolicy:
    """Policy letting the notification relay read each webhook parameter."""
    resources = tuple(iam_utils.dedupe(iam_utils.ssm_parameter_arn(path) for path in parameter_paths))
    if not resources:
        raise ValueError("Notifier policy needs at least one parameter path")
    return AccessPolicy(
        purpose="Notifier",
        principal=LAMBDA_PRINCIPAL,
        statements=(StatementSpec("WebhookParameterRead", ("ssm:GetParameter",), resources),),
    )


def invalidation_policy() -> AccessPolicy:
    """Policy for the cache invalidation action."""
    return AccessPolicy(
        purpose="Invalidation",
        principal=LAMBDA_PRINCIPAL,
        statements=(StatementSpec("ContentDeliveryInvalidation", INVALIDATION_ACTIONS, ALL_RESOURCES),),
    )
