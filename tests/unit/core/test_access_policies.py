import pytest

from ecs_pipeline.core.iam.policies import (
    ALL_RESOURCES,
    BROAD_CATEGORIES,
    CODEBUILD_PRINCIPAL,
    ECS_TASKS_PRINCIPAL,
    TASK_EXECUTION_MANAGED_POLICY,
    ScopeHints,
    build_policy,
    invalidation_policy,
    notifier_policy,
    task_execution_policy,
    task_runtime_policy,
)

HINTS = ScopeHints(
    parameter_path="/shop/dev",
    artifact_bucket="shop-artifacts",
    log_group_arn="arn:aws:logs:us-east-1:111122223333:log-group:shop-dev-1",
    repository_arn="arn:aws:ecr:us-east-1:111122223333:repository/shop-dev-1",
)


def test_build_policy_scopes_concrete_resources() -> None:
    """
    Given: bucket, parameter path and repository hints
    When: the build policy is derived
    Then: only log write and registry auth grant over all resources
    """
    policy = build_policy(HINTS)

    assert policy.principal == CODEBUILD_PRINCIPAL
    assert policy.statement("LogWriteAndRegistryAuth").grants_all_resources
    assert policy.statement("ArtifactReadWrite").resources == ("arn:aws:s3:::shop-artifacts/*",)
    assert policy.statement("ParameterRead").resources == (
        "arn:aws:ssm:*:*:parameter/shop/dev",
        "arn:aws:ssm:*:*:parameter/shop/dev/*",
    )
    assert policy.statement("RegistryPushPull").resources == (HINTS.repository_arn,)
    assert "ecr:PutImage" in policy.statement("RegistryPushPull").actions


@pytest.mark.parametrize(
    "hints",
    [
        ScopeHints(parameter_path="/shop/dev", repository_arn="arn:repo"),
        ScopeHints(parameter_path="/shop/dev", artifact_bucket="bucket"),
    ],
)
def test_build_policy_requires_bucket_and_repository(hints) -> None:
    with pytest.raises(ValueError):
        build_policy(hints)


def test_task_runtime_policy_defaults_to_broad_grants() -> None:
    policy = task_runtime_policy(HINTS)

    assert policy.principal == ECS_TASKS_PRINCIPAL
    for sid in ("ContentDeliveryInvalidation", "FileManagement", "Notification", "Email", "Messaging"):
        assert policy.statement(sid).resources == ALL_RESOURCES
    assert policy.statement("LogWrite").resources == (HINTS.log_group_arn,)
    assert policy.statement("Notification").actions == ("sns:*",)
    assert policy.statement("ContentDeliveryInvalidation").actions == ("cloudfront:CreateInvalidation",)


def test_task_runtime_policy_tightens_configured_categories() -> None:
    queue_arn = "arn:aws:sqs:us-east-1:111122223333:jobs"
    policy = task_runtime_policy(HINTS, {"messaging": [queue_arn, queue_arn], "email": []})

    assert policy.statement("Messaging").resources == (queue_arn,)
    assert policy.statement("Email").resources == ALL_RESOURCES
    assert "messaging" in BROAD_CATEGORIES


def test_task_execution_policy_uses_managed_policy_only() -> None:
    policy = task_execution_policy()

    assert policy.statements == ()
    assert policy.managed_policies == (TASK_EXECUTION_MANAGED_POLICY,)


def test_notifier_policy_allows_each_parameter_once() -> None:
    policy = notifier_policy(["/app/slack/1", "/app/slack/2", "/app/slack/1"])

    assert policy.statement("WebhookParameterRead").actions == ("ssm:GetParameter",)
    assert policy.statement("WebhookParameterRead").resources == (
        "arn:aws:ssm:*:*:parameter/app/slack/1",
        "arn:aws:ssm:*:*:parameter/app/slack/2",
    )


def test_notifier_policy_requires_paths() -> None:
    with pytest.raises(ValueError):
        notifier_policy([])


def test_invalidation_policy_and_unknown_statement() -> None:
    policy = invalidation_policy()

    assert policy.statement("ContentDeliveryInvalidation").grants_all_resources
    with pytest.raises(KeyError):
        policy.statement("Missing")


def test_policy_document_renders_every_statement() -> None:
    document = build_policy(HINTS).to_policy_document().to_json()

    sids = [statement["Sid"] for statement in document["Statement"]]
    assert sids == ["LogWriteAndRegistryAuth", "ArtifactReadWrite", "ParameterRead", "RegistryPushPull"]
