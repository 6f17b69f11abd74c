import pytest

from ecs_pipeline.delivery.codepipeline import (
    INVALIDATE_ACTION,
    QUEUE_DEPLOY_ACTION,
    WEB_DEPLOY_ACTION,
    notification_bindings,
    plan_stages,
)


def test_minimal_plan_has_three_stages(make_settings) -> None:
    plan = plan_stages(make_settings())

    assert plan.stage_names == ("Source", "Build", "Deploy")
    assert plan.notifications == ()
    assert not plan.has_stage("Notify")


def test_deploy_actions_share_first_tier(make_settings) -> None:
    deploy = plan_stages(make_settings()).stage("Deploy")

    assert [action.name for action in deploy.actions] == [WEB_DEPLOY_ACTION, QUEUE_DEPLOY_ACTION]
    assert deploy.run_orders == (1,)
    assert deploy.action(WEB_DEPLOY_ACTION).image_file == "web.json"
    assert deploy.action(QUEUE_DEPLOY_ACTION).image_file == "queue.json"


def test_invalidation_runs_after_both_deploys(make_settings) -> None:
    """
    Given: TLS certificates and a distribution to invalidate
    When: the stages are planned
    Then: Deploy holds three actions across two ordering tiers
    """
    settings = make_settings(certificate_arns=["arn:cert:1"], distribution_id="E2QWRUHEXAMPLE")

    deploy = plan_stages(settings).stage("Deploy")

    assert len(deploy.actions) == 3
    assert deploy.run_orders == (1, 2)
    invalidate = deploy.action(INVALIDATE_ACTION)
    assert invalidate.kind == "lambda_invoke"
    assert all(
        invalidate.run_order > action.run_order for action in deploy.actions if action.kind == "ecs_deploy"
    )


def test_unknown_action_lookup_raises(make_settings) -> None:
    deploy = plan_stages(make_settings()).stage("Deploy")

    with pytest.raises(KeyError):
        deploy.action(INVALIDATE_ACTION)
    with pytest.raises(KeyError):
        plan_stages(make_settings()).stage("Notify")


def test_notify_stage_binds_each_parameter_path(make_settings) -> None:
    """
    Given: two webhook parameter paths
    When: the stages are planned
    Then: a trailing Notify stage appears with one binding per path
    """
    settings = make_settings(notification_parameter_paths=["/app/slack/1", "/app/slack/2"])

    plan = plan_stages(settings)

    assert plan.stage_names[-1] == "Notify"
    assert [binding.variable for binding in plan.notifications] == [
        "HOOK_URL_PARAMETER_PATH_0",
        "HOOK_URL_PARAMETER_PATH_1",
    ]
    assert [binding.parameter_arn for binding in plan.notifications] == [
        "arn:aws:ssm:*:*:parameter/app/slack/1",
        "arn:aws:ssm:*:*:parameter/app/slack/2",
    ]


def test_bindings_normalize_relative_paths() -> None:
    (binding,) = notification_bindings(["app/slack/1"])

    assert binding.parameter_path == "app/slack/1"
    assert binding.parameter_arn == "arn:aws:ssm:*:*:parameter/app/slack/1"


def test_certificates_alone_do_not_add_invalidation(make_settings) -> None:
    settings = make_settings(certificate_arns=["arn:cert:1"], ops_backup_command=["backup", "--full"])

    deploy = plan_stages(settings).stage("Deploy")

    assert [action.name for action in deploy.actions] == [WEB_DEPLOY_ACTION, QUEUE_DEPLOY_ACTION]
    assert deploy.run_orders == (1,)
