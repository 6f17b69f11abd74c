from aws_cdk.assertions import Match, Template


def _stages(template: Template) -> list:
    (pipeline,) = template.find_resources("AWS::CodePipeline::Pipeline").values()
    return pipeline["Properties"]["Stages"]


def _stage(template: Template, name: str) -> dict:
    for stage in _stages(template):
        if stage["Name"] == name:
            return stage
    raise AssertionError(f"missing stage {name}")


def test_large_instance_plain_routing(synth_ecs_stack) -> None:
    """
    Given: a t3.large cluster, no certificates and two web tasks minimum
    When: the root stack is synthesized
    Then: web scales 2..20 behind one HTTP listener with 512/512 containers
    """
    stack, template = synth_ecs_stack(instance_type="t3.large", min_desired_web_tasks=2)

    assert (stack.units.cpu_shares, stack.units.memory_reservation_mib) == (512, 512)
    template.has_resource_properties(
        "AWS::ApplicationAutoScaling::ScalableTarget",
        {"MinCapacity": 2, "MaxCapacity": 20},
    )
    template.resource_count_is("AWS::ElasticLoadBalancingV2::Listener", 1)
    template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {"Port": 80, "Protocol": "HTTP"})
    template.has_resource_properties(
        "AWS::ECS::TaskDefinition",
        {
            "Family": "shop-Dev-1-WebApp",
            "ContainerDefinitions": [Match.object_like({"Cpu": 512, "MemoryReservation": 512})],
        },
    )


def test_tls_with_backup_and_invalidation(synth_ecs_stack) -> None:
    """
    Given: a certificate, a backup command and a distribution id
    When: the root stack is synthesized
    Then: Deploy holds two deploys then the invalidation, and the ops task is scheduled
    """
    _, template = synth_ecs_stack(
        certificate_arns=["arn:cert:1"],
        ops_backup_command=["backup", "--full"],
        distribution_id="E2QWRUHEXAMPLE",
    )

    deploy = _stage(template, "Deploy")
    orders = {action["Name"]: action["RunOrder"] for action in deploy["Actions"]}
    assert orders == {"WebEcsDeploy": 1, "QueueEcsDeploy": 1, "InvalidateDistroAction": 2}

    template.resource_count_is("AWS::ElasticLoadBalancingV2::Listener", 2)
    template.has_resource_properties("AWS::ECS::TaskDefinition", {"Family": "shop-Dev-1-Ops"})
    template.has_resource_properties(
        "AWS::Events::Rule",
        {
            "ScheduleExpression": "rate(4 hours)",
            "Targets": [
                Match.object_like(
                    {
                        "Input": Match.serialized_json(
                            Match.object_like(
                                {"containerOverrides": [Match.object_like({"command": ["backup", "--full"]})]}
                            )
                        )
                    }
                )
            ],
        },
    )
    template.has_resource_properties(
        "AWS::Lambda::Function",
        {"Handler": "handler.main", "Environment": {"Variables": {"DISTRO_ID": "E2QWRUHEXAMPLE"}}},
    )


def test_notification_stage_binds_parameters(synth_ecs_stack) -> None:
    """
    Given: two webhook parameter paths
    When: the root stack is synthesized
    Then: the relay gets two bindings and may read exactly those parameters
    """
    _, template = synth_ecs_stack(notification_parameter_paths=["/app/slack/1", "/app/slack/2"])

    template.has_resource_properties(
        "AWS::Lambda::Function",
        {
            "Environment": {
                "Variables": {
                    "HOOK_URL_PARAMETER_PATH_0": "/app/slack/1",
                    "HOOK_URL_PARAMETER_PATH_1": "/app/slack/2",
                    "APP_URL": Match.any_value(),
                }
            }
        },
    )
    template.has_resource_properties(
        "AWS::IAM::Policy",
        {
            "PolicyDocument": {
                "Statement": Match.array_with(
                    [
                        Match.object_like(
                            {
                                "Sid": "WebhookParameterRead",
                                "Action": "ssm:GetParameter",
                                "Resource": [
                                    "arn:aws:ssm:*:*:parameter/app/slack/1",
                                    "arn:aws:ssm:*:*:parameter/app/slack/2",
                                ],
                            }
                        )
                    ]
                )
            }
        },
    )
    template.has_resource_properties(
        "AWS::Events::Rule",
        {
            "EventPattern": Match.object_like(
                {
                    "source": ["aws.codepipeline"],
                    "detail": {"state": ["SUCCEEDED", "FAILED"]},
                }
            )
        },
    )


def test_minimal_pipeline_stages_and_wiring(synth_ecs_stack) -> None:
    stack, template = synth_ecs_stack()

    assert [stage["Name"] for stage in _stages(template)] == ["Source", "Build", "Deploy"]
    assert stack.layer is None
    assert stack.release.invalidate_function is None
    assert stack.release.notifier_function is None
    assert stack.domain_record is None

    deploy = _stage(template, "Deploy")
    files = sorted(action["Configuration"]["FileName"] for action in deploy["Actions"])
    assert files == ["queue.json", "web.json"]

    source = _stage(template, "Source")["Actions"][0]
    assert source["Configuration"]["RepositoryName"] == "shop"
    assert source["Configuration"]["BranchName"] == "main"

    template.has_resource_properties("AWS::CodePipeline::Pipeline", {"Name": "shop-Dev-1"})
    template.has_resource_properties("AWS::CodeBuild::Project", {"Name": "shop-Dev-1"})
    template.has_resource_properties("AWS::ECR::Repository", {"RepositoryName": "shop-dev-1"})
    template.has_resource_properties("AWS::Logs::LogGroup", {"LogGroupName": "shop-Dev-1", "RetentionInDays": 30})
    template.resource_count_is("AWS::Route53::RecordSet", 0)


def test_dns_alias_record_when_zone_complete(synth_ecs_stack) -> None:
    stack, template = synth_ecs_stack(domain_zone_id="Z0123456789", domain_zone_name="example.com")

    assert stack.domain_record is not None
    template.has_resource_properties(
        "AWS::Route53::RecordSet",
        {"Name": "dev-1.example.com.", "Type": "A", "AliasTarget": Match.any_value()},
    )


def test_removal_policy_and_retention(synth_ecs_stack) -> None:
    _, template = synth_ecs_stack(removal_policy="destroy", log_retention_days=7)

    template.has_resource("AWS::Logs::LogGroup", {"DeletionPolicy": "Delete"})
    template.has_resource_properties("AWS::Logs::LogGroup", {"RetentionInDays": 7})
    template.has_resource("AWS::ECR::Repository", {"DeletionPolicy": "Delete"})


def test_network_id_is_exported(synth_ecs_stack) -> None:
    """
    Given: a minimal configuration
    When: the root stack is synthesized
    Then: the VPC id is exported under the stack name
    """
    _, template = synth_ecs_stack()

    template.has_output(
        "VpcId",
        {"Export": {"Name": "shop-Dev-1-VpcId"}, "Value": {"Ref": Match.string_like_regexp("^NetworkVpc")}},
    )
