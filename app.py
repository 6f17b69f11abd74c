#!/usr/bin/env python3
"""
ECS Pipeline CDK App
Containerized web/queue/cron application on an EC2-backed ECS cluster with its
build and release pipeline.

Usage:
    cdk synth -c environment=dev -c appName=shop -c stackVersion=1 \
        -c s3ArtifactBucketName=shop-artifacts -c codecommitRepo=shop
"""

import dataclasses

import aws_cdk as cdk

from ecs_pipeline.config.environments import get_environment_config
from ecs_pipeline.config.settings import context_overrides, normalize_config
from ecs_pipeline.logging_utils import get_logger
from ecs_pipeline.stacks.bastion_stack import BastionStack
from ecs_pipeline.stacks.ecs_pipeline_stack import EcsPipelineStack
from ecs_pipeline.stacks.vpc_stack import VpcStack

logger = get_logger("app")

app = cdk.App()

# Preset for the target environment, then `-c key=value` overrides on top
environment = app.node.try_get_context("environment") or "dev"
config = get_environment_config(environment)
config.update(context_overrides(app.node.try_get_context))
settings = normalize_config(config)

# CDK environment (account/region)
cdk_env = cdk.Environment(account=settings.account_id, region=settings.region)

# ========================================
# NETWORK LAYER
# ========================================

# Standalone VPC whose exported id is fed back through `-c vpcId=...` on later deploys
if settings.deploy_vpc:
    vpc_stack = VpcStack(app, f"{settings.app_name}-{settings.env_name}-Vpc", env=cdk_env)
    logger.info("Synthesizing stack", extra={"stack": vpc_stack.stack_name, "environment": environment})

# ========================================
# APPLICATION LAYER
# ========================================

ecs_stack = EcsPipelineStack(
    app,
    settings.stack_name,
    settings=settings,
    env=cdk_env,
)
logger.info("Synthesizing stack", extra={"stack": ecs_stack.stack_name, "environment": environment})

# ========================================
# ACCESS LAYER
# ========================================

if settings.deploy_bastion:
    bastion_dns = None
    if settings.dns is not None:
        bastion_dns = dataclasses.replace(settings.dns, domain_name=f"bastion-{settings.dns.domain_name}")

    bastion_stack = BastionStack(
        app,
        f"{settings.stack_name}-Bastion",
        vpc=ecs_stack.network.vpc,
        instance_name=f"{settings.stack_name}-bastion",
        key_name=settings.instance_key_name,
        allow_ingress=settings.allow_ingress,
        dns=bastion_dns,
        env=cdk_env,
    )
    bastion_stack.add_dependency(ecs_stack)
    logger.info("Synthesizing stack", extra={"stack": bastion_stack.stack_name, "environment": environment})

# ========================================
# TAGGING STRATEGY
# ========================================

cdk.Tags.of(app).add("Application", settings.app_name)
cdk.Tags.of(app).add("Environment", settings.env_name)
cdk.Tags.of(app).add("StackVersion", settings.stack_version)
cdk.Tags.of(app).add("ManagedBy", "CDK")
for key, value in settings.tags.items():
    cdk.Tags.of(app).add(key, value)

app.synth()
