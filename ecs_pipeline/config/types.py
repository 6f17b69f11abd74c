"""Typed configuration contracts for environment-specific settings."""

from __future__ import annotations

from typing import Dict, List, NotRequired, TypedDict


class IngressGrantConfig(TypedDict):
    """Inbound permission granted to the cluster on an external security group."""

    securityGroupId: str
    tcpPort: int


class RawDeploymentConfig(TypedDict, total=False):
    """Configuration record as supplied by presets and CDK context.

    List and record fields may be native values or their JSON text.
    """

    app_name: NotRequired[str]
    env_name: NotRequired[str]
    stack_version: NotRequired[str]
    account_id: NotRequired[str | None]
    region: NotRequired[str]

    vpc_id: NotRequired[str]

    certificate_arns: NotRequired[List[str] | str]
    prioritize_https: NotRequired[bool | str]
    whitelist_cidrs: NotRequired[List[str] | str]
    allow_ingress: NotRequired[List[IngressGrantConfig] | str]

    instance_type: NotRequired[str]
    instance_key_name: NotRequired[str]
    min_capacity: NotRequired[int | str]
    desired_capacity: NotRequired[int | str]
    max_capacity: NotRequired[int | str]

    min_desired_web_tasks: NotRequired[int | str]
    min_desired_queue_tasks: NotRequired[int | str]
    stickiness_cookie_seconds: NotRequired[int | str]
    app_container_image: NotRequired[str]
    ops_container_image: NotRequired[str]

    domain_name: NotRequired[str]
    domain_zone_id: NotRequired[str]
    domain_zone_name: NotRequired[str]

    ops_backup_command: NotRequired[List[str] | str]
    notification_parameter_paths: NotRequired[List[str] | str]
    env_parameter_path: NotRequired[str]

    artifact_bucket_name: NotRequired[str]
    asset_bucket_name: NotRequired[str]
    codecommit_repo: NotRequired[str]
    codecommit_branch: NotRequired[str]
    distribution_id: NotRequired[str]

    task_role_scopes: NotRequired[Dict[str, List[str]] | str]

    log_retention_days: NotRequired[int | str]
    removal_policy: NotRequired[str]
    deploy_bastion: NotRequired[bool | str]
    deploy_vpc: NotRequired[bool | str]

    tags: NotRequired[Dict[str, str]]
