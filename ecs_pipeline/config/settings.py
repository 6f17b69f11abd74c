"""Normalize a raw deployment configuration into immutable settings.

``normalize_config`` is the only place that inspects which optional fields
are present. Builders consume the resulting flags and variants instead of
re-checking raw values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from ecs_pipeline.config.types import RawDeploymentConfig
from ecs_pipeline.errors import ConfigParseError, MissingRequiredFieldError
from ecs_pipeline.logging_utils import get_logger

logger = get_logger(__name__)

DEFAULT_INSTANCE_TYPE = "t3.small"
DEFAULT_APP_IMAGE = "flipbox/php:73-apache"
DEFAULT_OPS_IMAGE = "flipbox/ops:latest"
DEFAULT_STICKINESS_SECONDS = 90
MAX_WEB_TASKS = 20
MAX_QUEUE_TASKS = 5

# CDK context key -> config key
RECOGNIZED_OPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "appName": "app_name",
        "envName": "env_name",
        "stackVersion": "stack_version",
        "awsAccount": "account_id",
        "awsRegion": "region",
        "vpcId": "vpc_id",
        "certificateArns": "certificate_arns",
        "prioritizeHttps": "prioritize_https",
        "whiteListCIDRs": "whitelist_cidrs",
        "allowIngress": "allow_ingress",
        "instanceType": "instance_type",
        "instanceKeyName": "instance_key_name",
        "minCapacity": "min_capacity",
        "desiredCapacity": "desired_capacity",
        "maxCapacity": "max_capacity",
        "minDesiredWebTasks": "min_desired_web_tasks",
        "minDesiredQueueTasks": "min_desired_queue_tasks",
        "stickinessCookieSeconds": "stickiness_cookie_seconds",
        "appContainerImage": "app_container_image",
        "opsContainerImage": "ops_container_image",
        "domainName": "domain_name",
        "domainZoneId": "domain_zone_id",
        "domainZoneName": "domain_zone_name",
        "opsBackupCommand": "ops_backup_command",
        "pub2SlackParams": "notification_parameter_paths",
        "envParameterPath": "env_parameter_path",
        "s3ArtifactBucketName": "artifact_bucket_name",
        "assetBucketName": "asset_bucket_name",
        "codecommitRepo": "codecommit_repo",
        "codecommitBranch": "codecommit_branch",
        "distributionId": "distribution_id",
        "taskRoleScopes": "task_role_scopes",
        "logRetentionDays": "log_retention_days",
        "removalPolicy": "removal_policy",
        "deployBastion": "deploy_bastion",
        "deployVpc": "deploy_vpc",
    }
)


@dataclass(frozen=True)
class IngressGrant:
    security_group_id: str
    tcp_port: int


@dataclass(frozen=True)
class CapacityBounds:
    min_capacity: int = 1
    desired_capacity: int = 1
    max_capacity: int = 5


@dataclass(frozen=True)
class DnsZone:
    domain_name: str
    zone_id: str
    zone_name: str


@dataclass(frozen=True)
class TlsRouting:
    """Terminate TLS on the load balancer with the given certificates."""

    certificate_arns: Tuple[str, ...]


@dataclass(frozen=True)
class PlainRouting:
    """Serve plain HTTP only."""


Routing = Union[TlsRouting, PlainRouting]


@dataclass(frozen=True)
class DeploymentSettings:
    """Fully-typed deployment configuration shared read-only by all builders."""

    app_name: str
    env_name: str
    stack_version: str
    artifact_bucket_name: str
    codecommit_repo: str
    codecommit_branch: str = "main"
    env_parameter_path: str = ""
    account_id: Optional[str] = None
    region: Optional[str] = None
    vpc_id: Optional[str] = None
    routing: Routing = field(default_factory=PlainRouting)
    prioritize_https: bool = False
    whitelist_cidrs: Tuple[str, ...] = ()
    allow_ingress: Tuple[IngressGrant, ...] = ()
    instance_type: str = DEFAULT_INSTANCE_TYPE
    instance_key_name: Optional[str] = None
    capacity: CapacityBounds = field(default_factory=CapacityBounds)
    min_desired_web_tasks: int = 1
    min_desired_queue_tasks: int = 1
    stickiness_cookie_seconds: int = DEFAULT_STICKINESS_SECONDS
    app_container_image: str = DEFAULT_APP_IMAGE
    ops_container_image: str = DEFAULT_OPS_IMAGE
    domain_name: Optional[str] = None
    dns: Optional[DnsZone] = None
    ops_backup_command: Optional[Tuple[str, ...]] = None
    notification_parameter_paths: Tuple[str, ...] = ()
    asset_bucket_name: Optional[str] = None
    distribution_id: Optional[str] = None
    task_role_scopes: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    log_retention_days: int = 30
    removal_policy: str = "retain"
    deploy_bastion: bool = False
    deploy_vpc: bool = False
    tags: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def stack_name(self) -> str:
        return f"{self.app_name}-{self.env_name}-{self.stack_version}"

    @property
    def tls_enabled(self) -> bool:
        return isinstance(self.routing, TlsRouting)

    @property
    def ops_enabled(self) -> bool:
        return bool(self.ops_backup_command)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.notification_parameter_paths)

    @property
    def invalidation_enabled(self) -> bool:
        return bool(self.distribution_id)

    @property
    def dns_enabled(self) -> bool:
        return self.dns is not None


def context_overrides(try_get_context) -> dict[str, Any]:
    """Collect recognized options from a CDK ``node.try_get_context`` callable."""
    overrides: dict[str, Any] = {}
    for context_key, config_key in RECOGNIZED_OPTIONS.items():
        value = try_get_context(context_key)
        if value is not None:
            overrides[config_key] = value
    return overrides


def _text(raw: Mapping[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _required_text(raw: Mapping[str, Any], key: str) -> str:
    text = _text(raw, key)
    if text is None:
        raise MissingRequiredFieldError(key)
    return text


def _decoded(raw: Mapping[str, Any], key: str) -> Any:
    """Return the field value, decoding JSON text when the field is serialized."""
    value = raw.get(key)
    if not isinstance(value, str):
        return value
    if not value.strip():
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(key, f"malformed JSON ({exc.msg})") from exc


def _string_list(raw: Mapping[str, Any], key: str) -> Optional[Tuple[str, ...]]:
    value = _decoded(raw, key)
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ConfigParseError(key, "expected a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ConfigParseError(key, f"expected a list of strings, found {type(item).__name__}")
        text = item.strip()
        if text:
            items.append(text)
    return tuple(items)


def _command(raw: Mapping[str, Any], key: str) -> Optional[Tuple[str, ...]]:
    """Parse an argv list, keeping every argument exactly as given."""
    value = _decoded(raw, key)
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ConfigParseError(key, "expected a list of strings")
    for item in value:
        if not isinstance(item, str):
            raise ConfigParseError(key, f"expected a list of strings, found {type(item).__name__}")
    return tuple(value) or None


def _integer(raw: Mapping[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = raw.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ConfigParseError(key, "expected an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigParseError(key, "expected an integer") from exc
    if number < minimum:
        raise ConfigParseError(key, f"must be >= {minimum}")
    return number


def _flag(raw: Mapping[str, Any], key: str) -> Optional[bool]:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"1", "true", "yes", "y"}:
        return True
    if normalized in {"0", "false", "no", "n", ""}:
        return False
    raise ConfigParseError(key, "expected a boolean")


def _ingress_grants(raw: Mapping[str, Any]) -> Tuple[IngressGrant, ...]:
    key = "allow_ingress"
    value = _decoded(raw, key)
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ConfigParseError(key, "expected a list of {securityGroupId, tcpPort} records")
    grants: list[IngressGrant] = []
    for item in value:
        if not isinstance(item, Mapping):
            raise ConfigParseError(key, "expected a list of {securityGroupId, tcpPort} records")
        group_id = str(item.get("securityGroupId") or "").strip()
        if not group_id:
            raise ConfigParseError(key, "securityGroupId is required for every grant")
        port = item.get("tcpPort")
        if isinstance(port, bool):
            raise ConfigParseError(key, f"tcpPort for {group_id} must be an integer")
        try:
            tcp_port = int(port)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ConfigParseError(key, f"tcpPort for {group_id} must be an integer") from exc
        if not 0 < tcp_port < 65536:
            raise ConfigParseError(key, f"tcpPort for {group_id} out of range")
        grants.append(IngressGrant(security_group_id=group_id, tcp_port=tcp_port))
    return tuple(grants)


def _resource_scopes(raw: Mapping[str, Any]) -> Mapping[str, Tuple[str, ...]]:
    key = "task_role_scopes"
    value = _decoded(raw, key)
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        raise ConfigParseError(key, "expected a record of category -> list of ARNs")
    scopes: dict[str, Tuple[str, ...]] = {}
    for category, arns in value.items():
        parsed = _string_list({key: arns}, key)
        if parsed:
            scopes[str(category)] = parsed
    return MappingProxyType(scopes)


def _capacity(raw: Mapping[str, Any]) -> CapacityBounds:
    bounds = CapacityBounds(
        min_capacity=_integer(raw, "min_capacity", 1, minimum=1),
        desired_capacity=_integer(raw, "desired_capacity", 1, minimum=1),
        max_capacity=_integer(raw, "max_capacity", 5, minimum=1),
    )
    if not bounds.min_capacity <= bounds.desired_capacity <= bounds.max_capacity:
        raise ConfigParseError(
            "capacity",
            f"expected min <= desired <= max, got {bounds.min_capacity}/"
            f"{bounds.desired_capacity}/{bounds.max_capacity}",
        )
    return bounds


def _task_floor(raw: Mapping[str, Any], key: str, ceiling: int) -> int:
    floor = _integer(raw, key, 1, minimum=1)
    if floor > ceiling:
        raise ConfigParseError(key, f"must not exceed the scaling ceiling of {ceiling}")
    return floor


def _routing(raw: Mapping[str, Any]) -> Tuple[Routing, bool]:
    certificate_arns = _string_list(raw, "certificate_arns") or ()
    routing: Routing = TlsRouting(certificate_arns) if certificate_arns else PlainRouting()

    prioritize_https = _flag(raw, "prioritize_https")
    if prioritize_https is None:
        prioritize_https = isinstance(routing, TlsRouting)
    elif prioritize_https and not isinstance(routing, TlsRouting):
        raise MissingRequiredFieldError("certificate_arns", "HTTPS priority requires at least one certificate")
    return routing, prioritize_https


def _dns(raw: Mapping[str, Any], env_name: str, stack_version: str) -> Tuple[Optional[str], Optional[DnsZone]]:
    zone_id = _text(raw, "domain_zone_id")
    zone_name = _text(raw, "domain_zone_name")
    domain_name = _text(raw, "domain_name")
    if domain_name is None and zone_name is not None:
        domain_name = f"{env_name.lower()}-{stack_version}.{zone_name}"

    if domain_name and zone_id and zone_name:
        return domain_name, DnsZone(domain_name=domain_name, zone_id=zone_id, zone_name=zone_name)
    return domain_name, None


def _removal_policy(raw: Mapping[str, Any]) -> str:
    policy = (_text(raw, "removal_policy") or "retain").lower()
    if policy not in {"destroy", "retain"}:
        raise ConfigParseError("removal_policy", "expected 'destroy' or 'retain'")
    return policy


def normalize_config(raw: RawDeploymentConfig | Mapping[str, Any]) -> DeploymentSettings:
    """Validate ``raw`` and derive the immutable deployment settings."""
    app_name = _required_text(raw, "app_name")
    env_name = _required_text(raw, "env_name")
    stack_version = _required_text(raw, "stack_version")

    account_id = _text(raw, "account_id")
    vpc_id = _text(raw, "vpc_id")
    region = _text(raw, "region")
    if vpc_id and not account_id:
        raise MissingRequiredFieldError("account_id", "looking up an existing VPC needs a concrete account")
    if vpc_id and not region:
        raise MissingRequiredFieldError("region", "looking up an existing VPC needs a concrete region")

    routing, prioritize_https = _routing(raw)
    domain_name, dns = _dns(raw, env_name, stack_version)
    ops_backup_command = _command(raw, "ops_backup_command")

    settings = DeploymentSettings(
        app_name=app_name,
        env_name=env_name,
        stack_version=stack_version,
        artifact_bucket_name=_required_text(raw, "artifact_bucket_name"),
        codecommit_repo=_required_text(raw, "codecommit_repo"),
        codecommit_branch=_text(raw, "codecommit_branch") or "main",
        env_parameter_path=_text(raw, "env_parameter_path") or f"/{app_name}/{env_name}",
        account_id=account_id,
        region=region,
        vpc_id=vpc_id,
        routing=routing,
        prioritize_https=prioritize_https,
        whitelist_cidrs=_string_list(raw, "whitelist_cidrs") or (),
        allow_ingress=_ingress_grants(raw),
        instance_type=_text(raw, "instance_type") or DEFAULT_INSTANCE_TYPE,
        instance_key_name=_text(raw, "instance_key_name"),
        capacity=_capacity(raw),
        min_desired_web_tasks=_task_floor(raw, "min_desired_web_tasks", MAX_WEB_TASKS),
        min_desired_queue_tasks=_task_floor(raw, "min_desired_queue_tasks", MAX_QUEUE_TASKS),
        stickiness_cookie_seconds=_integer(raw, "stickiness_cookie_seconds", DEFAULT_STICKINESS_SECONDS, minimum=1),
        app_container_image=_text(raw, "app_container_image") or DEFAULT_APP_IMAGE,
        ops_container_image=_text(raw, "ops_container_image") or DEFAULT_OPS_IMAGE,
        domain_name=domain_name,
        dns=dns,
        ops_backup_command=ops_backup_command,
        notification_parameter_paths=_string_list(raw, "notification_parameter_paths") or (),
        asset_bucket_name=_text(raw, "asset_bucket_name"),
        distribution_id=_text(raw, "distribution_id"),
        task_role_scopes=_resource_scopes(raw),
        log_retention_days=_integer(raw, "log_retention_days", 30, minimum=1),
        removal_policy=_removal_policy(raw),
        deploy_bastion=bool(_flag(raw, "deploy_bastion")),
        deploy_vpc=bool(_flag(raw, "deploy_vpc")),
        tags=MappingProxyType(dict(raw.get("tags") or {})),
    )

    logger.info(
        "Resolved deployment settings",
        extra={
            "stack_name": settings.stack_name,
            "tls_enabled": settings.tls_enabled,
            "ops_enabled": settings.ops_enabled,
            "dns_enabled": settings.dns_enabled,
            "notifications_enabled": settings.notifications_enabled,
            "invalidation_enabled": settings.invalidation_enabled,
        },
    )
    return settings
