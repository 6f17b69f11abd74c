"""Route 53 A records for load balancers and literal addresses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from aws_cdk import (
    CfnOutput,
    aws_elasticloadbalancingv2 as elbv2,
    aws_route53 as route53,
    aws_route53_targets as route53_targets,
)
from constructs import Construct

from ecs_pipeline.config.settings import DnsZone
from ecs_pipeline.errors import AmbiguousShapeError
from ecs_pipeline.logging_utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AddressTarget:
    """Point the record at one or more literal IPv4 addresses."""

    addresses: Tuple[str, ...]


@dataclass(frozen=True)
class AliasTarget:
    """Alias the record to a load balancer."""

    load_balancer: elbv2.ILoadBalancerV2


DnsTarget = Union[AddressTarget, AliasTarget]


def _record_target(target: DnsTarget) -> route53.RecordTarget:
    if isinstance(target, AliasTarget):
        return route53.RecordTarget.from_alias(route53_targets.LoadBalancerTarget(target.load_balancer))
    if isinstance(target, AddressTarget):
        if not target.addresses:
            raise AmbiguousShapeError("Address target needs at least one address")
        return route53.RecordTarget.from_ip_addresses(*target.addresses)
    raise AmbiguousShapeError(f"Unsupported DNS target: {type(target).__name__}")


def bind_dns_record(
    scope: Construct,
    zone: Optional[DnsZone],
    target: DnsTarget,
) -> Optional[route53.ARecord]:
    """Create an A record for ``zone.domain_name`` and export its name.

    Returns ``None`` without touching ``scope`` when no zone is configured.
    The target shape is classified before any construct is created.
    """
    if zone is None:
        return None

    record_target = _record_target(target)
    hosted_zone = route53.HostedZone.from_hosted_zone_attributes(
        scope,
        "HostedZone",
        hosted_zone_id=zone.zone_id,
        zone_name=zone.zone_name,
    )
    record = route53.ARecord(
        scope,
        "ARecord",
        zone=hosted_zone,
        record_name=zone.domain_name,
        target=record_target,
    )
    CfnOutput(scope, "DomainARecord", value=record.domain_name)
    logger.info(
        "Bound DNS record",
        extra={"domain_name": zone.domain_name, "target": type(target).__name__},
    )
    return record
