"""ECS cluster backed by an EC2 auto scaling group."""

from __future__ import annotations

from typing import Optional, Sequence

from aws_cdk import (
    Stack,
    aws_autoscaling as autoscaling,
    aws_cloudwatch as cw,
    aws_ec2 as ec2,
    aws_ecs as ecs,
)
from constructs import Construct

from ecs_pipeline.config.settings import DEFAULT_INSTANCE_TYPE, CapacityBounds, IngressGrant

ADMIN_PORT = 22
RESERVATION_TARGET_PERCENT = 65


class ClusterConstruct(Construct):
    """Provision the cluster, its container instances and their scaling policies."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc: ec2.IVpc,
        instance_type: str = DEFAULT_INSTANCE_TYPE,
        capacity: Optional[CapacityBounds] = None,
        key_name: Optional[str] = None,
        whitelist_cidrs: Sequence[str] = (),
        allow_ingress: Sequence[IngressGrant] = (),
    ) -> None:
        super().__init__(scope, construct_id)
        stack = Stack.of(self)
        bounds = capacity or CapacityBounds()

        self.cluster = ecs.Cluster(
            self,
            "Cluster",
            cluster_name=stack.stack_name,
            vpc=vpc,
        )

        self.auto_scaling_group = self.cluster.add_capacity(
            "ContainerInstances",
            instance_type=ec2.InstanceType(instance_type),
            min_capacity=bounds.min_capacity,
            desired_capacity=bounds.desired_capacity,
            max_capacity=bounds.max_capacity,
            key_pair=ec2.KeyPair.from_key_pair_name(self, "InstanceKeyPair", key_name) if key_name else None,
        )

        self._allow_admin_access(whitelist_cidrs)
        self._grant_ingress(allow_ingress)
        self._create_scaling_policies()

    def _allow_admin_access(self, whitelist_cidrs: Sequence[str]) -> None:
        for cidr in whitelist_cidrs:
            self.auto_scaling_group.connections.allow_from(
                ec2.Peer.ipv4(cidr),
                ec2.Port.tcp(ADMIN_PORT),
                f"Administrative access from {cidr}",
            )

    def _grant_ingress(self, allow_ingress: Sequence[IngressGrant]) -> None:
        for index, grant in enumerate(allow_ingress):
            security_group = ec2.SecurityGroup.from_security_group_id(
                self,
                f"ImportSecurityGroup{index}",
                grant.security_group_id,
            )
            security_group.connections.allow_from(
                self.auto_scaling_group,
                ec2.Port.tcp(grant.tcp_port),
                f"Cluster instances to {grant.security_group_id}",
            )

    def _reservation_metric(self, metric_name: str) -> cw.Metric:
        return cw.Metric(
            namespace="AWS/ECS",
            metric_name=metric_name,
            statistic="Average",
            dimensions_map={"ClusterName": self.cluster.cluster_name},
        )

    def _create_scaling_policies(self) -> None:
        self.cpu_scaling_policy = autoscaling.TargetTrackingScalingPolicy(
            self,
            "ScaleOnCpuReservation",
            auto_scaling_group=self.auto_scaling_group,
            target_value=RESERVATION_TARGET_PERCENT,
            custom_metric=self._reservation_metric("CPUReservation"),
        )
        self.memory_scaling_policy = autoscaling.TargetTrackingScalingPolicy(
            self,
            "ScaleOnMemoryReservation",
            auto_scaling_group=self.auto_scaling_group,
            target_value=RESERVATION_TARGET_PERCENT,
            custom_metric=self._reservation_metric("MemoryReservation"),
        )
