"""Construct resolving the VPC every downstream resource is placed in."""

from __future__ import annotations

from typing import Optional

from aws_cdk import aws_ec2 as ec2
from constructs import Construct


class NetworkLayerConstruct(Construct):
    """Import an existing VPC by id or create a fresh two-AZ VPC."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc_id: Optional[str] = None,
        max_azs: int = 2,
    ) -> None:
        super().__init__(scope, construct_id)

        if vpc_id:
            self._vpc: ec2.IVpc = ec2.Vpc.from_lookup(self, "Vpc", vpc_id=vpc_id)
        else:
            self._vpc = ec2.Vpc(self, "Vpc", max_azs=max_azs)

    @property
    def vpc(self) -> ec2.IVpc:
        """Return the resolved VPC."""
        return self._vpc
