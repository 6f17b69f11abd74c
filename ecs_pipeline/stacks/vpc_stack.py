"""Standalone VPC with exported subnet ids for stacks that import by id."""

from aws_cdk import CfnOutput, Stack
from constructs import Construct

from ecs_pipeline.core.network import NetworkLayerConstruct


class VpcStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, *, max_azs: int = 2, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.network = NetworkLayerConstruct(self, "Network", max_azs=max_azs)
        self.vpc = self.network.vpc

        for index, subnet in enumerate(self.vpc.public_subnets):
            CfnOutput(
                self,
                f"PublicSubnetId{index}",
                export_name=f"{self.stack_name}-PUBLIC-SUBNET-ID-{index}",
                value=subnet.subnet_id,
            )

        for index, subnet in enumerate(self.vpc.private_subnets):
            CfnOutput(
                self,
                f"PrivateSubnetId{index}",
                export_name=f"{self.stack_name}-PRIVATE-SUBNET-ID-{index}",
                value=subnet.subnet_id,
            )

        CfnOutput(self, "VpcId", export_name=f"{self.stack_name}-VpcId", value=self.vpc.vpc_id)
