"""SSH bastion host placed in a public subnet of the application VPC."""

from typing import Optional, Sequence

from aws_cdk import (
    CfnOutput,
    Fn,
    Stack,
    Tags,
    aws_ec2 as ec2,
    aws_iam as iam,
)
from constructs import Construct

from ecs_pipeline.config.settings import DnsZone, IngressGrant
from ecs_pipeline.core.iam import utils as iam_utils
from ecs_pipeline.core.network import NetworkLayerConstruct
from ecs_pipeline.dns import AddressTarget, bind_dns_record

SSH_PORT = 22
SSM_MANAGED_POLICY = "AmazonSSMManagedInstanceCore"
AUTHORIZED_KEYS = "/home/ec2-user/.ssh/authorized_keys"


def authorized_keys_script(bucket_name: str, key_prefix: str) -> str:
    """Shell snippet that keeps the first (launch) key and appends keys synced from S3."""
    return "\n".join(
        [
            f"head -n 1 {AUTHORIZED_KEYS} > {AUTHORIZED_KEYS}.backup",
            f"cp {AUTHORIZED_KEYS}.backup {AUTHORIZED_KEYS}",
            f"aws s3 cp s3://{bucket_name}/{key_prefix} - >> {AUTHORIZED_KEYS}",
            f"chmod 600 {AUTHORIZED_KEYS}",
        ]
    )


class BastionStack(Stack):
    """Single ``t3.nano`` Amazon Linux 2 host reachable over SSH.

    When both ``authorized_keys_bucket`` and ``authorized_keys_prefix`` are
    given, the instance role may read that object and the user data appends
    the keys it holds to ``ec2-user``'s authorized keys.
    """

    TAG_NAME = "Name"

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        vpc_id: Optional[str] = None,
        vpc: Optional[ec2.IVpc] = None,
        instance_name: str = "BastionHost",
        key_name: Optional[str] = None,
        user_data: str = "",
        allow_ingress: Sequence[IngressGrant] = (),
        authorized_keys_bucket: Optional[str] = None,
        authorized_keys_prefix: Optional[str] = None,
        dns: Optional[DnsZone] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        if vpc is None:
            vpc = NetworkLayerConstruct(self, "Network", vpc_id=vpc_id).vpc

        self.security_group = ec2.SecurityGroup(self, "SecurityGroup", vpc=vpc)
        self.security_group.add_ingress_rule(ec2.Peer.any_ipv4(), ec2.Port.tcp(SSH_PORT))

        sync_keys = bool(authorized_keys_bucket and authorized_keys_prefix)
        self.role = iam.Role(
            self,
            "InstanceRole",
            assumed_by=iam.ServicePrincipal("ec2.amazonaws.com"),
            managed_policies=[iam.ManagedPolicy.from_aws_managed_policy_name(SSM_MANAGED_POLICY)],
        )
        if sync_keys:
            self.role.add_to_policy(
                iam.PolicyStatement(
                    sid="AuthorizedKeysRead",
                    actions=["s3:GetObject"],
                    resources=[f"{iam_utils.bucket_arn(authorized_keys_bucket)}/{authorized_keys_prefix}*"],
                )
            )

        self.instance_profile = iam.CfnInstanceProfile(
            self,
            "InstanceProfile",
            path="/",
            roles=[self.role.role_name],
        )

        script_lines = ["#!/usr/bin/env bash"]
        if sync_keys:
            script_lines.append(authorized_keys_script(authorized_keys_bucket, authorized_keys_prefix))
        if user_data:
            script_lines.append(user_data)

        image = ec2.MachineImage.latest_amazon_linux2()
        public_subnets = vpc.select_subnets(subnet_type=ec2.SubnetType.PUBLIC).subnets

        self.instance = ec2.CfnInstance(
            self,
            "Instance",
            instance_type=ec2.InstanceType.of(ec2.InstanceClass.T3, ec2.InstanceSize.NANO).to_string(),
            image_id=image.get_image(self).image_id,
            subnet_id=public_subnets[0].subnet_id,
            security_group_ids=[self.security_group.security_group_id],
            key_name=key_name,
            iam_instance_profile=self.instance_profile.ref,
            user_data=Fn.base64("\n".join(script_lines)),
        )
        Tags.of(self.instance).add(self.TAG_NAME, instance_name)

        for index, grant in enumerate(allow_ingress):
            imported = ec2.SecurityGroup.from_security_group_id(
                self, f"ImportSecurityGroup{index}", grant.security_group_id
            )
            imported.connections.allow_from(self.security_group, ec2.Port.tcp(grant.tcp_port))

        self.domain_record = bind_dns_record(self, dns, AddressTarget((self.instance.attr_public_ip,)))

        CfnOutput(self, "InstanceId", export_name=f"{self.stack_name}-InstanceId", value=self.instance.ref)
        CfnOutput(self, "InstanceIP", export_name=f"{self.stack_name}-InstanceIP", value=self.instance.attr_public_ip)
        CfnOutput(
            self,
            "InstanceProfileName",
            export_name=f"{self.stack_name}-InstanceProfile",
            value=self.instance_profile.ref,
        )
