"""
Durable storage for the database: EFS with a mount target in every private
subnet, NFS restricted to the internal security group, and an access point.
"""

from constructs import Construct
from aws_cdk import (
    RemovalPolicy,
    aws_ec2 as ec2,
    aws_efs as efs,
)

from stacks.network import Network

NFS_PORT = 2049


class DurableStorage(Construct):

    def __init__(self, scope: Construct, construct_id: str, *, network: Network) -> None:
        super().__init__(scope, construct_id)

        self.mount_target_sg = ec2.SecurityGroup(
            self, "MountTargetSecurityGroup",
            vpc=network.vpc,
            description="NFS from novella workloads only",
            allow_all_outbound=False,
        )
        self.mount_target_sg.add_ingress_rule(
            network.internal_sg, ec2.Port.tcp(NFS_PORT), "NFS from internal group",
        )
        self.mount_target_sg.add_egress_rule(
            network.internal_sg, ec2.Port.all_traffic(), "Replies to internal group",
        )

        # the L2 construct places one mount target per selected subnet
        self.file_system = efs.FileSystem(
            self, "FileSystem",
            vpc=network.vpc,
            vpc_subnets=network.private_subnets,
            security_group=self.mount_target_sg,
            encrypted=True,
            removal_policy=RemovalPolicy.DESTROY,
        )

        self.access_point = efs.AccessPoint(
            self, "AccessPoint",
            file_system=self.file_system,
        )
