"""
Network fabric and security boundary.

  - VPC across two AZs: public, private (NAT egress) and isolated subnets
  - single NAT gateway
  - internal security group: all traffic among members, all egress
  - external security group: all inbound from the internet
"""

from constructs import Construct
from aws_cdk import aws_ec2 as ec2

from stacks.config import NovellaSettings


class Network(Construct):

    def __init__(self, scope: Construct, construct_id: str, *, settings: NovellaSettings) -> None:
        super().__init__(scope, construct_id)

        self.vpc = ec2.Vpc(
            self, "Vpc",
            ip_addresses=ec2.IpAddresses.cidr(settings.vpc_cidr),
            max_azs=settings.max_azs,
            nat_gateways=1,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24,
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24,
                ),
                ec2.SubnetConfiguration(
                    name="Isolated",
                    subnet_type=ec2.SubnetType.PRIVATE_ISOLATED,
                    cidr_mask=24,
                ),
            ],
        )

        self.internal_sg = ec2.SecurityGroup(
            self, "InternalSecurityGroup",
            vpc=self.vpc,
            description="Traffic among novella workloads",
            allow_all_outbound=True,
        )
        self.internal_sg.add_ingress_rule(
            self.internal_sg, ec2.Port.all_traffic(), "All traffic from group members",
        )

        # internet ingress lives on the external group only; workloads never carry it
        self.external_sg = ec2.SecurityGroup(
            self, "ExternalSecurityGroup",
            vpc=self.vpc,
            description="Internet traffic to the load balancer",
            allow_all_outbound=False,
        )
        self.external_sg.add_ingress_rule(
            ec2.Peer.any_ipv4(), ec2.Port.all_traffic(), "All traffic from the internet",
        )

    @property
    def private_subnets(self) -> ec2.SubnetSelection:
        return ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS)

    @property
    def public_subnets(self) -> ec2.SubnetSelection:
        return ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC)
