"""Public entry point: internet-facing ALB, HTTP listener and target group."""

from constructs import Construct
from aws_cdk import (
    Duration,
    aws_elasticloadbalancingv2 as elbv2,
)

from stacks.config import NovellaSettings
from stacks.network import Network


class PublicEntryPoint(Construct):

    def __init__(
        self, scope: Construct, construct_id: str, *, network: Network, settings: NovellaSettings,
    ) -> None:
        super().__init__(scope, construct_id)

        self.load_balancer = elbv2.ApplicationLoadBalancer(
            self, "LoadBalancer",
            vpc=network.vpc,
            internet_facing=True,
            vpc_subnets=network.public_subnets,
            security_group=network.external_sg,
        )
        self.load_balancer.add_security_group(network.internal_sg)

        self.target_group = elbv2.ApplicationTargetGroup(
            self, "TargetGroup",
            vpc=network.vpc,
            port=settings.app_port,
            protocol=elbv2.ApplicationProtocol.HTTP,
            target_type=elbv2.TargetType.IP,
            deregistration_delay=Duration.seconds(settings.deregistration_delay),
            health_check=elbv2.HealthCheck(
                path=settings.health_check_path,
                timeout=Duration.seconds(settings.health_check_timeout),
                healthy_threshold_count=settings.healthy_threshold,
                unhealthy_threshold_count=settings.unhealthy_threshold,
            ),
        )

        # external group already admits the internet, so no auto-opened rule
        self.listener = self.load_balancer.add_listener(
            "HttpListener",
            port=80,
            protocol=elbv2.ApplicationProtocol.HTTP,
            open=False,
            default_target_groups=[self.target_group],
        )

    @property
    def url(self) -> str:
        return f"http://{self.load_balancer.load_balancer_dns_name}"
