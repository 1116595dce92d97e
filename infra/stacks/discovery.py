"""
Service discovery: a private Cloud Map namespace plus the Service Connect
wiring each workload uses to register itself in it.
"""

from constructs import Construct
from aws_cdk import (
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_servicediscovery as servicediscovery,
)


class ServiceDiscovery(Construct):

    def __init__(self, scope: Construct, construct_id: str, *, vpc: ec2.IVpc, name: str) -> None:
        super().__init__(scope, construct_id)

        self.namespace = servicediscovery.PrivateDnsNamespace(
            self, "Namespace",
            name=name,
            vpc=vpc,
            description="Private DNS namespace for service discovery",
        )

    def service_connect(self, discovery_name: str, port_name: str, port: int) -> ecs.ServiceConnectProps:
        """Register ``port_name`` as ``discovery_name`` with a same-named client alias."""
        return ecs.ServiceConnectProps(
            namespace=self.namespace.namespace_arn,
            services=[
                ecs.ServiceConnectService(
                    port_mapping_name=port_name,
                    discovery_name=discovery_name,
                    dns_name=discovery_name,
                    port=port,
                ),
            ],
        )
