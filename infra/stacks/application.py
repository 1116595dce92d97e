"""
Application workload: the "app" Fargate service behind the load balancer.

  - private subnets, internal security group, no public IP
  - circuit breaker on, rollback off
  - registered in the target group and in Service Connect as "frontend"
  - database password and session secret injected from Secrets Manager
"""

import logging

from constructs import Construct
from aws_cdk import (
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_secretsmanager as secretsmanager,
)

from stacks.config import NovellaSettings
from stacks.discovery import ServiceDiscovery
from stacks.logs import container_logs
from stacks.network import Network
from stacks.sizing import task_memory_for

logger = logging.getLogger(__name__)

CONTAINER_NAME = "app"


class ApplicationWorkload(Construct):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: NovellaSettings,
        network: Network,
        cluster: ecs.ICluster,
        discovery: ServiceDiscovery,
        target_group: elbv2.IApplicationTargetGroup,
        image: ecs.ContainerImage,
        db_credentials: secretsmanager.ISecret,
        session_secret: secretsmanager.ISecret,
    ) -> None:
        super().__init__(scope, construct_id)

        task_memory = task_memory_for(settings.cpu, settings.memory)
        logger.debug("app task size cpu=%s memory=%s", settings.cpu, task_memory)

        self.task_definition = ecs.FargateTaskDefinition(
            self, "TaskDefinition",
            cpu=settings.cpu,
            memory_limit_mib=task_memory,
        )

        self.container = self.task_definition.add_container(
            CONTAINER_NAME,
            container_name=CONTAINER_NAME,
            image=image,
            cpu=settings.cpu,
            memory_limit_mib=settings.memory,
            essential=True,
            port_mappings=[
                ecs.PortMapping(
                    name=settings.app_port_name,
                    container_port=settings.app_port,
                    host_port=settings.app_port,
                    protocol=ecs.Protocol.TCP,
                ),
            ],
            environment={
                "PORT": str(settings.app_port),
                "DATABASE_URL": settings.database_url,
            },
            secrets={
                "PGPASSWORD": ecs.Secret.from_secrets_manager(db_credentials, "password"),
                "SESSION_SECRET": ecs.Secret.from_secrets_manager(session_secret),
            },
            logging=container_logs("app", settings.log_retention_days),
        )

        self.service = ecs.FargateService(
            self, "Service",
            cluster=cluster,
            task_definition=self.task_definition,
            desired_count=1,
            vpc_subnets=network.private_subnets,
            security_groups=[network.internal_sg],
            assign_public_ip=False,
            circuit_breaker=ecs.DeploymentCircuitBreaker(enable=True, rollback=False),
            service_connect_configuration=discovery.service_connect(
                settings.app_discovery_name, settings.app_port_name, settings.app_port,
            ),
        )

        target_group.add_target(
            self.service.load_balancer_target(
                container_name=CONTAINER_NAME,
                container_port=settings.app_port,
            )
        )
