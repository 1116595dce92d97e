"""
Database workload: PostgreSQL on Fargate with its data directory on EFS.

Reachable only inside the VPC, through the internal security group and the
Service Connect name ("main-db"). Never attached to the load balancer.
"""

import logging

from constructs import Construct
from aws_cdk import (
    Duration,
    aws_ecs as ecs,
    aws_secretsmanager as secretsmanager,
)

from stacks.config import NovellaSettings
from stacks.discovery import ServiceDiscovery
from stacks.logs import container_logs
from stacks.network import Network
from stacks.sizing import task_memory_for
from stacks.storage import DurableStorage

logger = logging.getLogger(__name__)

CONTAINER_NAME = "postgres"
DATA_VOLUME = "postgres-data"
DATA_DIR = "/var/lib/postgresql/data"


class DatabaseWorkload(Construct):

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: NovellaSettings,
        network: Network,
        cluster: ecs.ICluster,
        discovery: ServiceDiscovery,
        storage: DurableStorage,
        credentials: secretsmanager.ISecret,
    ) -> None:
        super().__init__(scope, construct_id)

        task_memory = task_memory_for(settings.database_cpu, settings.database_memory)
        logger.debug("database task size cpu=%s memory=%s", settings.database_cpu, task_memory)

        self.task_definition = ecs.FargateTaskDefinition(
            self, "TaskDefinition",
            cpu=settings.database_cpu,
            memory_limit_mib=task_memory,
        )
        self.task_definition.add_volume(
            name=DATA_VOLUME,
            efs_volume_configuration=ecs.EfsVolumeConfiguration(
                file_system_id=storage.file_system.file_system_id,
                transit_encryption="ENABLED",
                authorization_config=ecs.AuthorizationConfig(
                    access_point_id=storage.access_point.access_point_id,
                ),
            ),
        )

        self.container = self.task_definition.add_container(
            CONTAINER_NAME,
            container_name=CONTAINER_NAME,
            image=ecs.ContainerImage.from_registry(settings.database_image),
            essential=True,
            port_mappings=[
                ecs.PortMapping(
                    name=settings.database_port_name,
                    container_port=settings.database_port,
                    host_port=settings.database_port,
                    protocol=ecs.Protocol.TCP,
                ),
            ],
            environment={
                "POSTGRES_USER": settings.database_user,
                "POSTGRES_DB": settings.database_name,
            },
            secrets={
                "POSTGRES_PASSWORD": ecs.Secret.from_secrets_manager(credentials, "password"),
            },
            health_check=ecs.HealthCheck(
                command=["CMD-SHELL", f"pg_isready -U {settings.database_user}"],
                interval=Duration.seconds(30),
                timeout=Duration.seconds(5),
                retries=3,
                start_period=Duration.seconds(60),
            ),
            logging=container_logs("postgres", settings.log_retention_days),
        )
        self.container.add_mount_points(
            ecs.MountPoint(
                source_volume=DATA_VOLUME,
                container_path=DATA_DIR,
                read_only=False,
            )
        )

        self.service = ecs.FargateService(
            self, "Service",
            cluster=cluster,
            task_definition=self.task_definition,
            desired_count=1,
            vpc_subnets=network.private_subnets,
            security_groups=[network.internal_sg],
            assign_public_ip=False,
            circuit_breaker=ecs.DeploymentCircuitBreaker(enable=True, rollback=True),
            service_connect_configuration=discovery.service_connect(
                settings.database_discovery_name, settings.database_port_name, settings.database_port,
            ),
        )
        self.service.node.add_dependency(storage.file_system.mount_targets_available)
