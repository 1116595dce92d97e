"""
AWS CDK stack: the novella app and its PostgreSQL database on ECS Fargate.

Resources:
  - VPC (2 AZs, public + private + isolated subnets, single NAT gateway)
  - internal / external security groups
  - Cloud Map private DNS namespace (novella.local) for Service Connect
  - ECS cluster
  - Application Load Balancer (public) with an IP target group
  - ECR repository + app image
  - Fargate service for the app container
  - EFS file system, mount targets and access point for database data
  - Fargate service running PostgreSQL on the EFS volume
  - Secrets Manager secrets for the DB password and the session secret
"""

import json

from constructs import Construct
import aws_cdk as cdk
from aws_cdk import (
    Stack,
    aws_ecs as ecs,
    aws_secretsmanager as secretsmanager,
)

from stacks.application import ApplicationWorkload
from stacks.config import NovellaSettings
from stacks.database import DatabaseWorkload
from stacks.discovery import ServiceDiscovery
from stacks.entrypoint import PublicEntryPoint
from stacks.images import ImagePipeline
from stacks.network import Network
from stacks.storage import DurableStorage


class NovellaStack(Stack):

    def __init__(
        self, scope: Construct, construct_id: str, *, settings: NovellaSettings, **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # ---------------------------------------------------------------
        # Network + security groups
        # ---------------------------------------------------------------
        network = Network(self, "Network", settings=settings)

        # ---------------------------------------------------------------
        # Service discovery
        # ---------------------------------------------------------------
        discovery = ServiceDiscovery(
            self, "Discovery", vpc=network.vpc, name=settings.namespace_name,
        )

        # ---------------------------------------------------------------
        # ECS cluster
        # ---------------------------------------------------------------
        cluster = ecs.Cluster(self, "Cluster", vpc=network.vpc)

        # ---------------------------------------------------------------
        # Load balancer
        # ---------------------------------------------------------------
        entry = PublicEntryPoint(self, "EntryPoint", network=network, settings=settings)

        # ---------------------------------------------------------------
        # Secrets
        # ---------------------------------------------------------------
        db_credentials = secretsmanager.Secret(
            self, "DatabaseCredentials",
            description="PostgreSQL credentials for the novella database",
            generate_secret_string=secretsmanager.SecretStringGenerator(
                secret_string_template=json.dumps({"username": settings.database_user}),
                generate_string_key="password",
                exclude_punctuation=True,
            ),
        )
        session_secret = secretsmanager.Secret(
            self, "SessionSecret",
            description="Session signing secret for the novella app",
            generate_secret_string=secretsmanager.SecretStringGenerator(
                password_length=48,
                exclude_punctuation=True,
            ),
        )

        # ---------------------------------------------------------------
        # App image + service
        # ---------------------------------------------------------------
        images = ImagePipeline(self, "Images", settings=settings)

        self.app = ApplicationWorkload(
            self, "App",
            settings=settings,
            network=network,
            cluster=cluster,
            discovery=discovery,
            target_group=entry.target_group,
            image=images.image,
            db_credentials=db_credentials,
            session_secret=session_secret,
        )
        if images.deployment is not None:
            # tasks pull the tag the copy step pushes
            self.app.service.node.add_dependency(images.deployment)

        # ---------------------------------------------------------------
        # EFS + PostgreSQL service
        # ---------------------------------------------------------------
        storage = DurableStorage(self, "Storage", network=network)

        self.database = DatabaseWorkload(
            self, "Database",
            settings=settings,
            network=network,
            cluster=cluster,
            discovery=discovery,
            storage=storage,
            credentials=db_credentials,
        )

        self.network = network
        self.entry = entry
        self.images = images
        self.storage = storage

        # ---------------------------------------------------------------
        # Outputs
        # ---------------------------------------------------------------
        cdk.CfnOutput(self, "Url", value=entry.url)
