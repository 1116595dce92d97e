"""
Application image pipeline.

The stack owns an ECR repository and the app always runs from it.

  - no image tag configured: the build context is built as a CDK Docker
    asset, and a copy step pushes it into the repository under the asset
    hash, so every content change gets a new immutable tag
  - image tag configured: the tag was pushed beforehand by
    scripts/publish_image.py and is pulled as is
"""

import logging
import os

from constructs import Construct
from aws_cdk import (
    RemovalPolicy,
    aws_ecr as ecr,
    aws_ecr_assets as ecr_assets,
    aws_ecs as ecs,
)
import cdk_ecr_deployment as ecr_deploy

from stacks.config import NovellaSettings

logger = logging.getLogger(__name__)

_PLATFORMS = {
    "linux/amd64": ecr_assets.Platform.LINUX_AMD64,
    "linux/arm64": ecr_assets.Platform.LINUX_ARM64,
}


def _platform(name: str) -> ecr_assets.Platform:
    return _PLATFORMS.get(name) or ecr_assets.Platform.custom(name)


class ImagePipeline(Construct):

    def __init__(self, scope: Construct, construct_id: str, *, settings: NovellaSettings) -> None:
        super().__init__(scope, construct_id)

        self.repository = ecr.Repository(
            self, "Repository",
            image_tag_mutability=ecr.TagMutability.IMMUTABLE,
            empty_on_delete=True,
            removal_policy=RemovalPolicy.DESTROY,
        )

        self.asset = None
        self.deployment = None

        if settings.image_tag:
            self.tag = settings.image_tag
            logger.debug("app image: %s from stack repository", self.tag)
        else:
            directory = os.path.abspath(settings.app_build_context)
            self.asset = ecr_assets.DockerImageAsset(
                self, "Image",
                directory=directory,
                platform=_platform(settings.image_platform),
            )
            self.tag = self.asset.asset_hash
            logger.debug("app image: built from %s (%s), pushed as %s", directory, settings.image_platform, self.tag)

            self.deployment = ecr_deploy.ECRDeployment(
                self, "Push",
                src=ecr_deploy.DockerImageName(self.asset.image_uri),
                dest=ecr_deploy.DockerImageName(f"{self.repository.repository_uri}:{self.tag}"),
            )

        self.image = ecs.ContainerImage.from_ecr_repository(self.repository, self.tag)
