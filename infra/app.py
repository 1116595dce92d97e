#!/usr/bin/env python3
"""
AWS CDK entry point.

Provisions the novella stack:
  - VPC with public/private/isolated subnets and NAT egress
  - private DNS namespace for service discovery
  - ECS cluster, Application Load Balancer, ECR repository
  - Fargate service for the app container
  - EFS-backed PostgreSQL Fargate service

Settings come from cdk.json context, ``-c key=value`` and NOVELLA_* env vars.
"""

import logging
import sys

import aws_cdk as cdk
from pydantic import ValidationError

from stacks.config import load_settings, log_level
from stacks.novella_stack import NovellaStack

logging.basicConfig(
    level=log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("novella")

app = cdk.App()

try:
    settings = load_settings(app.node)
except ValidationError as e:
    logger.error("invalid novella settings:\n%s", e)
    sys.exit(1)

logger.info(
    "synthesizing NovellaStack  cpu=%s memory=%s  image=%s",
    settings.cpu,
    settings.memory,
    settings.image_tag or f"asset:{settings.app_build_context}",
)

env = None
if settings.account or settings.region:
    env = cdk.Environment(account=settings.account, region=settings.region)

NovellaStack(app, "NovellaStack", settings=settings, env=env)

app.synth()
