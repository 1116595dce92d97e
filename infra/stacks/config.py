"""
Deployment settings for the novella stack.

Values come from CDK context (cdk.json or ``cdk deploy -c key=value``) and
can be overridden with ``NOVELLA_<FIELD>`` environment variables.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

# Fargate accepts these task CPU values only
FARGATE_CPU_UNITS = (256, 512, 1024, 2048, 4096, 8192, 16384)

ENV_PREFIX = "NOVELLA_"

# CloudWatch Logs retention periods the stack knows how to map
LOG_RETENTION_DAYS = (1, 3, 5, 7, 14, 30, 60, 90, 180, 365)


class NovellaSettings(BaseModel):
    # application container shape
    cpu: int = 512
    memory: int = Field(default=128, gt=0)

    database_cpu: int = 256
    database_memory: int = Field(default=512, gt=0)

    # network
    vpc_cidr: str = "10.0.0.0/16"
    max_azs: int = Field(default=2, ge=2)

    # service discovery
    namespace_name: str = "novella.local"
    app_port: int = Field(default=80, gt=0, lt=65536)
    app_discovery_name: str = "frontend"
    app_port_name: str = "front"
    database_port: int = Field(default=5432, gt=0, lt=65536)
    database_discovery_name: str = "main-db"
    database_port_name: str = "pg"

    # database
    database_image: str = "postgres:16"
    database_user: str = "postgres"
    database_name: str = "postgres"

    # image pipeline
    app_build_context: str = ".."
    image_platform: str = "linux/amd64"
    image_tag: Optional[str] = None

    # load balancer target group
    health_check_path: str = "/"
    health_check_timeout: int = Field(default=5, ge=2, le=120)
    healthy_threshold: int = Field(default=2, ge=2, le=10)
    unhealthy_threshold: int = Field(default=2, ge=2, le=10)
    deregistration_delay: int = Field(default=5, ge=0, le=3600)

    log_retention_days: int = 14

    account: Optional[str] = None
    region: Optional[str] = None

    @field_validator("cpu", "database_cpu")
    @classmethod
    def _fargate_cpu(cls, v: int) -> int:
        if v not in FARGATE_CPU_UNITS:
            raise ValueError(f"{v} is not a Fargate CPU value, expected one of {FARGATE_CPU_UNITS}")
        return v

    @field_validator("health_check_path")
    @classmethod
    def _absolute_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("health check path must start with '/'")
        return v

    @field_validator("log_retention_days")
    @classmethod
    def _known_retention(cls, v: int) -> int:
        if v not in LOG_RETENTION_DAYS:
            raise ValueError(f"log retention must be one of {LOG_RETENTION_DAYS} days")
        return v

    @field_validator("image_tag")
    @classmethod
    def _blank_tag_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def database_url(self) -> str:
        # password is injected separately as PGPASSWORD
        return (
            f"postgresql://{self.database_user}@{self.database_discovery_name}"
            f":{self.database_port}/{self.database_name}"
        )


def _from_env(environ: Mapping[str, str]) -> dict:
    values = {}
    for name in NovellaSettings.model_fields:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            values[name] = environ[key]
    return values


def load_settings(node: Any = None, environ: Optional[Mapping[str, str]] = None) -> NovellaSettings:
    """
    Build settings from a construct node's context, then the environment.

    ``node`` is anything with ``try_get_context`` (an ``App.node``); pass None
    to read the environment only.
    """
    environ = os.environ if environ is None else environ

    values: dict = {}
    if node is not None:
        for name in NovellaSettings.model_fields:
            v = node.try_get_context(name)
            if v is not None:
                values[name] = v
    values.update(_from_env(environ))

    return NovellaSettings(**values)


def log_level(environ: Optional[Mapping[str, str]] = None) -> int:
    """Level named by NOVELLA_LOG_LEVEL; unknown names fall back to INFO."""
    environ = os.environ if environ is None else environ
    level = logging.getLevelName(environ.get(ENV_PREFIX + "LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO
