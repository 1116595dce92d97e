"""
Build the app image and push it to the stack's ECR repository.

Usage:
    python scripts/publish_image.py <build_context> <tag>
    python scripts/publish_image.py . v1.4.0

Then deploy with the tag so the service pulls it from the repository:
    cd infra && cdk deploy -c image_tag=v1.4.0

Without a tag, cdk deploy builds the image and copies it into the same
repository under its content hash. The repository uses immutable tags, so
every manual push needs a new tag.
"""

from __future__ import annotations

import base64
import os
import subprocess
import sys

import boto3
from botocore.exceptions import ClientError

REGION = os.getenv("AWS_REGION")  # None: boto3 resolves it from the profile
STACK_NAME = os.getenv("NOVELLA_STACK", "NovellaStack")
PLATFORM = os.getenv("NOVELLA_IMAGE_PLATFORM", "linux/amd64")


def find_repository_name(cfn) -> str:
    """Physical name of the stack's ECR repository."""
    paginator = cfn.get_paginator("list_stack_resources")
    for page in paginator.paginate(StackName=STACK_NAME):
        for res in page["StackResourceSummaries"]:
            if res["ResourceType"] == "AWS::ECR::Repository":
                return res["PhysicalResourceId"]
    raise RuntimeError(f"stack {STACK_NAME} has no ECR repository")


def docker_login(ecr) -> str:
    """Log the local docker client into ECR; returns the registry host."""
    auth = ecr.get_authorization_token()["authorizationData"][0]
    user, password = base64.b64decode(auth["authorizationToken"]).decode().split(":", 1)
    registry = auth["proxyEndpoint"].replace("https://", "")
    subprocess.run(
        ["docker", "login", "--username", user, "--password-stdin", registry],
        input=password.encode(),
        check=True,
    )
    return registry


def image_exists(ecr, repository: str, tag: str) -> bool:
    try:
        ecr.describe_images(repositoryName=repository, imageIds=[{"imageTag": tag}])
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] == "ImageNotFoundException":
            return False
        raise


def main():
    if len(sys.argv) < 3:
        print("Usage: python scripts/publish_image.py <build_context> <tag>")
        sys.exit(1)

    context, tag = sys.argv[1], sys.argv[2]
    if not os.path.isfile(os.path.join(context, "Dockerfile")):
        print(f"ERROR: no Dockerfile in {context}")
        sys.exit(1)

    session = boto3.Session(region_name=REGION)
    ecr = session.client("ecr")

    try:
        repository = find_repository_name(session.client("cloudformation"))
    except ClientError as e:
        if "does not exist" in str(e):
            print(f"ERROR: stack {STACK_NAME} not found in {session.region_name}")
            sys.exit(1)
        raise
    print(f"[ECR] Repository: {repository}")

    if image_exists(ecr, repository, tag):
        print(f"[ECR] Tag {tag} already pushed (tags are immutable). Pick a new tag.")
        sys.exit(1)

    registry = docker_login(ecr)
    uri = f"{registry}/{repository}:{tag}"

    print(f"[ECR] Building {uri} for {PLATFORM}")
    subprocess.run(["docker", "build", "--platform", PLATFORM, "-t", uri, context], check=True)

    print(f"[ECR] Pushing {uri}")
    subprocess.run(["docker", "push", uri], check=True)

    print(f"\nPushed {uri}")
    print(f"Next step: cd infra && cdk deploy -c image_tag={tag}")


if __name__ == "__main__":
    main()
