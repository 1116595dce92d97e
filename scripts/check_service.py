"""
Inspect a deployed NovellaStack.

Prints the public URL, each ECS service's task counts and rollout state,
and the health of the load balancer targets.

Usage:
    python scripts/check_service.py [stack-name]
"""

from __future__ import annotations

import os
import sys

import boto3
from botocore.exceptions import ClientError

REGION = os.getenv("AWS_REGION")  # None: boto3 resolves it from the profile


def stack_resources(cfn, stack_name: str) -> dict:
    """Map resource type -> list of physical ids."""
    found: dict = {}
    paginator = cfn.get_paginator("list_stack_resources")
    for page in paginator.paginate(StackName=stack_name):
        for res in page["StackResourceSummaries"]:
            found.setdefault(res["ResourceType"], []).append(res["PhysicalResourceId"])
    return found


def print_url(cfn, stack_name: str) -> None:
    stack = cfn.describe_stacks(StackName=stack_name)["Stacks"][0]
    outputs = {o["OutputKey"]: o["OutputValue"] for o in stack.get("Outputs", [])}
    print(f"Stack:  {stack_name}  ({stack['StackStatus']})")
    print(f"URL:    {outputs.get('Url', 'n/a')}")


def print_services(ecs, cluster: str, service_arns: list) -> None:
    if not service_arns:
        print("[ECS] No services in stack.")
        return

    resp = ecs.describe_services(cluster=cluster, services=service_arns)
    for svc in resp["services"]:
        primary = next((d for d in svc["deployments"] if d["status"] == "PRIMARY"), {})
        print(
            f"[ECS] {svc['serviceName']}: running={svc['runningCount']}/{svc['desiredCount']}"
            f"  rollout={primary.get('rolloutState', 'n/a')}"
        )
        if primary.get("rolloutState") == "FAILED":
            print(f"      reason: {primary.get('rolloutStateReason', '')}")


def print_targets(elbv2, target_group_arns: list) -> None:
    for arn in target_group_arns:
        health = elbv2.describe_target_health(TargetGroupArn=arn)["TargetHealthDescriptions"]
        if not health:
            print(f"[ALB] {arn.split('/')[-2]}: no registered targets")
        for t in health:
            state = t["TargetHealth"]["State"]
            reason = t["TargetHealth"].get("Reason", "")
            print(f"[ALB] {t['Target']['Id']}:{t['Target'].get('Port')}  {state} {reason}".rstrip())


def main():
    stack_name = sys.argv[1] if len(sys.argv) > 1 else "NovellaStack"
    session = boto3.Session(region_name=REGION)
    cfn = session.client("cloudformation")

    try:
        print_url(cfn, stack_name)
        resources = stack_resources(cfn, stack_name)
    except ClientError as e:
        if "does not exist" in str(e):
            print(f"ERROR: stack {stack_name} not found in {session.region_name}")
            sys.exit(1)
        raise

    clusters = resources.get("AWS::ECS::Cluster", [])
    if clusters:
        print("-" * 60)
        print_services(session.client("ecs"), clusters[0], resources.get("AWS::ECS::Service", []))

    target_groups = resources.get("AWS::ElasticLoadBalancingV2::TargetGroup", [])
    if target_groups:
        print("-" * 60)
        print_targets(session.client("elbv2"), target_groups)


if __name__ == "__main__":
    main()
