"""
Plan validation for a synthesized novella template.

The CloudFormation template is read as an explicit dependency graph: one
node per logical resource, one edge per ``Ref`` / ``Fn::GetAtt`` /
``DependsOn`` pointing at another resource. The checks below assert the
topology properties the stack promises (workload placement, health checks,
storage isolation, the public URL) without deploying anything.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set

SUBNET_TYPE_TAG = "aws-cdk:subnet-type"
NON_PUBLIC_TIERS = ("Private", "Isolated")

ECS_SERVICE = "AWS::ECS::Service"
TARGET_GROUP = "AWS::ElasticLoadBalancingV2::TargetGroup"
LOAD_BALANCER = "AWS::ElasticLoadBalancingV2::LoadBalancer"
MOUNT_TARGET = "AWS::EFS::MountTarget"
SG_INGRESS = "AWS::EC2::SecurityGroupIngress"
SUBNET = "AWS::EC2::Subnet"

DEFAULT_TARGET_HEALTH = {
    "path": "/",
    "timeout": 5,
    "healthy_threshold": 2,
    "unhealthy_threshold": 2,
}


class PlanError(Exception):
    pass


@dataclass(frozen=True)
class Violation:
    check: str
    resource: str
    message: str

    def __str__(self) -> str:
        return f"[{self.check}] {self.resource}: {self.message}"


@dataclass
class Node:
    logical_id: str
    type: str
    properties: Dict[str, Any]
    depends_on: Set[str] = field(default_factory=set)


def _references(value: Any) -> Iterator[str]:
    """Yield the logical ids a property value points at."""
    if isinstance(value, dict):
        if "Ref" in value and isinstance(value["Ref"], str):
            yield value["Ref"]
        if "Fn::GetAtt" in value:
            target = value["Fn::GetAtt"]
            if isinstance(target, str):
                yield target.split(".", 1)[0]
            elif isinstance(target, list) and target:
                yield target[0]
        for v in value.values():
            yield from _references(v)
    elif isinstance(value, list):
        for v in value:
            yield from _references(v)


def _ref_id(value: Any) -> Optional[str]:
    """Logical id of a bare ``Ref`` or ``Fn::GetAtt`` value, else None."""
    if not isinstance(value, dict):
        return None
    if "Ref" in value:
        return value["Ref"]
    target = value.get("Fn::GetAtt")
    if isinstance(target, str):
        return target.split(".", 1)[0]
    if isinstance(target, list) and target:
        return target[0]
    return None


class PlanGraph:
    """Typed resource nodes with attribute-reference edges."""

    def __init__(self, nodes: Dict[str, Node], outputs: Optional[Dict[str, Any]] = None):
        self.nodes = nodes
        self.outputs = outputs or {}

    @classmethod
    def from_template(cls, template: Dict[str, Any]) -> "PlanGraph":
        resources = template.get("Resources") or {}
        nodes: Dict[str, Node] = {}
        for logical_id, body in resources.items():
            nodes[logical_id] = Node(
                logical_id=logical_id,
                type=body.get("Type", ""),
                properties=body.get("Properties") or {},
            )

        for logical_id, body in resources.items():
            deps = set(_references(body.get("Properties") or {}))
            explicit = body.get("DependsOn") or []
            if isinstance(explicit, str):
                explicit = [explicit]
            deps.update(explicit)
            # parameters and pseudo parameters are not resources
            nodes[logical_id].depends_on = {d for d in deps if d in nodes and d != logical_id}

        return cls(nodes, template.get("Outputs") or {})

    def of_type(self, type_name: str) -> List[Node]:
        return [n for n in sorted(self.nodes.values(), key=lambda n: n.logical_id) if n.type == type_name]

    def get(self, logical_id: Optional[str]) -> Optional[Node]:
        if logical_id is None:
            return None
        return self.nodes.get(logical_id)

    def evaluation_order(self) -> List[str]:
        """Topological order, dependencies first, ties broken by logical id."""
        pending = {lid: set(n.depends_on) for lid, n in self.nodes.items()}
        dependents: Dict[str, List[str]] = {lid: [] for lid in self.nodes}
        for lid, deps in pending.items():
            for d in deps:
                dependents[d].append(lid)

        ready = [lid for lid, deps in pending.items() if not deps]
        heapq.heapify(ready)
        order: List[str] = []
        while ready:
            lid = heapq.heappop(ready)
            order.append(lid)
            for child in dependents[lid]:
                pending[child].discard(lid)
                if not pending[child]:
                    heapq.heappush(ready, child)

        if len(order) != len(self.nodes):
            stuck = sorted(lid for lid, deps in pending.items() if deps)
            raise PlanError(f"dependency cycle among: {', '.join(stuck)}")
        return order

    # -- helpers shared by the checks --

    def subnet_tier(self, subnet_id: Optional[str]) -> Optional[str]:
        node = self.get(subnet_id)
        if node is None or node.type != SUBNET:
            return None
        for tag in node.properties.get("Tags") or []:
            if tag.get("Key") == SUBNET_TYPE_TAG:
                return tag.get("Value")
        return None

    def containers(self, service: Node) -> List[Dict[str, Any]]:
        task = self.get(_ref_id(service.properties.get("TaskDefinition")))
        if task is None:
            return []
        return task.properties.get("ContainerDefinitions") or []

    def service_security_groups(self, service: Node) -> List[str]:
        awsvpc = (service.properties.get("NetworkConfiguration") or {}).get("AwsvpcConfiguration") or {}
        return [sid for sid in (_ref_id(v) for v in awsvpc.get("SecurityGroups") or []) if sid]

    def ingress_rules(self, group_id: str) -> List[Dict[str, Any]]:
        """Inline and standalone ingress rules of a security group."""
        rules: List[Dict[str, Any]] = []
        group = self.get(group_id)
        if group is not None:
            rules.extend(group.properties.get("SecurityGroupIngress") or [])
        for node in self.of_type(SG_INGRESS):
            if _ref_id(node.properties.get("GroupId")) == group_id:
                rules.append(node.properties)
        return rules

    def internal_security_group(self) -> Optional[str]:
        """The one security group every workload shares."""
        shared: Optional[Set[str]] = None
        for service in self.of_type(ECS_SERVICE):
            groups = set(self.service_security_groups(service))
            shared = groups if shared is None else shared & groups
        if not shared or len(shared) != 1:
            return None
        return next(iter(shared))

    def find_service(self, container_name: str) -> Optional[Node]:
        for service in self.of_type(ECS_SERVICE):
            if any(c.get("Name") == container_name for c in self.containers(service)):
                return service
        return None


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def check_workload_placement(graph: PlanGraph) -> List[Violation]:
    out: List[Violation] = []
    for service in graph.of_type(ECS_SERVICE):
        awsvpc = (service.properties.get("NetworkConfiguration") or {}).get("AwsvpcConfiguration") or {}
        subnets = awsvpc.get("Subnets") or []
        if not subnets:
            out.append(Violation("placement", service.logical_id, "no subnets declared"))
        for value in subnets:
            sid = _ref_id(value)
            tier = graph.subnet_tier(sid)
            if tier not in NON_PUBLIC_TIERS:
                out.append(Violation(
                    "placement", service.logical_id,
                    f"subnet {sid or value!r} is {tier or 'unknown'}, expected private or isolated",
                ))
        if awsvpc.get("AssignPublicIp", "DISABLED") != "DISABLED":
            out.append(Violation("placement", service.logical_id, "public IP assignment enabled"))
    return out


def check_target_group_health(graph: PlanGraph, expected: Optional[Dict[str, Any]] = None) -> List[Violation]:
    expected = {**DEFAULT_TARGET_HEALTH, **(expected or {})}
    fields = {
        "path": "HealthCheckPath",
        "timeout": "HealthCheckTimeoutSeconds",
        "healthy_threshold": "HealthyThresholdCount",
        "unhealthy_threshold": "UnhealthyThresholdCount",
    }
    groups = graph.of_type(TARGET_GROUP)
    if not groups:
        return [Violation("target-health", "-", "no target group declared")]

    out: List[Violation] = []
    for tg in groups:
        for key, prop in fields.items():
            actual = tg.properties.get(prop)
            if actual != expected[key]:
                out.append(Violation(
                    "target-health", tg.logical_id, f"{prop} is {actual!r}, expected {expected[key]!r}",
                ))
    return out


def check_database_health_check(
    graph: PlanGraph,
    container_name: str = "postgres",
    command: str = "pg_isready -U postgres",
    interval: int = 30,
    retries: int = 3,
    start_period: int = 60,
) -> List[Violation]:
    service = graph.find_service(container_name)
    if service is None:
        return [Violation("db-health", container_name, "no service runs this container")]

    container = next(c for c in graph.containers(service) if c.get("Name") == container_name)
    hc = container.get("HealthCheck")
    if not hc:
        return [Violation("db-health", service.logical_id, "container has no health check")]

    out: List[Violation] = []
    if hc.get("Command") != ["CMD-SHELL", command]:
        out.append(Violation("db-health", service.logical_id, f"command is {hc.get('Command')!r}"))
    for prop, want in (("Interval", interval), ("Retries", retries), ("StartPeriod", start_period)):
        if hc.get(prop) != want:
            out.append(Violation("db-health", service.logical_id, f"{prop} is {hc.get(prop)!r}, expected {want}"))
    return out


def check_mount_targets(
    graph: PlanGraph, expected_count: Optional[int] = None, nfs_port: int = 2049,
) -> List[Violation]:
    """One mount target per private subnet unless ``expected_count`` says otherwise."""
    if expected_count is None:
        expected_count = sum(1 for s in graph.of_type(SUBNET) if graph.subnet_tier(s.logical_id) == "Private")

    out: List[Violation] = []
    targets = graph.of_type(MOUNT_TARGET)
    if len(targets) != expected_count:
        out.append(Violation("mount-targets", "-", f"{len(targets)} mount targets, expected {expected_count}"))

    internal = graph.internal_security_group()
    if internal is None:
        out.append(Violation("mount-targets", "-", "workloads do not share one internal security group"))

    seen_subnets: Set[str] = set()
    for mt in targets:
        sid = _ref_id(mt.properties.get("SubnetId"))
        if graph.subnet_tier(sid) != "Private":
            out.append(Violation("mount-targets", mt.logical_id, f"subnet {sid} is not private"))
        if sid in seen_subnets:
            out.append(Violation("mount-targets", mt.logical_id, f"subnet {sid} already has a mount target"))
        seen_subnets.add(sid)

        groups = [g for g in (_ref_id(v) for v in mt.properties.get("SecurityGroups") or []) if g]
        if not groups:
            out.append(Violation("mount-targets", mt.logical_id, "no security group attached"))
        for gid in groups:
            rules = graph.ingress_rules(gid)
            if not rules:
                out.append(Violation("mount-targets", gid, "no ingress rule admits NFS"))
            for rule in rules:
                source = _ref_id(rule.get("SourceSecurityGroupId"))
                ok = (
                    rule.get("IpProtocol") == "tcp"
                    and rule.get("FromPort") == nfs_port
                    and rule.get("ToPort") == nfs_port
                    and internal is not None
                    and source == internal
                    and "CidrIp" not in rule
                    and "CidrIpv6" not in rule
                )
                if not ok:
                    out.append(Violation(
                        "mount-targets", gid,
                        f"ingress {rule.get('IpProtocol')}/{rule.get('FromPort')}-{rule.get('ToPort')} "
                        f"from {source or rule.get('CidrIp') or rule.get('CidrIpv6')} is not NFS from the internal group",
                    ))
    return out


def check_url_output(graph: PlanGraph, output_name: str = "Url") -> List[Violation]:
    output = graph.outputs.get(output_name)
    if output is None:
        return [Violation("url", output_name, "output missing")]

    value = output.get("Value")
    join = value.get("Fn::Join") if isinstance(value, dict) else None
    if not join or join[0] != "" or len(join[1]) != 2 or join[1][0] != "http://":
        return [Violation("url", output_name, f"not of the form http://<dns name>: {value!r}")]

    dns = join[1][1]
    target = dns.get("Fn::GetAtt") if isinstance(dns, dict) else None
    if isinstance(target, str):
        target = target.split(".", 1)
    lb = graph.get(target[0]) if target else None
    if lb is None or lb.type != LOAD_BALANCER or target[1] != "DNSName":
        return [Violation("url", output_name, "host is not a load balancer DNSName")]
    return []


def check_database_isolation(graph: PlanGraph, container_name: str = "postgres") -> List[Violation]:
    service = graph.find_service(container_name)
    if service is None:
        return [Violation("db-isolation", container_name, "no service runs this container")]
    if service.properties.get("LoadBalancers"):
        return [Violation("db-isolation", service.logical_id, "database is attached to a load balancer")]
    return []


CHECKS = (
    check_workload_placement,
    check_target_group_health,
    check_database_health_check,
    check_mount_targets,
    check_url_output,
    check_database_isolation,
)


def validate(template: Dict[str, Any]) -> List[Violation]:
    """Run every check; an empty list means the plan holds."""
    graph = PlanGraph.from_template(template)
    graph.evaluation_order()
    violations: List[Violation] = []
    for check in CHECKS:
        violations.extend(check(graph))
    return violations
