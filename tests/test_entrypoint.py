from aws_cdk.assertions import Match

from stacks.plan import PlanGraph


def test_internet_facing_alb_in_public_subnets(template, template_json, logical_id, stack):
    template.resource_count_is("AWS::ElasticLoadBalancingV2::LoadBalancer", 1)
    template.has_resource_properties("AWS::ElasticLoadBalancingV2::LoadBalancer", {
        "Scheme": "internet-facing",
        "Type": "application",
    })

    graph = PlanGraph.from_template(template_json)
    lb = graph.get(logical_id(stack.entry.load_balancer))
    tiers = {graph.subnet_tier(s["Ref"]) for s in lb.properties["Subnets"]}
    assert tiers == {"Public"}


def test_alb_carries_both_groups(template_json, logical_id, stack):
    lb = template_json["Resources"][logical_id(stack.entry.load_balancer)]
    groups = {g["Fn::GetAtt"][0] for g in lb["Properties"]["SecurityGroups"]}
    assert groups == {
        logical_id(stack.network.internal_sg),
        logical_id(stack.network.external_sg),
    }


def test_http_listener_forwards_to_target_group(template, logical_id, stack):
    template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
        "Port": 80,
        "Protocol": "HTTP",
        "DefaultActions": [{
            "Type": "forward",
            "TargetGroupArn": {"Ref": logical_id(stack.entry.target_group)},
        }],
    })


def test_target_group_health_check(template):
    template.has_resource_properties("AWS::ElasticLoadBalancingV2::TargetGroup", {
        "Port": 80,
        "Protocol": "HTTP",
        "TargetType": "ip",
        "HealthCheckPath": "/",
        "HealthCheckTimeoutSeconds": 5,
        "HealthyThresholdCount": 2,
        "UnhealthyThresholdCount": 2,
        "TargetGroupAttributes": Match.array_with([
            {"Key": "deregistration_delay.timeout_seconds", "Value": "5"},
        ]),
    })


def test_url_is_the_only_output(template_json, logical_id, stack):
    outputs = template_json["Outputs"]
    assert list(outputs) == ["Url"]
    assert outputs["Url"]["Value"] == {
        "Fn::Join": ["", ["http://", {"Fn::GetAtt": [logical_id(stack.entry.load_balancer), "DNSName"]}]],
    }
