from aws_cdk.assertions import Match


def _tier_count(template, tier):
    return len(template.find_resources(
        "AWS::EC2::Subnet",
        {"Properties": {"Tags": Match.array_with([{"Key": "aws-cdk:subnet-type", "Value": tier}])}},
    ))


def test_vpc(template):
    template.resource_count_is("AWS::EC2::VPC", 1)
    template.has_resource_properties("AWS::EC2::VPC", {
        "CidrBlock": "10.0.0.0/16",
        "EnableDnsHostnames": True,
        "EnableDnsSupport": True,
    })


def test_three_tiers_across_two_azs(template):
    template.resource_count_is("AWS::EC2::Subnet", 6)
    assert _tier_count(template, "Public") == 2
    assert _tier_count(template, "Private") == 2
    assert _tier_count(template, "Isolated") == 2


def test_single_nat_gateway(template):
    template.resource_count_is("AWS::EC2::NatGateway", 1)


def test_internal_group_allows_members_and_all_egress(template, template_json, logical_id, stack):
    sg = logical_id(stack.network.internal_sg)
    group_ref = {"Fn::GetAtt": [sg, "GroupId"]}

    props = template_json["Resources"][sg]["Properties"]
    assert any(
        r.get("CidrIp") == "0.0.0.0/0" and r.get("IpProtocol") == "-1"
        for r in props["SecurityGroupEgress"]
    )
    assert "SecurityGroupIngress" not in props

    template.has_resource_properties("AWS::EC2::SecurityGroupIngress", {
        "IpProtocol": "-1",
        "GroupId": group_ref,
        "SourceSecurityGroupId": group_ref,
    })


def test_internal_group_never_admits_the_internet(template, logical_id, stack):
    sg = logical_id(stack.network.internal_sg)
    rules = template.find_resources("AWS::EC2::SecurityGroupIngress", {
        "Properties": {"GroupId": {"Fn::GetAtt": [sg, "GroupId"]}},
    })
    assert rules
    for rule in rules.values():
        assert "CidrIp" not in rule["Properties"]
        assert "CidrIpv6" not in rule["Properties"]


def test_external_group_admits_the_internet(template_json, logical_id, stack):
    sg = logical_id(stack.network.external_sg)
    ingress = template_json["Resources"][sg]["Properties"]["SecurityGroupIngress"]
    assert [(r["CidrIp"], r["IpProtocol"]) for r in ingress] == [("0.0.0.0/0", "-1")]
