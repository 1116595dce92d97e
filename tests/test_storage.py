from stacks.plan import PlanGraph


def test_encrypted_file_system(template):
    template.resource_count_is("AWS::EFS::FileSystem", 1)
    template.has_resource_properties("AWS::EFS::FileSystem", {"Encrypted": True})


def test_one_mount_target_per_private_subnet(template, template_json, stack, logical_id):
    template.resource_count_is("AWS::EFS::MountTarget", 2)
    graph = PlanGraph.from_template(template_json)
    mount_sg = {"Fn::GetAtt": [logical_id(stack.storage.mount_target_sg), "GroupId"]}

    subnets = set()
    for mt in graph.of_type("AWS::EFS::MountTarget"):
        assert mt.properties["FileSystemId"] == {"Ref": logical_id(stack.storage.file_system)}
        assert mt.properties["SecurityGroups"] == [mount_sg]
        subnet = mt.properties["SubnetId"]["Ref"]
        assert graph.subnet_tier(subnet) == "Private"
        subnets.add(subnet)
    assert len(subnets) == 2


def test_nfs_only_from_internal_group(template, stack, logical_id):
    mount_sg = {"Fn::GetAtt": [logical_id(stack.storage.mount_target_sg), "GroupId"]}
    internal = {"Fn::GetAtt": [logical_id(stack.network.internal_sg), "GroupId"]}

    rules = template.find_resources("AWS::EC2::SecurityGroupIngress", {
        "Properties": {"GroupId": mount_sg},
    })
    assert [
        (r["Properties"]["IpProtocol"], r["Properties"]["FromPort"], r["Properties"]["ToPort"],
         r["Properties"]["SourceSecurityGroupId"])
        for r in rules.values()
    ] == [("tcp", 2049, 2049, internal)]

    template.has_resource_properties("AWS::EC2::SecurityGroupEgress", {
        "GroupId": mount_sg,
        "IpProtocol": "-1",
        "DestinationSecurityGroupId": internal,
    })


def test_mount_target_group_has_no_inline_ingress(template_json, stack, logical_id):
    props = template_json["Resources"][logical_id(stack.storage.mount_target_sg)]["Properties"]
    assert "SecurityGroupIngress" not in props


def test_access_point(template, stack, logical_id):
    template.resource_count_is("AWS::EFS::AccessPoint", 1)
    template.has_resource_properties("AWS::EFS::AccessPoint", {
        "FileSystemId": {"Ref": logical_id(stack.storage.file_system)},
    })
