from __future__ import annotations

from ..collect.model import CollectorConfig, DetailTemplate, ParentScope, PartitionPolicy
from .base import ServiceCategory, ServiceDefinition


def ec2() -> CollectorConfig:
    return CollectorConfig("ec2", PartitionPolicy.regional()).add_batch(
        [
            ("instances", ["ec2", "describe-instances"]),
            ("vpcs", ["ec2", "describe-vpcs"]),
            ("subnets", ["ec2", "describe-subnets"]),
            ("route-tables", ["ec2", "describe-route-tables"]),
            ("internet-gateways", ["ec2", "describe-internet-gateways"]),
            ("nat-gateways", ["ec2", "describe-nat-gateways"]),
            ("network-acls", ["ec2", "describe-network-acls"]),
            ("security-groups", ["ec2", "describe-security-groups"]),
            ("vpc-endpoints", ["ec2", "describe-vpc-endpoints"]),
            ("elastic-ips", ["ec2", "describe-addresses"]),
            ("volumes", ["ec2", "describe-volumes"]),
            ("snapshots", ["ec2", "describe-snapshots", "--owner-ids", "self"]),
            ("images", ["ec2", "describe-images", "--owners", "self"]),
            ("key-pairs", ["ec2", "describe-key-pairs"]),
            ("network-interfaces", ["ec2", "describe-network-interfaces"]),
            ("launch-templates", ["ec2", "describe-launch-templates"]),
            ("auto-scaling-groups", ["autoscaling", "describe-auto-scaling-groups"]),
            ("placement-groups", ["ec2", "describe-placement-groups"]),
            ("vpc-peering-connections", ["ec2", "describe-vpc-peering-connections"]),
            ("transit-gateway-attachments", ["ec2", "describe-transit-gateway-attachments"]),
            ("vpn-connections", ["ec2", "describe-vpn-connections"]),
            ("customer-gateways", ["ec2", "describe-customer-gateways"]),
        ]
    )


def ecs() -> CollectorConfig:
    clusters = ParentScope(("ecs", "list-clusters"), "clusterArns", "--cluster")
    return (
        CollectorConfig("ecs", PartitionPolicy.regional())
        .add_list_then_describe(
            "clusters",
            ["ecs", "list-clusters"],
            "clusterArns",
            ["ecs", "describe-clusters"],
            "--clusters",
            "clusters",
            describe_args=["--include", "ATTACHMENTS", "SETTINGS", "STATISTICS", "TAGS"],
        )
        .add_plain_list("capacity-providers", ["ecs", "describe-capacity-providers"])
        .add_list_then_describe(
            "services",
            ["ecs", "list-services"],
            "serviceArns",
            ["ecs", "describe-services"],
            "--services",
            "services",
            describe_batch_size=10,
            parent=clusters,
        )
        .add_plain_list("task-definitions", ["ecs", "list-task-definitions"])
        .add_plain_list("task-definition-families", ["ecs", "list-task-definition-families"])
        .add_list_then_describe(
            "tasks",
            ["ecs", "list-tasks"],
            "taskArns",
            ["ecs", "describe-tasks"],
            "--tasks",
            "tasks",
            parent=clusters,
        )
        .add_list_then_describe(
            "container-instances",
            ["ecs", "list-container-instances"],
            "containerInstanceArns",
            ["ecs", "describe-container-instances"],
            "--container-instances",
            "containerInstances",
            parent=clusters,
        )
    )


def lambda_() -> CollectorConfig:
    param = "--function-name"
    return (
        CollectorConfig("lambda", PartitionPolicy.regional())
        .add_list_then_enrich(
            "functions",
            ["lambda", "list-functions"],
            "Functions",
            "FunctionName",
            [
                DetailTemplate("Configuration", "lambda", "get-function-configuration", param),
                DetailTemplate("Aliases", "lambda", "list-aliases", param),
                DetailTemplate("Versions", "lambda", "list-versions-by-function", param),
                DetailTemplate("EventSourceMappings", "lambda", "list-event-source-mappings", param),
                DetailTemplate("FunctionUrlConfig", "lambda", "get-function-url-config", param),
                DetailTemplate("Concurrency", "lambda", "get-function-concurrency", param),
            ],
            enrich_concurrency=10,
        )
        .add_plain_list("layers", ["lambda", "list-layers"])
        .add_plain_list("code-signing-configs", ["lambda", "list-code-signing-configs"])
    )


SERVICES = [
    ServiceDefinition("ec2", ServiceCategory.COMPUTE, ec2),
    ServiceDefinition("ecs", ServiceCategory.COMPUTE, ecs),
    ServiceDefinition("lambda", ServiceCategory.COMPUTE, lambda_),
]
