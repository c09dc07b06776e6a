from __future__ import annotations

from ..collect.model import CollectorConfig, DetailTemplate, ParentScope, PartitionPolicy
from .base import ServiceCategory, ServiceDefinition


def vpc() -> CollectorConfig:
    return CollectorConfig("vpc", PartitionPolicy.regional()).add_batch(
        [
            ("vpcs", ["ec2", "describe-vpcs"]),
            ("subnets", ["ec2", "describe-subnets"]),
            ("route-tables", ["ec2", "describe-route-tables"]),
            ("internet-gateways", ["ec2", "describe-internet-gateways"]),
            ("nat-gateways", ["ec2", "describe-nat-gateways"]),
            ("network-acls", ["ec2", "describe-network-acls"]),
            ("vpc-endpoints", ["ec2", "describe-vpc-endpoints"]),
            ("vpc-peering-connections", ["ec2", "describe-vpc-peering-connections"]),
            ("vpn-gateways", ["ec2", "describe-vpn-gateways"]),
            ("customer-gateways", ["ec2", "describe-customer-gateways"]),
        ]
    )


def elb() -> CollectorConfig:
    load_balancers = ParentScope(
        ("elbv2", "describe-load-balancers"), "LoadBalancers", "--load-balancer-arn", identifier_key="LoadBalancerArn"
    )
    return (
        CollectorConfig("elb", PartitionPolicy.regional())
        .add_plain_list("classic-load-balancers", ["elb", "describe-load-balancers"])
        .add_list_then_enrich(
            "load-balancers",
            ["elbv2", "describe-load-balancers"],
            "LoadBalancers",
            "LoadBalancerArn",
            [
                DetailTemplate("Attributes", "elbv2", "describe-load-balancer-attributes", "--load-balancer-arn"),
                DetailTemplate("Tags", "elbv2", "describe-tags", "--resource-arns"),
            ],
        )
        .add_list_then_enrich(
            "target-groups",
            ["elbv2", "describe-target-groups"],
            "TargetGroups",
            "TargetGroupArn",
            [
                DetailTemplate("Attributes", "elbv2", "describe-target-group-attributes", "--target-group-arn"),
                DetailTemplate("TargetHealth", "elbv2", "describe-target-health", "--target-group-arn"),
            ],
        )
        .add_list_then_enrich(
            "listeners",
            ["elbv2", "describe-listeners"],
            "Listeners",
            "ListenerArn",
            [DetailTemplate("Rules", "elbv2", "describe-rules", "--listener-arn")],
            parent=load_balancers,
        )
    )


def route53() -> CollectorConfig:
    return (
        CollectorConfig("route53", PartitionPolicy.global_())
        .add_list_then_enrich(
            "hosted-zones",
            ["route53", "list-hosted-zones"],
            "HostedZones",
            "Id",
            [
                DetailTemplate("RecordSets", "route53", "list-resource-record-sets", "--hosted-zone-id"),
                DetailTemplate("Details", "route53", "get-hosted-zone", "--id"),
            ],
        )
        .add_plain_list("health-checks", ["route53", "list-health-checks"])
        .add_plain_list("traffic-policies", ["route53", "list-traffic-policies"])
    )


def cloudfront() -> CollectorConfig:
    return (
        CollectorConfig("cloudfront", PartitionPolicy.global_())
        .add_list_then_enrich(
            "distributions",
            ["cloudfront", "list-distributions"],
            "DistributionList.Items",
            "Id",
            [DetailTemplate("Config", "cloudfront", "get-distribution-config", "--id")],
            output_key="Distributions",
            empty_when_missing=True,
        )
        .add_plain_list("origin-access-identities", ["cloudfront", "list-cloud-front-origin-access-identities"])
        .add_plain_list("cache-policies", ["cloudfront", "list-cache-policies"])
        .add_plain_list("origin-request-policies", ["cloudfront", "list-origin-request-policies"])
        .add_plain_list("response-headers-policies", ["cloudfront", "list-response-headers-policies"])
        .add_plain_list("functions", ["cloudfront", "list-functions"])
    )


SERVICES = [
    ServiceDefinition("vpc", ServiceCategory.NETWORKING, vpc),
    ServiceDefinition("elb", ServiceCategory.NETWORKING, elb, aliases=("elbv2",)),
    ServiceDefinition("route53", ServiceCategory.NETWORKING, route53),
    ServiceDefinition("cloudfront", ServiceCategory.NETWORKING, cloudfront),
]
