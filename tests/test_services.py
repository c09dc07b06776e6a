from __future__ import annotations

import pytest

from aws_inventory.collect.model import GLOBAL_PARTITION, IndependentBatch, ListThenDescribe, ListThenEnrich
from aws_inventory.collect.orchestrator import plan_tasks
from aws_inventory.services import (
    build_collectors,
    get_service,
    list_services,
    resolve_services,
    service_names,
    services_by_category,
)
from aws_inventory.services.base import ServiceCategory
from aws_inventory.util.errors import ConfigError

EXPECTED_SERVICES = {
    "ec2",
    "ecs",
    "lambda",
    "s3",
    "rds",
    "elasticache",
    "vpc",
    "elb",
    "route53",
    "cloudfront",
    "iam",
    "acm",
    "waf",
    "secretsmanager",
    "cloudformation",
    "cloudwatch",
    "eventbridge",
    "sns",
    "sqs",
    "ses",
    "ecr",
}


def test_catalog_has_every_service() -> None:
    assert set(service_names()) == EXPECTED_SERVICES


def test_every_factory_builds_fresh_config() -> None:
    for definition in list_services():
        first = definition.build()
        second = definition.build()
        assert first.service == definition.name
        assert first.resources
        assert first is not second


def test_aliases_resolve() -> None:
    assert get_service("elbv2").name == "elb"
    assert get_service(" EC2 ").name == "ec2"
    assert get_service("nope") is None


def test_resolve_services_order_and_dedupe() -> None:
    names = [d.name for d in resolve_services(["s3", "ec2", "S3", "elbv2"])]
    assert names == ["s3", "ec2", "elb"]


def test_resolve_services_unknown_raises() -> None:
    with pytest.raises(ConfigError, match="Unknown service"):
        resolve_services(["ec2", "mainframe"])


def test_resolve_services_empty_means_all() -> None:
    assert len(resolve_services(None)) == len(EXPECTED_SERVICES)
    assert len(resolve_services([])) == len(EXPECTED_SERVICES)


def test_categories_group_all_services() -> None:
    grouped = services_by_category()
    assert list(grouped)[0] is ServiceCategory.COMPUTE
    assert grouped[ServiceCategory.DEVTOOLS] == ["ecr"]
    assert sum(len(v) for v in grouped.values()) == len(EXPECTED_SERVICES)


def test_s3_uses_us_east_1_with_bucket_details() -> None:
    s3 = get_service("s3").build()
    mode = s3.resources[0].mode
    assert s3.policy.resolve("eu-west-1") == "us-east-1"
    assert isinstance(mode, ListThenEnrich)
    assert mode.item_array_key == "Buckets"
    assert mode.identifier_key == "Name"
    assert mode.enrich_concurrency == 5
    assert len(mode.detail_templates) == 18


def test_iam_is_global() -> None:
    iam = get_service("iam").build()
    assert iam.policy.resolve("eu-west-1") == GLOBAL_PARTITION


def test_ec2_is_a_batch() -> None:
    ec2 = get_service("ec2").build()
    assert isinstance(ec2.resources[0].mode, IndependentBatch)
    names = [name for name, _ in ec2.resources[0].mode.named_operations]
    assert "instances" in names and "auto-scaling-groups" in names


def test_cloudfront_waf_acls_only_in_us_east_1() -> None:
    tasks = plan_tasks(build_collectors(["waf"]), ["eu-west-1", "us-east-1"])
    labels = {t.label for t in tasks}
    assert "waf/web-acls-cloudfront@us-east-1" in labels
    assert "waf/web-acls-cloudfront@eu-west-1" not in labels


def test_ecs_describes_clusters_and_cluster_children() -> None:
    ecs = get_service("ecs").build()
    modes = {r.resource_type: r.mode for r in ecs.resources}

    clusters = modes["clusters"]
    assert isinstance(clusters, ListThenDescribe)
    assert clusters.parent is None
    assert clusters.describe_args == ("--include", "ATTACHMENTS", "SETTINGS", "STATISTICS", "TAGS")
    for name in ("services", "tasks", "container-instances"):
        mode = modes[name]
        assert isinstance(mode, ListThenDescribe)
        assert mode.parent is not None
        assert mode.parent.param_name == "--cluster"
    assert modes["services"].describe_batch_size == 10


def test_elb_listeners_with_rules_per_load_balancer() -> None:
    elb = get_service("elb").build()
    listeners = next(r.mode for r in elb.resources if r.resource_type == "listeners")

    assert isinstance(listeners, ListThenEnrich)
    assert listeners.parent is not None
    assert listeners.parent.identifier_key == "LoadBalancerArn"
    assert [t.field_name for t in listeners.detail_templates] == ["Rules"]


def test_cloudfront_distributions_enriched() -> None:
    cloudfront = get_service("cloudfront").build()
    distributions = cloudfront.resources[0].mode

    assert isinstance(distributions, ListThenEnrich)
    assert distributions.item_array_key == "DistributionList.Items"
    assert distributions.payload_key == "Distributions"
    assert distributions.empty_when_missing
