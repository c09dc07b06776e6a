from __future__ import annotations

from ..collect.model import CollectorConfig, DetailTemplate, PartitionPolicy
from .base import ServiceCategory, ServiceDefinition


def sns() -> CollectorConfig:
    return (
        CollectorConfig("sns", PartitionPolicy.regional())
        .add_list_then_enrich(
            "topics",
            ["sns", "list-topics"],
            "Topics",
            "TopicArn",
            [
                DetailTemplate("Attributes", "sns", "get-topic-attributes", "--topic-arn"),
                DetailTemplate("Subscriptions", "sns", "list-subscriptions-by-topic", "--topic-arn"),
                DetailTemplate("Tags", "sns", "list-tags-for-resource", "--resource-arn"),
            ],
        )
        .add_plain_list("platform-applications", ["sns", "list-platform-applications"])
    )


def sqs() -> CollectorConfig:
    # list-queues returns bare queue URLs, which carry no per-item identifier key.
    return CollectorConfig("sqs", PartitionPolicy.regional()).add_plain_list("queues", ["sqs", "list-queues"])


def ses() -> CollectorConfig:
    return (
        CollectorConfig("ses", PartitionPolicy.regional())
        .add_plain_list("identities", ["ses", "list-identities"])
        .add_plain_list("configuration-sets", ["ses", "list-configuration-sets"])
        .add_plain_list("receipt-rule-sets", ["ses", "list-receipt-rule-sets"])
        .add_plain_list("templates", ["ses", "list-templates"])
        .add_plain_list(
            "custom-verification-email-templates",
            ["ses", "list-custom-verification-email-templates"],
        )
    )


SERVICES = [
    ServiceDefinition("sns", ServiceCategory.INTEGRATION, sns),
    ServiceDefinition("sqs", ServiceCategory.INTEGRATION, sqs),
    ServiceDefinition("ses", ServiceCategory.INTEGRATION, ses),
]
