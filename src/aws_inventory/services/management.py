from __future__ import annotations

from ..collect.model import CollectorConfig, DetailTemplate, PartitionPolicy
from .base import ServiceCategory, ServiceDefinition


def cloudformation() -> CollectorConfig:
    return (
        CollectorConfig("cloudformation", PartitionPolicy.regional())
        .add_list_then_enrich(
            "stacks",
            ["cloudformation", "describe-stacks"],
            "Stacks",
            "StackName",
            [DetailTemplate("ChangeSets", "cloudformation", "list-change-sets", "--stack-name")],
        )
        .add_plain_list("stack-sets", ["cloudformation", "list-stack-sets"])
        .add_plain_list("exports", ["cloudformation", "list-exports"])
    )


def cloudwatch() -> CollectorConfig:
    return (
        CollectorConfig("cloudwatch", PartitionPolicy.regional())
        .add_plain_list("alarms", ["cloudwatch", "describe-alarms"])
        .add_plain_list("dashboards", ["cloudwatch", "list-dashboards"])
        .add_plain_list("metric-streams", ["cloudwatch", "list-metric-streams"])
        .add_plain_list("insights-rules", ["cloudwatch", "describe-insight-rules"])
        .add_list_then_enrich(
            "log-groups",
            ["logs", "describe-log-groups"],
            "logGroups",
            "logGroupName",
            [
                DetailTemplate("MetricFilters", "logs", "describe-metric-filters", "--log-group-name"),
                DetailTemplate("SubscriptionFilters", "logs", "describe-subscription-filters", "--log-group-name"),
            ],
        )
    )


def eventbridge() -> CollectorConfig:
    return (
        CollectorConfig("eventbridge", PartitionPolicy.regional())
        .add_plain_list("event-buses", ["events", "list-event-buses"])
        .add_list_then_enrich(
            "rules",
            ["events", "list-rules"],
            "Rules",
            "Name",
            [DetailTemplate("Targets", "events", "list-targets-by-rule", "--rule")],
        )
        .add_batch(
            [
                ("archives", ["events", "list-archives"]),
                ("api-destinations", ["events", "list-api-destinations"]),
                ("connections", ["events", "list-connections"]),
                ("replays", ["events", "list-replays"]),
            ]
        )
    )


SERVICES = [
    ServiceDefinition("cloudformation", ServiceCategory.MANAGEMENT, cloudformation, aliases=("cfn",)),
    ServiceDefinition("cloudwatch", ServiceCategory.MANAGEMENT, cloudwatch),
    ServiceDefinition("eventbridge", ServiceCategory.MANAGEMENT, eventbridge, aliases=("events",)),
]
