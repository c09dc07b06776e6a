from __future__ import annotations

from ..collect.model import CollectorConfig, DetailTemplate, PartitionPolicy
from .base import ServiceCategory, ServiceDefinition


def ecr() -> CollectorConfig:
    param = "--repository-name"
    return CollectorConfig("ecr", PartitionPolicy.regional()).add_list_then_enrich(
        "repositories",
        ["ecr", "describe-repositories"],
        "repositories",
        "repositoryName",
        [
            DetailTemplate("Images", "ecr", "list-images", param),
            DetailTemplate("LifecyclePolicy", "ecr", "get-lifecycle-policy", param),
            DetailTemplate("RepositoryPolicy", "ecr", "get-repository-policy", param),
        ],
    )


SERVICES = [
    ServiceDefinition("ecr", ServiceCategory.DEVTOOLS, ecr),
]
