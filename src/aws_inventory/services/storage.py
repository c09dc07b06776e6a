from __future__ import annotations

from ..collect.model import CollectorConfig, DetailTemplate, PartitionPolicy
from .base import ServiceCategory, ServiceDefinition

# S3 is global but its control plane is addressed through us-east-1.
S3_CONTROL_REGION = "us-east-1"

_S3_BUCKET_DETAILS = (
    ("Location", "get-bucket-location"),
    ("Versioning", "get-bucket-versioning"),
    ("Encryption", "get-bucket-encryption"),
    ("Lifecycle", "get-bucket-lifecycle-configuration"),
    ("Logging", "get-bucket-logging"),
    ("Tags", "get-bucket-tagging"),
    ("ACL", "get-bucket-acl"),
    ("Policy", "get-bucket-policy"),
    ("CORS", "get-bucket-cors"),
    ("Website", "get-bucket-website"),
    ("PublicAccessBlock", "get-public-access-block"),
    ("Replication", "get-bucket-replication"),
    ("NotificationConfiguration", "get-bucket-notification-configuration"),
    ("InventoryConfigurations", "list-bucket-inventory-configurations"),
    ("AnalyticsConfigurations", "list-bucket-analytics-configurations"),
    ("MetricsConfigurations", "list-bucket-metrics-configurations"),
    ("IntelligentTieringConfigurations", "list-bucket-intelligent-tiering-configurations"),
    ("ObjectLockConfiguration", "get-object-lock-configuration"),
)


def s3() -> CollectorConfig:
    templates = [DetailTemplate(field, "s3api", op, "--bucket") for field, op in _S3_BUCKET_DETAILS]
    return CollectorConfig("s3", PartitionPolicy.fixed(S3_CONTROL_REGION)).add_list_then_enrich(
        "buckets",
        ["s3api", "list-buckets"],
        "Buckets",
        "Name",
        templates,
        enrich_concurrency=5,
    )


def rds() -> CollectorConfig:
    return CollectorConfig("rds", PartitionPolicy.regional()).add_batch(
        [
            ("db-instances", ["rds", "describe-db-instances"]),
            ("db-clusters", ["rds", "describe-db-clusters"]),
            ("db-snapshots", ["rds", "describe-db-snapshots"]),
            ("db-cluster-snapshots", ["rds", "describe-db-cluster-snapshots"]),
            ("db-subnet-groups", ["rds", "describe-db-subnet-groups"]),
            ("db-parameter-groups", ["rds", "describe-db-parameter-groups"]),
            ("db-cluster-parameter-groups", ["rds", "describe-db-cluster-parameter-groups"]),
            ("option-groups", ["rds", "describe-option-groups"]),
            ("db-security-groups", ["rds", "describe-db-security-groups"]),
            ("db-proxies", ["rds", "describe-db-proxies"]),
            ("event-subscriptions", ["rds", "describe-event-subscriptions"]),
            ("reserved-db-instances", ["rds", "describe-reserved-db-instances"]),
        ]
    )


def elasticache() -> CollectorConfig:
    return CollectorConfig("elasticache", PartitionPolicy.regional()).add_batch(
        [
            ("cache-clusters", ["elasticache", "describe-cache-clusters"]),
            ("replication-groups", ["elasticache", "describe-replication-groups"]),
            ("cache-subnet-groups", ["elasticache", "describe-cache-subnet-groups"]),
            ("cache-parameter-groups", ["elasticache", "describe-cache-parameter-groups"]),
            ("cache-security-groups", ["elasticache", "describe-cache-security-groups"]),
            ("snapshots", ["elasticache", "describe-snapshots"]),
            ("user-groups", ["elasticache", "describe-user-groups"]),
        ]
    )


SERVICES = [
    ServiceDefinition("s3", ServiceCategory.STORAGE, s3),
    ServiceDefinition("rds", ServiceCategory.STORAGE, rds),
    ServiceDefinition("elasticache", ServiceCategory.STORAGE, elasticache),
]
