from __future__ import annotations

from ..collect.model import CollectorConfig, DetailTemplate, PartitionPolicy
from .base import ServiceCategory, ServiceDefinition

# CloudFront-scoped WAF resources are only reachable through us-east-1.
CLOUDFRONT_WAF_REGION = "us-east-1"


def iam() -> CollectorConfig:
    return (
        CollectorConfig("iam", PartitionPolicy.global_())
        .add_plain_list("users", ["iam", "list-users"])
        .add_plain_list("roles", ["iam", "list-roles"])
        .add_plain_list("groups", ["iam", "list-groups"])
        .add_plain_list("policies", ["iam", "list-policies", "--scope", "Local"])
        .add_plain_list("saml-providers", ["iam", "list-saml-providers"])
        .add_plain_list("oidc-providers", ["iam", "list-open-id-connect-providers"])
        .add_plain_list("instance-profiles", ["iam", "list-instance-profiles"])
        .add_plain_list("password-policy", ["iam", "get-account-password-policy"])
    )


def acm() -> CollectorConfig:
    return CollectorConfig("acm", PartitionPolicy.regional()).add_list_then_enrich(
        "certificates",
        ["acm", "list-certificates"],
        "CertificateSummaryList",
        "CertificateArn",
        [
            DetailTemplate("Certificate", "acm", "describe-certificate", "--certificate-arn"),
            DetailTemplate("Tags", "acm", "list-tags-for-certificate", "--certificate-arn"),
        ],
    )


def waf() -> CollectorConfig:
    return (
        CollectorConfig("waf", PartitionPolicy.regional())
        .add_plain_list("web-acls-regional", ["wafv2", "list-web-acls", "--scope", "REGIONAL"])
        .add_plain_list("ip-sets", ["wafv2", "list-ip-sets", "--scope", "REGIONAL"])
        .add_plain_list("regex-pattern-sets", ["wafv2", "list-regex-pattern-sets", "--scope", "REGIONAL"])
        .add_plain_list("rule-groups", ["wafv2", "list-rule-groups", "--scope", "REGIONAL"])
        .add_plain_list(
            "web-acls-cloudfront",
            ["wafv2", "list-web-acls", "--scope", "CLOUDFRONT"],
            only_partitions=[CLOUDFRONT_WAF_REGION],
        )
    )


def secretsmanager() -> CollectorConfig:
    return CollectorConfig("secretsmanager", PartitionPolicy.regional()).add_plain_list(
        "secrets", ["secretsmanager", "list-secrets"]
    )


SERVICES = [
    ServiceDefinition("iam", ServiceCategory.SECURITY, iam),
    ServiceDefinition("acm", ServiceCategory.SECURITY, acm),
    ServiceDefinition("waf", ServiceCategory.SECURITY, waf, aliases=("wafv2",)),
    ServiceDefinition("secretsmanager", ServiceCategory.SECURITY, secretsmanager),
]
