from __future__ import annotations

from typing import Any, Dict, List

from aws_inventory.collect.augment import augment, augment_item, extract_array, extract_identifier
from aws_inventory.collect.model import DetailTemplate, Operation
from aws_inventory.util.errors import OperationError


class FakeClient:
    def __init__(self, responses: Dict[str, Any]) -> None:
        self.responses = responses
        self.calls: List[List[str]] = []

    def perform(self, operation: Operation) -> Any:
        argv = operation.argv()
        self.calls.append(argv)
        key = argv[1]
        value = self.responses.get(key)
        if value is None:
            raise OperationError(operation.label, "AccessDenied")
        return value


TEMPLATES = [
    DetailTemplate("Versioning", "s3api", "get-bucket-versioning", "--bucket"),
    DetailTemplate("Policy", "s3api", "get-bucket-policy", "--bucket"),
]


def test_augment_sets_only_successful_fields() -> None:
    client = FakeClient({"get-bucket-versioning": {"Status": "Enabled"}})
    base = {"Name": "b1"}

    out = augment(client, base, "b1", TEMPLATES, "us-east-1")

    assert out == {"Name": "b1", "Versioning": {"Status": "Enabled"}}
    assert "Policy" not in out
    # input left untouched
    assert base == {"Name": "b1"}


def test_augment_passes_identifier_and_partition() -> None:
    client = FakeClient({"get-bucket-versioning": {}, "get-bucket-policy": {}})

    augment(client, {"Name": "b1"}, "b1", TEMPLATES, "us-east-1")

    assert sorted(client.calls) == sorted(
        [
            ["s3api", "get-bucket-versioning", "--bucket", "b1", "--region", "us-east-1"],
            ["s3api", "get-bucket-policy", "--bucket", "b1", "--region", "us-east-1"],
        ]
    )


def test_augment_all_failures_returns_copy_of_base() -> None:
    client = FakeClient({})
    base = {"Name": "b1", "CreationDate": "2024"}

    out = augment(client, base, "b1", TEMPLATES, "us-east-1")

    assert out == base


def test_augment_without_templates_is_identity() -> None:
    client = FakeClient({})
    base = {"Name": "b1"}

    assert augment(client, base, "b1", [], "us-east-1") is base
    assert client.calls == []


def test_augment_field_overwrites_existing_key() -> None:
    client = FakeClient({"get-bucket-policy": {"Policy": "{}"}})

    out = augment(client, {"Name": "b1", "Policy": "stale"}, "b1", TEMPLATES, None)

    assert out["Policy"] == {"Policy": "{}"}


def test_augment_item_skips_items_without_identifier() -> None:
    client = FakeClient({"get-bucket-versioning": {"Status": "Enabled"}})

    assert augment_item(client, {"Other": 1}, "Name", TEMPLATES, None) == {"Other": 1}
    assert augment_item(client, "arn:aws:sqs:queue", "Name", TEMPLATES, None) == "arn:aws:sqs:queue"
    assert client.calls == []


def test_extract_identifier_requires_non_empty_string() -> None:
    assert extract_identifier({"Name": "b1"}, "Name") == "b1"
    assert extract_identifier({"Name": ""}, "Name") is None
    assert extract_identifier({"Name": 3}, "Name") is None
    assert extract_identifier(["Name"], "Name") is None


def test_extract_identifier_bare_values() -> None:
    assert extract_identifier("arn:aws:ecs:eu-west-1:1:cluster/a", None) == "arn:aws:ecs:eu-west-1:1:cluster/a"
    assert extract_identifier({"Id": "x"}, None) is None
    assert extract_identifier("", None) is None


def test_extract_array_follows_dotted_path() -> None:
    doc = {"DistributionList": {"Items": [{"Id": "E1"}], "Quantity": 1}}

    assert extract_array(doc, "DistributionList.Items") == [{"Id": "E1"}]
    assert extract_array(doc, "DistributionList.Missing") is None
    assert extract_array({"DistributionList": []}, "DistributionList.Items") is None
    assert extract_array({"Things": {"a": 1}}, "Things") is None
