from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from ..util.errors import ConfigError

Document = Any

GLOBAL_PARTITION = "global"
REGION_FLAG = "--region"


class OperationClient(Protocol):
    """
    Remote capability consumed by the collection engine. Implementations must be
    safe to call from many threads and raise OperationError on any failure.
    """

    def perform(self, operation: Operation) -> Document:
        ...


@dataclass(frozen=True)
class PartitionPolicy:
    """
    How a service picks the partition its operations run against.

    - regional: the partition currently being collected
    - global: the "global" pseudo-partition (no --region is passed)
    - fixed: always one concrete region, e.g. S3's control plane in us-east-1
    """

    kind: str
    region: Optional[str] = None

    REGIONAL = "regional"
    GLOBAL = "global"
    FIXED = "fixed"

    def __post_init__(self) -> None:
        if self.kind not in (self.REGIONAL, self.GLOBAL, self.FIXED):
            raise ConfigError(f"Unknown partition policy: {self.kind}")
        if self.kind == self.FIXED and not self.region:
            raise ConfigError("A fixed partition policy requires a region")

    @classmethod
    def regional(cls) -> PartitionPolicy:
        return cls(cls.REGIONAL)

    @classmethod
    def global_(cls) -> PartitionPolicy:
        return cls(cls.GLOBAL)

    @classmethod
    def fixed(cls, region: str) -> PartitionPolicy:
        return cls(cls.FIXED, region)

    @property
    def is_regional(self) -> bool:
        return self.kind == self.REGIONAL

    def resolve(self, region: str) -> str:
        if self.kind == self.GLOBAL:
            return GLOBAL_PARTITION
        if self.kind == self.FIXED:
            return str(self.region)
        return region


def _as_tokens(tokens: Iterable[str], what: str) -> Tuple[str, ...]:
    out = tuple(str(t) for t in tokens)
    if not out:
        raise ConfigError(f"{what} must contain at least one token")
    return out


@dataclass(frozen=True)
class Operation:
    """
    One AWS CLI call: its argument tokens plus the partition it targets.
    """

    tokens: Tuple[str, ...]
    partition: Optional[str] = None

    @property
    def label(self) -> str:
        return " ".join(self.argv())

    def with_partition(self, partition: Optional[str]) -> Operation:
        """
        Bind a partition. A concrete partition is passed as --region unless the
        tokens already name one; the global pseudo-partition passes nothing.
        """
        if not partition or partition == GLOBAL_PARTITION or self.names_region:
            return Operation(self.tokens, partition)
        return Operation(self.tokens + (REGION_FLAG, partition), partition)

    @property
    def names_region(self) -> bool:
        return any(t == REGION_FLAG or t.startswith(REGION_FLAG + "=") for t in self.tokens)

    def argv(self) -> List[str]:
        return list(self.tokens)


@dataclass(frozen=True)
class DetailTemplate:
    """
    Enrichment call for one list item, e.g.
    DetailTemplate("Versioning", "s3api", "get-bucket-versioning", "--bucket")
    becomes `s3api get-bucket-versioning --bucket <name>` for each bucket.
    """

    field_name: str
    service: str
    operation: str
    param_name: str
    extra_args: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for attr in ("field_name", "service", "operation", "param_name"):
            if not getattr(self, attr):
                raise ConfigError(f"DetailTemplate.{attr} must not be empty")

    def bind(self, identifier: str) -> Operation:
        return Operation((self.service, self.operation, self.param_name, identifier) + tuple(self.extra_args))


@dataclass(frozen=True)
class PlainList:
    operation: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "operation", _as_tokens(self.operation, "PlainList operation"))


@dataclass(frozen=True)
class IndependentBatch:
    """
    N unrelated operations, each producing its own named output.
    """

    named_operations: Tuple[Tuple[str, Tuple[str, ...]], ...]

    def __post_init__(self) -> None:
        normalized = []
        for name, tokens in self.named_operations:
            if not name:
                raise ConfigError("IndependentBatch entries must be named")
            normalized.append((str(name), _as_tokens(tokens, f"IndependentBatch operation '{name}'")))
        if not normalized:
            raise ConfigError("IndependentBatch requires at least one operation")
        object.__setattr__(self, "named_operations", tuple(normalized))


def _check_concurrency(value: Any, what: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{what} must be an integer")
    if value < 1:
        raise ConfigError(f"{what} must be >= 1, got {value}")


@dataclass(frozen=True)
class ParentScope:
    """
    Parent listing a child resource is collected under, e.g. ECS services per
    cluster. Every parent identifier is passed to the child operations as
    `<param_name> <identifier>`. With identifier_key None the parent array
    holds bare identifiers (ARNs) rather than objects.
    """

    list_operation: Tuple[str, ...]
    array_key: str
    param_name: str
    identifier_key: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "list_operation", _as_tokens(self.list_operation, "ParentScope list operation"))
        if not self.array_key:
            raise ConfigError("ParentScope requires array_key")
        if not self.param_name:
            raise ConfigError("ParentScope requires param_name")

    def scope_args(self, identifier: str) -> Tuple[str, ...]:
        return (self.param_name, identifier)


@dataclass(frozen=True)
class ListThenEnrich:
    """
    item_array_key may be a dotted path for nested listings
    (CloudFront's DistributionList.Items); output_key then names the array in
    the payload. empty_when_missing treats an absent array as empty, for APIs
    that omit it when there are no items. With a parent scope the listing runs
    once per parent and the items are concatenated in parent order.
    """

    list_operation: Tuple[str, ...]
    item_array_key: str
    identifier_key: str
    detail_templates: Tuple[DetailTemplate, ...]
    enrich_concurrency: int
    parent: Optional[ParentScope] = None
    output_key: Optional[str] = None
    empty_when_missing: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "list_operation", _as_tokens(self.list_operation, "ListThenEnrich list operation"))
        object.__setattr__(self, "detail_templates", tuple(self.detail_templates))
        if not self.item_array_key:
            raise ConfigError("ListThenEnrich requires item_array_key")
        if not self.identifier_key:
            raise ConfigError("ListThenEnrich requires identifier_key")
        _check_concurrency(self.enrich_concurrency, "ListThenEnrich enrich_concurrency")
        names = [t.field_name for t in self.detail_templates]
        if len(names) != len(set(names)):
            raise ConfigError("ListThenEnrich detail templates must use distinct field names")

    @property
    def payload_key(self) -> str:
        return self.output_key or self.item_array_key.split(".")[-1]


@dataclass(frozen=True)
class ListThenDescribe:
    """
    A listing that returns bare identifiers, followed by describe calls that
    take those identifiers in batches:

        ecs list-clusters -> clusterArns
        ecs describe-clusters --clusters <arn> <arn> ... --include TAGS -> clusters

    describe_args are appended after the identifiers. With a parent scope the
    listing and the describe calls run once per parent.
    """

    list_operation: Tuple[str, ...]
    identifier_array_key: str
    describe_operation: Tuple[str, ...]
    identifier_param: str
    result_array_key: str
    describe_args: Tuple[str, ...] = ()
    describe_batch_size: int = 100
    parent: Optional[ParentScope] = None
    scope_concurrency: int = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "list_operation", _as_tokens(self.list_operation, "ListThenDescribe list operation"))
        object.__setattr__(
            self, "describe_operation", _as_tokens(self.describe_operation, "ListThenDescribe describe operation")
        )
        object.__setattr__(self, "describe_args", tuple(str(a) for a in self.describe_args))
        for attr in ("identifier_array_key", "identifier_param", "result_array_key"):
            if not getattr(self, attr):
                raise ConfigError(f"ListThenDescribe requires {attr}")
        _check_concurrency(self.describe_batch_size, "ListThenDescribe describe_batch_size")
        _check_concurrency(self.scope_concurrency, "ListThenDescribe scope_concurrency")

    def describe(self, identifiers: Sequence[str], scope: Tuple[str, ...] = ()) -> Operation:
        return Operation(
            self.describe_operation + scope + (self.identifier_param,) + tuple(identifiers) + self.describe_args
        )


CollectionMode = Union[PlainList, IndependentBatch, ListThenEnrich, ListThenDescribe]
COLLECTION_MODES = (PlainList, IndependentBatch, ListThenEnrich, ListThenDescribe)


@dataclass(frozen=True)
class ResourceConfig:
    resource_type: str
    mode: CollectionMode
    only_partitions: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.resource_type:
            raise ConfigError("ResourceConfig requires a resource_type")
        if not isinstance(self.mode, COLLECTION_MODES):
            raise ConfigError(f"Unsupported collection mode for {self.resource_type}: {type(self.mode).__name__}")
        object.__setattr__(self, "only_partitions", frozenset(self.only_partitions))

    def applies_to(self, partition: str) -> bool:
        return not self.only_partitions or partition in self.only_partitions


@dataclass
class CollectorConfig:
    """
    Ordered resource configs for one service. Building performs no I/O.

        CollectorConfig("lambda", PartitionPolicy.regional())
            .add_list_then_enrich("functions", ["lambda", "list-functions"], "Functions", "FunctionName", [...])
            .add_plain_list("layers", ["lambda", "list-layers"])
    """

    service: str
    policy: PartitionPolicy = field(default_factory=PartitionPolicy.regional)
    resources: List[ResourceConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.service:
            raise ConfigError("CollectorConfig requires a service name")

    def add(self, resource: ResourceConfig) -> CollectorConfig:
        self.resources.append(resource)
        return self

    def add_plain_list(
        self,
        resource_type: str,
        operation: Sequence[str],
        *,
        only_partitions: Iterable[str] = (),
    ) -> CollectorConfig:
        return self.add(ResourceConfig(resource_type, PlainList(tuple(operation)), frozenset(only_partitions)))

    def add_batch(self, named_operations: Sequence[Tuple[str, Sequence[str]]], *, name: str = "batch") -> CollectorConfig:
        batch = IndependentBatch(tuple((n, tuple(ops)) for n, ops in named_operations))
        return self.add(ResourceConfig(name, batch))

    def add_list_then_enrich(
        self,
        resource_type: str,
        list_operation: Sequence[str],
        item_array_key: str,
        identifier_key: str,
        detail_templates: Sequence[DetailTemplate],
        *,
        enrich_concurrency: int = 10,
        parent: Optional[ParentScope] = None,
        output_key: Optional[str] = None,
        empty_when_missing: bool = False,
    ) -> CollectorConfig:
        mode = ListThenEnrich(
            list_operation=tuple(list_operation),
            item_array_key=item_array_key,
            identifier_key=identifier_key,
            detail_templates=tuple(detail_templates),
            enrich_concurrency=enrich_concurrency,
            parent=parent,
            output_key=output_key,
            empty_when_missing=empty_when_missing,
        )
        return self.add(ResourceConfig(resource_type, mode))

    def add_list_then_describe(
        self,
        resource_type: str,
        list_operation: Sequence[str],
        identifier_array_key: str,
        describe_operation: Sequence[str],
        identifier_param: str,
        result_array_key: str,
        *,
        describe_args: Sequence[str] = (),
        describe_batch_size: int = 100,
        parent: Optional[ParentScope] = None,
    ) -> CollectorConfig:
        mode = ListThenDescribe(
            list_operation=tuple(list_operation),
            identifier_array_key=identifier_array_key,
            describe_operation=tuple(describe_operation),
            identifier_param=identifier_param,
            result_array_key=result_array_key,
            describe_args=tuple(describe_args),
            describe_batch_size=describe_batch_size,
            parent=parent,
        )
        return self.add(ResourceConfig(resource_type, mode))


@dataclass(frozen=True)
class OutputRecord:
    """
    One successfully collected resource type (or batch entry) in one partition.
    """

    source: str
    partition: str
    resource_type: str
    payload: Document
    observed_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.source,
            "region": self.partition,
            "resource_type": self.resource_type,
            "resources": self.payload,
            "collected_at": self.observed_at,
        }
