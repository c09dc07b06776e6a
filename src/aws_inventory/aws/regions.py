from __future__ import annotations

from typing import List, Optional, Sequence

from ..collect.model import Operation
from ..util.errors import OperationError, PartitionError
from .cli import AwsCli

DESCRIBE_REGIONS = ("ec2", "describe-regions", "--query", "Regions[].RegionName")


def suggest_regions(requested: str, known: Sequence[str], *, limit: int = 5, sample: int = 10) -> List[str]:
    """
    Regions sharing a three character prefix with the requested one; if none do,
    the first `sample` known regions.
    """
    prefix = requested[:3]
    similar = [r for r in known if r.startswith(prefix) or requested.startswith(r[:3])]
    if similar:
        return similar[:limit]
    return list(known[:sample])


class PartitionResolver:
    """
    Resolves the default partition for the profile and validates requested
    partitions against the regions the account knows about.
    """

    def __init__(self, client: AwsCli) -> None:
        self._client = client
        self._known: Optional[List[str]] = None

    def default_partition(self) -> str:
        return self._client.get_default_region()

    def known_partitions(self) -> List[str]:
        if self._known is None:
            try:
                doc = self._client.perform(Operation(DESCRIBE_REGIONS))
            except OperationError as e:
                raise PartitionError(f"Failed to query AWS regions: {e}") from e
            if not isinstance(doc, list) or not all(isinstance(r, str) for r in doc):
                raise PartitionError("Failed to parse regions from AWS response")
            self._known = sorted(doc)
        return list(self._known)

    def validate(self, requested: Sequence[str]) -> None:
        known = self.known_partitions()
        for region in requested:
            if region in known:
                continue
            similar = suggest_regions(region, known)
            if any(r.startswith(region[:3]) or region.startswith(r[:3]) for r in similar):
                hint = f"Did you mean one of these? {', '.join(similar)}"
            else:
                hint = f"Available regions: {', '.join(similar)}"
            raise PartitionError(f"Invalid AWS region: '{region}'. {hint}")

    def resolve(self, additional: Optional[Sequence[str]] = None) -> List[str]:
        """
        Ordered partitions for a run: the profile default first, then any
        additional regions (deduplicated). Unknown regions raise PartitionError.
        """
        default = self.default_partition()
        partitions = [default]
        for region in additional or []:
            region = region.strip()
            if region and region not in partitions:
                partitions.append(region)
        self.validate(partitions)
        return partitions
