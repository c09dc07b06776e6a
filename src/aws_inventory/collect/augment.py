from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..util.concurrency import parallel_map_unordered
from ..util.errors import OperationError
from .model import DetailTemplate, Document, OperationClient

LOG = get_logger(__name__)

# Inner ceiling for the templates of a single item, independent of enrich_concurrency.
DETAIL_CONCURRENCY = 10


def extract_identifier(item: Any, key: Optional[str]) -> Optional[str]:
    """
    Return item[key] when it is a non-empty string. With key None the item
    itself is the identifier (listings such as ecs list-clusters return bare ARNs).
    """
    value = item if key is None else (item.get(key) if isinstance(item, dict) else None)
    if isinstance(value, str) and value:
        return value
    return None


def extract_array(doc: Any, path: str) -> Optional[List[Any]]:
    """
    Follow a dotted key path ("DistributionList.Items") and return the list found
    there, or None when any step is missing or the value is not a list.
    """
    value = doc
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value if isinstance(value, list) else None


def augment(
    client: OperationClient,
    base: Document,
    identifier: str,
    templates: Sequence[DetailTemplate],
    partition: Optional[str],
    *,
    concurrency: int = DETAIL_CONCURRENCY,
) -> Document:
    """
    Run every detail template for one item and return a copy of `base` with a
    field per successful template. Failed templates leave their field absent.
    Never raises for remote failures.
    """
    if not isinstance(base, dict) or not templates:
        return base

    def _fetch(template: DetailTemplate) -> Tuple[str, bool, Any]:
        operation = template.bind(identifier).with_partition(partition)
        try:
            return template.field_name, True, client.perform(operation)
        except OperationError as e:
            LOG.debug(
                "Detail fetch failed; field omitted",
                extra={"step": "enrich", "phase": "skipped", "field": template.field_name, "error": str(e)},
            )
            return template.field_name, False, None

    results = parallel_map_unordered(_fetch, templates, max_workers=max(1, min(concurrency, len(templates))))

    enriched = dict(base)
    for field_name, ok, doc in results:
        if ok:
            enriched[field_name] = doc
    return enriched


def augment_item(
    client: OperationClient,
    item: Document,
    identifier_key: str,
    templates: Sequence[DetailTemplate],
    partition: Optional[str],
    *,
    concurrency: int = DETAIL_CONCURRENCY,
) -> Document:
    """
    Augment one list item, passing it through unchanged when it has no usable identifier.
    """
    identifier = extract_identifier(item, identifier_key)
    if identifier is None:
        return item
    return augment(client, item, identifier, templates, partition, concurrency=concurrency)
