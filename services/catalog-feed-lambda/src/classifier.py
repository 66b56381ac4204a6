"""Classification of change items into simple products, variants and parents."""

from dataclasses import dataclass, field
from typing import Iterable

from models import ChangeItem


@dataclass
class ClassifiedItems:
    simple_items: list[ChangeItem] = field(default_factory=list)
    variant_items: list[ChangeItem] = field(default_factory=list)
    parent_skus: list[str] = field(default_factory=list)


def classify_items(items: Iterable[ChangeItem]) -> ClassifiedItems:
    """
    Split a batch into simple items, variant items and parent SKUs to fetch.

    A variant names its parent with a ``variantOf`` link. Any item whose SKU
    is named as a parent in the same batch is the complex product's own
    change event; it is neither sent to the feed nor treated as simple.
    """
    items = list(items)
    result = ClassifiedItems()
    parents: dict[str, None] = {}
    candidates = []

    for item in items:
        parent_sku = item.variant_of
        if parent_sku:
            parents.setdefault(parent_sku, None)
            result.variant_items.append(item)
        else:
            candidates.append(item)

    result.simple_items = [item for item in candidates if item.sku not in parents]
    result.parent_skus = list(parents)
    return result


def delete_targets(items: Iterable[ChangeItem]) -> list[str]:
    """SKUs to remove from the feed: every item except declared parents."""
    classified = classify_items(items)
    skus: dict[str, None] = {}
    for item in classified.simple_items + classified.variant_items:
        skus.setdefault(item.sku, None)
    return list(skus)
