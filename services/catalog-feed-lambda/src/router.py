"""
Routing of change items to configured markets.

Locale decides which markets a product change belongs to. For price
changes the price book is authoritative, so the orchestrator narrows each
market's bucket further with ``filter_price_items``.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from config import LocaleIndex
from models import ChangeItem, MarketConfig

logger = logging.getLogger(__name__)


@dataclass
class MarketBucket:
    """Items routed to one market, in input order."""
    market: MarketConfig
    items: list[ChangeItem] = field(default_factory=list)


def route_items(items: Iterable[ChangeItem], locale_index: LocaleIndex) -> dict[str, MarketBucket]:
    """
    Group items by market id.

    An item whose sources match k markets lands in k buckets, once each.
    Items matching no configured locale are dropped.
    """
    buckets: dict[str, MarketBucket] = {}
    unmatched = 0

    for item in items:
        matched_ids = []
        for source in item.sources:
            if not source.locale:
                continue
            for market in locale_index.get(source.locale.lower(), []):
                if market.id not in matched_ids:
                    matched_ids.append(market.id)
                    buckets.setdefault(market.id, MarketBucket(market=market)).items.append(item)
        if not matched_ids:
            unmatched += 1

    if unmatched:
        logger.info(f"{unmatched} item(s) did not match any configured market locale")

    return buckets


def filter_price_items(items: Iterable[ChangeItem], market: MarketConfig) -> list[ChangeItem]:
    """Keep items whose source for this market's locale uses the market's price book."""
    kept = []
    for item in items:
        for source in item.sources:
            if (
                source.locale
                and source.locale.lower() == market.locale
                and source.price_book_id == market.aco.price_book_id
            ):
                kept.append(item)
                break
    return kept
