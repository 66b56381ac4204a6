"""
Event processing: route, classify, fetch, transform and dispatch per market.

Markets are processed one after another so that a large event does not
multiply the load on Commerce and Merchant Center. The first error aborts
the remaining markets; markets already dispatched stay dispatched.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from classifier import classify_items, delete_targets
from commerce_client import CommerceClient
from config import LocaleIndex
from dispatcher import FeedDispatcher
from exceptions import ErrorContext, TransformationError, ValidationError, VariantNotFoundError
from fetcher import CatalogFetcher
from logging_config import MarketLogContext, get_correlation_id, log_execution_time
from merchant_client import MerchantClient
from models import ChangeItem, MarketConfig, Operation, ProductInput
from router import filter_price_items, route_items
from transformer import ProductTransformer, TransformationResult
from utils import gather_or_cancel, group_by_operation

logger = logging.getLogger(__name__)

EVENT_TYPE_PRODUCT = "com.adobe.commerce.storefront.events.product.aco"
EVENT_TYPE_PRICE = "com.adobe.commerce.storefront.events.price.aco"
SUPPORTED_EVENT_TYPES = (EVENT_TYPE_PRODUCT, EVENT_TYPE_PRICE)


@dataclass
class MarketResult:
    """Outcome of processing one market."""
    market_id: str
    item_count: int = 0
    upserted: int = 0
    deleted: int = 0
    transformation: TransformationResult = field(default_factory=TransformationResult)

    def to_dict(self) -> dict:
        return {
            "marketId": self.market_id,
            "items": self.item_count,
            "upserted": self.upserted,
            "deleted": self.deleted,
            "transformation": self.transformation.to_dict(),
        }


@dataclass
class ProcessingSummary:
    """Aggregated outcome of one invocation."""
    tenant_id: str
    item_count: int
    markets: list[MarketResult] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return bool(self.markets)

    @property
    def message(self) -> str:
        if not self.matched:
            return f"No event items matched any configured market for tenant: {self.tenant_id}"
        return (
            f"Processed {self.item_count} items across {len(self.markets)} markets "
            f"for tenant: {self.tenant_id}"
        )

    def to_dict(self) -> dict:
        return {
            "tenantId": self.tenant_id,
            "items": self.item_count,
            "markets": [m.to_dict() for m in self.markets],
        }


class EventProcessor:
    """Runs one catalog event through the pipeline for every matching market."""

    def __init__(
        self,
        locale_index: LocaleIndex,
        transformer: ProductTransformer,
        commerce_client: CommerceClient,
        merchant_client: MerchantClient,
    ):
        self.locale_index = locale_index
        self.transformer = transformer
        self.commerce_client = commerce_client
        self.merchant_client = merchant_client

    async def process(
        self,
        event_type: str,
        tenant_id: str,
        items: list[ChangeItem],
    ) -> ProcessingSummary:
        """
        Process a batch of change items.

        Raises:
            ValidationError: for an unsupported event type
            FeedSyncError: for the first upstream or fatal transform failure
        """
        if event_type not in SUPPORTED_EVENT_TYPES:
            raise ValidationError(
                message=f"Invalid event type: {event_type}",
                field_name="type",
                expected=" or ".join(SUPPORTED_EVENT_TYPES),
                actual=event_type,
            )

        summary = ProcessingSummary(tenant_id=tenant_id, item_count=len(items))
        buckets = route_items(items, self.locale_index)

        for market_id, bucket in buckets.items():
            market_items = bucket.items
            if event_type == EVENT_TYPE_PRICE:
                market_items = filter_price_items(market_items, bucket.market)
                if not market_items:
                    logger.info(
                        f"No price items for price book {bucket.market.aco.price_book_id} "
                        f"in market {market_id}"
                    )
                    continue

            with MarketLogContext(market_id):
                result = await self.process_market(bucket.market, tenant_id, market_items)
            summary.markets.append(result)

        logger.info(
            summary.message,
            extra={"metrics": summary.to_dict()},
        )
        return summary

    @log_execution_time(logger)
    async def process_market(
        self,
        market: MarketConfig,
        tenant_id: str,
        items: list[ChangeItem],
    ) -> MarketResult:
        """Upsert created and updated items and delete removed ones for one market."""
        grouped = group_by_operation(items)
        upsert_items = grouped[Operation.CREATE] + grouped[Operation.UPDATE]
        delete_items = grouped[Operation.DELETE]

        logger.info(
            f"Market {market.id}: {len(grouped[Operation.CREATE])} creates, "
            f"{len(grouped[Operation.UPDATE])} updates, {len(delete_items)} deletes"
        )

        fetcher = CatalogFetcher(
            self.commerce_client,
            view_id=market.aco.view_id,
            price_book_id=market.aco.price_book_id,
            tenant_id=tenant_id,
        )
        dispatcher = FeedDispatcher(
            self.merchant_client,
            merchant_id=market.feed.merchant_id,
            data_source_id=market.feed.data_source_id,
        )
        result = MarketResult(market_id=market.id, item_count=len(items))

        await gather_or_cancel(
            self._upsert(fetcher, dispatcher, market, upsert_items, result),
            self._delete(dispatcher, market, delete_items, result),
        )
        return result

    async def fetch_and_transform(
        self,
        fetcher: CatalogFetcher,
        market: MarketConfig,
        items: list[ChangeItem],
    ) -> TransformationResult:
        """
        Fetch catalog data for ``items`` and transform it for ``market``.

        Raises:
            VariantNotFoundError: if a variant item has no fetched variant data
        """
        classified = classify_items(items)
        logger.info(
            f"Categorized: {len(classified.variant_items)} variants, "
            f"{len(classified.simple_items)} simple products, "
            f"{len(classified.parent_skus)} parents (skipped)"
        )

        simple_skus = list(dict.fromkeys(item.sku for item in classified.simple_items))
        variant_map, simple_map = await gather_or_cancel(
            fetcher.fetch_variants(classified.parent_skus),
            fetcher.fetch_simple(simple_skus),
        )

        feed = market.feed
        url_template = market.store.url_template
        result = TransformationResult()

        for item in classified.variant_items:
            data = variant_map.get(item.sku)
            if data is None:
                raise VariantNotFoundError(
                    sku=item.sku,
                    parent_sku=item.variant_of,
                    context=ErrorContext(
                        correlation_id=get_correlation_id(),
                        market_id=market.id,
                    ),
                )
            self._collect(
                result,
                item.sku,
                lambda data=data: self.transformer.transform_variant(
                    data.parent,
                    data.variant,
                    feed.content_language,
                    feed.target_country,
                    url_template,
                    feed.feed_label,
                ),
            )

        for item in classified.simple_items:
            product = simple_map.get(item.sku)
            if product is None:
                logger.error(f"Simple product {item.sku} not found in Commerce. Skipping.")
                result.add_failure(item.sku, "Product not found in Commerce")
                continue
            self._collect(
                result,
                item.sku,
                lambda product=product: self.transformer.transform(
                    product,
                    feed.content_language,
                    feed.target_country,
                    url_template,
                    feed.feed_label,
                ),
            )

        return result

    async def _upsert(
        self,
        fetcher: CatalogFetcher,
        dispatcher: FeedDispatcher,
        market: MarketConfig,
        items: list[ChangeItem],
        result: MarketResult,
    ) -> None:
        if not items:
            return
        result.transformation = await self.fetch_and_transform(fetcher, market, items)
        responses = await dispatcher.upsert(result.transformation.successful)
        result.upserted = len(responses)

    async def _delete(
        self,
        dispatcher: FeedDispatcher,
        market: MarketConfig,
        items: list[ChangeItem],
        result: MarketResult,
    ) -> None:
        if not items:
            return
        skus = delete_targets(items)
        await dispatcher.delete(skus, market.feed.content_language, market.feed.feed_label)
        result.deleted = len(skus)

    def _collect(
        self,
        result: TransformationResult,
        sku: str,
        transform: Callable[[], ProductInput],
    ) -> Optional[ProductInput]:
        try:
            product_input = transform()
        except TransformationError as e:
            logger.error(f"Failed to transform product {sku}: {e.message}")
            result.add_failure(sku, e)
            return None

        issues = self.transformer.check_data_quality(product_input)
        if issues:
            result.warnings.append({"sku": sku, "issues": issues})
        result.successful.append(product_input)
        return product_input
