"""
Catalog fetching in bounded batches.

SKUs are requested in concurrent chunks of 25. Variants are paged per
parent, 100 per page, until Commerce stops returning a cursor. Errors from
Commerce are not retried here and propagate to the caller.
"""

import logging

from commerce_client import CommerceClient
from models import VariantData
from utils import chunk, gather_or_cancel

logger = logging.getLogger(__name__)

BATCH_SIZE = 25
VARIANT_PAGE_SIZE = 100


class CatalogFetcher:
    """Fetches catalog records for one market's catalog view and price book."""

    def __init__(
        self,
        client: CommerceClient,
        view_id: str,
        price_book_id: str,
        tenant_id: str,
        batch_size: int = BATCH_SIZE,
        page_size: int = VARIANT_PAGE_SIZE,
    ):
        self.client = client
        self.view_id = view_id
        self.price_book_id = price_book_id
        self.tenant_id = tenant_id
        self.batch_size = batch_size
        self.page_size = page_size

    async def fetch_simple(self, skus: list[str]) -> dict:
        """Return a SKU to catalog record map. SKUs Commerce does not know are absent."""
        if not skus:
            return {}

        logger.info(f"Fetching {len(skus)} simple products")
        return await self._fetch_records(skus)

    async def fetch_variants(self, parent_skus: list[str]) -> dict[str, VariantData]:
        """
        Return a child SKU to ``VariantData`` map for every variant of the parents.

        A parent that Commerce does not return is logged and skipped.
        """
        variant_map: dict[str, VariantData] = {}
        if not parent_skus:
            return variant_map

        logger.info(f"Fetching {len(parent_skus)} parent products and their variants")
        parents = await self._fetch_records(parent_skus)

        for parent_sku in parent_skus:
            parent = parents.get(parent_sku)
            if parent is None:
                logger.error(f"Parent product {parent_sku} not found in Commerce")
                continue

            variants = await self._fetch_all_variants(parent_sku)
            logger.info(f"Found {len(variants)} variants for parent {parent_sku}")
            for variant in variants:
                variant_map[variant.product.sku] = VariantData(parent=parent, variant=variant)

        return variant_map

    async def _fetch_records(self, skus: list[str]) -> dict:
        batches = await gather_or_cancel(
            *(
                self.client.get_products(
                    self.view_id,
                    self.price_book_id,
                    self.tenant_id,
                    batch,
                )
                for batch in chunk(skus, self.batch_size)
            )
        )
        records = {}
        for products in batches:
            for product in products:
                records[product.sku] = product
        return records

    async def _fetch_all_variants(self, parent_sku: str) -> list:
        variants = []
        cursor = None
        while True:
            page = await self.client.get_variants_page(
                self.view_id,
                self.price_book_id,
                self.tenant_id,
                parent_sku,
                page_size=self.page_size,
                cursor=cursor,
            )
            variants.extend(page.variants)
            cursor = page.cursor
            if not cursor:
                return variants
