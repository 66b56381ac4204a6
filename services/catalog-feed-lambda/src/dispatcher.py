"""
Batched dispatch of product inputs to Merchant Center.

Records are sent in chunks of 25 with one request per record, all requests
of a chunk in flight together. The first failing request cancels the rest
of its chunk and fails the call; no partial-success bookkeeping is kept.
"""

import logging

from merchant_client import MerchantClient, feed_product_name
from models import ProductInput
from utils import chunk, gather_or_cancel

logger = logging.getLogger(__name__)

BATCH_SIZE = 25


class FeedDispatcher:
    """Upserts and deletes product inputs in one Merchant Center data source."""

    def __init__(
        self,
        client: MerchantClient,
        merchant_id: str,
        data_source_id: str,
        batch_size: int = BATCH_SIZE,
    ):
        self.client = client
        self.merchant_id = merchant_id
        self.data_source_id = data_source_id
        self.batch_size = batch_size

    async def upsert(self, records: list[ProductInput]) -> list[dict]:
        """Insert or replace ``records``. Returns the Merchant API responses in order."""
        if not records:
            return []

        logger.info(f"Upserting {len(records)} products")
        results: list[dict] = []
        for batch in chunk(records, self.batch_size):
            batch_results = await gather_or_cancel(
                *(
                    self.client.insert_product_input(
                        self.merchant_id,
                        self.data_source_id,
                        record.to_request(),
                    )
                    for record in batch
                )
            )
            results.extend(batch_results)

        logger.info(f"Successfully upserted {len(results)} products")
        return results

    async def delete(self, skus: list[str], language: str, feed_label: str) -> None:
        """Delete the product inputs addressed by ``language~feed_label~sku``."""
        if not skus:
            return

        logger.info(f"Deleting {len(skus)} products")
        for batch in chunk(skus, self.batch_size):
            await gather_or_cancel(
                *(
                    self.client.delete_product_input(
                        self.merchant_id,
                        self.data_source_id,
                        feed_product_name(self.merchant_id, language, feed_label, sku),
                    )
                    for sku in batch
                )
            )

        logger.info(f"Successfully deleted {len(skus)} products")
