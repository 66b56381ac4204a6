"""Tests for FeedDispatcher."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from dispatcher import FeedDispatcher
from exceptions import MerchantApiError
from models import Availability, FeedPrice, ProductAttributes, ProductInput


def _record(sku):
    return ProductInput(
        content_language="en",
        feed_label="US",
        offer_id=sku,
        product_attributes=ProductAttributes(
            title=sku,
            availability=Availability.IN_STOCK,
            price=FeedPrice(amount_micros=1_000_000, currency_code="USD"),
        ),
    )


@pytest.fixture
def merchant():
    client = AsyncMock()
    client.insert_product_input.side_effect = lambda m, ds, body: {"offerId": body["offerId"]}
    return client


@pytest.fixture
def dispatcher(merchant):
    return FeedDispatcher(merchant, merchant_id="111", data_source_id="ds-us")


class TestUpsert:
    """Tests for upsert."""

    async def test_empty_is_noop(self, dispatcher, merchant):
        """Test empty input makes no calls."""
        assert await dispatcher.upsert([]) == []
        merchant.insert_product_input.assert_not_called()

    async def test_one_request_per_record(self, dispatcher, merchant):
        """Test every record is inserted with its request body, in order."""
        records = [_record(f"SKU-{i}") for i in range(30)]

        results = await dispatcher.upsert(records)

        assert [r["offerId"] for r in results] == [f"SKU-{i}" for i in range(30)]
        assert merchant.insert_product_input.await_count == 30
        merchant_id, data_source_id, body = merchant.insert_product_input.call_args_list[0].args
        assert (merchant_id, data_source_id) == ("111", "ds-us")
        assert body["productAttributes"]["price"] == {"amountMicros": 1000000, "currencyCode": "USD"}
        assert "customAttributes" not in body

    async def test_failure_rejects_call(self, dispatcher, merchant):
        """Test one failed insert fails the whole upsert."""
        merchant.insert_product_input.side_effect = [
            {"offerId": "A"},
            MerchantApiError("rejected", operation="insertProductInput"),
        ]

        with pytest.raises(MerchantApiError):
            await dispatcher.upsert([_record("A"), _record("B")])

    async def test_failure_cancels_rest_of_chunk(self, dispatcher, merchant):
        """Test requests still in flight are cancelled once one insert fails."""
        sent = []

        async def insert(merchant_id, data_source_id, body):
            if body["offerId"] == "BAD":
                raise MerchantApiError("rejected", operation="insertProductInput")
            await asyncio.sleep(0.05)
            sent.append(body["offerId"])
            return {}

        merchant.insert_product_input.side_effect = insert

        with pytest.raises(MerchantApiError):
            await dispatcher.upsert([_record("A"), _record("BAD"), _record("C")])

        await asyncio.sleep(0.1)
        assert sent == []


class TestDelete:
    """Tests for delete."""

    async def test_empty_is_noop(self, dispatcher, merchant):
        """Test empty input makes no calls."""
        await dispatcher.delete([], "en", "US")
        merchant.delete_product_input.assert_not_called()

    async def test_feed_names(self, dispatcher, merchant):
        """Test deletes address language~label~sku in the market's account."""
        await dispatcher.delete(["A", "B"], "en", "US")

        names = [c.args[2] for c in merchant.delete_product_input.call_args_list]
        assert names == [
            "accounts/111/productInputs/en~US~A",
            "accounts/111/productInputs/en~US~B",
        ]
        assert all(c.args[:2] == ("111", "ds-us") for c in merchant.delete_product_input.call_args_list)

    async def test_batches(self, merchant):
        """Test deletes are sent in batches of the configured size."""
        dispatcher = FeedDispatcher(merchant, merchant_id="111", data_source_id="ds", batch_size=2)

        await dispatcher.delete(["A", "B", "C"], "en", "US")

        assert merchant.delete_product_input.await_count == 3

    async def test_failure_propagates(self, dispatcher, merchant):
        """Test a failed delete fails the call."""
        merchant.delete_product_input.side_effect = MerchantApiError(
            "not found", operation="deleteProductInput", status=404
        )

        with pytest.raises(MerchantApiError):
            await dispatcher.delete(["A"], "en", "US")
