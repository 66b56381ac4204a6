"""Pytest fixtures and configuration."""

import json
import os

import pytest

os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["ACO_API_BASE_URL"] = "https://commerce.example.com/api"
os.environ["ACO_TENANT_ID"] = "tenant-1"
os.environ["GOOGLE_CREDS_JSON"] = json.dumps({"type": "service_account"})

from config import ConfigStore, S3ClientFactory, build_locale_index, parse_market_config  # noqa: E402
from mapping import AttributeMapper  # noqa: E402
from models import (  # noqa: E402
    AttributeMappingConfig,
    ChangeItem,
    CommerceVariant,
    ComplexProductView,
    SimpleProductView,
)
from transformer import ProductTransformer  # noqa: E402

PRODUCT_EVENT = "com.adobe.commerce.storefront.events.product.aco"
PRICE_EVENT = "com.adobe.commerce.storefront.events.price.aco"


@pytest.fixture(autouse=True)
def reset_caches():
    """Drop process-scoped caches between tests."""
    ConfigStore.reset()
    S3ClientFactory.reset()
    yield
    ConfigStore.reset()
    S3ClientFactory.reset()


def _market(market_id, locale, price_book_id, feed_label, language, country, data_source_id):
    return {
        "id": market_id,
        "aco": {
            "viewId": f"view-{market_id}",
            "priceBookId": price_book_id,
            "source": {"locale": locale},
        },
        "feed": {
            "merchantId": "111",
            "dataSourceId": data_source_id,
            "feedLabel": feed_label,
            "contentLanguage": language,
            "targetCountry": country,
        },
        "store": {"urlTemplate": "https://store.example.com/products/{urlKey}"},
    }


@pytest.fixture
def markets_document():
    """Return a markets config with two markets sharing the en-US locale."""
    return {
        "markets": [
            _market("us", "en-US", "us-usd", "US", "en", "US", "ds-us"),
            _market("us-wholesale", "en-US", "us-wholesale", "US_WHOLESALE", "en", "US", "ds-wh"),
            _market("ca-fr", "fr-CA", "ca-cad", "CA", "fr", "CA", "ds-ca"),
        ]
    }


@pytest.fixture
def markets(markets_document):
    return parse_market_config(markets_document)


@pytest.fixture
def us_market(markets):
    return markets[0]


@pytest.fixture
def locale_index(markets):
    return build_locale_index(markets)


@pytest.fixture
def single_market_index(us_market):
    """Locale index with only the ``us`` market configured."""
    return build_locale_index([us_market])


@pytest.fixture
def attribute_mapping_document():
    return {
        "fieldMappings": {
            "gtin": "ean",
            "brand": "manufacturer",
            "mpn": "part_number",
            "condition": "item_condition",
            "gender": "target_gender",
            "ageGroup": "age_group",
            "color": "colour",
            "shippingPrice": "shipping_price",
            "shippingMethod": "shipping_method",
        },
        "valueMappings": {
            "condition": {"new": "Brand New", "used": "Pre-owned", "refurbished": "Refurb"},
            "gender": {"male": "Men", "female": "Women", "unisex": "Unisex"},
            "ageGroup": {"adult": "Adults", "kids": "Children"},
        },
    }


@pytest.fixture
def attribute_mapping(attribute_mapping_document):
    return AttributeMappingConfig.model_validate(attribute_mapping_document)


@pytest.fixture
def mapper(attribute_mapping):
    return AttributeMapper(attribute_mapping)


@pytest.fixture
def transformer(mapper):
    return ProductTransformer(mapper)


@pytest.fixture
def make_item():
    """Return a factory for change items."""

    def _make(sku, operation="create", locale="en-US", price_book_id=None, variant_of=None):
        data = {
            "sku": sku,
            "operation": operation,
            "sources": [{"locale": locale, "priceBookId": price_book_id}],
        }
        if variant_of:
            data["links"] = [{"type": "variantOf", "sku": variant_of}]
        return ChangeItem.model_validate(data)

    return _make


@pytest.fixture
def simple_product_data():
    """Return a simple product as returned by the Commerce products query."""
    return {
        "__typename": "SimpleProductView",
        "id": "1",
        "sku": "A",
        "name": "Trail Runner",
        "description": "<p>Lightweight trail shoe</p>",
        "shortDescription": "Trail shoe",
        "inStock": True,
        "url": "https://store.example.com/trail-runner.html",
        "urlKey": "trail-runner",
        "images": [
            {"url": "https://img.example.com/a-side.jpg", "label": "side", "roles": ["small_image"]},
            {"url": "https://img.example.com/a-main.jpg", "label": "main", "roles": ["image", "thumbnail"]},
            {"url": "https://img.example.com/a-side.jpg", "label": "side again", "roles": []},
            {"url": "https://img.example.com/a-back.jpg", "label": "back", "roles": None},
        ],
        "attributes": [
            {"name": "ean", "label": "EAN", "value": "0012345678905", "roles": ["visible"]},
            {"name": "manufacturer", "label": "Brand", "value": "Acme", "roles": []},
            {"name": "item_condition", "label": "Condition", "value": "Pre-owned", "roles": []},
            {"name": "target_gender", "label": "Gender", "value": "Women", "roles": []},
            {"name": "colour", "label": "Colour", "value": "Red", "roles": []},
            {"name": "activity", "label": "Activity", "value": ["Running", "Hiking"], "roles": []},
        ],
        "price": {
            "roles": ["visible"],
            "regular": {"amount": {"value": 39.99, "currency": "USD"}},
            "final": {"amount": {"value": 29.99, "currency": "USD"}},
        },
    }


@pytest.fixture
def simple_product(simple_product_data):
    return SimpleProductView.model_validate(simple_product_data)


def _variant_product(sku, color, price, images=None, attributes=None):
    return {
        "__typename": "SimpleProductView",
        "sku": sku,
        "name": f"Hoodie {color}",
        "inStock": True,
        "urlKey": sku.lower(),
        "images": images or [],
        "attributes": attributes if attributes is not None else [
            {"name": "colour", "value": color},
            {"name": "fabric_weight", "value": "320gsm"},
        ],
        "price": {"final": {"amount": {"value": price, "currency": "USD"}}},
    }


@pytest.fixture
def complex_product_data():
    """Return a complex (parent) product."""
    return {
        "__typename": "ComplexProductView",
        "sku": "P",
        "name": "Hoodie",
        "description": "Heavyweight hoodie",
        "inStock": True,
        "urlKey": "hoodie",
        "images": [{"url": "https://img.example.com/hoodie.jpg", "roles": ["image"]}],
        "attributes": [
            {"name": "manufacturer", "value": "Acme"},
            {"name": "part_number", "value": "HD-100"},
            {"name": "colour", "value": "Assorted"},
            {"name": "age_group", "value": "Adults"},
        ],
        "priceRange": {
            "minimum": {"final": {"amount": {"value": 50.0, "currency": "USD"}}},
            "maximum": {"final": {"amount": {"value": 60.0, "currency": "USD"}}},
        },
        "options": [
            {
                "id": "color",
                "title": "Color",
                "required": True,
                "values": [{"id": "c-red", "title": "Red"}, {"id": "c-blue", "title": "Blue"}],
            }
        ],
    }


@pytest.fixture
def complex_product(complex_product_data):
    return ComplexProductView.model_validate(complex_product_data)


@pytest.fixture
def variant_data():
    """Return two variants of the ``P`` complex product."""
    return [
        {
            "selections": ["c-red"],
            "product": _variant_product(
                "P-RED",
                "Red",
                55.0,
                images=[{"url": "https://img.example.com/hoodie-red.jpg", "roles": ["image"]}],
            ),
        },
        {"selections": ["c-blue"], "product": _variant_product("P-BLUE", "Blue", 50.0)},
    ]


@pytest.fixture
def variants(variant_data):
    return [CommerceVariant.model_validate(v) for v in variant_data]


@pytest.fixture
def product_event():
    """Return a product change event for one simple product."""
    return {
        "type": PRODUCT_EVENT,
        "data": {
            "instanceId": "tenant-1",
            "items": [
                {"sku": "A", "operation": "create", "sources": [{"locale": "en-US"}]},
            ],
        },
    }
