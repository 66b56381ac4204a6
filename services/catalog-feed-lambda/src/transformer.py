"""
Transformer module for converting Commerce catalog records to Merchant API product inputs.
Handles attribute mapping, price normalization, identifier rules and image selection.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from exceptions import TransformationError
from mapping import AttributeMapper
from models import (
    ENUM_FIELDS,
    Availability,
    CommerceAttribute,
    CommerceImage,
    CommerceVariant,
    ComplexProductView,
    Condition,
    CustomAttribute,
    FeedPrice,
    PriceAmount,
    ProductAttributes,
    ProductInput,
    Shipping,
    SimpleProductView,
)

logger = logging.getLogger(__name__)

MICROS_PER_UNIT = 1_000_000
PRIMARY_IMAGE_ROLE = "image"
DEFAULT_SHIPPING_SERVICE = "standard"

# Merchant Center fields that may be filled from Commerce attributes
STANDARD_FIELDS = (
    "gtin",
    "mpn",
    "brand",
    "condition",
    "color",
    "size",
    "gender",
    "ageGroup",
    "material",
    "pattern",
    "googleProductCategory",
    "itemGroupId",
)

CONDITION_MAP = {
    "new": Condition.NEW,
    "used": Condition.USED,
    "refurbished": Condition.REFURBISHED,
}

CatalogProduct = Union[SimpleProductView, ComplexProductView]


@dataclass
class TransformationResult:
    """Result of transforming the items of one market."""
    successful: list[ProductInput] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)
    warnings: list[dict] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    def add_failure(self, sku: str, error: Union[TransformationError, str]) -> None:
        if isinstance(error, TransformationError):
            self.failed.append({"sku": sku, "error": error.to_dict()})
        else:
            self.failed.append({"sku": sku, "error": {"message": error}})

    def to_dict(self) -> dict:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "total_count": self.total_count,
            "failed_skus": [f.get("sku") for f in self.failed],
            "warning_count": len(self.warnings),
        }


def to_micros(amount: Any) -> int:
    """
    Convert a price amount to integer micros (29.99 -> 29990000).

    Raises:
        ValueError: for missing, non-numeric, negative or non-finite amounts
    """
    if amount is None or isinstance(amount, bool):
        raise ValueError("price amount is missing")
    value = float(amount)
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"price amount is not finite: {amount!r}")
    if value < 0:
        raise ValueError(f"price amount is negative: {amount!r}")
    return int(round(value * MICROS_PER_UNIT))


def build_product_url(product: CatalogProduct, url_template: str) -> str:
    """
    Fill a storefront URL template. Supported placeholders: ``{sku}``, ``{urlKey}``.

    e.g. ``https://example.com/products/{urlKey}/{sku}``
    """
    return (
        url_template
        .replace("{sku}", product.sku)
        .replace("{urlKey}", product.url_key or "")
    )


def get_primary_image_url(images: list[CommerceImage]) -> Optional[str]:
    """First image with the ``image`` role, else the first image."""
    if not images:
        return None
    for image in images:
        if PRIMARY_IMAGE_ROLE in image.roles:
            return image.url
    return images[0].url


def get_additional_image_urls(images: list[CommerceImage]) -> list[str]:
    """Remaining image URLs, deduplicated, without the primary image."""
    primary = get_primary_image_url(images)
    seen = set()
    additional = []
    for image in images:
        if not image.url or image.url == primary or image.url in seen:
            continue
        seen.add(image.url)
        additional.append(image.url)
    return additional


def get_availability(in_stock: Optional[bool]) -> Availability:
    return Availability.IN_STOCK if in_stock else Availability.OUT_OF_STOCK


def map_condition(condition: Optional[str]) -> Condition:
    """Merchant Center condition enum for a destination value; NEW by default."""
    if not condition:
        return Condition.NEW
    return CONDITION_MAP.get(condition.lower(), Condition.NEW)


def has_valid_identifiers(standard: dict) -> bool:
    """Merchant Center needs a GTIN, or brand plus MPN."""
    return bool(standard.get("gtins") or (standard.get("brand") and standard.get("mpn")))


def resolve_price_amount(product: CatalogProduct) -> Optional[PriceAmount]:
    """Direct final price for simple products, minimum final price for complex ones."""
    if isinstance(product, SimpleProductView):
        tier = product.price.final if product.price else None
    elif isinstance(product, ComplexProductView):
        minimum = product.price_range.minimum if product.price_range else None
        tier = minimum.final if minimum else None
    else:
        raise TypeError(f"Unsupported catalog record type: {type(product).__name__}")

    if tier is None or tier.amount is None:
        return None
    return tier.amount


def _stringify(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


class ProductTransformer:
    """
    Transforms Commerce catalog records into Merchant API ``ProductInput`` objects.

    Simple products map one to one. A variant of a complex product inherits
    the parent's standard fields, overlays its own, links to the parent's
    product page and carries the parent SKU as ``itemGroupId``.
    """

    def __init__(self, mapper: AttributeMapper):
        self.mapper = mapper

    def transform(
        self,
        product: CatalogProduct,
        language: str,
        country: str,
        url_template: str,
        feed_label: str,
    ) -> ProductInput:
        """
        Transform a simple product.

        Raises:
            TransformationError: if the product has no usable price or is a
                complex product (those are only listed through their variants)
        """
        price = self._transform_price(product)

        if isinstance(product, ComplexProductView):
            raise TransformationError(
                message=f"Product {product.sku} is a complex product and cannot be listed directly",
                sku=product.sku,
                field_name="__typename",
            )

        standard, custom = self.categorize_attributes(product.attributes)
        images = product.images

        attributes = self._build_attributes(
            standard,
            title=product.name,
            description=product.description or product.short_description,
            link=build_product_url(product, url_template),
            images=images,
            in_stock=product.in_stock,
            price=price,
            shipping=self._shipping_info(product, country, price.currency_code),
        )
        return self._build_product_input(feed_label, language, product.sku, attributes, custom)

    def transform_variant(
        self,
        parent: CatalogProduct,
        variant: CommerceVariant,
        language: str,
        country: str,
        url_template: str,
        feed_label: str,
    ) -> ProductInput:
        """
        Transform one variant of a complex product.

        Raises:
            TransformationError: if the variant itself has no usable price
        """
        product = variant.product
        price = self._transform_price(product)

        parent_standard, _ = self.categorize_attributes(parent.attributes)
        variant_standard, custom = self.categorize_attributes(product.attributes)
        merged = {**parent_standard, **variant_standard}
        merged["itemGroupId"] = parent.sku

        images = product.images or parent.images

        attributes = self._build_attributes(
            merged,
            title=product.name or parent.name,
            description=(
                product.description or parent.description or parent.short_description
            ),
            # one landing page per item group
            link=build_product_url(parent, url_template),
            images=images,
            in_stock=product.in_stock,
            price=price,
            shipping=self._shipping_info(product, country, price.currency_code),
        )
        return self._build_product_input(feed_label, language, product.sku, attributes, custom)

    def categorize_attributes(
        self, attributes: list[CommerceAttribute]
    ) -> tuple[dict[str, Any], list[CustomAttribute]]:
        """
        Split Commerce attributes into Merchant Center standard fields and custom attributes.

        Standard fields are keyed by Merchant Center field name; enum fields
        already hold destination values.
        """
        standard: dict[str, Any] = {}
        custom: list[CustomAttribute] = []

        for attribute in attributes:
            value = attribute.value
            if value is None or value == "" or value == []:
                continue

            field_name = self.mapper.field_name_to_destination(attribute.name)
            if field_name not in STANDARD_FIELDS:
                custom.append(CustomAttribute(name=attribute.name, value=_stringify(value)))
            elif field_name == "gtin":
                standard["gtins"] = [_stringify(value)]
            elif field_name in ENUM_FIELDS:
                standard[field_name] = self.mapper.value_to_destination(_stringify(value), field_name)
            else:
                standard[field_name] = _stringify(value)

        return standard, custom

    def check_data_quality(self, product_input: ProductInput) -> list[str]:
        """Issues Merchant Center is likely to flag; they do not block the upsert."""
        issues = []
        attributes = product_input.product_attributes

        if not attributes.title:
            issues.append("Product has no title")
        if not attributes.description:
            issues.append("Product has no description")
        if not attributes.image_link:
            issues.append("Product has no image")
        if attributes.price.amount_micros == 0:
            issues.append("Product price is zero")
        if attributes.identifier_exists is False:
            issues.append("Product has no GTIN or brand+MPN; identifierExists set to false")

        return issues

    def _transform_price(self, product: CatalogProduct) -> FeedPrice:
        amount = resolve_price_amount(product)
        if amount is None or amount.value is None or not amount.currency:
            raise TransformationError(
                message=f"Product {product.sku} does not have a price",
                sku=product.sku,
                field_name="price",
            )
        try:
            micros = to_micros(amount.value)
        except ValueError as e:
            raise TransformationError(
                message=f"Product {product.sku} has an invalid price: {e}",
                sku=product.sku,
                field_name="price",
                original_exception=e,
            )
        return FeedPrice(amount_micros=micros, currency_code=amount.currency)

    def _shipping_info(
        self,
        product: CatalogProduct,
        country: str,
        currency: str,
    ) -> Optional[Shipping]:
        """
        Flat shipping from the ``shippingPrice`` and ``shippingMethod`` attributes.

        Returns None when there is no shipping price, which leaves shipping to
        the Merchant Center account settings. Replace this method for
        calculated or multi-service shipping.
        """
        shipping_price = product.attribute_value(self.mapper.field_name_to_source("shippingPrice"))
        if shipping_price is None:
            return None

        shipping_method = product.attribute_value(
            self.mapper.field_name_to_source("shippingMethod")
        )
        try:
            micros = to_micros(shipping_price)
        except ValueError as e:
            raise TransformationError(
                message=f"Product {product.sku} has an invalid shipping price: {e}",
                sku=product.sku,
                field_name="shippingPrice",
                original_exception=e,
            )

        return Shipping(
            price=FeedPrice(amount_micros=micros, currency_code=currency),
            country=country,
            service=_stringify(shipping_method) if shipping_method else DEFAULT_SHIPPING_SERVICE,
        )

    def _build_attributes(
        self,
        standard: dict[str, Any],
        *,
        title: Optional[str],
        description: Optional[str],
        link: str,
        images: list[CommerceImage],
        in_stock: Optional[bool],
        price: FeedPrice,
        shipping: Optional[Shipping],
    ) -> ProductAttributes:
        fields = {key: value for key, value in standard.items() if key != "condition"}
        fields.update(
            title=title,
            description=description,
            link=link,
            imageLink=get_primary_image_url(images),
            availability=get_availability(in_stock),
            condition=map_condition(standard.get("condition")),
            price=price,
        )

        additional_images = get_additional_image_urls(images)
        if additional_images:
            fields["additionalImageLinks"] = additional_images
        if shipping:
            fields["shipping"] = [shipping]
        if not has_valid_identifiers(standard):
            fields["identifierExists"] = False

        return ProductAttributes.model_validate(fields)

    def _build_product_input(
        self,
        feed_label: str,
        language: str,
        offer_id: str,
        attributes: ProductAttributes,
        custom: list[CustomAttribute],
    ) -> ProductInput:
        return ProductInput(
            content_language=language,
            feed_label=feed_label,
            offer_id=offer_id,
            product_attributes=attributes,
            custom_attributes=custom,
        )
