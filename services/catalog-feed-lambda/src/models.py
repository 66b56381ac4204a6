"""
Data models for the catalog feed sync pipeline.

Three families live here:
- inbound change items (what the catalog event carries),
- configuration (markets and attribute mapping),
- Commerce catalog records and the Merchant API product input they become.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Optional, TypeVar, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

VARIANT_OF_LINK = "variantOf"
ENUM_FIELDS = ("condition", "gender", "ageGroup")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _FrozenModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


T = TypeVar("T")

# GraphQL returns null for empty collections
NullableList = Annotated[list[T], BeforeValidator(_none_to_list)]


# ---------------------------------------------------------------------------
# Inbound change items
# ---------------------------------------------------------------------------


class Operation(str, Enum):
    """Catalog operation carried by a change item."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ItemSource(_FrozenModel):
    """Scope of a change: a locale and, for price events, a price book."""
    locale: Optional[str] = None
    price_book_id: Optional[str] = Field(None, alias="priceBookId")


class ItemLink(_FrozenModel):
    """Relationship to another SKU, e.g. ``variantOf``."""
    type: str
    sku: str


class ChangeItem(_FrozenModel):
    """One product or price change notification."""
    sku: str = Field(..., min_length=1)
    operation: Operation
    sources: list[ItemSource] = Field(..., min_length=1)
    links: NullableList[ItemLink] = Field(default_factory=list)

    @property
    def variant_of(self) -> Optional[str]:
        """SKU of the parent product when this item is a variant."""
        for link in self.links:
            if link.type == VARIANT_OF_LINK:
                return link.sku
        return None


ChangeItemList = TypeAdapter(list[ChangeItem])


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class AcoSource(_FrozenModel):
    locale: str = Field(..., min_length=1)


class AcoConfig(_FrozenModel):
    """Catalog side of a market: which view and price book to read."""
    view_id: str = Field(..., alias="viewId", min_length=1)
    price_book_id: str = Field(..., alias="priceBookId", min_length=1)
    source: AcoSource


class FeedConfig(_FrozenModel):
    """Merchant Center side of a market."""
    merchant_id: str = Field(..., alias="merchantId", min_length=1)
    data_source_id: str = Field(..., alias="dataSourceId", min_length=1)
    feed_label: str = Field(..., alias="feedLabel", min_length=1)
    content_language: str = Field(..., alias="contentLanguage", min_length=2)
    target_country: str = Field(..., alias="targetCountry", min_length=2)


class StoreConfig(_FrozenModel):
    url_template: str = Field(..., alias="urlTemplate", min_length=1)


class MarketConfig(_FrozenModel):
    """One routing target: catalog view + price book x feed account x storefront."""
    id: str = Field(..., min_length=1)
    aco: AcoConfig
    feed: FeedConfig = Field(..., validation_alias=AliasChoices("feed", "google"))
    store: StoreConfig

    @property
    def locale(self) -> str:
        return self.aco.source.locale.lower()


class MarketsConfig(_FrozenModel):
    markets: list[MarketConfig] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_ids(self) -> "MarketsConfig":
        seen = set()
        for market in self.markets:
            if market.id in seen:
                raise ValueError(f"duplicate market id: {market.id}")
            seen.add(market.id)
        return self


class AttributeMappingConfig(_FrozenModel):
    """
    Destination-oriented attribute mapping.

    ``field_mappings`` maps a Merchant Center field name to the Commerce
    attribute name that holds it. ``value_mappings`` maps, per enum field,
    the Merchant Center value to the Commerce value.
    """
    field_mappings: dict[str, str] = Field(default_factory=dict, alias="fieldMappings")
    value_mappings: dict[str, dict[str, str]] = Field(
        default_factory=dict, alias="valueMappings"
    )

    @field_validator("value_mappings")
    @classmethod
    def _check_value_mappings(cls, value: dict[str, dict[str, str]]) -> dict[str, dict[str, str]]:
        for field_name, mapping in value.items():
            if field_name not in ENUM_FIELDS:
                raise ValueError(
                    f"value mapping for unsupported field '{field_name}', "
                    f"expected one of {', '.join(ENUM_FIELDS)}"
                )
            source_values = list(mapping.values())
            duplicates = sorted({v for v in source_values if source_values.count(v) > 1})
            if duplicates:
                raise ValueError(
                    f"value mapping for '{field_name}' maps several values to "
                    f"{', '.join(duplicates)}"
                )
        return value


# ---------------------------------------------------------------------------
# Commerce catalog records
# ---------------------------------------------------------------------------


class PriceAmount(_CamelModel):
    value: Optional[float] = None
    currency: Optional[str] = None


class PriceTier(_CamelModel):
    amount: Optional[PriceAmount] = None


class CommercePrice(_CamelModel):
    roles: NullableList[str] = Field(default_factory=list)
    regular: Optional[PriceTier] = None
    final: Optional[PriceTier] = None


class PriceRangeBound(_CamelModel):
    final: Optional[PriceTier] = None
    regular: Optional[PriceTier] = None


class PriceRange(_CamelModel):
    minimum: Optional[PriceRangeBound] = None
    maximum: Optional[PriceRangeBound] = None


class CommerceImage(_CamelModel):
    url: str
    label: Optional[str] = None
    roles: NullableList[str] = Field(default_factory=list)


class CommerceAttribute(_CamelModel):
    name: str
    label: Optional[str] = None
    value: Any = None
    roles: NullableList[str] = Field(default_factory=list)


class OptionValue(_CamelModel):
    id: str
    title: Optional[str] = None
    in_stock: Optional[bool] = Field(None, alias="inStock")


class ProductOption(_CamelModel):
    id: str
    title: Optional[str] = None
    required: bool = False
    multi: bool = False
    values: NullableList[OptionValue] = Field(default_factory=list)


class _ProductView(_CamelModel):
    id: Optional[str] = None
    sku: str
    name: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, alias="shortDescription")
    meta_description: Optional[str] = Field(None, alias="metaDescription")
    in_stock: Optional[bool] = Field(False, alias="inStock")
    url: Optional[str] = None
    url_key: Optional[str] = Field(None, alias="urlKey")
    external_id: Optional[str] = Field(None, alias="externalId")
    images: NullableList[CommerceImage] = Field(default_factory=list)
    attributes: NullableList[CommerceAttribute] = Field(default_factory=list)

    def attribute_value(self, name: str) -> Any:
        """Value of the first attribute called ``name``, or None when absent or empty."""
        for attribute in self.attributes:
            if attribute.name == name:
                value = attribute.value
                return None if value is None or value == "" or value == [] else value
        return None


class SimpleProductView(_ProductView):
    """Directly priced product; the only kind ever sent to the feed."""
    typename: Literal["SimpleProductView"] = Field("SimpleProductView", alias="__typename")
    price: Optional[CommercePrice] = None


class ComplexProductView(_ProductView):
    """Variant family priced as a range; never sent to the feed itself."""
    typename: Literal["ComplexProductView"] = Field("ComplexProductView", alias="__typename")
    price_range: Optional[PriceRange] = Field(None, alias="priceRange")
    options: NullableList[ProductOption] = Field(default_factory=list)


CatalogRecord = Annotated[
    Union[SimpleProductView, ComplexProductView],
    Field(discriminator="typename"),
]
CatalogRecordList = TypeAdapter(list[CatalogRecord])


class CommerceVariant(_CamelModel):
    """One member of a complex product, as returned by the variants query."""
    selections: NullableList[str] = Field(default_factory=list)
    product: SimpleProductView


class VariantPage(_CamelModel):
    variants: NullableList[CommerceVariant] = Field(default_factory=list)
    cursor: Optional[str] = None


@dataclass(frozen=True)
class VariantData:
    """A fetched variant paired with the parent record it belongs to."""
    parent: Union[SimpleProductView, ComplexProductView]
    variant: CommerceVariant

    @property
    def sku(self) -> str:
        return self.variant.product.sku


# ---------------------------------------------------------------------------
# Merchant API product input
# ---------------------------------------------------------------------------


class Availability(str, Enum):
    IN_STOCK = "IN_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class Condition(str, Enum):
    NEW = "NEW"
    USED = "USED"
    REFURBISHED = "REFURBISHED"


class FeedPrice(_FrozenModel):
    amount_micros: int = Field(..., alias="amountMicros", ge=0)
    currency_code: str = Field(..., alias="currencyCode")


class Shipping(_FrozenModel):
    price: FeedPrice
    country: str
    service: str


class CustomAttribute(_FrozenModel):
    name: str
    value: str


class ProductAttributes(_FrozenModel):
    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    image_link: Optional[str] = Field(None, alias="imageLink")
    additional_image_links: Optional[list[str]] = Field(None, alias="additionalImageLinks")
    availability: Availability
    condition: Condition = Condition.NEW
    price: FeedPrice
    shipping: Optional[list[Shipping]] = None
    gtins: Optional[list[str]] = None
    mpn: Optional[str] = None
    brand: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    gender: Optional[str] = None
    age_group: Optional[str] = Field(None, alias="ageGroup")
    material: Optional[str] = None
    pattern: Optional[str] = None
    google_product_category: Optional[str] = Field(None, alias="googleProductCategory")
    item_group_id: Optional[str] = Field(None, alias="itemGroupId")
    identifier_exists: Optional[bool] = Field(None, alias="identifierExists")


class ProductInput(_FrozenModel):
    """Feed-ready record; ``offer_id`` is the Commerce SKU."""
    content_language: str = Field(..., alias="contentLanguage")
    feed_label: str = Field(..., alias="feedLabel")
    offer_id: str = Field(..., alias="offerId")
    product_attributes: ProductAttributes = Field(..., alias="productAttributes")
    custom_attributes: list[CustomAttribute] = Field(
        default_factory=list, alias="customAttributes"
    )

    def to_request(self) -> dict:
        """Serialize to the Merchant API JSON body."""
        body = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not body.get("customAttributes"):
            body.pop("customAttributes", None)
        return body
