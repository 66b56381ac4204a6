"""Commerce storefront GraphQL client for product and variant data."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from exceptions import CommerceApiError
from models import CatalogRecordList, VariantPage

logger = logging.getLogger(__name__)

_PRICE_FIELDS = """
          roles
          regular { amount { value currency } }
          final { amount { value currency } }
"""

PRODUCT_QUERY = """
  query GET_PRODUCT_DATA($skus: [String]) {
    products(skus: $skus) {
      __typename
      id
      sku
      name
      shortDescription
      metaDescription
      description
      inStock
      url
      urlKey
      externalId
      images(roles: []) { url label roles }
      attributes(roles: []) { name label value roles }
      ... on SimpleProductView {
        price {%(price)s}
      }
      ... on ComplexProductView {
        priceRange {
          minimum {
            final { amount { value currency } }
            regular { amount { value currency } }
          }
          maximum {
            final { amount { value currency } }
            regular { amount { value currency } }
          }
        }
        options {
          id
          title
          required
          multi
          values { id title inStock }
        }
      }
    }
  }
""" % {"price": _PRICE_FIELDS}

VARIANTS_QUERY = """
  query GET_VARIANTS($sku: String!, $pageSize: Int, $cursor: String) {
    variants(sku: $sku, pageSize: $pageSize, cursor: $cursor) {
      variants {
        selections
        product {
          __typename
          sku
          name
          description
          urlKey
          inStock
          images(roles: []) { url label roles }
          attributes(roles: []) { name label value roles }
          ... on SimpleProductView {
            price {%(price)s}
          }
        }
      }
      cursor
    }
  }
""" % {"price": _PRICE_FIELDS}


class CommerceClient:
    """
    Thin async wrapper around the Commerce storefront GraphQL endpoint.

    One HTTP call per method; batching and pagination loops belong to the
    caller. Any transport failure, non-2xx status or GraphQL ``errors``
    payload raises ``CommerceApiError``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._session.aclose()

    async def get_products(
        self,
        view_id: str,
        price_book_id: str,
        tenant_id: str,
        skus: list[str],
    ) -> list:
        """Fetch catalog records for ``skus``. Unknown SKUs are simply absent."""
        data = await self._query(
            "products",
            tenant_id,
            view_id,
            price_book_id,
            PRODUCT_QUERY,
            {"skus": skus},
        )
        try:
            return CatalogRecordList.validate_python(data.get("products") or [])
        except PydanticValidationError as e:
            raise CommerceApiError(
                message=f"Unexpected product payload from Commerce: {e}",
                operation="products",
                original_exception=e,
            )

    async def get_variants_page(
        self,
        view_id: str,
        price_book_id: str,
        tenant_id: str,
        parent_sku: str,
        page_size: int = 100,
        cursor: Optional[str] = None,
    ) -> VariantPage:
        """Fetch one page of variants for a complex product."""
        data = await self._query(
            "variants",
            tenant_id,
            view_id,
            price_book_id,
            VARIANTS_QUERY,
            {"sku": parent_sku, "pageSize": page_size, "cursor": cursor},
        )
        try:
            return VariantPage.model_validate(data.get("variants") or {})
        except PydanticValidationError as e:
            raise CommerceApiError(
                message=f"Unexpected variants payload from Commerce for {parent_sku}: {e}",
                operation="variants",
                original_exception=e,
            )

    async def _query(
        self,
        operation: str,
        tenant_id: str,
        view_id: str,
        price_book_id: str,
        query: str,
        variables: dict[str, Any],
    ) -> dict:
        url = f"{self.base_url}/{tenant_id}/graphql"
        headers = {
            "Content-Type": "application/json",
            "AC-Environment-Id": tenant_id,
            "AC-View-Id": view_id,
            "AC-Price-Book-Id": price_book_id,
        }

        try:
            response = await self._session.post(
                url,
                headers=headers,
                json={"query": query, "variables": variables},
            )
        except httpx.HTTPError as e:
            raise CommerceApiError(
                message=f"Commerce Storefront API request failed: {e}",
                operation=operation,
                original_exception=e,
            )

        if response.is_error:
            raise CommerceApiError(
                message=(
                    f"Commerce Storefront API error: {response.status_code} "
                    f"{response.reason_phrase}"
                ),
                operation=operation,
                status=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise CommerceApiError(
                message=f"Commerce Storefront API returned invalid JSON: {e}",
                operation=operation,
                status=response.status_code,
                original_exception=e,
            )

        if result.get("errors"):
            raise CommerceApiError(
                message=f"Commerce Storefront API error: {result['errors']}",
                operation=operation,
                status=response.status_code,
            )

        return result.get("data") or {}
