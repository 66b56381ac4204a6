"""
Google Merchant API client for product inputs.

Authenticates with a service account and calls the Merchant API REST
endpoints with httpx. ``productInputs:insert`` replaces an existing input
with the same content language, feed label and offer id, which is what the
dispatcher relies on for upserts.
"""

import asyncio
import json
import logging
from typing import Optional
from urllib.parse import quote

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from exceptions import ConfigurationError, MerchantApiError

logger = logging.getLogger(__name__)

MERCHANT_API_BASE_URL = "https://merchantapi.googleapis.com/products/v1"
SCOPES = ["https://www.googleapis.com/auth/content"]
PRODUCT_INPUTS_SEGMENT = "/productInputs/"


def feed_product_id(language: str, feed_label: str, sku: str) -> str:
    """Merchant Center product input id: ``language~feedLabel~offerId``."""
    return f"{language}~{feed_label}~{sku}"


def feed_product_name(merchant_id: str, language: str, feed_label: str, sku: str) -> str:
    return f"accounts/{merchant_id}{PRODUCT_INPUTS_SEGMENT}{feed_product_id(language, feed_label, sku)}"


def data_source_name(merchant_id: str, data_source_id: str) -> str:
    return f"accounts/{merchant_id}/dataSources/{data_source_id}"


class ServiceAccountTokenProvider:
    """Supplies OAuth2 access tokens from a Google service account."""

    def __init__(
        self,
        creds_path: Optional[str] = None,
        creds_json: Optional[str] = None,
        scopes: Optional[list[str]] = None,
    ):
        if not creds_path and not creds_json:
            raise ConfigurationError(
                message="Either GOOGLE_CREDS_PATH or GOOGLE_CREDS_JSON must be set",
                config_key="GOOGLE_CREDS_PATH",
            )
        self.creds_path = creds_path
        self.creds_json = creds_json
        self.scopes = scopes or SCOPES
        self._credentials = None
        self._lock = asyncio.Lock()

    def _load_credentials(self):
        try:
            if self.creds_json:
                info = json.loads(self.creds_json)
                return service_account.Credentials.from_service_account_info(
                    info, scopes=self.scopes
                )
            return service_account.Credentials.from_service_account_file(
                self.creds_path, scopes=self.scopes
            )
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                message=f"Invalid Google service account credentials: {e}",
                config_key="GOOGLE_CREDS_PATH" if self.creds_path else "GOOGLE_CREDS_JSON",
            )

    async def get_token(self) -> str:
        """Return a valid access token, refreshing it when needed."""
        async with self._lock:
            if self._credentials is None:
                self._credentials = self._load_credentials()
            if not self._credentials.valid:
                # google-auth refresh is blocking
                await asyncio.to_thread(self._credentials.refresh, Request())
                logger.info("Google Merchant API access token obtained")
            return self._credentials.token


class MerchantClient:
    """Async client for Merchant API product inputs."""

    def __init__(
        self,
        token_provider,
        *,
        session: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        base_url: str = MERCHANT_API_BASE_URL,
    ) -> None:
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self._session = session or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._session.aclose()

    async def insert_product_input(
        self,
        merchant_id: str,
        data_source_id: str,
        product_input: dict,
    ) -> dict:
        """Insert (or replace) one product input. Returns the stored product input."""
        url = f"{self.base_url}/accounts/{merchant_id}/productInputs:insert"
        response = await self._request(
            "POST",
            url,
            operation="insertProductInput",
            product_name=product_input.get("offerId"),
            params={"dataSource": data_source_name(merchant_id, data_source_id)},
            json=product_input,
        )
        return response.json() if response.content else {}

    async def delete_product_input(
        self,
        merchant_id: str,
        data_source_id: str,
        feed_name: str,
    ) -> None:
        """Delete one product input by its full resource name."""
        parent, _, product_id = feed_name.partition(PRODUCT_INPUTS_SEGMENT)
        # the product input id is a single path segment
        url = f"{self.base_url}/{parent}{PRODUCT_INPUTS_SEGMENT}{quote(product_id, safe='~')}"
        await self._request(
            "DELETE",
            url,
            operation="deleteProductInput",
            product_name=feed_name,
            params={"dataSource": data_source_name(merchant_id, data_source_id)},
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        product_name: Optional[str] = None,
        **kwargs,
    ) -> httpx.Response:
        token = await self.token_provider.get_token()
        headers = {"Authorization": f"Bearer {token}"}

        try:
            response = await self._session.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise MerchantApiError(
                message=f"Merchant API request failed: {e}",
                operation=operation,
                product_name=product_name,
                original_exception=e,
            )

        if response.is_error:
            raise MerchantApiError(
                message=f"Merchant API error {response.status_code}: {_error_detail(response)}",
                operation=operation,
                product_name=product_name,
                status=response.status_code,
            )
        return response


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text
