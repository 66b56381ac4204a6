"""
AWS Lambda handler for catalog feed synchronization.
Receives Commerce product and price change events and syncs the affected
products to Google Merchant Center for every configured market.
"""

import asyncio
import os
import time
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from commerce_client import CommerceClient
from config import ConfigStore, Settings
from exceptions import FeedSyncError, ValidationError
from logging_config import configure_logging, set_correlation_id
from mapping import AttributeMapper
from merchant_client import MerchantClient, ServiceAccountTokenProvider
from models import ChangeItem, ChangeItemList
from processor import SUPPORTED_EVENT_TYPES, EventProcessor, ProcessingSummary
from responses import HTTP_INTERNAL_ERROR, error_response, success_response
from transformer import ProductTransformer
from utils import format_validation_errors, missing_inputs_message

logger = configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    service_name="catalog-feed-lambda",
)

REQUIRED_PARAMS = ("type", "data.instanceId", "data.items")


def validate_event(event: Any, settings: Settings) -> tuple[str, str, list[ChangeItem]]:
    """
    Check the inbound event and parse its items.

    Returns:
        Event type, tenant id and parsed change items

    Raises:
        ValidationError: for missing fields, a tenant mismatch, an unknown
            event type or malformed items
    """
    message = missing_inputs_message(event, REQUIRED_PARAMS)
    if message:
        raise ValidationError(
            message=message,
            field_name=",".join(REQUIRED_PARAMS),
            expected="present",
            actual=None,
        )

    event_type = event["type"]
    tenant_id = event["data"]["instanceId"]

    if tenant_id != settings.aco_tenant_id:
        raise ValidationError(
            message=f"Tenant ID {tenant_id} does not match expected tenant ID {settings.aco_tenant_id}",
            field_name="data.instanceId",
            expected=settings.aco_tenant_id,
            actual=tenant_id,
        )

    if event_type not in SUPPORTED_EVENT_TYPES:
        raise ValidationError(
            message=f"Invalid event type: {event_type}",
            field_name="type",
            expected=" or ".join(SUPPORTED_EVENT_TYPES),
            actual=event_type,
        )

    try:
        items = ChangeItemList.validate_python(event["data"]["items"])
    except PydanticValidationError as e:
        raise ValidationError(
            message=f"Invalid event items: {format_validation_errors(e)}",
            field_name="data.items",
            expected="list of change items",
            actual=f"{e.error_count()} validation errors",
        )

    return event_type, tenant_id, items


async def run_event(
    settings: Settings,
    event_type: str,
    tenant_id: str,
    items: list[ChangeItem],
) -> ProcessingSummary:
    """Build the clients for one invocation and run the event processor."""
    commerce_client = CommerceClient(
        settings.aco_api_base_url,
        timeout=settings.http_timeout_seconds,
    )
    merchant_client = MerchantClient(
        ServiceAccountTokenProvider(
            creds_path=settings.google_creds_path,
            creds_json=settings.google_creds_json,
        ),
        timeout=settings.http_timeout_seconds,
    )

    try:
        processor = EventProcessor(
            locale_index=ConfigStore.locale_index(),
            transformer=ProductTransformer(AttributeMapper(ConfigStore.attribute_mapping())),
            commerce_client=commerce_client,
            merchant_client=merchant_client,
        )
        return await processor.process(event_type, tenant_id, items)
    finally:
        await asyncio.gather(commerce_client.close(), merchant_client.close())


def handler(event: dict, context: Any) -> dict:
    """
    Main Lambda handler.

    Args:
        event: ``{type, data: {instanceId, items}}`` change event
        context: Lambda context

    Returns:
        ``{statusCode, body: {type, response}}`` on success,
        ``{statusCode, body: {error}}`` on failure
    """
    start_time = time.perf_counter()
    correlation_id = set_correlation_id()

    logger.info(
        "Lambda invocation started",
        extra={
            "event_type": "lambda_start",
            "aws_request_id": getattr(context, "aws_request_id", None) if context else None,
        },
    )

    try:
        settings = Settings.from_env()
        event_type, tenant_id, items = validate_event(event, settings)

        logger.info(
            f"Received {len(items)} items for tenant {tenant_id}",
            extra={"tenant_id": tenant_id},
        )

        ConfigStore.load(settings)
        summary = asyncio.run(run_event(settings, event_type, tenant_id, items))

        return success_response(event_type, summary.message, start_time)

    except FeedSyncError as e:
        e.context.correlation_id = e.context.correlation_id or correlation_id
        logger.error(
            f"Feed sync error: {e.message}",
            extra={"error": e.to_dict()},
        )
        return error_response(e.status_code, e.message, start_time)

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return error_response(HTTP_INTERNAL_ERROR, str(e), start_time)
