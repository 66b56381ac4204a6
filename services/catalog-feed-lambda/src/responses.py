"""Lambda response envelope."""

import logging
import time
from typing import Optional

from exceptions import HTTP_BAD_REQUEST, HTTP_INTERNAL_ERROR

logger = logging.getLogger(__name__)

HTTP_OK = 200

__all__ = [
    "HTTP_OK",
    "HTTP_BAD_REQUEST",
    "HTTP_INTERNAL_ERROR",
    "build_response",
    "success_response",
    "error_response",
]


def build_response(status_code: int, body: dict, start_time: Optional[float] = None) -> dict:
    """Build Lambda response and log invocation timing."""
    extra = {"event_type": "lambda_complete", "status_code": status_code}
    if start_time is not None:
        extra["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)

    logger.info("Lambda invocation complete", extra=extra)

    return {
        "statusCode": status_code,
        "body": body,
    }


def success_response(event_type: str, response: str, start_time: Optional[float] = None) -> dict:
    return build_response(HTTP_OK, {"type": event_type, "response": response}, start_time)


def error_response(status_code: int, message: str, start_time: Optional[float] = None) -> dict:
    return build_response(status_code, {"error": message}, start_time)
