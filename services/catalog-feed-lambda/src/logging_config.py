"""
Structured logging configuration with correlation ID support.
Provides JSON logging format suitable for CloudWatch and log aggregation.
"""

import functools
import inspect
import json
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
market_id_var: ContextVar[str] = ContextVar("market_id", default="")

NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "httpx", "httpcore", "google.auth")


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for the current context."""
    cid = correlation_id or generate_correlation_id()
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> str:
    """Get correlation ID for the current context."""
    return correlation_id_var.get()


def get_market_id() -> str:
    """Get the market being processed for the current context."""
    return market_id_var.get()


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs logs in a format suitable for CloudWatch Logs Insights and log aggregation.
    """

    def __init__(self, service_name: str = "catalog-feed-lambda"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "correlation_id": get_correlation_id(),
            "market_id": get_market_id(),
        }

        if record.funcName:
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        if hasattr(record, "sku"):
            log_data["sku"] = record.sku
        if hasattr(record, "tenant_id"):
            log_data["tenant_id"] = record.tenant_id
        if hasattr(record, "event_type"):
            log_data["event_type"] = record.event_type

        if hasattr(record, "extra_data") and isinstance(record.extra_data, dict):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        if hasattr(record, "duration_ms"):
            log_data["duration_ms"] = record.duration_ms
        if hasattr(record, "metrics"):
            log_data["metrics"] = record.metrics

        return json.dumps(log_data, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """
    Logger adapter that automatically includes contextual information.
    """

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        extra["correlation_id"] = get_correlation_id()
        extra["market_id"] = get_market_id()
        kwargs["extra"] = extra
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    service_name: str = "catalog-feed-lambda",
) -> ContextualLogger:
    """
    Configure structured logging for Lambda.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        service_name: Name of the service for log identification

    Returns:
        Configured contextual logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
        handler.setFormatter(StructuredJsonFormatter(service_name))
    else:
        handler.setFormatter(
            logging.Formatter(
                "[%(levelname)s] %(asctime)s - %(name)s - %(message)s"
            )
        )

    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return ContextualLogger(root_logger, {})


class MarketLogContext:
    """
    Context manager that tags log lines with the market being processed.

    Example:
        with MarketLogContext("us"):
            logger.info("Fetching products")
    """

    def __init__(self, market_id: str):
        self.market_id = market_id
        self._token = None

    def __enter__(self):
        self._token = market_id_var.set(self.market_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        market_id_var.reset(self._token)
        return False


def log_execution_time(logger: logging.Logger):
    """
    Decorator to log function execution time. Works for plain and async functions.

    Example:
        @log_execution_time(logger)
        async def process_market(...):
            ...
    """

    def _log_success(func, start_time):
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"{func.__name__} completed",
            extra={"duration_ms": round(duration_ms, 2)},
        )

    def _log_failure(func, start_time, error):
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.error(
            f"{func.__name__} failed after {duration_ms:.2f}ms: {error}",
            extra={"duration_ms": round(duration_ms, 2)},
            exc_info=True,
        )

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(func, start_time, e)
                    raise
                _log_success(func, start_time)
                return result
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_failure(func, start_time, e)
                raise
            _log_success(func, start_time)
            return result
        return wrapper
    return decorator
