"""
Custom exceptions for the catalog feed sync pipeline.
Provides structured error handling with rich context for debugging and monitoring.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from enum import Enum

HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_ERROR = 500


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for routing and handling."""
    VALIDATION = "validation"
    TRANSFORMATION = "transformation"
    UPSTREAM_SERVICE = "upstream_service"
    CONFIGURATION = "configuration"


@dataclass
class ErrorContext:
    """Rich context for error tracking and debugging."""
    correlation_id: Optional[str] = None
    market_id: Optional[str] = None
    sku: Optional[str] = None
    field_name: Optional[str] = None
    expected_type: Optional[str] = None
    actual_value: Optional[Any] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    additional_data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert context to dictionary for logging."""
        return {
            "correlation_id": self.correlation_id,
            "market_id": self.market_id,
            "sku": self.sku,
            "field_name": self.field_name,
            "expected_type": self.expected_type,
            "actual_value": str(self.actual_value) if self.actual_value is not None else None,
            "timestamp": self.timestamp,
            **self.additional_data,
        }


class FeedSyncError(Exception):
    """Base exception for all feed sync pipeline errors."""

    status_code = HTTP_INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.TRANSFORMATION,
        retryable: bool = False,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.severity = severity
        self.category = category
        self.retryable = retryable
        self.original_exception = original_exception

    def to_dict(self) -> dict:
        """Serialize exception for logging and monitoring."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "retryable": self.retryable,
            "status_code": self.status_code,
            "context": self.context.to_dict(),
            "original_exception": str(self.original_exception) if self.original_exception else None,
        }


class ValidationError(FeedSyncError):
    """Raised when the inbound event fails validation."""

    status_code = HTTP_BAD_REQUEST

    def __init__(
        self,
        message: str,
        field_name: str,
        expected: str,
        actual: Any,
        context: Optional[ErrorContext] = None,
    ):
        ctx = context or ErrorContext()
        ctx.field_name = field_name
        ctx.expected_type = expected
        ctx.actual_value = actual

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )
        self.field_name = field_name
        self.expected = expected
        self.actual = actual


class TransformationError(FeedSyncError):
    """Raised when a catalog record cannot be turned into a feed product."""

    def __init__(
        self,
        message: str,
        sku: str,
        field_name: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.sku = sku
        ctx.field_name = field_name

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.TRANSFORMATION,
            retryable=False,
            original_exception=original_exception,
        )
        self.sku = sku


class VariantNotFoundError(TransformationError):
    """Raised when a variant item has no fetched parent/variant data."""

    def __init__(
        self,
        sku: str,
        parent_sku: Optional[str] = None,
        context: Optional[ErrorContext] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["parent_sku"] = parent_sku

        super().__init__(
            message=f"Variant {sku} not found in Commerce data (parent: {parent_sku})",
            sku=sku,
            field_name="links.variantOf",
            context=ctx,
        )
        self.severity = ErrorSeverity.HIGH
        self.parent_sku = parent_sku


class UpstreamServiceError(FeedSyncError):
    """Raised when a call to an upstream service fails."""

    def __init__(
        self,
        message: str,
        service_name: str,
        operation: str,
        status: Optional[int] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["service"] = service_name
        ctx.additional_data["operation"] = operation
        if status is not None:
            ctx.additional_data["upstream_status"] = status

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.UPSTREAM_SERVICE,
            retryable=True,
            original_exception=original_exception,
        )
        self.service_name = service_name
        self.operation = operation
        self.status = status


class CommerceApiError(UpstreamServiceError):
    """Raised when the Commerce storefront GraphQL API fails or returns errors."""

    def __init__(
        self,
        message: str,
        operation: str = "products",
        status: Optional[int] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            service_name="Commerce",
            operation=operation,
            status=status,
            context=context,
            original_exception=original_exception,
        )


class MerchantApiError(UpstreamServiceError):
    """Raised when the Merchant API rejects an insert or delete."""

    def __init__(
        self,
        message: str,
        operation: str,
        product_name: Optional[str] = None,
        status: Optional[int] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        if product_name:
            ctx.additional_data["product_name"] = product_name

        super().__init__(
            message=message,
            service_name="MerchantAPI",
            operation=operation,
            status=status,
            context=ctx,
            original_exception=original_exception,
        )


class S3Error(UpstreamServiceError):
    """Raised when a configuration object cannot be read from S3."""

    def __init__(
        self,
        message: str,
        bucket: str,
        key: str,
        operation: str = "GetObject",
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["s3_bucket"] = bucket
        ctx.additional_data["s3_key"] = key

        super().__init__(
            message=message,
            service_name="S3",
            operation=operation,
            context=ctx,
            original_exception=original_exception,
        )
        self.bucket = bucket
        self.key = key


class ConfigurationError(FeedSyncError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: str,
        context: Optional[ErrorContext] = None,
    ):
        ctx = context or ErrorContext()
        ctx.additional_data["config_key"] = config_key

        super().__init__(
            message=message,
            context=ctx,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )
        self.config_key = config_key
