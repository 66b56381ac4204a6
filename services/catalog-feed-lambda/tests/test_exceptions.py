"""Tests for custom exceptions."""

import pytest
from exceptions import (
    CommerceApiError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    FeedSyncError,
    MerchantApiError,
    S3Error,
    TransformationError,
    UpstreamServiceError,
    ValidationError,
    VariantNotFoundError,
)


class TestErrorContext:
    """Tests for ErrorContext."""

    def test_error_context_defaults(self):
        """Test ErrorContext has sensible defaults."""
        ctx = ErrorContext()
        assert ctx.correlation_id is None
        assert ctx.market_id is None
        assert ctx.sku is None
        assert ctx.timestamp is not None

    def test_error_context_to_dict(self):
        """Test ErrorContext serialization."""
        ctx = ErrorContext(
            correlation_id="test-123",
            market_id="us",
            sku="SKU-1",
            field_name="price",
            additional_data={"extra": 1},
        )
        result = ctx.to_dict()

        assert result["correlation_id"] == "test-123"
        assert result["market_id"] == "us"
        assert result["sku"] == "SKU-1"
        assert result["field_name"] == "price"
        assert result["extra"] == 1


class TestFeedSyncError:
    """Tests for FeedSyncError base class."""

    def test_feed_sync_error_creation(self):
        """Test FeedSyncError can be created."""
        error = FeedSyncError(
            message="Test error",
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.TRANSFORMATION,
            retryable=True,
        )

        assert str(error) == "Test error"
        assert error.severity == ErrorSeverity.HIGH
        assert error.category == ErrorCategory.TRANSFORMATION
        assert error.retryable is True
        assert error.status_code == 500

    def test_feed_sync_error_to_dict(self):
        """Test FeedSyncError serialization."""
        error = FeedSyncError(
            message="Test error",
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.VALIDATION,
        )
        result = error.to_dict()

        assert result["error_type"] == "FeedSyncError"
        assert result["message"] == "Test error"
        assert result["severity"] == "medium"
        assert result["category"] == "validation"
        assert result["status_code"] == 500


class TestValidationError:
    """Tests for ValidationError."""

    def test_validation_error_fields(self):
        """Test ValidationError captures field info."""
        error = ValidationError(
            message="Invalid field",
            field_name="type",
            expected="event type",
            actual="unknown",
        )

        assert error.field_name == "type"
        assert error.expected == "event type"
        assert error.actual == "unknown"
        assert error.category == ErrorCategory.VALIDATION
        assert error.retryable is False

    def test_validation_error_is_client_error(self):
        """Test ValidationError maps to HTTP 400."""
        error = ValidationError(message="bad", field_name="type", expected="x", actual="y")
        assert error.status_code == 400


class TestTransformationError:
    """Tests for TransformationError."""

    def test_transformation_error_with_sku(self):
        """Test TransformationError captures the SKU."""
        error = TransformationError(
            message="Transform failed",
            sku="SKU-1",
            field_name="price",
        )

        assert error.sku == "SKU-1"
        assert error.context.sku == "SKU-1"
        assert error.context.field_name == "price"

    def test_variant_not_found_error(self):
        """Test VariantNotFoundError names the variant and parent."""
        error = VariantNotFoundError(sku="V-1", parent_sku="P-1")

        assert isinstance(error, TransformationError)
        assert error.message == "Variant V-1 not found in Commerce data (parent: P-1)"
        assert error.parent_sku == "P-1"
        assert error.context.additional_data["parent_sku"] == "P-1"
        assert error.severity == ErrorSeverity.HIGH


class TestUpstreamErrors:
    """Tests for upstream service errors."""

    def test_commerce_api_error(self):
        """Test CommerceApiError records service and status."""
        error = CommerceApiError("Commerce down", operation="variants", status=502)

        assert isinstance(error, UpstreamServiceError)
        assert error.service_name == "Commerce"
        assert error.operation == "variants"
        assert error.status == 502
        assert error.context.additional_data["upstream_status"] == 502
        assert error.retryable is True
        assert error.status_code == 500

    def test_merchant_api_error(self):
        """Test MerchantApiError records the product name."""
        error = MerchantApiError(
            "rejected",
            operation="insertProductInput",
            product_name="accounts/1/productInputs/en~US~A",
        )

        assert error.service_name == "MerchantAPI"
        assert error.context.additional_data["product_name"] == "accounts/1/productInputs/en~US~A"

    def test_s3_error(self):
        """Test S3Error captures bucket and key."""
        error = S3Error(
            message="Failed to download",
            bucket="test-bucket",
            key="markets.json",
        )

        assert error.bucket == "test-bucket"
        assert error.key == "markets.json"
        assert error.context.additional_data["s3_bucket"] == "test-bucket"
        assert error.context.additional_data["s3_key"] == "markets.json"
        assert error.retryable is True


class TestConfigurationError:
    """Tests for ConfigurationError."""

    def test_configuration_error(self):
        """Test ConfigurationError is critical and not retryable."""
        error = ConfigurationError("missing markets", config_key="markets")

        assert error.config_key == "markets"
        assert error.severity == ErrorSeverity.CRITICAL
        assert error.retryable is False
        assert error.status_code == 500

    def test_errors_are_raisable(self):
        """Test errors behave as exceptions."""
        with pytest.raises(FeedSyncError, match="missing markets"):
            raise ConfigurationError("missing markets", config_key="markets")
