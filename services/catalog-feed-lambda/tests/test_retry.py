"""Tests for retry utilities."""

import pytest
from unittest.mock import patch

from exceptions import S3Error, ValidationError
from retry import RetryConfig, retry_with_backoff


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("retry.time.sleep") as sleep:
        yield sleep


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_default_config(self):
        """Test default retry configuration."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 30.0

    def test_calculate_delay_exponential(self):
        """Test exponential backoff calculation."""
        config = RetryConfig(base_delay=1.0, exponential_base=2.0, jitter=False)

        assert config.calculate_delay(0) == 1.0
        assert config.calculate_delay(1) == 2.0
        assert config.calculate_delay(2) == 4.0

    def test_calculate_delay_max_cap(self):
        """Test delay is capped at max_delay."""
        config = RetryConfig(base_delay=10.0, max_delay=30.0, jitter=False)

        assert config.calculate_delay(5) == 30.0

    def test_calculate_delay_jitter_range(self):
        """Test jitter keeps the delay within the configured range."""
        config = RetryConfig(base_delay=1.0, jitter=True, jitter_range=(0.5, 1.5))

        for _ in range(20):
            assert 0.5 <= config.calculate_delay(0) <= 1.5

    def test_feed_sync_error_retryable_flag(self):
        """Test pipeline errors are retried only when flagged retryable."""
        config = RetryConfig()

        assert config.is_retryable(S3Error("boom", bucket="b", key="k")) is True
        assert config.is_retryable(
            ValidationError("bad", field_name="type", expected="x", actual="y")
        ) is False

    def test_non_retryable_wins(self):
        """Test non_retryable_exceptions take precedence."""
        config = RetryConfig(
            retryable_exceptions=(Exception,),
            non_retryable_exceptions=(KeyError,),
        )

        assert config.is_retryable(KeyError("k")) is False
        assert config.is_retryable(ValueError("v")) is True


class TestRetryWithBackoff:
    """Tests for retry_with_backoff decorator."""

    def test_success_no_retry(self, no_sleep):
        """Test successful call doesn't retry."""
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        def successful_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = successful_func()
        assert result == "success"
        assert call_count == 1
        no_sleep.assert_not_called()

    def test_retry_on_exception(self, no_sleep):
        """Test retry on exception."""
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        def failing_then_success():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError("Temporary failure")
            return "success"

        result = failing_then_success()
        assert result == "success"
        assert call_count == 3
        assert no_sleep.call_count == 2

    def test_max_retries_exceeded(self):
        """Test exception raised after max retries."""
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        def always_failing():
            nonlocal call_count
            call_count += 1
            raise ValueError("Always fails")

        with pytest.raises(ValueError, match="Always fails"):
            always_failing()

        assert call_count == 3

    def test_non_retryable_exception(self):
        """Test non-retryable exceptions aren't retried."""
        call_count = 0

        config = RetryConfig(
            max_attempts=3,
            base_delay=0.01,
            non_retryable_exceptions=(TypeError,),
            retryable_exceptions=(Exception,),
        )

        @retry_with_backoff(config=config)
        def raises_type_error():
            nonlocal call_count
            call_count += 1
            raise TypeError("Non-retryable")

        with pytest.raises(TypeError):
            raises_type_error()

        assert call_count == 1

    def test_validation_error_not_retried(self):
        """Test a non-retryable pipeline error fails on the first attempt."""
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        def invalid():
            nonlocal call_count
            call_count += 1
            raise ValidationError("bad", field_name="type", expected="x", actual="y")

        with pytest.raises(ValidationError):
            invalid()

        assert call_count == 1

    def test_on_retry_callback(self):
        """Test on_retry callback is called."""
        retries = []

        def on_retry(exc, attempt):
            retries.append((str(exc), attempt))

        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01, on_retry=on_retry)
        def failing_twice():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError(f"Attempt {call_count}")
            return "success"

        result = failing_twice()
        assert result == "success"
        assert retries == [("Attempt 1", 1), ("Attempt 2", 2)]
