"""
Configuration for the catalog feed Lambda.

Runtime settings come from environment variables. Market and attribute
mapping configuration are JSON documents read from a local path or an
``s3://`` URI, validated with pydantic, and cached for the lifetime of the
process by ``ConfigStore``. A changed document takes effect on the next
cold start.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import boto3
from botocore.config import Config
from pydantic import ValidationError as PydanticValidationError

from exceptions import ConfigurationError, S3Error
from models import AttributeMappingConfig, MarketConfig, MarketsConfig
from retry import retry_with_backoff
from utils import find_missing_keys, format_validation_errors

logger = logging.getLogger(__name__)

SERVICE_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_MARKETS_CONFIG_PATH = "config/markets/markets.json"
DEFAULT_ATTRIBUTE_MAPPING_CONFIG_PATH = "config/attributeMapping/attributeMapping.json"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

REQUIRED_ENV = ("ACO_API_BASE_URL", "ACO_TENANT_ID")

LocaleIndex = dict[str, list[MarketConfig]]

boto_config = Config(
    retries={"max_attempts": 3, "mode": "adaptive"},
    connect_timeout=10,
    read_timeout=30,
)


@dataclass(frozen=True)
class Settings:
    """Environment driven settings for one Lambda process."""
    aco_api_base_url: str
    aco_tenant_id: str
    google_creds_path: Optional[str] = None
    google_creds_json: Optional[str] = None
    markets_config_path: str = DEFAULT_MARKETS_CONFIG_PATH
    attribute_mapping_config_path: str = DEFAULT_ATTRIBUTE_MAPPING_CONFIG_PATH
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    log_level: str = "INFO"
    aws_region: str = "us-east-1"
    localstack_endpoint: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: if a required variable is missing or malformed
        """
        env = os.environ if environ is None else environ

        missing = find_missing_keys(env, REQUIRED_ENV)
        if not env.get("GOOGLE_CREDS_PATH") and not env.get("GOOGLE_CREDS_JSON"):
            missing.append("GOOGLE_CREDS_PATH")
        if missing:
            raise ConfigurationError(
                message=f"missing parameter(s) '{','.join(missing)}'",
                config_key=",".join(missing),
            )

        timeout_raw = env.get("HTTP_TIMEOUT_SECONDS") or str(DEFAULT_HTTP_TIMEOUT_SECONDS)
        try:
            timeout = float(timeout_raw)
        except ValueError:
            raise ConfigurationError(
                message=f"HTTP_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}",
                config_key="HTTP_TIMEOUT_SECONDS",
            )

        return cls(
            aco_api_base_url=env["ACO_API_BASE_URL"].rstrip("/"),
            aco_tenant_id=env["ACO_TENANT_ID"],
            google_creds_path=env.get("GOOGLE_CREDS_PATH") or None,
            google_creds_json=env.get("GOOGLE_CREDS_JSON") or None,
            markets_config_path=env.get("MARKETS_CONFIG_PATH") or DEFAULT_MARKETS_CONFIG_PATH,
            attribute_mapping_config_path=(
                env.get("ATTRIBUTE_MAPPING_CONFIG_PATH") or DEFAULT_ATTRIBUTE_MAPPING_CONFIG_PATH
            ),
            http_timeout_seconds=timeout,
            log_level=env.get("LOG_LEVEL") or "INFO",
            aws_region=env.get("AWS_REGION") or "us-east-1",
            localstack_endpoint=env.get("LOCALSTACK_ENDPOINT") or None,
        )


class S3ClientFactory:
    """Lazily creates the S3 client used for configuration downloads."""

    _s3_client = None

    @classmethod
    def get_s3_client(cls, region: str, endpoint_url: Optional[str] = None):
        """Get or create S3 client."""
        if cls._s3_client is None:
            kwargs = {"config": boto_config, "region_name": region}
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            cls._s3_client = boto3.client("s3", **kwargs)
        return cls._s3_client

    @classmethod
    def reset(cls):
        """Reset clients (useful for testing)."""
        cls._s3_client = None


def parse_s3_uri(uri: str) -> tuple[str, str]:
    """Split ``s3://bucket/key`` into bucket and key."""
    without_scheme = uri[len("s3://"):]
    bucket, _, key = without_scheme.partition("/")
    if not bucket or not key:
        raise ConfigurationError(
            message=f"Invalid S3 URI: {uri}",
            config_key=uri,
        )
    return bucket, key


@retry_with_backoff(max_attempts=3, base_delay=0.5, max_delay=5.0)
def download_from_s3(bucket: str, key: str, settings: Settings) -> str:
    """
    Download a configuration object from S3 with retry logic.

    Raises:
        S3Error: If download fails after retries
    """
    try:
        s3 = S3ClientFactory.get_s3_client(settings.aws_region, settings.localstack_endpoint)
        response = s3.get_object(Bucket=bucket, Key=key)
        content = response["Body"].read().decode("utf-8")
    except Exception as e:
        raise S3Error(
            message=f"Failed to download from S3: {e}",
            bucket=bucket,
            key=key,
            original_exception=e,
        )

    logger.info(f"Downloaded {len(content)} bytes of configuration from s3://{bucket}/{key}")
    return content


def read_config_document(location: str, settings: Settings, example_hint: str = "") -> dict:
    """
    Read and decode a JSON configuration document.

    ``location`` is either ``s3://bucket/key`` or a filesystem path. Relative
    paths are resolved against the service root.
    """
    if location.startswith("s3://"):
        bucket, key = parse_s3_uri(location)
        try:
            raw = download_from_s3(bucket, key, settings)
        except S3Error as e:
            raise ConfigurationError(
                message=f"Configuration file not found at {location}: {e.message}",
                config_key=location,
            )
    else:
        path = Path(location)
        if not path.is_absolute():
            path = SERVICE_ROOT / path
        if not path.is_file():
            message = f"Configuration file not found: {path}"
            if example_hint:
                message += f". Please create it from {example_hint}"
            raise ConfigurationError(message=message, config_key=location)
        raw = path.read_text(encoding="utf-8")

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            message=f"Invalid JSON in configuration file {location}: {e}",
            config_key=location,
        )
    if not isinstance(document, (dict, list)):
        raise ConfigurationError(
            message=f"Configuration file {location} must contain a JSON object",
            config_key=location,
        )
    return document


def parse_market_config(document) -> list[MarketConfig]:
    """Validate a markets document. A bare list of markets is accepted too."""
    if isinstance(document, list):
        document = {"markets": document}
    try:
        return list(MarketsConfig.model_validate(document).markets)
    except PydanticValidationError as e:
        raise ConfigurationError(
            message=f"Invalid market config: {format_validation_errors(e)}",
            config_key="markets",
        )


def parse_attribute_mapping_config(document) -> AttributeMappingConfig:
    """Validate an attribute mapping document."""
    try:
        return AttributeMappingConfig.model_validate(document)
    except PydanticValidationError as e:
        raise ConfigurationError(
            message=f"Invalid attribute mapping config: {format_validation_errors(e)}",
            config_key="attributeMapping",
        )


def load_market_config(settings: Settings) -> list[MarketConfig]:
    """Load and validate market configuration."""
    document = read_config_document(
        settings.markets_config_path,
        settings,
        example_hint="config/markets/markets.example.json",
    )
    return parse_market_config(document)


def load_attribute_mapping_config(settings: Settings) -> AttributeMappingConfig:
    """Load and validate attribute mapping configuration."""
    document = read_config_document(
        settings.attribute_mapping_config_path,
        settings,
        example_hint="config/attributeMapping/attributeMapping.example.json",
    )
    return parse_attribute_mapping_config(document)


def build_locale_index(markets: list[MarketConfig]) -> LocaleIndex:
    """
    Build a lowercase-locale to markets lookup for event routing.
    A single locale can map to multiple markets (e.g. one per currency).
    """
    index: LocaleIndex = {}
    for market in markets:
        index.setdefault(market.locale, []).append(market)
    return index


class ConfigStore:
    """Process-scoped cache of validated configuration."""

    _markets: Optional[list[MarketConfig]] = None
    _locale_index: Optional[LocaleIndex] = None
    _attribute_mapping: Optional[AttributeMappingConfig] = None

    @classmethod
    def load(cls, settings: Settings) -> None:
        """Populate the cache if it is empty. Safe to call on every invocation."""
        if cls._markets is None:
            markets = load_market_config(settings)
            cls._locale_index = build_locale_index(markets)
            cls._markets = markets
            logger.info(
                f"Loaded {len(markets)} markets for locales: "
                f"{', '.join(sorted(cls._locale_index))}"
            )
        if cls._attribute_mapping is None:
            cls._attribute_mapping = load_attribute_mapping_config(settings)
            logger.info(
                f"Loaded attribute mapping with "
                f"{len(cls._attribute_mapping.field_mappings)} field mappings"
            )

    @classmethod
    def markets(cls) -> list[MarketConfig]:
        return cls._require(cls._markets, "markets")

    @classmethod
    def locale_index(cls) -> LocaleIndex:
        return cls._require(cls._locale_index, "markets")

    @classmethod
    def attribute_mapping(cls) -> AttributeMappingConfig:
        return cls._require(cls._attribute_mapping, "attributeMapping")

    @classmethod
    def reset(cls) -> None:
        """Drop cached configuration (useful for testing)."""
        cls._markets = None
        cls._locale_index = None
        cls._attribute_mapping = None

    @staticmethod
    def _require(value, config_key: str):
        if value is None:
            raise ConfigurationError(
                message="Configuration accessed before ConfigStore.load()",
                config_key=config_key,
            )
        return value
