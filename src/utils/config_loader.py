"""
Configuration loader module.

Loads application configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


DEFAULT_REGIONS = ["Yangon", "Mandalay", "Naypyidaw", "Bago", "Other"]


@dataclass
class TariffConfig:
    """Placeholder tariff used by the pricing engine."""

    currency: str = "MMK"
    base_fee: float = 2500
    per_kg_rate: float = 1200
    volumetric_divisor: float = 5000
    rounding_increment: int = 100
    service_multipliers: dict[str, float] = field(
        default_factory=lambda: {"Standard": 1.0, "Express": 1.35, "Same-day": 1.8}
    )
    regions: list[str] = field(default_factory=lambda: list(DEFAULT_REGIONS))
    home_region: str = "Yangon"
    catch_all_region: str = "Other"
    home_multiplier: float = 1.0
    catch_all_multiplier: float = 1.25
    named_region_multiplier: float = 1.15
    max_weight_kg: float = 200
    max_dimension_cm: float = 300
    international_collection: str = "pricing_international"
    international_rounding_increment: int = 1


@dataclass
class ProfileSyncConfig:
    """Auth-to-profile synchronization settings."""

    users_collection: str = "users"
    default_role: str = "customer"
    load_timeout_seconds: float | None = None
    retain_profile_on_error: bool = False


@dataclass
class TrackingConfig:
    """Shipment tracking lookup settings."""

    shipments_collection: str = "shipments"
    tracking_id_field: str = "trackingId"
    min_tracking_id_length: int = 4


@dataclass
class QuotesConfig:
    """Quotation request settings."""

    collection: str = "quotation_requests"
    source: str = "web_public"
    initial_status: str = "new"


@dataclass
class SignupConfig:
    """Signup document upload settings."""

    max_file_mb: int = 5
    upload_prefix: str = "uploads"


@dataclass
class ApiConfig:
    """Courier REST API configuration."""

    base_url_env: str = "API_BASE_URL"
    base_url: str = ""
    timeout: int = 15
    max_retries: int = 3


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"
    file: str | None = None


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all configuration sections into a single object.
    """

    pricing: TariffConfig = field(default_factory=TariffConfig)
    profile_sync: ProfileSyncConfig = field(default_factory=ProfileSyncConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    quotes: QuotesConfig = field(default_factory=QuotesConfig)
    signup: SignupConfig = field(default_factory=SignupConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_env(env_file: Path = Path(".env")) -> None:
    """
    Load environment variables from .env file.

    Args:
        env_file: Path to .env file.
    """
    if env_file.exists():
        load_dotenv(env_file)
        logger.debug(f"Loaded environment from: {env_file}")
    else:
        logger.debug(f"No .env file found at: {env_file}")


def load_config(config_file: Path = Path("config/config.yaml")) -> AppConfig:
    """
    Load application configuration from YAML file.

    Args:
        config_file: Path to configuration YAML file.

    Returns:
        AppConfig: Loaded configuration object.

    Raises:
        yaml.YAMLError: If config file is invalid.
    """
    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}. Using defaults.")
        return AppConfig()

    with open(config_file, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        return AppConfig()

    config = _parse_config(raw_config)
    logger.info(f"Loaded configuration from: {config_file}")
    return config


def _parse_config(raw: dict[str, Any]) -> AppConfig:
    """
    Parse raw YAML dict into AppConfig dataclass.

    Args:
        raw: Raw dictionary from YAML file.

    Returns:
        AppConfig: Parsed configuration object.
    """
    defaults = TariffConfig()

    # Parse pricing tariff
    pricing_raw = raw.get("pricing", {})
    regions_raw = pricing_raw.get("regions", {})
    international_raw = pricing_raw.get("international", {})
    pricing = TariffConfig(
        currency=pricing_raw.get("currency", defaults.currency),
        base_fee=pricing_raw.get("base_fee", defaults.base_fee),
        per_kg_rate=pricing_raw.get("per_kg_rate", defaults.per_kg_rate),
        volumetric_divisor=pricing_raw.get("volumetric_divisor", defaults.volumetric_divisor),
        rounding_increment=pricing_raw.get("rounding_increment", defaults.rounding_increment),
        service_multipliers=pricing_raw.get("service_multipliers", defaults.service_multipliers),
        regions=regions_raw.get("names", defaults.regions),
        home_region=regions_raw.get("home", defaults.home_region),
        catch_all_region=regions_raw.get("catch_all", defaults.catch_all_region),
        home_multiplier=regions_raw.get("home_multiplier", defaults.home_multiplier),
        catch_all_multiplier=regions_raw.get("catch_all_multiplier", defaults.catch_all_multiplier),
        named_region_multiplier=regions_raw.get(
            "named_region_multiplier", defaults.named_region_multiplier
        ),
        max_weight_kg=pricing_raw.get("max_weight_kg", defaults.max_weight_kg),
        max_dimension_cm=pricing_raw.get("max_dimension_cm", defaults.max_dimension_cm),
        international_collection=international_raw.get(
            "collection", defaults.international_collection
        ),
        international_rounding_increment=international_raw.get(
            "rounding_increment", defaults.international_rounding_increment
        ),
    )

    # Parse profile sync config
    sync_raw = raw.get("profile_sync", {})
    profile_sync = ProfileSyncConfig(
        users_collection=sync_raw.get("users_collection", "users"),
        default_role=sync_raw.get("default_role", "customer"),
        load_timeout_seconds=sync_raw.get("load_timeout_seconds"),
        retain_profile_on_error=sync_raw.get("retain_profile_on_error", False),
    )

    # Parse tracking config
    tracking_raw = raw.get("tracking", {})
    tracking = TrackingConfig(
        shipments_collection=tracking_raw.get("shipments_collection", "shipments"),
        tracking_id_field=tracking_raw.get("tracking_id_field", "trackingId"),
        min_tracking_id_length=tracking_raw.get("min_tracking_id_length", 4),
    )

    quotes_raw = raw.get("quotes", {})
    quotes = QuotesConfig(
        collection=quotes_raw.get("collection", "quotation_requests"),
        source=quotes_raw.get("source", "web_public"),
        initial_status=quotes_raw.get("initial_status", "new"),
    )

    signup_raw = raw.get("signup", {})
    signup = SignupConfig(
        max_file_mb=signup_raw.get("max_file_mb", 5),
        upload_prefix=signup_raw.get("upload_prefix", "uploads"),
    )

    # Parse REST API config
    api_raw = raw.get("api", {})
    api = ApiConfig(
        base_url_env=api_raw.get("base_url_env", "API_BASE_URL"),
        base_url=api_raw.get("base_url", ""),
        timeout=api_raw.get("timeout", 15),
        max_retries=api_raw.get("max_retries", 3),
    )

    # Parse logging config
    logging_raw = raw.get("logging", {})
    logging_config = LoggingConfig(
        level=logging_raw.get("level", "INFO"),
        format=logging_raw.get("format", "text"),
        file=logging_raw.get("file"),
    )

    return AppConfig(
        pricing=pricing,
        profile_sync=profile_sync,
        tracking=tracking,
        quotes=quotes,
        signup=signup,
        api=api,
        logging=logging_config,
    )


def get_env_var(key: str, default: str | None = None) -> str | None:
    """
    Get an environment variable with optional default.

    Args:
        key: Environment variable name.
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(key, default)
