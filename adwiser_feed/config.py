"""
Configuration management for the BuyAdwiser feed service.

Two layers:
- Settings: process settings from the environment / .env (store credentials,
  Redis, admin token, logging).
- Feed options: the merchant-editable options persisted as JSON (enabled,
  IP whitelist, result limit, caching, variation format).
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from adwiser_feed.core.feed.errors import ConfigurationError
from adwiser_feed.core.feed.models import FeedConfig, PriceAggregation, VariationsFormat
from adwiser_feed.core.utils import parse_ip_list

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings."""

    feed_options_path: str = Field(
        default="./feed_options.json",
        description="Path of the persisted feed options JSON file"
    )
    store_url: Optional[str] = Field(
        default=None,
        description="WooCommerce store URL"
    )
    consumer_key: Optional[str] = Field(default=None)
    consumer_secret: Optional[str] = Field(default=None)
    woo_timeout: float = Field(default=30.0)
    woo_rate_limit_rps: float = Field(default=5.0)
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for the shared feed cache; in-process cache when unset"
    )
    admin_token: Optional[str] = Field(
        default=None,
        description="Token for the admin endpoints; admin endpoints are disabled when unset"
    )
    trust_forwarded_for: bool = Field(
        default=True,
        description="Use X-Forwarded-For to determine the client IP"
    )
    log_level: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        case_sensitive = False


_settings = Settings()


# Feed option defaults (as stored in the options file)
DEFAULT_FEED_OPTIONS: Dict[str, Any] = {
    "enabled": True,
    "ip_whitelist": [],
    "limit_results": False,
    "results_limit": 1000,
    "enable_caching": True,
    "cache_time": 15,
    "variations_format": VariationsFormat.SEPARATE.value,
    "price_aggregation": PriceAggregation.MIN.value,
}


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("yes", "true", "1", "on"):
            return True
        if v in ("no", "false", "0", "off", ""):
            return False
    raise ConfigurationError(f"Expected a boolean, got {value!r}")


def _to_positive_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"Expected a positive integer, got {value!r}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(f"Expected a positive integer, got {value!r}")
    if number <= 0:
        raise ConfigurationError(f"Expected a positive integer, got {value!r}")
    return number


def _option(data: Dict[str, Any], key: str, convert: Callable[[Any], Any]) -> Any:
    """Read one option; invalid values fall back to the default."""
    if key not in data or data[key] is None:
        return convert(DEFAULT_FEED_OPTIONS[key])
    try:
        return convert(data[key])
    except (ConfigurationError, ValueError, TypeError) as e:
        logger.warning(f"Invalid feed option '{key}': {e}. Using default {DEFAULT_FEED_OPTIONS[key]!r}")
        return convert(DEFAULT_FEED_OPTIONS[key])


def parse_feed_options(data: Optional[Dict[str, Any]]) -> FeedConfig:
    """
    Build a FeedConfig from stored options.

    Accepts the plugin's 'yes'/'no' flags and the textarea form of the IP
    whitelist. Never raises for bad values; each falls back to its default.
    """
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Feed options must be a JSON object, using defaults")
        data = {}

    return FeedConfig(
        enabled=_option(data, "enabled", _to_bool),
        ip_whitelist=_option(data, "ip_whitelist", parse_ip_list),
        limit_results=_option(data, "limit_results", _to_bool),
        results_limit=_option(data, "results_limit", _to_positive_int),
        enable_caching=_option(data, "enable_caching", _to_bool),
        cache_time_minutes=_option(data, "cache_time", _to_positive_int),
        variations_format=_option(data, "variations_format", VariationsFormat),
        price_aggregation=_option(data, "price_aggregation", PriceAggregation),
    )


def feed_config_to_dict(config: FeedConfig) -> Dict[str, Any]:
    """Serialize a FeedConfig to the stored options format."""
    return {
        "enabled": config.enabled,
        "ip_whitelist": sorted(config.ip_whitelist),
        "limit_results": config.limit_results,
        "results_limit": config.results_limit,
        "enable_caching": config.enable_caching,
        "cache_time": config.cache_time_minutes,
        "variations_format": config.variations_format.value,
        "price_aggregation": config.price_aggregation.value,
    }


def load_feed_config(config_path: Optional[str] = None) -> FeedConfig:
    """
    Load feed options from the JSON file.

    Args:
        config_path: Optional path to options file. If None, uses FEED_OPTIONS_PATH.

    Returns:
        FeedConfig; defaults when the file is missing or unreadable.
    """
    path = Path(config_path or _settings.feed_options_path)

    if not path.exists():
        logger.info(f"Feed options file not found: {path}, using defaults")
        return parse_feed_options({})

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read feed options {path}: {e}. Using defaults")
        return parse_feed_options({})

    return parse_feed_options(data)


def save_feed_config(config: FeedConfig, config_path: Optional[str] = None) -> None:
    """
    Save feed options to the JSON file.

    Args:
        config: FeedConfig to persist.
        config_path: Optional path to options file. If None, uses FEED_OPTIONS_PATH.

    Raises:
        IOError: If file cannot be written.
    """
    path = Path(config_path or _settings.feed_options_path)

    # Create parent directory if it doesn't exist
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(feed_config_to_dict(config), f, indent=2, ensure_ascii=False)


def get_settings() -> Settings:
    """Get application settings."""
    return _settings
