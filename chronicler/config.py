"""
Configuration management for Chronicler.

This module handles loading and accessing configuration values from config.yaml.
Values used by the ingestion run can also be supplied through environment
variables, which take precedence over the YAML file.
"""

import yaml
import os
from pathlib import Path
from typing import Any, Dict, Optional
import logging


TRUTHY_VALUES = ("true", "1", "yes")


def _env(name: str) -> Optional[str]:
    """Return a non-empty environment variable or None."""
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_int(name: str) -> Optional[int]:
    """Return an environment variable parsed as int, ignoring garbage."""
    value = _env(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logging.warning(f"Ignoring non-numeric value for {name}: {value!r}")
        return None


def _env_flag(name: str) -> Optional[bool]:
    value = _env(name)
    if value is None:
        return None
    return value.lower() in TRUTHY_VALUES


class ConfigManager:
    """
    Manages configuration loading and access for Chronicler.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f) or {}

            logging.info(f"Configuration loaded from {self.config_path}")

        except (OSError, yaml.YAMLError) as e:
            logging.debug(f"Using default configuration: {e}")
            self._config = self._get_default_config()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values as fallback."""
        return {
            "wikimedia": {
                "user_agent": "DailyHistoric/0.1 (contact@example.com)",
                "feed_url": "https://api.wikimedia.org/feed/v1/wikipedia/en/onthisday/selected",
                "timeout": 30.0
            },
            "wikidata": {
                "entity_url": "https://www.wikidata.org/wiki/Special:EntityData",
                "language": "en",
                "concurrency": 4,
                "retry_attempts": 3,
                "retry_base_delay_ms": 400
            },
            "media": {
                "commons_url": "https://api.wikimedia.org/core/v1/commons/search/title",
                "min_width": 800,
                "min_height": 600,
                "search_limit": 5,
                "require_license": True,
                "retry_attempts": 3,
                "retry_base_delay_ms": 400,
                "search_memo_ttl_ms": 600000,
                "cache": {
                    "path": "cache/media-cache.json",
                    "ttl_ms": 604800000,
                    "disabled": False
                }
            },
            "overrides": {
                "path": "overrides/events.json"
            },
            "storage": {
                "database_dir": "data",
                "collections": {
                    "events": "contentEvents",
                    "payload_cache": "contentPayloadCache",
                    "digests": "dailyDigests"
                }
            },
            "logging": {
                "level": "INFO",
                "format": "text",
                "file": None
            }
        }

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Args:
            key_path: Dot-separated path to the configuration value (e.g., "media.min_width")
            default: Default value if key is not found

        Returns:
            The configuration value

        Examples:
            config.get("wikidata.concurrency")  # Returns 4
            config.get("storage.collections.events")  # Returns "contentEvents"
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get an entire configuration section.

        Args:
            section: Name of the configuration section

        Returns:
            Dictionary containing the section configuration
        """
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    # Convenience properties. Environment variables win over the YAML file.

    @property
    def user_agent(self) -> str:
        """User agent sent to every Wikimedia endpoint."""
        return _env("DAILY_HISTORIC_USER_AGENT") or self.get(
            "wikimedia.user_agent", "DailyHistoric/0.1 (contact@example.com)"
        )

    @property
    def wikimedia_token(self) -> Optional[str]:
        """Optional bearer token for the feed API."""
        return _env("WIKIMEDIA_API_TOKEN") or self.get("wikimedia.token")

    @property
    def feed_url(self) -> str:
        return self.get("wikimedia.feed_url", "https://api.wikimedia.org/feed/v1/wikipedia/en/onthisday/selected")

    @property
    def http_timeout(self) -> float:
        return float(self.get("wikimedia.timeout", 30.0))

    @property
    def entity_url(self) -> str:
        return self.get("wikidata.entity_url", "https://www.wikidata.org/wiki/Special:EntityData")

    @property
    def wikidata_language(self) -> str:
        return self.get("wikidata.language", "en")

    @property
    def wikidata_concurrency(self) -> int:
        """Entity lookups kept in flight at once."""
        value = _env_int("WIKIDATA_CONCURRENCY")
        if value is None:
            value = int(self.get("wikidata.concurrency", 4))
        return max(1, value)

    @property
    def wikidata_retry_attempts(self) -> int:
        value = _env_int("WIKIDATA_RETRY_ATTEMPTS")
        if value is None:
            value = int(self.get("wikidata.retry_attempts", 3))
        return max(1, value)

    @property
    def wikidata_retry_base_delay_ms(self) -> int:
        value = _env_int("WIKIDATA_RETRY_BASE_DELAY_MS")
        if value is None:
            value = int(self.get("wikidata.retry_base_delay_ms", 400))
        return max(100, value)

    @property
    def commons_url(self) -> str:
        return self.get("media.commons_url", "https://api.wikimedia.org/core/v1/commons/search/title")

    @property
    def media_min_width(self) -> int:
        return _env_int("MEDIA_MIN_WIDTH") or int(self.get("media.min_width", 800))

    @property
    def media_min_height(self) -> int:
        return _env_int("MEDIA_MIN_HEIGHT") or int(self.get("media.min_height", 600))

    @property
    def media_search_limit(self) -> int:
        return _env_int("MEDIA_SEARCH_LIMIT") or int(self.get("media.search_limit", 5))

    @property
    def media_require_license(self) -> bool:
        return bool(self.get("media.require_license", True))

    @property
    def media_retry_attempts(self) -> int:
        return _env_int("MEDIA_RETRY_ATTEMPTS") or int(self.get("media.retry_attempts", 3))

    @property
    def media_retry_base_delay_ms(self) -> int:
        return _env_int("MEDIA_RETRY_BASE_DELAY_MS") or int(self.get("media.retry_base_delay_ms", 400))

    @property
    def media_search_memo_ttl_ms(self) -> int:
        return int(self.get("media.search_memo_ttl_ms", 600000))

    @property
    def media_cache_path(self) -> str:
        """Path of the persistent media cache file."""
        return _env("MEDIA_CACHE_PATH") or self.get("media.cache.path", "cache/media-cache.json")

    @property
    def media_cache_ttl_ms(self) -> int:
        return _env_int("MEDIA_CACHE_TTL_MS") or int(self.get("media.cache.ttl_ms", 604800000))

    @property
    def media_cache_disabled(self) -> bool:
        flag = _env_flag("MEDIA_DISABLE_CACHE")
        if flag is not None:
            return flag
        return bool(self.get("media.cache.disabled", False))

    @property
    def overrides_path(self) -> str:
        return _env("INGEST_OVERRIDES_PATH") or self.get("overrides.path", "overrides/events.json")

    @property
    def service_account_path(self) -> Optional[str]:
        return (
            _env("STORE_SERVICE_ACCOUNT_PATH")
            or _env("GOOGLE_APPLICATION_CREDENTIALS")
            or self.get("storage.service_account_path")
        )

    @property
    def service_account_json(self) -> Optional[str]:
        return _env("STORE_SERVICE_ACCOUNT_JSON")

    @property
    def project_id(self) -> Optional[str]:
        return _env("STORE_PROJECT_ID") or self.get("storage.project_id")

    @property
    def database_dir(self) -> str:
        return self.get("storage.database_dir", "data")

    @property
    def collections(self) -> Dict[str, str]:
        """Get the collection names used for the batched write."""
        defaults = {
            "events": "contentEvents",
            "payload_cache": "contentPayloadCache",
            "digests": "dailyDigests"
        }
        defaults.update(self.get("storage.collections", {}) or {})
        return defaults

    @property
    def log_level(self) -> str:
        if _env_flag("INGEST_DEBUG"):
            return "DEBUG"
        return (_env("INGEST_LOG_LEVEL") or self.get("logging.level", "INFO")).upper()

    @property
    def log_format(self) -> str:
        return (_env("INGEST_LOG_FORMAT") or self.get("logging.format", "text")).lower()

    @property
    def log_filename(self) -> Optional[str]:
        """Get log file name, None to log to stdout only."""
        return self.get("logging.file")


# Global configuration instance
config = ConfigManager(os.environ.get("CHRONICLER_CONFIG", "config.yaml"))


def get_config() -> ConfigManager:
    """
    Get the global configuration instance.

    Returns:
        The global ConfigManager instance
    """
    return config
