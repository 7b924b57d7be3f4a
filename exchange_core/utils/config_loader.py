"""
Configuration loader module.

Loads exchange core configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from exchange_core.exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class PathsConfig:
    """File path configuration."""

    data_dir: str = "data"
    currencies_file: str = "currencies.csv"
    rates_file: str = "exchange_rates.csv"
    logs_dir: str = "logs"

    @property
    def currencies_path(self) -> Path:
        return Path(self.data_dir) / self.currencies_file

    @property
    def rates_path(self) -> Path:
        return Path(self.data_dir) / self.rates_file


@dataclass
class ConversionConfig:
    """Rate resolver configuration."""

    home_currency_code: str = "IRR"
    bridge_preference: list[str] = field(default_factory=lambda: ["OMR", "IRR"])


@dataclass
class RoundingConfig:
    """Settlement rounding configuration."""

    home_granularity: int = 1
    foreign_decimals: int = 2
    default_decimals: int = 4


@dataclass
class QuoteConfig:
    """Reverse/cross quote derivation configuration."""

    min_spread_fraction: Decimal = Decimal("0.0001")
    reverse_decimals: int = 8
    cross_decimals: int = 4


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"
    log_file: str | None = None


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all configuration sections into a single object.
    """

    paths: PathsConfig = field(default_factory=PathsConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    rounding: RoundingConfig = field(default_factory=RoundingConfig)
    quotes: QuoteConfig = field(default_factory=QuoteConfig)
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

    Environment overrides are applied after the file is parsed, so a missing
    file still honours them.

    Args:
        config_file: Path to configuration YAML file.

    Returns:
        AppConfig: Loaded configuration object.

    Raises:
        yaml.YAMLError: If config file is invalid YAML.
        ConfigError: If a configuration value is out of range.
    """
    config_file = Path(config_file)
    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}. Using defaults.")
        config = AppConfig()
    else:
        with open(config_file, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)

        config = _parse_config(raw_config or {})
        logger.info(f"Loaded configuration from: {config_file}")

    _apply_env_overrides(config)
    validate_config(config)
    return config


def _parse_decimal(value: Any, key: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigError(f"Invalid decimal value for {key}: {value!r}", key=key) from e


def _parse_config(raw: dict[str, Any]) -> AppConfig:
    """
    Parse raw YAML dict into AppConfig dataclass.

    Args:
        raw: Raw dictionary from YAML file.

    Returns:
        AppConfig: Parsed configuration object.
    """
    paths_raw = raw.get("paths") or {}
    paths = PathsConfig(
        data_dir=paths_raw.get("data_dir", "data"),
        currencies_file=paths_raw.get("currencies_file", "currencies.csv"),
        rates_file=paths_raw.get("rates_file", "exchange_rates.csv"),
        logs_dir=paths_raw.get("logs_dir", "logs"),
    )

    conversion_raw = raw.get("conversion") or {}
    bridge_preference = conversion_raw.get("bridge_preference", ["OMR", "IRR"])
    conversion = ConversionConfig(
        home_currency_code=str(conversion_raw.get("home_currency_code", "IRR")).upper(),
        bridge_preference=[str(code).upper() for code in bridge_preference],
    )

    rounding_raw = raw.get("rounding") or {}
    rounding = RoundingConfig(
        home_granularity=int(rounding_raw.get("home_granularity", 1)),
        foreign_decimals=int(rounding_raw.get("foreign_decimals", 2)),
        default_decimals=int(rounding_raw.get("default_decimals", 4)),
    )

    quotes_raw = raw.get("quotes") or {}
    quotes = QuoteConfig(
        min_spread_fraction=_parse_decimal(
            quotes_raw.get("min_spread_fraction", "0.0001"), "quotes.min_spread_fraction"
        ),
        reverse_decimals=int(quotes_raw.get("reverse_decimals", 8)),
        cross_decimals=int(quotes_raw.get("cross_decimals", 4)),
    )

    logging_raw = raw.get("logging") or {}
    logging_config = LoggingConfig(
        level=logging_raw.get("level", "INFO"),
        format=logging_raw.get("format", "text"),
        log_file=logging_raw.get("log_file"),
    )

    return AppConfig(
        paths=paths,
        conversion=conversion,
        rounding=rounding,
        quotes=quotes,
        logging=logging_config,
    )


def _apply_env_overrides(config: AppConfig) -> None:
    """Apply EXCHANGE_* and LOG_* environment variables onto the config."""
    home = get_env_var("EXCHANGE_HOME_CURRENCY")
    if home:
        config.conversion.home_currency_code = home.strip().upper()

    bridges = get_env_var("EXCHANGE_BRIDGE_PREFERENCE")
    if bridges is not None:
        config.conversion.bridge_preference = [
            code.strip().upper() for code in bridges.split(",") if code.strip()
        ]

    level = get_env_var("LOG_LEVEL")
    if level:
        config.logging.level = level.upper()

    log_format = get_env_var("LOG_FORMAT")
    if log_format:
        config.logging.format = log_format.lower()


def validate_config(config: AppConfig) -> None:
    """
    Check configuration values that would make the core misbehave.

    Args:
        config: Configuration to validate.

    Raises:
        ConfigError: On the first invalid value found.
    """
    if not config.conversion.home_currency_code:
        raise ConfigError("Home currency code must not be empty", key="conversion.home_currency_code")
    if config.rounding.home_granularity <= 0:
        raise ConfigError(
            f"home_granularity must be positive, got {config.rounding.home_granularity}",
            key="rounding.home_granularity",
        )
    if config.rounding.foreign_decimals < 0:
        raise ConfigError("foreign_decimals must not be negative", key="rounding.foreign_decimals")
    if config.rounding.default_decimals < 0:
        raise ConfigError("default_decimals must not be negative", key="rounding.default_decimals")
    if config.quotes.min_spread_fraction <= 0:
        raise ConfigError(
            f"min_spread_fraction must be positive, got {config.quotes.min_spread_fraction}",
            key="quotes.min_spread_fraction",
        )
    if config.quotes.reverse_decimals < 0 or config.quotes.cross_decimals < 0:
        raise ConfigError("Quote decimals must not be negative", key="quotes")


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
