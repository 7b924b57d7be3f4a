"""
Tests for configuration loading and logging setup.
"""

import json
import logging
from decimal import Decimal
from pathlib import Path

import pytest

from exchange_core.exceptions import ConfigError
from exchange_core.utils.config_loader import (
    AppConfig,
    LoggingConfig,
    load_config,
    load_env,
    validate_config,
)
from exchange_core.utils.logging_config import (
    JSONFormatter,
    resolve_log_file,
    setup_logging,
    setup_logging_from_config,
)

ENV_VARS = ["EXCHANGE_HOME_CURRENCY", "EXCHANGE_BRIDGE_PREFERENCE", "LOG_LEVEL", "LOG_FORMAT"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove override variables so tests see only the file contents."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers after logging setup tests."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test defaults when the config file does not exist."""
        config = load_config(tmp_path / "missing.yaml")

        assert config.conversion.home_currency_code == "IRR"
        assert config.conversion.bridge_preference == ["OMR", "IRR"]
        assert config.rounding.home_granularity == 1
        assert config.quotes.min_spread_fraction == Decimal("0.0001")

    def test_repository_config_matches_defaults(self) -> None:
        """Test the shipped config file parses to the default values."""
        config_file = Path(__file__).resolve().parent.parent / "config" / "config.yaml"
        config = load_config(config_file)

        defaults = AppConfig()
        assert config.conversion == defaults.conversion
        assert config.rounding == defaults.rounding
        assert config.quotes == defaults.quotes

    def test_values_from_yaml(self, tmp_path: Path) -> None:
        """Test sections are parsed from YAML."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            """
paths:
  data_dir: /srv/exchange
conversion:
  home_currency_code: irr
  bridge_preference: [usd, omr]
rounding:
  home_granularity: 1000
  foreign_decimals: 3
quotes:
  min_spread_fraction: 0.0005
  cross_decimals: 6
logging:
  level: DEBUG
  format: json
  log_file: logs/exchange.log
""",
            encoding="utf-8",
        )

        config = load_config(config_file)

        assert config.paths.rates_path == Path("/srv/exchange") / "exchange_rates.csv"
        assert config.conversion.home_currency_code == "IRR"
        assert config.conversion.bridge_preference == ["USD", "OMR"]
        assert config.rounding.home_granularity == 1000
        assert config.rounding.foreign_decimals == 3
        assert config.quotes.min_spread_fraction == Decimal("0.0005")
        assert config.quotes.cross_decimals == 6
        assert config.quotes.reverse_decimals == 8
        assert config.logging.format == "json"
        assert config.logging.log_file == "logs/exchange.log"

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test an empty YAML file yields defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("", encoding="utf-8")

        assert load_config(config_file) == AppConfig()

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment variables override file values."""
        monkeypatch.setenv("EXCHANGE_HOME_CURRENCY", "omr")
        monkeypatch.setenv("EXCHANGE_BRIDGE_PREFERENCE", "usd, eur ,")
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("LOG_FORMAT", "JSON")

        config = load_config(tmp_path / "missing.yaml")

        assert config.conversion.home_currency_code == "OMR"
        assert config.conversion.bridge_preference == ["USD", "EUR"]
        assert config.logging.level == "WARNING"
        assert config.logging.format == "json"

    def test_invalid_granularity(self, tmp_path: Path) -> None:
        """Test a non-positive granularity is rejected."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("rounding:\n  home_granularity: 0\n", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            load_config(config_file)
        assert exc_info.value.details["key"] == "rounding.home_granularity"

    def test_invalid_spread_value(self, tmp_path: Path) -> None:
        """Test a non-numeric spread is rejected."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("quotes:\n  min_spread_fraction: wide\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="min_spread_fraction"):
            load_config(config_file)


class TestValidateConfig:
    """Tests for validate_config."""

    def test_defaults_are_valid(self) -> None:
        """Test the default config passes validation."""
        validate_config(AppConfig())

    def test_empty_home_currency(self) -> None:
        """Test an empty home code is rejected."""
        config = AppConfig()
        config.conversion.home_currency_code = ""
        with pytest.raises(ConfigError):
            validate_config(config)

    def test_negative_decimals(self) -> None:
        """Test negative decimals are rejected."""
        config = AppConfig()
        config.rounding.foreign_decimals = -1
        with pytest.raises(ConfigError):
            validate_config(config)

    def test_zero_spread(self) -> None:
        """Test a zero spread is rejected."""
        config = AppConfig()
        config.quotes.min_spread_fraction = Decimal("0")
        with pytest.raises(ConfigError) as exc_info:
            validate_config(config)
        assert exc_info.value.to_dict()["error"] == "CONFIGURATION_ERROR"


class TestLoadEnv:
    """Tests for load_env."""

    def test_loads_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test variables from a .env file reach the config."""
        env_file = tmp_path / ".env"
        env_file.write_text("EXCHANGE_HOME_CURRENCY=AED\n", encoding="utf-8")
        # Registers the variable with monkeypatch so the value loaded below is removed afterwards
        monkeypatch.setenv("EXCHANGE_HOME_CURRENCY", "")
        monkeypatch.delenv("EXCHANGE_HOME_CURRENCY")

        load_env(env_file)
        config = load_config(tmp_path / "missing.yaml")

        assert config.conversion.home_currency_code == "AED"

    def test_missing_env_file(self, tmp_path: Path) -> None:
        """Test a missing .env file is ignored."""
        load_env(tmp_path / ".env")


class TestLoggingSetup:
    """Tests for logging configuration."""

    def test_text_format_stdout_only(self, restore_root_logger: logging.Logger) -> None:
        """Test text logging without a file installs one stdout handler."""
        setup_logging(level="DEBUG", log_format="text")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert not isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_falls_back_to_info(self, restore_root_logger: logging.Logger) -> None:
        """Test an unknown level name configures INFO."""
        setup_logging(level="chatty")
        assert restore_root_logger.level == logging.INFO

    def test_default_log_file_under_logs_dir(
        self,
        tmp_path: Path,
        restore_root_logger: logging.Logger,
    ) -> None:
        """Test the log file is created under paths.logs_dir when none is named."""
        config = AppConfig()
        config.paths.logs_dir = str(tmp_path / "logs")

        setup_logging_from_config(config)
        logging.getLogger("exchange_core.test").info("rates loaded")
        for handler in restore_root_logger.handlers:
            handler.flush()

        log_file = tmp_path / "logs" / "exchange_core.log"
        assert resolve_log_file(config) == log_file
        assert log_file.exists()
        assert "rates loaded" in log_file.read_text(encoding="utf-8")

    def test_explicit_log_file_wins(self, tmp_path: Path) -> None:
        """Test logging.log_file overrides the logs_dir default."""
        config = AppConfig()
        config.paths.logs_dir = str(tmp_path / "logs")
        config.logging = LoggingConfig(log_file=str(tmp_path / "custom.log"))

        assert resolve_log_file(config) == tmp_path / "custom.log"

    def test_json_format_with_file(self, tmp_path: Path, restore_root_logger: logging.Logger) -> None:
        """Test JSON logs are written to the rotating file."""
        log_file = tmp_path / "logs" / "exchange.log"
        config = AppConfig()
        config.logging = LoggingConfig(level="INFO", format="json", log_file=str(log_file))
        setup_logging_from_config(config)

        logging.getLogger("exchange_core.test").info("converted", extra={"extra_fields": {"pair": "USD/IRR"}})
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert len(restore_root_logger.handlers) == 2
        records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert records[-1]["message"] == "converted"
        assert records[-1]["level"] == "INFO"
        assert records[-1]["logger"] == "exchange_core.test"
        assert records[-1]["pair"] == "USD/IRR"
