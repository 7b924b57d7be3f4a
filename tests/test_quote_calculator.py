"""
Tests for the reverse/cross quote calculator.
"""

import logging
from decimal import Decimal

import pytest

from exchange_core.models import Quote
from exchange_core.pricing.quote_calculator import (
    RATE_SHEET_COLUMNS,
    RateCalculator,
    safe_round,
)
from exchange_core.utils.config_loader import AppConfig
from fixtures.rate_fixtures import base_quotes


@pytest.fixture
def calculator() -> RateCalculator:
    """Calculator with default precision and spread."""
    return RateCalculator()


class TestSafeRound:
    """Tests for half-away-from-zero rounding."""

    def test_half_rounds_up(self) -> None:
        """Test .5 rounds away from zero for positives."""
        assert safe_round(Decimal("2.5"), 0) == Decimal("3")

    def test_negative_half_rounds_away_from_zero(self) -> None:
        """Test .5 rounds away from zero for negatives."""
        assert safe_round(Decimal("-2.5"), 0) == Decimal("-3")

    def test_default_precision(self) -> None:
        """Test four decimals are kept by default."""
        assert safe_round(Decimal("1.23455")) == Decimal("1.2346")
        assert safe_round(Decimal("1.23454")) == Decimal("1.2345")

    def test_method_uses_configured_default(self) -> None:
        """Test the calculator method falls back to default_decimals."""
        calculator = RateCalculator(default_decimals=2)
        assert calculator.safe_round(Decimal("1.005")) == Decimal("1.01")
        assert calculator.safe_round(Decimal("1.005"), 0) == Decimal("1")


class TestReverseFromBase:
    """Tests for reverse quote derivation."""

    def test_reverse_quote(self, calculator: RateCalculator) -> None:
        """Test buy = 1/sell_to_base and sell = 1/buy_to_base."""
        quote = calculator.reverse_from_base(Decimal("59500"), Decimal("60500"))

        assert quote is not None
        assert quote.buy == Decimal("0.00001653")
        assert quote.sell == Decimal("0.00001681")
        assert quote.sell > quote.buy

    def test_equal_inputs_get_spread(self, calculator: RateCalculator) -> None:
        """Test a zero-spread input is widened by the minimum fraction."""
        quote = calculator.reverse_from_base(Decimal("4"), Decimal("4"))

        assert quote == Quote(buy=Decimal("0.25"), sell=Decimal("0.250025"))

    def test_inverted_inputs_get_spread(self, calculator: RateCalculator) -> None:
        """Test buy above sell on input still yields sell > buy."""
        quote = calculator.reverse_from_base(Decimal("5"), Decimal("4"))

        assert quote.buy == Decimal("0.25")
        assert quote.sell == Decimal("0.250025")

    @pytest.mark.parametrize(
        "buy, sell",
        [
            (Decimal("0"), Decimal("60500")),
            (Decimal("59500"), Decimal("0")),
            (Decimal("-1"), Decimal("60500")),
        ],
    )
    def test_non_positive_inputs(self, calculator: RateCalculator, buy, sell) -> None:
        """Test None for zero or negative inputs."""
        assert calculator.reverse_from_base(buy, sell) is None


class TestCrossFromBase:
    """Tests for cross quote derivation."""

    def test_cross_quote_takes_worst_case(self, calculator: RateCalculator) -> None:
        """Test buy = a.buy/b.sell and sell = a.sell/b.buy."""
        quote = calculator.cross_from_base(
            Quote(buy=Decimal("59500"), sell=Decimal("60500")),
            Quote(buy=Decimal("16400"), sell=Decimal("16600")),
        )

        assert quote.buy == Decimal("3.5843")
        assert quote.sell == Decimal("3.6890")

    def test_flat_inputs_get_spread(self, calculator: RateCalculator) -> None:
        """Test identical ratios get the minimum spread."""
        quote = calculator.cross_from_base(
            Quote(buy=Decimal("2"), sell=Decimal("2")),
            Quote(buy=Decimal("1"), sell=Decimal("1")),
        )

        assert quote.buy == Decimal("2")
        assert quote.sell == Decimal("2.0002")

    def test_spread_below_precision_widens_one_step(self, calculator: RateCalculator) -> None:
        """Test sell > buy holds even when both round to zero."""
        quote = calculator.cross_from_base(
            Quote(buy=Decimal("0.00001"), sell=Decimal("0.00001")),
            Quote(buy=Decimal("1000"), sell=Decimal("1000")),
        )

        assert quote.buy == Decimal("0")
        assert quote.sell == Decimal("0.0001")
        assert quote.sell > quote.buy

    def test_missing_quote(self, calculator: RateCalculator) -> None:
        """Test None when either side is missing."""
        quote = Quote(buy=Decimal("2"), sell=Decimal("3"))
        assert calculator.cross_from_base(None, quote) is None
        assert calculator.cross_from_base(quote, None) is None

    def test_non_positive_component(self, calculator: RateCalculator) -> None:
        """Test None when any component is not strictly positive."""
        good = Quote(buy=Decimal("2"), sell=Decimal("3"))
        assert calculator.cross_from_base(good, Quote(buy=Decimal("0"), sell=Decimal("3"))) is None
        assert calculator.cross_from_base(Quote(buy=Decimal("2"), sell=Decimal("-3")), good) is None

    def test_configured_precision(self) -> None:
        """Test cross precision and spread come from config."""
        config = AppConfig()
        config.quotes.cross_decimals = 2
        config.quotes.min_spread_fraction = Decimal("0.01")
        calculator = RateCalculator.from_config(config)

        quote = calculator.cross_from_base(
            Quote(buy=Decimal("3"), sell=Decimal("3")),
            Quote(buy=Decimal("1"), sell=Decimal("1")),
        )
        assert quote == Quote(buy=Decimal("3.00"), sell=Decimal("3.03"))


class TestRateCalculatorInit:
    """Tests for calculator construction."""

    @pytest.mark.parametrize("spread", [Decimal("0"), Decimal("-0.001")])
    def test_invalid_spread(self, spread: Decimal) -> None:
        """Test a non-positive spread is rejected."""
        with pytest.raises(ValueError):
            RateCalculator(min_spread_fraction=spread)

    def test_from_config_defaults(self) -> None:
        """Test default config values are carried over."""
        calculator = RateCalculator.from_config(AppConfig())
        assert calculator.min_spread_fraction == Decimal("0.0001")
        assert calculator.reverse_decimals == 8
        assert calculator.cross_decimals == 4


class TestBuildRateSheet:
    """Tests for rate sheet derivation."""

    def test_sheet_rows(self, calculator: RateCalculator) -> None:
        """Test one reverse quote per currency and one cross per ordered pair."""
        sheet = calculator.build_rate_sheet("IRR", base_quotes())

        assert list(sheet.columns) == RATE_SHEET_COLUMNS
        assert len(sheet) == 4
        assert sorted(sheet[sheet["kind"] == "reverse"]["to_code"]) == ["OMR", "USD"]
        pairs = set(zip(sheet[sheet["kind"] == "cross"]["from_code"], sheet[sheet["kind"] == "cross"]["to_code"]))
        assert pairs == {("USD", "OMR"), ("OMR", "USD")}

    def test_every_quote_has_positive_spread(self, calculator: RateCalculator) -> None:
        """Test sell > buy on every derived row."""
        sheet = calculator.build_rate_sheet("IRR", base_quotes())

        for _, row in sheet.iterrows():
            assert row["sell"] > row["buy"]

    def test_base_currency_is_excluded(self, calculator: RateCalculator) -> None:
        """Test a quote for the base itself is ignored."""
        quotes = base_quotes()
        quotes["irr"] = Quote(buy=Decimal("1"), sell=Decimal("1"))

        sheet = calculator.build_rate_sheet("IRR", quotes)
        assert "IRR" not in set(sheet["to_code"])
        assert len(sheet) == 4

    def test_invalid_quotes_are_skipped(self, calculator: RateCalculator, caplog) -> None:
        """Test invalid quotes are logged and left out."""
        quotes = base_quotes()
        quotes["BAD"] = Quote(buy=Decimal("0"), sell=Decimal("10"))

        with caplog.at_level(logging.WARNING):
            sheet = calculator.build_rate_sheet("IRR", quotes)

        assert len(sheet) == 4
        assert "BAD" not in set(sheet["to_code"]) | set(sheet["from_code"])
        assert "Skipping reverse quote IRR->BAD" in caplog.text

    def test_empty_quotes(self, calculator: RateCalculator) -> None:
        """Test an empty sheet keeps its columns."""
        sheet = calculator.build_rate_sheet("IRR", {})

        assert sheet.empty
        assert list(sheet.columns) == RATE_SHEET_COLUMNS


class TestExtremeMagnitudes:
    """Tests for quotes whose rounded values exceed the default decimal precision."""

    def test_tiny_reverse_inputs(self, calculator: RateCalculator) -> None:
        """Test a reverse quote of 1e21 with 8 decimals is derived, not rejected."""
        quote = calculator.reverse_from_base(Decimal("1e-21"), Decimal("1e-21"))

        assert quote.buy == Decimal("1e21")
        assert quote.sell == Decimal("1.0001e21")
        assert quote.sell > quote.buy

    def test_large_cross_ratio(self, calculator: RateCalculator) -> None:
        """Test a cross ratio of 1e25 keeps four decimals and its spread."""
        quote = calculator.cross_from_base(
            Quote(buy=Decimal("1e20"), sell=Decimal("1e20")),
            Quote(buy=Decimal("1e-5"), sell=Decimal("1e-5")),
        )

        assert quote.buy == Decimal("1e25")
        assert quote.sell == Decimal("1.0001e25")

    def test_step_widening_on_large_buy(self) -> None:
        """Test the one-step widening when buy needs more than 28 digits at four decimals."""
        calculator = RateCalculator(min_spread_fraction=Decimal("1e-40"))
        buy = Decimal("123456789012345678901234567")

        quote = calculator.cross_from_base(Quote(buy=buy, sell=buy), Quote(buy=Decimal("1"), sell=Decimal("1")))

        assert quote.buy == buy
        assert quote.sell == Decimal("123456789012345678901234567.0001")

    def test_safe_round_beyond_default_precision(self) -> None:
        """Test safe_round on a 31-digit value."""
        value = Decimal("1234567890123456789012345678901.23455")
        assert safe_round(value) == Decimal("1234567890123456789012345678901.2346")

    def test_float_inputs_use_their_repr(self, calculator: RateCalculator) -> None:
        """Test floats are read as their shortest decimal form."""
        quote = calculator.reverse_from_base(4.0, 4.0)
        assert quote == Quote(buy=Decimal("0.25"), sell=Decimal("0.250025"))
        assert safe_round(0.29, 2) == Decimal("0.29")
