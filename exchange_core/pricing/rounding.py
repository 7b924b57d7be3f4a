"""
Settlement rounding policy.

Maps a currency code to its settlement precision:
- Home currency (IRR by default): truncated toward zero to a whole-unit
  granularity, so no fractional units persist.
- Every other currency: truncated to a fixed number of fractional digits.

Also hosts the display formatter and the raw-rate conversion helper used
where a rate is already known and no resolver lookup is needed.
"""

import logging
from decimal import ROUND_DOWN, Context, Decimal, localcontext
from typing import Any

from exchange_core.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)


def to_decimal(value: Any) -> Decimal:
    """Convert to Decimal; floats go through str() so 0.1 stays 0.1."""
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def widen_precision(ctx: Context, value: Decimal, decimals: int) -> None:
    """Raise ctx.prec so value fits with ``decimals`` fractional digits."""
    ctx.prec = max(ctx.prec, value.adjusted() + decimals + 2)


def quantize(value: Any, decimals: int, rounding: str = ROUND_DOWN) -> Decimal:
    """
    Quantize to a fixed number of decimal places.

    Decimal.quantize signals InvalidOperation when the result needs more
    digits than the context precision (28 by default), so the precision is
    widened to fit very large or very finely quantized values.

    Args:
        value: Value to quantize.
        decimals: Number of decimal places.
        rounding: decimal rounding mode.

    Returns:
        Decimal: Quantized value.
    """
    value = to_decimal(value)
    with localcontext() as ctx:
        widen_precision(ctx, value, decimals)
        return value.quantize(Decimal(1).scaleb(-decimals), rounding=rounding)


class RoundingPolicy:
    """
    Truncation policy keyed by currency code.

    Attributes:
        home_currency_code: Code of the high-denomination home currency.
        home_granularity: Integer step home amounts are truncated to.
        foreign_decimals: Fractional digits kept for every other currency.
    """

    def __init__(
        self,
        home_currency_code: str = "IRR",
        home_granularity: int = 1,
        foreign_decimals: int = 2,
    ) -> None:
        if home_granularity <= 0:
            raise ValueError(f"Invalid home granularity: {home_granularity}. Must be positive.")
        if foreign_decimals < 0:
            raise ValueError(f"Invalid foreign decimals: {foreign_decimals}. Must not be negative.")

        self.home_currency_code = home_currency_code.upper()
        self.home_granularity = Decimal(home_granularity)
        self.foreign_decimals = foreign_decimals

    @classmethod
    def from_config(cls, config: AppConfig) -> "RoundingPolicy":
        """Build the policy from the ``conversion`` and ``rounding`` config sections."""
        return cls(
            home_currency_code=config.conversion.home_currency_code,
            home_granularity=config.rounding.home_granularity,
            foreign_decimals=config.rounding.foreign_decimals,
        )

    def is_home_currency(self, currency_code: str | None) -> bool:
        return currency_code is not None and currency_code.upper() == self.home_currency_code

    def apply(self, value: Decimal, currency_code: str | None = None) -> Decimal:
        """
        Truncate a value to the settlement precision of a currency.

        Args:
            value: Amount to truncate.
            currency_code: Target currency code. None selects the
                non-home policy.

        Returns:
            Decimal: Truncated amount.
        """
        value = to_decimal(value)

        if self.is_home_currency(currency_code):
            with localcontext() as ctx:
                widen_precision(ctx, value, 0)
                # Decimal floor division truncates toward zero
                steps = value // self.home_granularity
                return steps * self.home_granularity

        return quantize(value, self.foreign_decimals, ROUND_DOWN)

    __call__ = apply

    def convert_by_direction(
        self,
        amount: Decimal,
        rate: Decimal,
        from_code: str,
        to_code: str | None = None,
    ) -> Decimal:
        """
        Convert with a known raw rate, choosing the operation by source currency.

        The rate is quoted as home units per foreign unit, so a foreign source
        is multiplied and a home source is divided.

        Args:
            amount: Amount in the source currency.
            rate: Raw rate (home currency units per foreign unit).
            from_code: Source currency code.
            to_code: Target currency code; None assumes the non-home policy.

        Returns:
            Decimal: Converted and truncated amount, or 0 when the rate is
            not strictly positive.
        """
        amount = to_decimal(amount)
        rate = to_decimal(rate)

        if rate <= 0:
            logger.warning(f"Ignoring non-positive rate {rate} for {from_code}->{to_code}")
            return Decimal(0)

        if self.is_home_currency(from_code):
            converted = amount / rate
        else:
            converted = amount * rate

        return self.apply(converted, to_code)

    def format_amount(self, value: Decimal | None, currency_code: str | None = None) -> str:
        """
        Format an amount with thousand separators for display.

        Home currency amounts and whole numbers show no decimals; other
        amounts show up to 8 decimals with trailing zeros removed.

        Args:
            value: Amount to format. None yields an empty string.
            currency_code: Currency code of the amount.

        Returns:
            str: Formatted amount.
        """
        if value is None:
            return ""

        value = to_decimal(value)
        if self.is_home_currency(currency_code) or value % 1 == 0:
            return f"{value:,.0f}"

        formatted = f"{value:,.8f}"
        return formatted.rstrip("0").rstrip(".")
