"""
Reverse and cross quote derivation.

Derives two-sided quotes for pairs with no maintained market from quotes
against a shared base currency:

Reverse: base->X from X->base
    buy  = 1 / sell_to_base
    sell = 1 / buy_to_base

Cross: A->B from A->base and B->base (worst case from each side)
    buy  = a.buy  / b.sell
    sell = a.sell / b.buy

A spread guard forces sell above buy by a minimum fraction.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Mapping, Optional

import pandas as pd

from exchange_core.models import Quote
from exchange_core.pricing.rounding import quantize, to_decimal, widen_precision
from exchange_core.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)

RATE_SHEET_COLUMNS = ["from_code", "to_code", "buy", "sell", "kind"]


def safe_round(value: Decimal, decimals: int = 4) -> Decimal:
    """
    Round half away from zero.

    Args:
        value: Value to round.
        decimals: Number of decimal places.

    Returns:
        Decimal: Rounded value.
    """
    return quantize(value, decimals, ROUND_HALF_UP)


class RateCalculator:
    """
    Calculator for derived reverse and cross quotes.

    Attributes:
        min_spread_fraction: Minimum relative spread enforced on sell.
        reverse_decimals: Rounding precision for reverse quotes.
        cross_decimals: Rounding precision for cross quotes.
        default_decimals: Default precision for safe_round.
    """

    def __init__(
        self,
        min_spread_fraction: Decimal = Decimal("0.0001"),
        reverse_decimals: int = 8,
        cross_decimals: int = 4,
        default_decimals: int = 4,
    ) -> None:
        min_spread_fraction = Decimal(str(min_spread_fraction))
        if min_spread_fraction <= 0:
            raise ValueError(f"Invalid minimum spread: {min_spread_fraction}. Must be positive.")

        self.min_spread_fraction = min_spread_fraction
        self.reverse_decimals = reverse_decimals
        self.cross_decimals = cross_decimals
        self.default_decimals = default_decimals

    @classmethod
    def from_config(cls, config: AppConfig) -> "RateCalculator":
        return cls(
            min_spread_fraction=config.quotes.min_spread_fraction,
            reverse_decimals=config.quotes.reverse_decimals,
            cross_decimals=config.quotes.cross_decimals,
            default_decimals=config.rounding.default_decimals,
        )

    def safe_round(self, value: Decimal, decimals: int | None = None) -> Decimal:
        """Round half away from zero, defaulting to the configured precision."""
        if decimals is None:
            decimals = self.default_decimals
        return safe_round(value, decimals)

    def reverse_from_base(self, buy_to_base: Decimal, sell_to_base: Decimal) -> Optional[Quote]:
        """
        Derive the base->currency quote from a currency->base quote.

        Args:
            buy_to_base: Buy price in base units per currency unit.
            sell_to_base: Sell price in base units per currency unit.

        Returns:
            Quote in currency units per base unit, or None if either input
            is not strictly positive.
        """
        buy_to_base = to_decimal(buy_to_base)
        sell_to_base = to_decimal(sell_to_base)
        if buy_to_base <= 0 or sell_to_base <= 0:
            return None

        buy = safe_round(Decimal(1) / sell_to_base, self.reverse_decimals)
        sell = safe_round(Decimal(1) / buy_to_base, self.reverse_decimals)
        sell = self._enforce_spread(buy, sell, self.reverse_decimals)
        return Quote(buy=buy, sell=sell)

    def cross_from_base(
        self,
        a_to_base: Optional[Quote],
        b_to_base: Optional[Quote],
    ) -> Optional[Quote]:
        """
        Derive an A->B quote from A->base and B->base quotes.

        Args:
            a_to_base: Quote of currency A against the base.
            b_to_base: Quote of currency B against the base.

        Returns:
            Cross quote, or None if either quote is missing or has a
            component that is not strictly positive.
        """
        if a_to_base is None or b_to_base is None:
            return None

        a_buy, a_sell = (to_decimal(v) for v in a_to_base.as_tuple())
        b_buy, b_sell = (to_decimal(v) for v in b_to_base.as_tuple())
        if a_buy <= 0 or a_sell <= 0 or b_buy <= 0 or b_sell <= 0:
            return None

        buy = safe_round(a_buy / b_sell, self.cross_decimals)
        sell = safe_round(a_sell / b_buy, self.cross_decimals)
        sell = self._enforce_spread(buy, sell, self.cross_decimals)
        return Quote(buy=buy, sell=sell)

    def build_rate_sheet(self, base_code: str, quotes_to_base: Mapping[str, Quote]) -> pd.DataFrame:
        """
        Derive a full rate sheet from quotes against a base currency.

        Produces the reverse quote base->X for every quoted currency and the
        cross quote X->Y for every ordered pair of quoted currencies.
        Derivations that fail are skipped.

        Args:
            base_code: Code of the shared base currency.
            quotes_to_base: Mapping of currency code -> quote against base.

        Returns:
            pd.DataFrame: Columns from_code, to_code, buy, sell, kind.
        """
        base_code = base_code.upper()
        quotes = {
            code.upper(): quote
            for code, quote in quotes_to_base.items()
            if code.upper() != base_code
        }

        rows = []
        for code, quote in quotes.items():
            reverse = self.reverse_from_base(quote.buy, quote.sell)
            if reverse is None:
                logger.warning(f"Skipping reverse quote {base_code}->{code}: invalid quote {quote}")
                continue
            rows.append({
                "from_code": base_code,
                "to_code": code,
                "buy": reverse.buy,
                "sell": reverse.sell,
                "kind": "reverse",
            })

        for a_code, a_quote in quotes.items():
            for b_code, b_quote in quotes.items():
                if a_code == b_code:
                    continue
                cross = self.cross_from_base(a_quote, b_quote)
                if cross is None:
                    logger.warning(f"Skipping cross quote {a_code}->{b_code}: invalid input quote")
                    continue
                rows.append({
                    "from_code": a_code,
                    "to_code": b_code,
                    "buy": cross.buy,
                    "sell": cross.sell,
                    "kind": "cross",
                })

        logger.info(f"Derived {len(rows)} quotes against base {base_code}")
        return pd.DataFrame(rows, columns=RATE_SHEET_COLUMNS)

    def _enforce_spread(self, buy: Decimal, sell: Decimal, decimals: int) -> Decimal:
        if sell > buy:
            return sell
        factor = Decimal(1) + self.min_spread_fraction
        with localcontext() as ctx:
            # Room for the exact product buy * factor
            widen_precision(ctx, buy, decimals + len(factor.as_tuple().digits))
            sell = safe_round(buy * factor, decimals)
            if sell <= buy:
                # Spread smaller than the rounding step; widen by one step
                sell = buy + Decimal(1).scaleb(-decimals)
        return sell
