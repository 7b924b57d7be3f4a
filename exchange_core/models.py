"""
Domain models for the exchange core.

Currencies and rates are read-only inputs owned by an external store;
quotes are derived two-sided prices.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Currency:
    """
    A tradable currency.

    Attributes:
        id: Opaque store identifier.
        code: Short uppercase symbol (e.g. "USD", "IRR", "OMR").
        is_active: Whether the currency may take part in conversions.
        rate_priority: Externally assigned ranking; lower values are
            treated as the authoritative side of a quote.
        name: Optional display name.
        display_order: Optional ordering hint for rate sheets.
    """

    id: int
    code: str
    is_active: bool = True
    rate_priority: int = 0
    name: str = ""
    display_order: int = 0


@dataclass(frozen=True)
class ExchangeRate:
    """
    Directional quote: one unit of ``from`` buys ``rate`` units of ``to``.

    A rate is available only when active and strictly positive.
    """

    from_currency_id: int
    to_currency_id: int
    rate: Decimal
    is_active: bool = True
    updated_by: str = "System"
    updated_at: datetime | None = None

    @property
    def is_available(self) -> bool:
        return self.is_active and self.rate > 0


@dataclass(frozen=True)
class Quote:
    """Two-sided price. Derived quotes always satisfy ``sell > buy``."""

    buy: Decimal
    sell: Decimal

    @property
    def spread(self) -> Decimal:
        return self.sell - self.buy

    def as_tuple(self) -> tuple[Decimal, Decimal]:
        return self.buy, self.sell
