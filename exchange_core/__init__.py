"""
Exchange core.

Rate resolution and quote derivation for a currency-exchange back office.
"""

from exchange_core.models import Currency, ExchangeRate, Quote
from exchange_core.pricing.quote_calculator import RateCalculator, safe_round
from exchange_core.pricing.rate_resolver import ConversionResult, RateResolver
from exchange_core.pricing.rounding import RoundingPolicy

__version__ = "0.1.0"

__all__ = [
    "Currency",
    "ExchangeRate",
    "Quote",
    "RateResolver",
    "ConversionResult",
    "RateCalculator",
    "RoundingPolicy",
    "safe_round",
]
