"""
Pricing module.

Handles rate path resolution, amount conversion, settlement rounding and
reverse/cross quote derivation.
"""

from exchange_core.pricing.quote_calculator import RateCalculator, safe_round
from exchange_core.pricing.rate_resolver import ConversionResult, RateResolver
from exchange_core.pricing.rounding import RoundingPolicy
from exchange_core.pricing.status_codes import ConversionPath, ConversionStatus

__all__ = [
    "RateResolver",
    "ConversionResult",
    "RateCalculator",
    "RoundingPolicy",
    "ConversionStatus",
    "ConversionPath",
    "safe_round",
]
