"""
Storage modules for currency and exchange rate lookups.
"""

from exchange_core.storage.rate_store import (
    CsvRateStore,
    InMemoryRateStore,
    RateStore,
    write_currencies,
    write_rates,
)

__all__ = [
    "RateStore",
    "InMemoryRateStore",
    "CsvRateStore",
    "write_currencies",
    "write_rates",
]
