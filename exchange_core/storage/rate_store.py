"""
Currency and exchange rate storage adapters.

The resolver only reads through the RateStore protocol. Two adapters ship
with the package:
- InMemoryRateStore: plain lists, for fixtures and embedding.
- CsvRateStore: reads currencies.csv / exchange_rates.csv on every query,
  so each lookup sees the current file contents.
"""

import csv
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from exchange_core.exceptions import RateStoreError
from exchange_core.models import Currency, ExchangeRate

logger = logging.getLogger(__name__)


# CSV columns
CURRENCY_COLUMNS = ["id", "code", "name", "is_active", "rate_priority", "display_order"]
RATE_COLUMNS = ["from_currency_id", "to_currency_id", "rate", "is_active", "updated_by", "updated_at"]

_TRUE_VALUES = {"1", "true", "yes", "y", "t"}


class RateStore(Protocol):
    """Read-only view over currencies and exchange rates."""

    def find_currency(self, currency_id: int) -> Optional[Currency]: ...

    def find_currency_by_code(self, code: str, active_only: bool = True) -> Optional[Currency]: ...

    def find_active_rate(self, from_currency_id: int, to_currency_id: int) -> Optional[Decimal]: ...

    def list_active_currencies(self) -> List[Currency]: ...


def _first_available_rate(
    rates: Iterable[ExchangeRate],
    from_currency_id: int,
    to_currency_id: int,
) -> Optional[Decimal]:
    for rate in rates:
        if (
            rate.from_currency_id == from_currency_id
            and rate.to_currency_id == to_currency_id
            and rate.is_available
        ):
            return rate.rate
    return None


class InMemoryRateStore:
    """
    Rate store backed by in-process lists.

    Iteration order of currencies is insertion order, which makes
    tie-breaks in bridge selection deterministic.
    """

    def __init__(
        self,
        currencies: Iterable[Currency] = (),
        rates: Iterable[ExchangeRate] = (),
    ) -> None:
        self.currencies: List[Currency] = list(currencies)
        self.rates: List[ExchangeRate] = list(rates)

    def add_currency(self, currency: Currency) -> None:
        self.currencies.append(currency)

    def add_rate(self, rate: ExchangeRate) -> None:
        self.rates.append(rate)

    def find_currency(self, currency_id: int) -> Optional[Currency]:
        for currency in self.currencies:
            if currency.id == currency_id:
                return currency
        return None

    def find_currency_by_code(self, code: str, active_only: bool = True) -> Optional[Currency]:
        code = code.upper()
        for currency in self.currencies:
            if currency.code == code and (currency.is_active or not active_only):
                return currency
        return None

    def find_active_rate(self, from_currency_id: int, to_currency_id: int) -> Optional[Decimal]:
        return _first_available_rate(self.rates, from_currency_id, to_currency_id)

    def list_active_currencies(self) -> List[Currency]:
        return [c for c in self.currencies if c.is_active]


class CsvRateStore:
    """
    Rate store reading two CSV files.

    currencies.csv columns: id, code, name, is_active, rate_priority, display_order
    exchange_rates.csv columns: from_currency_id, to_currency_id, rate, is_active,
    updated_by, updated_at

    Files are re-read on every query; nothing is cached between calls.
    """

    def __init__(self, currencies_path: str | Path, rates_path: str | Path) -> None:
        """
        Initialize the CSV store.

        Args:
            currencies_path: Path to the currencies CSV file.
            rates_path: Path to the exchange rates CSV file.
        """
        self.currencies_path = Path(currencies_path)
        self.rates_path = Path(rates_path)

    def find_currency(self, currency_id: int) -> Optional[Currency]:
        for currency in self.read_currencies():
            if currency.id == currency_id:
                return currency
        return None

    def find_currency_by_code(self, code: str, active_only: bool = True) -> Optional[Currency]:
        code = code.upper()
        for currency in self.read_currencies():
            if currency.code == code and (currency.is_active or not active_only):
                return currency
        return None

    def find_active_rate(self, from_currency_id: int, to_currency_id: int) -> Optional[Decimal]:
        return _first_available_rate(self.read_rates(), from_currency_id, to_currency_id)

    def list_active_currencies(self) -> List[Currency]:
        return [c for c in self.read_currencies() if c.is_active]

    def read_currencies(self) -> List[Currency]:
        """
        Read all currencies from the CSV file.

        Raises:
            RateStoreError: If the file is missing or a row is malformed.
        """
        currencies = []
        for line_no, row in self._read_rows(self.currencies_path, CURRENCY_COLUMNS[:2]):
            try:
                currencies.append(Currency(
                    id=int(row["id"]),
                    code=row["code"].strip().upper(),
                    name=(row.get("name") or "").strip(),
                    is_active=_parse_bool(row.get("is_active"), default=True),
                    rate_priority=int(row.get("rate_priority") or 0),
                    display_order=int(row.get("display_order") or 0),
                ))
            except (ValueError, AttributeError) as e:
                raise RateStoreError(
                    f"Invalid currency row: {e}",
                    path=str(self.currencies_path),
                    row=line_no,
                ) from e
        return currencies

    def read_rates(self) -> List[ExchangeRate]:
        """
        Read all exchange rates from the CSV file.

        Raises:
            RateStoreError: If the file is missing or a row is malformed.
        """
        rates = []
        for line_no, row in self._read_rows(self.rates_path, RATE_COLUMNS[:3]):
            try:
                rates.append(ExchangeRate(
                    from_currency_id=int(row["from_currency_id"]),
                    to_currency_id=int(row["to_currency_id"]),
                    rate=Decimal(row["rate"].strip()),
                    is_active=_parse_bool(row.get("is_active"), default=True),
                    updated_by=(row.get("updated_by") or "System").strip(),
                    updated_at=_parse_datetime(row.get("updated_at")),
                ))
            except (ValueError, InvalidOperation, AttributeError) as e:
                raise RateStoreError(
                    f"Invalid exchange rate row: {e}",
                    path=str(self.rates_path),
                    row=line_no,
                ) from e
        return rates

    def _read_rows(self, path: Path, required: List[str]):
        if not path.exists():
            raise RateStoreError(f"Store file not found: {path}", path=str(path))

        try:
            with open(path, "r", newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f)
                missing = [col for col in required if col not in (reader.fieldnames or [])]
                if missing:
                    raise RateStoreError(
                        f"Missing columns {missing} in {path.name}",
                        path=str(path),
                    )
                rows = list(reader)
        except OSError as e:
            logger.error(f"Failed to read store file {path}: {e}")
            raise RateStoreError(f"Failed to read store file: {e}", path=str(path)) from e

        # Header is line 1
        return [(index + 2, row) for index, row in enumerate(rows)]


def write_currencies(path: str | Path, currencies: Iterable[Currency]) -> None:
    """Write currencies to a CSV file in the layout CsvRateStore reads."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CURRENCY_COLUMNS)
        writer.writeheader()
        for c in currencies:
            writer.writerow({
                "id": c.id,
                "code": c.code,
                "name": c.name,
                "is_active": "true" if c.is_active else "false",
                "rate_priority": c.rate_priority,
                "display_order": c.display_order,
            })


def write_rates(path: str | Path, rates: Iterable[ExchangeRate]) -> None:
    """Write exchange rates to a CSV file in the layout CsvRateStore reads."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=RATE_COLUMNS)
        writer.writeheader()
        for r in rates:
            writer.writerow({
                "from_currency_id": r.from_currency_id,
                "to_currency_id": r.to_currency_id,
                "rate": str(r.rate),
                "is_active": "true" if r.is_active else "false",
                "updated_by": r.updated_by,
                "updated_at": r.updated_at.isoformat() if r.updated_at else "",
            })


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value or not value.strip():
        return None
    return datetime.fromisoformat(value.strip())
