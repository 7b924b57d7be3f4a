"""
Conversion Service for the exchange core.

Wires configuration, the rate store, the resolver and the quote calculator
together for callers that work with currency codes and DataFrames:
- Single conversions by currency code
- Batch conversion of a DataFrame of amounts
- Rate sheet derivation from base quotes
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

from exchange_core.exceptions import ValidationError
from exchange_core.models import Quote
from exchange_core.pricing.quote_calculator import RateCalculator
from exchange_core.pricing.rate_resolver import ConversionResult, RateResolver
from exchange_core.pricing.rounding import RoundingPolicy
from exchange_core.pricing.status_codes import ConversionStatus
from exchange_core.storage.rate_store import CsvRateStore, RateStore
from exchange_core.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Result of a batch conversion."""

    results_df: pd.DataFrame
    stats: dict[str, int] = field(default_factory=dict)

    @property
    def all_converted(self) -> bool:
        return self.stats.get("failed", 0) == 0


def parse_amount(value: Any) -> Decimal:
    """
    Parse a user-supplied amount into a Decimal.

    Raises:
        ValidationError: If the value is not a finite number.
    """
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}", details={"value": str(value)}) from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}", details={"value": str(value)})
    return amount


class ConversionService:
    """
    Service for converting amounts and deriving rate sheets.

    Attributes:
        app_config: Application configuration.
        store: Currency/rate store the resolver reads from.
        rounding: Settlement rounding policy.
        resolver: Rate resolver.
        calculator: Reverse/cross quote calculator.
    """

    def __init__(self, app_config: AppConfig, store: RateStore | None = None):
        """
        Initialize conversion service.

        Args:
            app_config: Application configuration.
            store: Rate store. Defaults to the CSV files named in config paths.
        """
        self.app_config = app_config
        self.store = store or CsvRateStore(
            app_config.paths.currencies_path,
            app_config.paths.rates_path,
        )
        self.rounding = RoundingPolicy.from_config(app_config)
        self.resolver = RateResolver(
            self.store,
            self.rounding,
            bridge_preference=app_config.conversion.bridge_preference,
        )
        self.calculator = RateCalculator.from_config(app_config)
        self.logger = logging.getLogger(f"{__name__}.ConversionService")

    def convert_codes(self, amount: Any, from_code: str, to_code: str) -> ConversionResult:
        """
        Convert an amount between two currencies given by code.

        Inactive currencies still resolve by code, matching lookups by id.

        Args:
            amount: Amount in the source currency.
            from_code: Source currency code.
            to_code: Target currency code.

        Returns:
            ConversionResult for the conversion.
        """
        amount = parse_amount(amount)
        from_currency = self.store.find_currency_by_code(from_code, active_only=False)
        to_currency = self.store.find_currency_by_code(to_code, active_only=False)

        if from_currency is None or to_currency is None:
            missing = [
                code.upper()
                for code, currency in ((from_code, from_currency), (to_code, to_currency))
                if currency is None
            ]
            return ConversionResult(
                status=ConversionStatus.UNRESOLVED_CURRENCY,
                reasons=[f"Currency not found: {code}" for code in missing],
            )

        return self.resolver.convert_detailed(amount, from_currency.id, to_currency.id)

    def convert_batch(
        self,
        df: pd.DataFrame,
        amount_column: str = "amount",
        from_column: str = "from_code",
        to_column: str = "to_code",
        output_column: str = "converted_amount",
    ) -> BatchResult:
        """
        Convert every row of a DataFrame.

        Adds output_column, conversion_status and bridge_code columns.
        Rows with a missing or unparseable amount are marked ERROR.

        Args:
            df: DataFrame with amount and currency code columns.
            amount_column: Column holding amounts.
            from_column: Column holding source currency codes.
            to_column: Column holding target currency codes.
            output_column: Column for converted amounts.

        Returns:
            BatchResult with the converted DataFrame and status counts.
        """
        df = df.copy()
        self.logger.info(f"Converting {len(df)} rows")
        result_columns = [output_column, "conversion_status", "bridge_code"]

        def convert_row(row: pd.Series) -> pd.Series:
            raw_amount = row.get(amount_column)
            if raw_amount is None or pd.isna(raw_amount):
                return pd.Series([None, "ERROR", None], index=result_columns)
            try:
                result = self.convert_codes(raw_amount, str(row[from_column]), str(row[to_column]))
            except ValidationError as e:
                self.logger.warning(f"Skipping row {row.name}: {e.message}")
                return pd.Series([None, "ERROR", None], index=result_columns)

            amount = result.amount if result.is_success else None
            return pd.Series([amount, result.status.value, result.bridge_code], index=result_columns)

        if df.empty:
            for column in result_columns:
                df[column] = pd.Series(dtype=object)
        else:
            df[result_columns] = df.apply(convert_row, axis=1)

        stats = self._calculate_stats(df)
        self.logger.info(
            f"Batch conversion complete: {stats['total']} rows, "
            f"{stats['converted']} converted, {stats['failed']} failed"
        )
        return BatchResult(results_df=df, stats=stats)

    def derive_rate_sheet(self, base_code: str, quotes_df: pd.DataFrame) -> pd.DataFrame:
        """
        Derive reverse and cross quotes from a DataFrame of base quotes.

        Args:
            base_code: Code of the shared base currency.
            quotes_df: DataFrame with code, buy and sell columns; buy/sell
                are base units per currency unit.

        Returns:
            pd.DataFrame: Rate sheet (see RateCalculator.build_rate_sheet).

        Raises:
            ValidationError: If required columns are missing.
        """
        missing = [col for col in ("code", "buy", "sell") if col not in quotes_df.columns]
        if missing:
            raise ValidationError(
                f"Quotes are missing columns: {missing}",
                details={"missing_columns": missing},
            )

        quotes = {}
        for _, row in quotes_df.iterrows():
            code = str(row["code"]).strip().upper()
            try:
                quotes[code] = Quote(buy=parse_amount(row["buy"]), sell=parse_amount(row["sell"]))
            except ValidationError as e:
                self.logger.warning(f"Skipping quote for {code}: {e.message}")

        return self.calculator.build_rate_sheet(base_code, quotes)

    def get_conversion_summary(
        self,
        amount: Any,
        from_code: str,
        to_code: str,
        result: ConversionResult | None = None,
    ) -> str:
        """
        Get a human-readable summary of a conversion.

        Args:
            amount: Amount in the source currency.
            from_code: Source currency code.
            to_code: Target currency code.
            result: Result already computed for these arguments; when
                omitted the conversion is run here.

        Returns:
            str: Formatted conversion breakdown.
        """
        if result is None:
            result = self.convert_codes(amount, from_code, to_code)
        from_code = from_code.upper()
        to_code = to_code.upper()
        source = f"{from_code} {self.rounding.format_amount(parse_amount(amount), from_code)}"

        if not result.is_success:
            return f"{source} -> {to_code}: {result.status.value} ({'; '.join(result.reasons)})"

        target = f"{to_code} {self.rounding.format_amount(result.amount, to_code)}"
        if result.bridge_code:
            intermediate = self.rounding.format_amount(result.intermediate_amount, result.bridge_code)
            return f"{source} -> {result.bridge_code} {intermediate} -> {target}"
        return f"{source} -> {target}"

    def _calculate_stats(self, df: pd.DataFrame) -> dict[str, int]:
        """Calculate status counts from the converted DataFrame."""
        stats = {"total": len(df)}
        status_counts = df["conversion_status"].value_counts()

        for status in ConversionStatus:
            stats[status.value.lower()] = int(status_counts.get(status.value, 0))
        stats["error"] = int(status_counts.get("ERROR", 0))

        stats["converted"] = (
            stats["ok"] + stats["identity"] + stats["zero_amount"]
        )
        stats["failed"] = stats["total"] - stats["converted"]
        return stats
