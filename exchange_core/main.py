"""
CLI entry point for the exchange core.

Provides command-line access to conversions and quote derivation:
    convert  Convert an amount between two currency codes
    reverse  Derive a reverse quote from a quote against the base
    cross    Derive a cross quote from two quotes against the base
    sheet    Derive a full rate sheet from a CSV of base quotes
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from exchange_core.exceptions import ExchangeCoreError
from exchange_core.models import Quote
from exchange_core.services.conversion_service import ConversionService, parse_amount
from exchange_core.utils.config_loader import AppConfig, load_config, load_env
from exchange_core.utils.logging_config import setup_logging_from_config

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list; defaults to sys.argv.

    Returns:
        argparse.Namespace: Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Exchange rate conversion and quote derivation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m exchange_core.main convert 100 USD IRR
    python -m exchange_core.main reverse 59500 60500
    python -m exchange_core.main cross 59500 60500 16400 16600
    python -m exchange_core.main sheet IRR data/base_quotes.csv -o data/rate_sheet.csv
        """,
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    convert_parser = subparsers.add_parser("convert", help="Convert an amount")
    convert_parser.add_argument("amount", help="Amount in the source currency")
    convert_parser.add_argument("from_code", help="Source currency code")
    convert_parser.add_argument("to_code", help="Target currency code")

    reverse_parser = subparsers.add_parser("reverse", help="Derive base->X from X->base")
    reverse_parser.add_argument("buy", help="Buy price (base units per currency unit)")
    reverse_parser.add_argument("sell", help="Sell price (base units per currency unit)")

    cross_parser = subparsers.add_parser("cross", help="Derive A->B from A->base and B->base")
    cross_parser.add_argument("a_buy")
    cross_parser.add_argument("a_sell")
    cross_parser.add_argument("b_buy")
    cross_parser.add_argument("b_sell")

    sheet_parser = subparsers.add_parser("sheet", help="Derive a full rate sheet")
    sheet_parser.add_argument("base_code", help="Base currency code")
    sheet_parser.add_argument("quotes", type=Path, help="CSV with code,buy,sell columns")
    sheet_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Write the sheet to this CSV instead of printing it",
    )

    return parser.parse_args(argv)


def run_command(args: argparse.Namespace, config: AppConfig) -> int:
    """
    Run a parsed command.

    Args:
        args: Parsed command line arguments.
        config: Loaded configuration.

    Returns:
        int: Exit code (0 for success, 1 when no result could be produced).
    """
    service = ConversionService(config)

    if args.command == "convert":
        result = service.convert_codes(args.amount, args.from_code, args.to_code)
        print(service.get_conversion_summary(args.amount, args.from_code, args.to_code, result=result))
        return 0 if result.is_success else 1

    if args.command == "reverse":
        quote = service.calculator.reverse_from_base(parse_amount(args.buy), parse_amount(args.sell))
        return _print_quote(quote)

    if args.command == "cross":
        a_quote = Quote(buy=parse_amount(args.a_buy), sell=parse_amount(args.a_sell))
        b_quote = Quote(buy=parse_amount(args.b_buy), sell=parse_amount(args.b_sell))
        return _print_quote(service.calculator.cross_from_base(a_quote, b_quote))

    if args.command == "sheet":
        if not args.quotes.exists():
            print(f"\n✗ Error: Quotes file not found: {args.quotes}")
            return 1
        quotes_df = pd.read_csv(args.quotes, dtype=str)
        sheet = service.derive_rate_sheet(args.base_code, quotes_df)
        if sheet.empty:
            print("\n✗ No quotes could be derived")
            return 1
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            sheet.to_csv(args.output, index=False)
            print(f"\n✓ Rate sheet written: {args.output} ({len(sheet)} quotes)")
        else:
            print(sheet.to_string(index=False))
        return 0

    return 1


def _print_quote(quote: Optional[Quote]) -> int:
    if quote is None:
        print("\n✗ Quote inputs must all be positive")
        return 1
    print(f"buy={quote.buy} sell={quote.sell}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        int: Exit code.
    """
    load_env()
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ExchangeCoreError as e:
        print(f"\n✗ Configuration error: {e.message}")
        return 1

    if args.verbose:
        config.logging.level = "DEBUG"
    setup_logging_from_config(config)

    try:
        return run_command(args, config)
    except ExchangeCoreError as e:
        logger.error(f"{e.error_code}: {e.message}")
        print(f"\n✗ Error: {e.message}")
        return 1
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
