"""
CLI entry point for the courier portal pricing tools.

Provides command-line access to the parcel pricing engine: quote a single
parcel, quote every row of a CSV file, or quote an international parcel
against a per-country rate table.
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from src.pricing.models import ParcelDimensions, PricingInput, PricingValidationError
from src.pricing.pricing_engine import (
    PricingEngine,
    attach_quotes,
    format_money,
    format_weight_summary,
    rates_from_dataframe,
)
from src.utils.config_loader import load_config, load_env
from src.utils.logging_config import LogContext, configure_logging


logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Courier portal parcel pricing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m src.main quote --weight 1 --length 10 --width 10 --height 10
    python -m src.main quote -w 2.5 -l 40 -W 30 -H 25 --service Express --region Mandalay
    python -m src.main batch data/parcels.csv -o data/quotes.csv
    python -m src.main international -w 6 -l 40 -W 30 -H 20 --country Japan --rates data/rates.csv
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

    quote = subparsers.add_parser("quote", help="Quote a single parcel")
    quote.add_argument("--weight", "-w", type=float, required=True, help="Actual weight in kg")
    quote.add_argument("--length", "-l", type=float, required=True, help="Length in cm")
    quote.add_argument("--width", "-W", type=float, required=True, help="Width in cm")
    quote.add_argument("--height", "-H", type=float, required=True, help="Height in cm")
    quote.add_argument("--service", "-s", default="Standard", help="Service tier (default: Standard)")
    quote.add_argument("--region", "-r", default="Yangon", help="Destination region (default: Yangon)")

    batch = subparsers.add_parser("batch", help="Quote every parcel in a CSV file")
    batch.add_argument("input", type=Path, help="CSV with one parcel per row")
    batch.add_argument(
        "--output", "-o",
        type=Path,
        help="Path for output CSV (default: <input>_quoted.csv)",
    )

    international = subparsers.add_parser(
        "international", help="Quote an international parcel from a rate table"
    )
    international.add_argument("--weight", "-w", type=float, required=True, help="Actual weight in kg")
    international.add_argument("--length", "-l", type=float, default=0.0, help="Length in cm")
    international.add_argument("--width", "-W", type=float, default=0.0, help="Width in cm")
    international.add_argument("--height", "-H", type=float, default=0.0, help="Height in cm")
    international.add_argument("--country", "-C", required=True, help="Destination country")
    international.add_argument(
        "--rates",
        type=Path,
        required=True,
        help="CSV with country_name and base_rate_5_10kg columns",
    )

    return parser.parse_args(argv)


def run_quote(args: argparse.Namespace, engine: PricingEngine) -> int:
    """
    Quote a single parcel and print the breakdown.

    Returns:
        int: Exit code (0 for success, 1 for invalid input).
    """
    pricing_input = PricingInput(
        actual_weight_kg=args.weight,
        dimensions=ParcelDimensions(args.length, args.width, args.height),
        service_tier=args.service,
        destination_region=args.region,
    )

    try:
        result = engine.estimate(pricing_input)
    except PricingValidationError as e:
        logger.error(f"Invalid parcel: {e}")
        print(f"\n✗ Error: {e}")
        return 1

    print("\n" + "=" * 60)
    print("PARCEL QUOTE")
    print("=" * 60)
    print(f"  Service: {args.service}")
    print(f"  Region: {args.region}")
    print(f"  Volumetric weight: {result.volumetric_weight_kg:.2f} kg")
    print(f"  Chargeable weight: {result.chargeable_weight_kg:.2f} kg")
    print(f"  Estimated price: {format_money(result.estimated_price_minor_units, result.currency)}")
    print("=" * 60 + "\n")
    return 0


def run_international(args: argparse.Namespace, engine: PricingEngine) -> int:
    """
    Quote an international parcel against a rate table CSV.

    Returns:
        int: Exit code (0 for success, 1 for invalid input or a missing file).
    """
    try:
        rates = rates_from_dataframe(pd.read_csv(args.rates))
        result = engine.estimate_international(
            args.weight,
            ParcelDimensions(args.length, args.width, args.height),
            args.country,
            rates,
        )
    except FileNotFoundError:
        logger.error(f"Rates file not found: {args.rates}")
        print(f"\n✗ Error: Rates file not found: {args.rates}")
        return 1
    except PricingValidationError as e:
        logger.error(f"Invalid international quote: {e}")
        print(f"\n✗ Error: {e}")
        return 1

    print("\n" + "=" * 60)
    print("INTERNATIONAL QUOTE")
    print("=" * 60)
    print(f"  Country: {args.country}")
    print(f"  {format_weight_summary(result)}")
    print(f"  Estimated price: {format_money(result.estimated_price_minor_units, result.currency)}")
    print("=" * 60 + "\n")
    return 0


def run_batch(args: argparse.Namespace, engine: PricingEngine) -> int:
    """
    Quote every row of a CSV file and write the results next to it.

    Returns:
        int: Exit code (0 for success, non-zero for errors).
    """
    input_path: Path = args.input
    output_path: Path = args.output or input_path.with_name(f"{input_path.stem}_quoted.csv")

    logger.info(f"Input file: {input_path}")
    try:
        parcels_df = pd.read_csv(input_path)
    except FileNotFoundError:
        logger.error(f"Input file not found: {input_path}")
        print(f"\n✗ Error: Input file not found: {input_path}")
        return 1

    with LogContext(logger, input_file=input_path.name):
        try:
            quoted_df = attach_quotes(parcels_df, engine)
        except PricingValidationError as e:
            logger.error(f"Invalid input file: {e}")
            print(f"\n✗ Error: {e}")
            return 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    quoted_df.to_csv(output_path, index=False)

    failed = int(quoted_df["quote_error"].notna().sum())
    print("\n" + "=" * 60)
    print("BATCH QUOTE SUMMARY")
    print("=" * 60)
    print(f"  Total parcels: {len(quoted_df)}")
    print(f"  Quoted: {len(quoted_df) - failed}")
    print(f"  Failed: {failed}")
    print(f"\n✓ Output written: {output_path}")
    print("=" * 60 + "\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point.

    Returns:
        int: Exit code.
    """
    load_env()
    args = parse_args(argv)

    config = load_config(args.config)
    configure_logging(config.logging, verbose=args.verbose)

    try:
        engine = PricingEngine(config)
        if args.command == "quote":
            return run_quote(args, engine)
        if args.command == "international":
            return run_international(args, engine)
        return run_batch(args, engine)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 130
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        print(f"\n✗ Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
