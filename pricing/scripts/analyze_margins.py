"""
Analyze Required Margins
========================

Quotes a batch of shipments on every account, averages the successful costs
and solves for the margin each account needs to hit a desired average
selling price (ASP). With --apply the solved margins are written back to the
account files.

Usage:
    python -m pricing.scripts.analyze_margins --accounts accounts/ --rates rates.csv \\
        --shipments sample.csv --desired-asp 240
    python -m pricing.scripts.analyze_margins ... --apply --dry-run
    python -m pricing.scripts.analyze_margins ... --apply --workers 8 --timeout 10
"""

import argparse
import sys

import polars as pl

from shared.logger import configure_logging
from pricing.accounts import load_accounts
from pricing.config import PricingConfig
from pricing.data.reference.policy import MAX_WORKERS, QUOTE_TIMEOUT
from pricing.errors import PricingError
from pricing.margin_solver import analyze_accounts, apply_required_margins, results_to_frame
from pricing.price_shipments import read_shipments
from pricing.providers import RateTableProvider


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Solve required margins for a desired ASP")
    parser.add_argument("--accounts", required=True, help="Directory of account files")
    parser.add_argument("--rates", required=True, help="Rate table CSV")
    parser.add_argument("--shipments", required=True, help="Shipment sample CSV")
    parser.add_argument("--desired-asp", required=True, type=float, help="Target average selling price")
    parser.add_argument("--account", action="append", dest="only",
                        help="Limit to this account (repeatable)")
    parser.add_argument("--fuel-rate", type=float, default=0.0,
                        help="Fuel surcharge fraction applied to rate table costs")
    parser.add_argument("--workers", type=int, help=f"Concurrent quote calls (default: {MAX_WORKERS})")
    parser.add_argument("--timeout", type=float, help=f"Seconds per quote (default: {QUOTE_TIMEOUT})")
    parser.add_argument("--apply", action="store_true", help="Write required margins to account files")
    parser.add_argument("--dry-run", action="store_true", help="With --apply, validate without writing")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = PricingConfig.from_args(args)
        store = load_accounts(args.accounts)
    except PricingError as e:
        print(f"Error: {e}")
        return 2

    accounts = [a for a in store if not args.only or a.name in args.only]
    if not accounts:
        print("No matching accounts")
        return 2

    df = pl.read_csv(
        args.shipments,
        schema_overrides={"origin_zip": pl.Utf8, "destination_zip": pl.Utf8, "freight_class": pl.Utf8},
    )
    shipments, rejected = read_shipments(df)
    for message in rejected:
        print(f"  Rejected {message}")

    print(f"Analyzing {len(accounts)} account(s) over {len(shipments):,} shipment(s) "
          f"at desired ASP ${args.desired_asp:,.2f}...")
    print()

    provider = RateTableProvider(args.rates, fuel_rate=args.fuel_rate)
    results = analyze_accounts(accounts, shipments, provider, args.desired_asp, config)

    with pl.Config(tbl_rows=-1, tbl_cols=-1, tbl_width_chars=160):
        print(results_to_frame(results))

    if not args.apply:
        return 0

    print()
    print("=" * 60)
    print("APPLYING MARGINS" + (" [DRY RUN]" if args.dry_run else ""))
    print("=" * 60)

    updates = apply_required_margins(results, store, dry_run=args.dry_run)
    for u in updates:
        if u.error:
            print(f"  {u.account:<24} skipped: {u.error}")
        elif u.applied:
            print(f"  {u.account:<24} margin set to {u.margin}%")
        else:
            print(f"  {u.account:<24} would set margin to {u.margin}%")

    failed = sum(1 for u in updates if u.error and u.margin is not None)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
