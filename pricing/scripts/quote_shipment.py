"""
Quote a Shipment
================

Quotes one shipment on every account in the rate table, picks the cheapest
and prices it against the account margin and recent bookings.

Usage:
    python -m pricing.scripts.quote_shipment --origin 30301 --destination 10001 \\
        --weight 480 --freight-class 70 --accounts accounts/ --rates rates.csv
    python -m pricing.scripts.quote_shipment ... --ledger bookings.csv --profit-floor 40
    python -m pricing.scripts.quote_shipment ... --ledger-since 2025-10-01
"""

import argparse
import sys

from shared.logger import configure_logging
from pricing.accounts import load_accounts
from pricing.config import PricingConfig, add_config_arguments
from pricing.data import load_ledger_csv, load_ledger_from_database
from pricing.errors import PricingError
from pricing.models import ShipmentRequest
from pricing.providers import RateTableProvider
from pricing.quote_price import quote_shipment


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quote and price a single shipment")
    parser.add_argument("--origin", required=True, help="Origin ZIP")
    parser.add_argument("--destination", required=True, help="Destination ZIP")
    parser.add_argument("--weight", required=True, type=float, help="Weight in pounds")
    parser.add_argument("--freight-class", required=True, help="NMFC freight class")
    parser.add_argument("--accounts", required=True, help="Directory of account files")
    parser.add_argument("--rates", required=True, help="Rate table CSV")
    ledger = parser.add_mutually_exclusive_group()
    ledger.add_argument("--ledger", help="Booking ledger CSV for historical prices")
    ledger.add_argument("--ledger-since", metavar="YYYY-MM-DD",
                        help="Load bookings since this date from the warehouse instead of a CSV")
    parser.add_argument("--fuel-rate", type=float, default=0.0,
                        help="Fuel surcharge fraction applied to rate table costs")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    add_config_arguments(parser)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = PricingConfig.from_args(args)
        shipment = ShipmentRequest(
            origin_zip=args.origin,
            destination_zip=args.destination,
            weight_lbs=args.weight,
            freight_class=args.freight_class,
        )
        store = load_accounts(args.accounts)
    except PricingError as e:
        print(f"Error: {e}")
        return 2

    provider = RateTableProvider(args.rates, fuel_rate=args.fuel_rate)
    costs = provider.quote_all(list(store), shipment)

    ledger = None
    if args.ledger:
        ledger = load_ledger_csv(args.ledger)
    elif args.ledger_since:
        try:
            ledger = load_ledger_from_database(args.ledger_since)
        except RuntimeError as e:
            print(f"Error: {e}")
            return 2

    print("=" * 60)
    print(f"SHIPMENT {shipment.origin_zip} -> {shipment.destination_zip}, "
          f"{shipment.weight_lbs:,.0f} lbs, class {shipment.freight_class}")
    print("=" * 60)
    for account, cost in costs.items():
        print(f"  {account:<24} {'no quote' if cost is None else f'${cost:,.2f}'}")
    print()

    try:
        decision = quote_shipment(shipment, costs, ledger=ledger, margins=store.margins(), config=config)
    except PricingError as e:
        print(f"Could not price shipment: {type(e).__name__}: {e}")
        return 1

    historical = "none" if decision.historical_price is None else f"${decision.historical_price:,.2f}"
    standard = "n/a" if decision.standard_price is None else f"${decision.standard_price:,.2f}"
    print(f"  Lowest cost:     ${decision.lowest_cost:,.2f} ({decision.account})")
    print(f"  Margin:          {decision.margin}%")
    print(f"  Standard price:  {standard}")
    print(f"  Historical avg:  {historical}")
    print(f"  Final price:     ${decision.final_price:,.2f} ({decision.reason.value})")
    print(f"  Profit:          ${decision.profit:,.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
