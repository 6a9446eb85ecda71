"""
Required-Margin Solver

Inverse pricing: from a target price back to the margin that produces it.

PER SHIPMENT
------------
    target_sell       = base_cost / (1 - margin / 100)
    base_profit       = target_sell - base_cost
    comparison_profit = target_sell - comparison_cost

BATCH (desired ASP)
-------------------
    average_cost      = mean(cost of successfully quoted shipments)
    required_margin   = (desired_asp - average_cost) / desired_asp * 100

Shipments the provider could not quote are skipped and counted separately;
they never enter the average. No processed shipments or a zero desired ASP
give required_margin None ("not applicable"). A negative required margin
(costs already above the desired ASP) is returned as-is.
"""

import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from collections.abc import Iterable, Sequence

import polars as pl

from .accounts import AccountStore, format_margin, validate_margin
from .config import PricingConfig
from .errors import AccountNotFound, InvalidInput, InvalidMargin
from .models import (
    AccountRecord,
    MarginAnalysisResult,
    MarginUpdate,
    ShipmentRequest,
    SkipEvent,
    TargetSell,
)
from .providers import QuoteProvider
from .quote_price import standard_price


logger = logging.getLogger(__name__)

SKIP_NO_QUOTE = "no quote"
SKIP_TIMEOUT = "timeout"


# =============================================================================
# PER-SHIPMENT TARGET SELL
# =============================================================================

def target_sell(
    base_cost: float,
    margin: float,
    comparison_cost: float | None = None,
) -> TargetSell:
    """
    Sell price at `margin` over base_cost, and what it leaves on a second cost.

    Used to check whether another account's cost would undercut the base
    account at the price we intend to sell at.

    Raises:
        InvalidInput: base_cost (or comparison_cost) is not positive
        DivisionByZero, InvalidMargin: as standard_price()
    """
    if base_cost is None or not base_cost > 0:
        raise InvalidInput(f"Base cost must be > 0, got {base_cost}")
    if comparison_cost is not None and not comparison_cost > 0:
        raise InvalidInput(f"Comparison cost must be > 0, got {comparison_cost}")

    sell = round(standard_price(base_cost, margin), 2)

    return TargetSell(
        base_cost=base_cost,
        margin=margin,
        target_sell=sell,
        base_profit=round(sell - base_cost, 2),
        comparison_cost=comparison_cost,
        comparison_profit=round(sell - comparison_cost, 2) if comparison_cost is not None else None,
    )


# =============================================================================
# REQUIRED MARGIN
# =============================================================================

def required_margin(desired_asp: float, average_cost: float | None) -> float | None:
    """
    Margin percent that turns average_cost into desired_asp.

    Returns:
        Margin rounded to 2 decimals (may be negative), or None when
        desired_asp is not positive or there is no average cost
    """
    if average_cost is None:
        return None
    if not desired_asp or desired_asp < 0:
        if desired_asp:
            logger.warning("Desired ASP %s is negative, required margin not applicable", desired_asp)
        return None
    return round((desired_asp - average_cost) / desired_asp * 100, 2)


def _valid_cost(cost) -> bool:
    return isinstance(cost, (int, float)) and not isinstance(cost, bool) \
        and math.isfinite(cost) and cost > 0


class QuoteTimedOut(Exception):
    """A provider call ran past its deadline."""


def _quote_with_deadline(
    provider: QuoteProvider,
    account: AccountRecord,
    shipment: ShipmentRequest,
    timeout: float | None,
) -> float | None:
    """
    Run one provider call, giving up after `timeout` seconds of run time.

    The call runs on a daemon thread so a provider that never returns cannot
    hold a pool worker past its deadline or keep the interpreter from exiting.
    """
    if timeout is None:
        return provider.quote(account, shipment)

    outcome = {}

    def call():
        try:
            outcome["cost"] = provider.quote(account, shipment)
        except Exception as e:
            outcome["error"] = e

    caller = threading.Thread(target=call, name=f"quote-{account.name}", daemon=True)
    caller.start()
    caller.join(timeout)

    if caller.is_alive():
        raise QuoteTimedOut(f"{provider.name} did not answer within {timeout}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("cost")


def _collect(
    account: AccountRecord,
    desired_asp: float,
    futures: Sequence[Future],
) -> MarginAnalysisResult:
    """Fan-in: sum the good quotes, record the rest as skips."""
    result = MarginAnalysisResult(
        account=account.name,
        carrier=account.carrier,
        desired_asp=desired_asp,
    )
    total = 0.0

    for index, future in enumerate(futures):
        reason = None
        try:
            cost = future.result()
        except QuoteTimedOut:
            reason = SKIP_TIMEOUT
        except Exception as e:
            # Provider failures only cost this shipment
            reason = f"error: {type(e).__name__}: {e}"
        else:
            if not _valid_cost(cost):
                reason = SKIP_NO_QUOTE

        if reason is not None:
            result.skipped += 1
            result.skip_events.append(SkipEvent(account.name, index, reason))
            logger.debug("Skipped shipment %d on %s: %s", index, account.name, reason)
            continue

        total += float(cost)
        result.processed += 1

    if result.processed:
        average = total / result.processed
        result.average_cost = round(average, 2)
        result.required_margin = required_margin(desired_asp, average)

    if result.skipped:
        logger.warning(
            "%s: %d shipment(s) processed, %d skipped (%s)",
            account.name, result.processed, result.skipped,
            ", ".join(f"{k}: {v}" for k, v in result.skip_reasons.items()),
        )
    return result


def analyze_accounts(
    accounts: Iterable[AccountRecord],
    shipments: Sequence[ShipmentRequest],
    provider: QuoteProvider,
    desired_asp: float,
    config: PricingConfig | None = None,
) -> list[MarginAnalysisResult]:
    """
    Required margin for every account over the same shipments.

    Quote calls are dispatched over a pool of config.max_workers threads.
    Each call gets config.quote_timeout seconds from the moment it starts;
    a call that runs longer is recorded as a "timeout" skip and its worker
    moves on, so one unresponsive account delays the others by at most one
    timeout per call instead of starving them. Sums are merged in the
    calling thread.

    Returns:
        One MarginAnalysisResult per account, in input order
    """
    config = config or PricingConfig()
    accounts = list(accounts)

    with ThreadPoolExecutor(max_workers=config.max_workers, thread_name_prefix="quote") as executor:
        pending = [
            (
                account,
                [
                    executor.submit(_quote_with_deadline, provider, account, s, config.quote_timeout)
                    for s in shipments
                ],
            )
            for account in accounts
        ]
        results = [
            _collect(account, desired_asp, futures)
            for account, futures in pending
        ]

    logger.info(
        "Analyzed %d account(s) over %d shipment(s) at desired ASP %.2f",
        len(accounts), len(shipments), desired_asp,
    )
    return results


def analyze_account(
    account: AccountRecord,
    shipments: Sequence[ShipmentRequest],
    provider: QuoteProvider,
    desired_asp: float,
    config: PricingConfig | None = None,
) -> MarginAnalysisResult:
    """Required margin for a single account (see analyze_accounts)."""
    return analyze_accounts([account], shipments, provider, desired_asp, config)[0]


# =============================================================================
# APPLY
# =============================================================================

def apply_required_margins(
    results: Iterable[MarginAnalysisResult],
    store: AccountStore,
    dry_run: bool = False,
) -> list[MarginUpdate]:
    """
    Persist each account's required margin.

    Margins are written exactly as solved; a negative or >= 100 margin is
    rejected by the store and reported on that account's MarginUpdate.
    A failure on one account never stops the pass.

    Args:
        results: Output of analyze_accounts
        store: Loaded AccountStore
        dry_run: Validate only, write nothing

    Returns:
        One MarginUpdate per result
    """
    updates = []

    for result in results:
        margin = result.required_margin
        if margin is None:
            reason = "no processed shipments" if not result.processed else "desired ASP not applicable"
            updates.append(MarginUpdate(result.account, None, False, f"not applicable: {reason}"))
            continue

        try:
            if dry_run:
                validate_margin(margin)
                store.get(result.account)
            else:
                store.set_margin(result.account, margin)
        except (InvalidMargin, AccountNotFound, OSError) as e:
            logger.warning("Margin for %s not applied: %s", result.account, e)
            updates.append(MarginUpdate(result.account, margin, False, str(e)))
            continue

        if dry_run:
            logger.info("[DRY RUN] Would set margin for %s to %s%%", result.account, format_margin(margin))
        updates.append(MarginUpdate(result.account, margin, not dry_run))

    return updates


# =============================================================================
# REPORTING
# =============================================================================

def results_to_frame(results: Iterable[MarginAnalysisResult]) -> pl.DataFrame:
    """Analysis results as a DataFrame for reporting."""
    return pl.DataFrame(
        [
            {
                "account": r.account,
                "carrier": r.carrier,
                "desired_asp": float(r.desired_asp),
                "average_cost": r.average_cost,
                "required_margin": r.required_margin,
                "processed": r.processed,
                "skipped": r.skipped,
                "skip_reasons": "; ".join(f"{k}: {v}" for k, v in r.skip_reasons.items()),
            }
            for r in results
        ],
        schema={
            "account": pl.Utf8,
            "carrier": pl.Utf8,
            "desired_asp": pl.Float64,
            "average_cost": pl.Float64,
            "required_margin": pl.Float64,
            "processed": pl.Int64,
            "skipped": pl.Int64,
            "skip_reasons": pl.Utf8,
        },
    )


__all__ = [
    "target_sell",
    "required_margin",
    "analyze_account",
    "analyze_accounts",
    "apply_required_margins",
    "results_to_frame",
]
