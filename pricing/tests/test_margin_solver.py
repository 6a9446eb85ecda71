"""
Unit Tests for the Required-Margin Solver

Tests target sell, required margin, batch analysis (skips, timeouts,
concurrency) and the apply pass.

Run with: pytest pricing/tests/test_margin_solver.py -v
"""

import threading
import time

import pytest

from pricing.accounts import load_accounts
from pricing.config import PricingConfig
from pricing.errors import DivisionByZero, InvalidInput
from pricing.margin_solver import (
    analyze_account,
    analyze_accounts,
    apply_required_margins,
    required_margin,
    results_to_frame,
    target_sell,
)
from pricing.models import AccountRecord, MarginAnalysisResult, ShipmentRequest
from pricing.providers import CallableProvider


# =============================================================================
# FIXTURES
# =============================================================================

def make_shipments(weights):
    return [
        ShipmentRequest(origin_zip="30301", destination_zip="10001", weight_lbs=w, freight_class="70")
        for w in weights
    ]


@pytest.fixture
def config():
    return PricingConfig(max_workers=4, quote_timeout=5.0)


@pytest.fixture
def account():
    return AccountRecord(name="acme_ltl", carrier="acme")


def weight_priced_provider(costs_by_weight):
    """Provider returning costs_by_weight[weight]; Exception values are raised."""
    def quote(account, shipment):
        cost = costs_by_weight[shipment.weight_lbs]
        if isinstance(cost, Exception):
            raise cost
        return cost
    return CallableProvider(quote, name="fake")


# =============================================================================
# TARGET SELL
# =============================================================================

class TestTargetSell:
    """Tests for per-shipment target sell derivation."""

    def test_profits(self):
        result = target_sell(100.0, 20.0, comparison_cost=110.0)
        assert result.target_sell == pytest.approx(125.0)
        assert result.base_profit == pytest.approx(25.0)
        assert result.comparison_profit == pytest.approx(15.0)
        assert result.comparison_undercuts is False
        assert result.comparison_loses_money is False

    def test_cheaper_comparison_undercuts(self):
        result = target_sell(100.0, 20.0, comparison_cost=90.0)
        assert result.comparison_undercuts is True
        assert result.comparison_profit == pytest.approx(35.0)

    def test_comparison_above_sell(self):
        result = target_sell(100.0, 20.0, comparison_cost=130.0)
        assert result.comparison_profit == pytest.approx(-5.0)
        assert result.comparison_loses_money is True

    def test_without_comparison(self):
        result = target_sell(100.0, 20.0)
        assert result.comparison_profit is None
        assert result.comparison_undercuts is None

    def test_invalid_cost(self):
        with pytest.raises(InvalidInput):
            target_sell(0.0, 20.0)

    def test_hundred_percent_margin(self):
        with pytest.raises(DivisionByZero):
            target_sell(100.0, 100.0)


# =============================================================================
# REQUIRED MARGIN
# =============================================================================

class TestRequiredMargin:
    """Tests for required_margin."""

    def test_desired_asp(self):
        assert required_margin(200.0, 150.0) == pytest.approx(25.0)

    def test_zero_asp_not_applicable(self):
        result = required_margin(0, 150.0)
        assert result is None

    def test_no_average_cost(self):
        assert required_margin(200.0, None) is None

    def test_negative_margin_passed_through(self):
        """Costs above the desired ASP give a negative margin, not a clamp."""
        assert required_margin(100.0, 150.0) == pytest.approx(-50.0)


# =============================================================================
# BATCH ANALYSIS
# =============================================================================

class TestAnalyzeAccount:
    """Tests for analyze_account and analyze_accounts."""

    def test_average_over_processed_only(self, account, config):
        provider = weight_priced_provider({
            100.0: 100.0,
            200.0: 200.0,
            300.0: None,
            400.0: RuntimeError("carrier API down"),
        })
        result = analyze_account(account, make_shipments([100, 200, 300, 400]), provider, 200.0, config)

        assert result.account == "acme_ltl"
        assert result.carrier == "acme"
        assert result.processed == 2
        assert result.skipped == 2
        assert result.average_cost == pytest.approx(150.0)
        assert result.required_margin == pytest.approx(25.0)

    def test_skip_reasons_retained(self, account, config):
        provider = weight_priced_provider({
            100.0: None,
            200.0: 0.0,
            300.0: ValueError("bad zip"),
        })
        result = analyze_account(account, make_shipments([100, 200, 300]), provider, 200.0, config)

        reasons = [e.reason for e in result.skip_events]
        assert reasons[0] == "no quote"
        assert reasons[1] == "no quote"
        assert "bad zip" in reasons[2]
        assert [e.shipment_index for e in result.skip_events] == [0, 1, 2]
        assert result.skip_reasons["no quote"] == 2

    def test_nothing_processed(self, account, config):
        provider = weight_priced_provider({100.0: None})
        result = analyze_account(account, make_shipments([100]), provider, 200.0, config)

        assert result.processed == 0
        assert result.skipped == 1
        assert result.average_cost is None
        assert result.required_margin is None

    def test_zero_desired_asp(self, account, config):
        provider = weight_priced_provider({100.0: 150.0})
        result = analyze_account(account, make_shipments([100]), provider, 0.0, config)

        assert result.average_cost == pytest.approx(150.0)
        assert result.required_margin is None

    def test_slow_quote_times_out(self, account):
        release = threading.Event()

        def quote(acct, shipment):
            if shipment.weight_lbs == 999:
                release.wait(5)
                return 500.0
            return 100.0

        config = PricingConfig(max_workers=2, quote_timeout=0.2)
        try:
            result = analyze_account(
                account, make_shipments([100, 999, 100]), CallableProvider(quote), 200.0, config
            )
        finally:
            release.set()

        assert result.processed == 2
        assert result.skipped == 1
        assert result.skip_events[0].reason == "timeout"
        assert result.average_cost == pytest.approx(100.0)

    def test_hung_account_does_not_starve_others(self):
        release = threading.Event()

        def quote(acct, shipment):
            if acct.name == "slow":
                release.wait(10)
                return 500.0
            return 100.0

        accounts = [AccountRecord(name="slow"), AccountRecord(name="fast")]
        config = PricingConfig(max_workers=2, quote_timeout=0.3)
        try:
            slow, fast = analyze_accounts(
                accounts, make_shipments([100, 200, 300]), CallableProvider(quote), 200.0, config
            )
        finally:
            release.set()

        assert slow.processed == 0
        assert slow.skip_reasons == {"timeout": 3}
        assert fast.processed == 3
        assert fast.skipped == 0
        assert fast.required_margin == pytest.approx(50.0)

    def test_timeout_measured_from_call_start(self):
        """Queued calls are not charged for time spent waiting on a worker."""
        def quote(acct, shipment):
            time.sleep(0.1)
            return 100.0

        config = PricingConfig(max_workers=1, quote_timeout=0.5)
        result = analyze_account(
            AccountRecord(name="acme"), make_shipments([100, 200, 300, 400, 500, 600, 700, 800]),
            CallableProvider(quote), 200.0, config,
        )
        assert result.processed == 8
        assert result.skipped == 0

    def test_many_accounts_in_order(self, config):
        accounts = [AccountRecord(name=n) for n in ("acme", "bolt", "crest")]
        costs = {"acme": 100.0, "bolt": 150.0, "crest": None}
        provider = CallableProvider(lambda acct, s: costs[acct.name])

        results = analyze_accounts(accounts, make_shipments([100, 200]), provider, 200.0, config)

        assert [r.account for r in results] == ["acme", "bolt", "crest"]
        assert [r.required_margin for r in results] == [50.0, 25.0, None]
        assert [r.processed for r in results] == [2, 2, 0]

    def test_results_to_frame(self, account, config):
        provider = weight_priced_provider({100.0: 150.0, 200.0: None})
        result = analyze_account(account, make_shipments([100, 200]), provider, 200.0, config)
        df = results_to_frame([result])

        assert df.height == 1
        assert df["required_margin"][0] == pytest.approx(25.0)
        assert df["skip_reasons"][0] == "no quote: 1"


# =============================================================================
# APPLY
# =============================================================================

class TestApplyRequiredMargins:
    """Tests for the batch apply flow."""

    @pytest.fixture
    def store(self, tmp_path):
        for name in ("acme", "bolt", "crest"):
            (tmp_path / f"{name}.account").write_text(f"carrier={name}\nmargin=10\n")
        return load_accounts(tmp_path)

    def result(self, account, margin, processed=5):
        return MarginAnalysisResult(
            account=account,
            carrier=account,
            desired_asp=200.0,
            average_cost=150.0 if processed else None,
            required_margin=margin,
            processed=processed,
        )

    def test_apply_pass(self, store, tmp_path):
        updates = apply_required_margins(
            [
                self.result("acme", 25.0),
                self.result("bolt", -10.0),
                self.result("crest", None, processed=0),
            ],
            store,
        )

        acme, bolt, crest = updates
        assert acme.applied and acme.error is None
        assert store.get("acme").margin == pytest.approx(25.0)
        assert "margin=25.0" in (tmp_path / "acme.account").read_text()

        # Negative margin is not clamped; persistence rejects it
        assert not bolt.applied
        assert "[0, 100)" in bolt.error
        assert store.get("bolt").margin == pytest.approx(10.0)

        assert not crest.applied
        assert crest.error.startswith("not applicable")

    def test_unknown_account_does_not_stop_pass(self, store):
        updates = apply_required_margins(
            [self.result("zulu", 20.0), self.result("acme", 30.0)], store
        )
        assert not updates[0].applied
        assert updates[1].applied

    def test_dry_run_writes_nothing(self, store, tmp_path):
        before = (tmp_path / "acme.account").read_bytes()
        updates = apply_required_margins([self.result("acme", 25.0)], store, dry_run=True)

        assert not updates[0].applied
        assert updates[0].error is None
        assert (tmp_path / "acme.account").read_bytes() == before
        assert store.get("acme").margin == pytest.approx(10.0)
