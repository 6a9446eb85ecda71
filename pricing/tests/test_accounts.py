"""
Unit Tests for the Account Store and Margin Persistence

Run with: pytest pricing/tests/test_accounts.py -v
"""

import os
import threading

import pytest

from pricing.accounts import (
    AccountStore,
    format_margin,
    load_accounts,
    parse_account_text,
    replace_margin_line,
)
from pricing.errors import AccountNotFound, InvalidMargin


# =============================================================================
# FIXTURES
# =============================================================================

def write_account(directory, name: str, text: str):
    path = directory / f"{name}.account"
    path.write_bytes(text.encode("utf-8"))
    return path


@pytest.fixture
def account_dir(tmp_path):
    write_account(tmp_path, "acme_ltl", (
        "# ACME LTL production account\n"
        "carrier=acme\n"
        "username=broker01\n"
        "password=s3cret:value\n"
    ))
    write_account(tmp_path, "bolt_freight", (
        "name = bolt_freight\n"
        "carrier: bolt\n"
        "margin = 12.5\n"
        "\n"
        "; api settings\n"
        "api_key=abc123\n"
    ))
    return tmp_path


@pytest.fixture
def store(account_dir):
    return load_accounts(account_dir)


# =============================================================================
# LOADING
# =============================================================================

class TestLoadAccounts:
    """Tests for reading account files."""

    def test_records(self, store):
        assert store.names() == ["acme_ltl", "bolt_freight"]
        assert len(store) == 2
        assert "acme_ltl" in store

    def test_typed_fields(self, store):
        acme = store.get("acme_ltl")
        assert acme.name == "acme_ltl"
        assert acme.carrier == "acme"
        assert acme.margin is None
        assert acme.fields == {"username": "broker01", "password": "s3cret:value"}

    def test_margin_parsed(self, store):
        assert store.get("bolt_freight").margin == pytest.approx(12.5)

    def test_margin_with_percent_sign(self):
        record = parse_account_text("name=acme\nmargin=18%\n")
        assert record.margin == pytest.approx(18.0)

    def test_out_of_range_margin_loaded_as_none(self, tmp_path):
        write_account(tmp_path, "crest", "margin=140\n")
        assert load_accounts(tmp_path).get("crest").margin is None

    def test_unknown_account(self, store):
        with pytest.raises(AccountNotFound):
            store.get("zulu")

    def test_missing_directory(self, tmp_path):
        with pytest.raises(AccountNotFound):
            AccountStore(tmp_path / "nope").load()


# =============================================================================
# REWRITING
# =============================================================================

class TestReplaceMarginLine:
    """Tests for replace_margin_line."""

    def test_append_when_missing(self):
        text = "carrier=acme\nusername=broker01\n"
        assert replace_margin_line(text, 15.5) == text + "margin=15.5\n"

    def test_append_without_trailing_newline(self):
        assert replace_margin_line("carrier=acme", 15.5) == "carrier=acme\nmargin=15.5\n"

    def test_replace_keeps_everything_else(self):
        text = "carrier=acme\nMargin : 10   \n# margin=99\nusername=broker01\n"
        assert replace_margin_line(text, 15.5) == (
            "carrier=acme\nMargin : 15.5   \n# margin=99\nusername=broker01\n"
        )

    def test_crlf_preserved(self):
        text = "carrier=acme\r\nmargin=10\r\nusername=broker01\r\n"
        assert replace_margin_line(text, 15.5) == "carrier=acme\r\nmargin=15.5\r\nusername=broker01\r\n"

    def test_crlf_append(self):
        assert replace_margin_line("carrier=acme\r\n", 8) == "carrier=acme\r\nmargin=8.0\r\n"

    def test_format_round_trips(self):
        assert format_margin(15.5) == "15.5"
        assert float(format_margin(33.33)) == 33.33


# =============================================================================
# PERSISTENCE
# =============================================================================

class TestSetMargin:
    """Tests for AccountStore.set_margin."""

    def test_appends_exactly_one_line(self, store, account_dir):
        path = account_dir / "acme_ltl.account"
        before = path.read_bytes()

        record = store.set_margin("acme_ltl", 15.5)

        after = path.read_bytes()
        assert after == before + b"margin=15.5\n"
        assert len(after.splitlines()) == len(before.splitlines()) + 1
        assert record.margin == pytest.approx(15.5)
        assert store.get("acme_ltl").margin == pytest.approx(15.5)

    def test_replaces_only_margin_line(self, store, account_dir):
        path = account_dir / "bolt_freight.account"
        before = path.read_bytes().splitlines(keepends=True)

        store.set_margin("bolt_freight", 20)

        after = path.read_bytes().splitlines(keepends=True)
        assert len(after) == len(before)
        changed = [i for i, (a, b) in enumerate(zip(before, after)) if a != b]
        assert changed == [2]
        assert after[2] == b"margin = 20.0\n"

    def test_other_fields_untouched_in_memory(self, store):
        store.set_margin("acme_ltl", 15.5)
        acme = store.get("acme_ltl")
        assert acme.carrier == "acme"
        assert acme.fields["username"] == "broker01"

    def test_idempotent(self, store, account_dir):
        path = account_dir / "acme_ltl.account"
        store.set_margin("acme_ltl", 15.5)
        first = path.read_bytes()
        store.set_margin("acme_ltl", 15.5)
        assert path.read_bytes() == first

    def test_zero_margin_valid(self, store):
        assert store.set_margin("acme_ltl", 0).margin == 0.0

    @pytest.mark.parametrize("margin", [100, 100.0, 150, -0.01, float("nan"), "abc", None])
    def test_invalid_margin_before_write(self, store, account_dir, margin):
        path = account_dir / "bolt_freight.account"
        before = path.read_bytes()

        with pytest.raises(InvalidMargin):
            store.set_margin("bolt_freight", margin)

        assert path.read_bytes() == before
        assert store.get("bolt_freight").margin == pytest.approx(12.5)

    def test_unknown_account(self, store):
        with pytest.raises(AccountNotFound):
            store.set_margin("zulu", 10)

    def test_backing_file_removed(self, store, account_dir):
        (account_dir / "acme_ltl.account").unlink()
        with pytest.raises(AccountNotFound):
            store.set_margin("acme_ltl", 10)

    def test_write_failure_leaves_memory_unchanged(self, store, account_dir, monkeypatch):
        path = account_dir / "bolt_freight.account"
        before = path.read_bytes()

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(OSError, match="disk full"):
            store.set_margin("bolt_freight", 30.0)

        assert store.get("bolt_freight").margin == pytest.approx(12.5)
        assert path.read_bytes() == before
        # Temporary file cleaned up
        assert sorted(p.name for p in account_dir.iterdir()) == [
            "acme_ltl.account", "bolt_freight.account",
        ]

    def test_concurrent_writers_serialised(self, store, account_dir):
        margins = [10.0 + i for i in range(16)]
        threads = [
            threading.Thread(target=store.set_margin, args=("acme_ltl", m))
            for m in margins
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        text = (account_dir / "acme_ltl.account").read_text()
        margin_lines = [line for line in text.splitlines() if line.startswith("margin=")]
        assert len(margin_lines) == 1
        assert float(margin_lines[0].split("=")[1]) == store.get("acme_ltl").margin
