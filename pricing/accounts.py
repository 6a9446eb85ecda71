"""
Account Store and Margin Persistence

Carrier accounts live in a directory of small text files, one per account:

    # ACME LTL production account
    carrier=acme
    username=broker01
    password=...
    margin=18.5

FILE CONTRACT
-------------
    - One key=value (or key: value) pair per line; keys are case-insensitive
    - Blank lines and lines starting with # or ; are kept as-is
    - name defaults to the file stem, carrier and margin are typed fields,
      every other key is kept in AccountRecord.fields

WRITING MARGINS
---------------
set_margin() rewrites only the value of the margin line (or appends one
margin line when the file has none), writes the result to a temporary file in
the same directory and moves it into place with os.replace. The in-memory
record is swapped only after the rename succeeds, so disk and memory change
together or not at all. Writes to one account are serialised by a per-account
lock.
"""

import logging
import math
import os
import re
import shutil
import tempfile
import threading
from dataclasses import replace
from pathlib import Path

from .errors import AccountNotFound, InvalidMargin
from .models import AccountRecord


logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".account"
MARGIN_KEY = "margin"

_LINE_RE = re.compile(
    r"^(?P<prefix>\s*(?P<key>[A-Za-z_][\w.\-]*)\s*[=:]\s*)(?P<value>.*?)(?P<trail>\s*)$"
)
_COMMENT_PREFIXES = ("#", ";")


# =============================================================================
# MARGIN VALUES
# =============================================================================

def validate_margin(value) -> float:
    """
    Margin as a float in [0, 100).

    Raises:
        InvalidMargin: not a number, not finite, or outside [0, 100)
    """
    if isinstance(value, bool):
        raise InvalidMargin(f"Margin must be a number, got {value!r}")
    try:
        margin = float(value)
    except (TypeError, ValueError):
        raise InvalidMargin(f"Margin must be a number, got {value!r}") from None
    if not math.isfinite(margin) or not 0 <= margin < 100:
        raise InvalidMargin(f"Margin must be in [0, 100), got {value!r}")
    return margin


def format_margin(margin: float) -> str:
    """Text written to the file; reads back to exactly the same float."""
    return repr(float(margin))


def _parse_margin(text: str, source: str) -> float | None:
    try:
        return validate_margin(text.strip().rstrip("%").strip())
    except InvalidMargin:
        logger.warning("Ignoring invalid margin %r in %s", text, source)
        return None


# =============================================================================
# PARSE / REWRITE
# =============================================================================

def _split_line(line: str) -> tuple[str, str]:
    """Separate a line from its line ending."""
    body = line.rstrip("\r\n")
    return body, line[len(body):]


def _match(body: str):
    if body.lstrip().startswith(_COMMENT_PREFIXES):
        return None
    return _LINE_RE.match(body)


def parse_account_text(text: str, path: Path | None = None) -> AccountRecord:
    """Build an AccountRecord from account file text."""
    source = str(path) if path is not None else "<text>"
    values: dict[str, str] = {}

    for line in text.splitlines():
        m = _match(line)
        if m is None:
            continue
        key = m.group("key").lower()
        # First occurrence wins, matching replace_margin_line
        values.setdefault(key, m.group("value"))

    name = values.pop("name", None) or (path.stem if path is not None else None)
    if not name:
        raise ValueError(f"Account in {source} has no name")

    margin_text = values.pop(MARGIN_KEY, None)
    margin = _parse_margin(margin_text, source) if margin_text is not None else None

    return AccountRecord(
        name=name,
        margin=margin,
        carrier=values.pop("carrier", None) or None,
        fields=values,
        path=path,
    )


def replace_margin_line(text: str, margin: float) -> str:
    """
    Set the margin in account file text.

    Replaces the value of the first margin line in place, keeping its key
    spelling, separator, spacing and line ending. Without a margin line, one
    "margin=<value>" line is appended. Every other byte is left untouched.
    """
    value = format_margin(margin)
    lines = text.splitlines(keepends=True)

    for i, line in enumerate(lines):
        body, ending = _split_line(line)
        m = _match(body)
        if m is not None and m.group("key").lower() == MARGIN_KEY:
            lines[i] = f"{m.group('prefix')}{value}{m.group('trail')}{ending}"
            return "".join(lines)

    newline = "\r\n" if "\r\n" in text else "\n"
    if text and not text.endswith(("\n", "\r")):
        text += newline
    return f"{text}{MARGIN_KEY}={value}{newline}"


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _atomic_write(path: Path, text: str) -> None:
    """Write text next to path, then rename over it."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise


# =============================================================================
# STORE
# =============================================================================

class AccountStore:
    """
    Account files in one directory, mirrored in memory.

    Args:
        directory: Directory holding the account files
        suffix: Account file extension
    """

    def __init__(self, directory: str | Path, suffix: str = DEFAULT_SUFFIX):
        self.directory = Path(directory)
        self.suffix = suffix
        self._records: dict[str, AccountRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def load(self) -> "AccountStore":
        """(Re)read every account file in the directory."""
        if not self.directory.is_dir():
            raise AccountNotFound(f"Account directory {self.directory} does not exist")

        records: dict[str, AccountRecord] = {}
        for path in sorted(self.directory.glob(f"*{self.suffix}")):
            record = parse_account_text(_read_text(path), path)
            if record.name in records:
                logger.warning(
                    "Duplicate account %s in %s, keeping %s",
                    record.name, path.name, records[record.name].path.name,
                )
                continue
            records[record.name] = record

        self._records = records
        logger.debug("Loaded %d account(s) from %s", len(records), self.directory)
        return self

    # -------------------------------------------------------------------------
    # READ
    # -------------------------------------------------------------------------

    def get(self, name: str) -> AccountRecord:
        try:
            return self._records[name]
        except KeyError:
            raise AccountNotFound(f"Unknown account {name!r}") from None

    def names(self) -> list[str]:
        return list(self._records)

    def margins(self) -> dict[str, float | None]:
        return {name: record.margin for name, record in self._records.items()}

    def __iter__(self):
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name) -> bool:
        return name in self._records

    # -------------------------------------------------------------------------
    # WRITE
    # -------------------------------------------------------------------------

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    def set_margin(self, name: str, margin) -> AccountRecord:
        """
        Persist a new margin for one account.

        Returns:
            The updated AccountRecord

        Raises:
            InvalidMargin: margin outside [0, 100), raised before any I/O
            AccountNotFound: unknown account or its file no longer exists
            OSError: the write failed; file and memory are left unchanged
        """
        margin = validate_margin(margin)

        with self._lock_for(name):
            record = self.get(name)
            if record.path is None or not record.path.is_file():
                raise AccountNotFound(f"Account file for {name!r} is missing")

            original = _read_text(record.path)
            updated = replace_margin_line(original, margin)
            if updated != original:
                _atomic_write(record.path, updated)

            record = replace(record, margin=margin)
            self._records[name] = record

        logger.info("Set margin for %s to %s%%", name, format_margin(margin))
        return record


def load_accounts(directory: str | Path, suffix: str = DEFAULT_SUFFIX) -> AccountStore:
    """Open and load an account directory."""
    return AccountStore(directory, suffix=suffix).load()


__all__ = [
    "validate_margin",
    "format_margin",
    "parse_account_text",
    "replace_margin_line",
    "AccountStore",
    "load_accounts",
]
