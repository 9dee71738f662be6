"""
app/normalization/value_normalizer.py

Parsing of the heterogeneous date and currency representations found in
commercial spreadsheets, plus the composite duplicate key built from them.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser as dateutil_parser

from db.models.commercial_record import UNSPECIFIED_PROCEDURE

SPREADSHEET_EPOCH = date(1899, 12, 30)

_DAY_FIRST_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_PREFIX_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_SERIAL_PATTERN = re.compile(r"^\d+(\.\d+)?$")

_CURRENCY_TOKENS = re.compile(r"(?i)(R\$|US\$|BRL|USD|EUR|[$€£¥]|\s)")
_THOUSANDS_DOT = re.compile(r"^[-+]?\d{1,3}(\.\d{3})+$")
_THOUSANDS_COMMA = re.compile(r"^[-+]?\d{1,3}(,\d{3}){2,}$")


class InvalidAmountError(ValueError):
    """
    Raised when a monetary value is not numeric after normalization.
    """


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return str(value).strip() == ""


def parse_date(value: Any) -> date | None:
    """
    Parse a spreadsheet date into a calendar date.

    Formats are tried in priority order: DD/MM/YYYY, ISO YYYY-MM-DD prefix,
    bare numeral as a spreadsheet serial date, then a generic day-first
    parse. Returns None when nothing applies.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return _from_serial(float(value))

    raw = str(value).replace("\xa0", " ").strip()
    if not raw:
        return None

    match = _DAY_FIRST_PATTERN.match(raw)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    match = _ISO_PREFIX_PATTERN.match(raw)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    if _SERIAL_PATTERN.match(raw):
        return _from_serial(float(raw))

    try:
        return dateutil_parser.parse(raw, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def parse_amount(value: Any) -> float:
    """
    Parse a monetary value such as ``"R$ 1.234,56"`` into a float.

    Raises InvalidAmountError instead of returning a silent zero.
    """

    if isinstance(value, bool):
        raise InvalidAmountError(f"Not a monetary value: {value!r}")
    if isinstance(value, (int, float)):
        return _finite(float(value), value)

    raw = "" if value is None else str(value)
    cleaned = _CURRENCY_TOKENS.sub("", raw)
    if not cleaned:
        raise InvalidAmountError(f"Not a monetary value: {value!r}")

    try:
        parsed = float(_normalize_separators(cleaned))
    except ValueError as exc:
        raise InvalidAmountError(f"Not a monetary value: {value!r}") from exc
    return _finite(parsed, value)


def procedure_or_placeholder(procedure_name: Any) -> str:
    if is_blank(procedure_name):
        return UNSPECIFIED_PROCEDURE
    return str(procedure_name).strip()


def format_key_amount(amount: float) -> str:
    return f"{amount:.2f}"


def composite_key(
    record_date: date | str | None,
    customer_name: Any,
    procedure_name: Any,
    amount: float | str | None,
) -> str:
    """
    Build ``date|customer|procedure|amount`` for duplicate detection.

    Names are trimmed and lower-cased, a blank procedure becomes the
    placeholder stored on persisted rows and amounts use two decimals.
    """

    if isinstance(record_date, date):
        date_part = record_date.isoformat()
    else:
        date_part = "" if record_date is None else str(record_date).strip()

    if isinstance(amount, (int, float)) and not isinstance(amount, bool):
        amount_part = format_key_amount(float(amount))
    else:
        amount_part = "" if amount is None else str(amount).strip()

    customer_part = "" if customer_name is None else str(customer_name).strip().lower()
    procedure_part = procedure_or_placeholder(procedure_name).lower()
    return f"{date_part}|{customer_part}|{procedure_part}|{amount_part}"


def _normalize_separators(text: str) -> str:
    has_dot = "." in text
    has_comma = "," in text

    if has_dot and has_comma:
        # Right-most separator is the decimal one.
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")
    if has_comma:
        if _THOUSANDS_COMMA.match(text):
            return text.replace(",", "")
        return text.replace(",", ".")
    if has_dot and _THOUSANDS_DOT.match(text):
        return text.replace(".", "")
    return text


def _finite(parsed: float, original: Any) -> float:
    if not math.isfinite(parsed):
        raise InvalidAmountError(f"Not a monetary value: {original!r}")
    return parsed


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_serial(serial: float) -> date | None:
    if not math.isfinite(serial) or serial < 0:
        return None
    try:
        return SPREADSHEET_EPOCH + timedelta(days=int(serial))
    except OverflowError:
        return None
