# Docstring for sales_reconciliation/core/normalizers module
"""
normalizers.py

Shared normalization helpers for names, keys, and raw sales-report values.

Design goals
------------
- Single source of truth for name tokenization, household keys, product-type
  aliases, ZIP / currency / date parsing and sub-producer splitting.
- Total functions: every helper returns a safe default (empty list, "00000",
  0 cents, None date) instead of raising on messy spreadsheet input.
- Scalar helpers do the work; the *_series variants map them over pandas
  Series for the cleaning module.

Public API
----------
- normalize_name_tokens(name) -> list[str]
- normalize_person_name(name) -> str
- household_key(first_name, last_name, zip_code) -> str
- normalize_zip(value) -> str
- normalize_zip_series(series) -> pd.Series
- normalize_product_type(value) -> str
- normalize_product_type_series(series) -> pd.Series
- parse_currency_to_cents(value) -> int
- parse_currency_to_cents_series(series) -> pd.Series
- parse_sale_date(value) -> date | None
- parse_sale_date_series(series) -> pd.Series
- parse_items_sold(value) -> int
- parse_sub_producer(value) -> tuple[str | None, str | None]
- parse_customer_name(value) -> tuple[str, str]
- normalize_text_series(series, strip=True, upper=False) -> pd.Series
"""

from __future__ import annotations       # Store type hints as strings; allows 'date | None' syntax

import math                              # isfinite, to reject inf / nan cells
import re                                # Python's built-in regular expression module
import unicodedata                       # Unicode decomposition, used to strip accents
from datetime import date, datetime, timedelta
from numbers import Real                  # Real -> ints and floats (numpy scalars included)
from typing import Any                   # Type hint meaning "this can be anything"

import pandas as pd

from ..config import DEFAULT_ZIP_CODE, PRODUCT_TYPE_ALIASES, UNKNOWN_PRODUCT_TYPE


# Excel's day zero (serial 1 == 1900-01-01, with the 1900 leap-year bug baked in)
_EXCEL_EPOCH = datetime(1899, 12, 30)

_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_ZIP_RE = re.compile(r"^(\d{5})")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):      # list-like values are never "missing"
        return False


def _strip_accents(text: str) -> str:
    # NFKD splits 'É' into 'E' + combining accent; drop the combining marks
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


# --- Names and keys ------------------------------------------------------------

def normalize_name_tokens(name: Any) -> list[str]:
    """
    Uppercase, accent-strip and tokenize a free-text name.

    Anything that is not A-Z or whitespace is removed before splitting, so
    "O'Brien, José" -> ["OBRIEN", "JOSE"].
    """
    if _is_missing(name):
        return []
    text = _strip_accents(str(name)).upper()
    text = re.sub(r"[^A-Z\s]", "", text)
    return text.split()


def normalize_person_name(name: Any) -> str:
    """Canonical comparison form of a name: tokens joined by single spaces."""
    return " ".join(normalize_name_tokens(name))


def _key_part(name: Any) -> str:
    letters = "".join(normalize_name_tokens(name)).lower()
    return letters or "unknown"


def household_key(first_name: Any, last_name: Any, zip_code: Any) -> str:
    """
    Deterministic natural key: lowercase(first)-lowercase(last)-zip5.

    Examples:
        ("John", "Smith", "10001-1234") -> "john-smith-10001"
        ("", "Lee", None)               -> "unknown-lee-00000"
    """
    return f"{_key_part(first_name)}-{_key_part(last_name)}-{normalize_zip(zip_code)}"


# --- Scalar value parsers ------------------------------------------------------------

def normalize_zip(value: Any) -> str:
    """Leading five digits of a ZIP ("18702-1234" -> "18702"); "00000" otherwise."""
    if _is_missing(value):
        return DEFAULT_ZIP_CODE
    if isinstance(value, Real) and not isinstance(value, bool):
        # Excel stores ZIPs as numbers and drops leading zeros: 2134 -> "02134"
        if float(value).is_integer() and 0 <= value < 100000:
            return f"{int(value):05d}"
    match = _ZIP_RE.match(str(value).strip())
    return match.group(1) if match else DEFAULT_ZIP_CODE


def normalize_product_type(value: Any) -> str:
    """Collapse product label variants ("HO3", "homeowners") to one canonical type."""
    if _is_missing(value) or not str(value).strip():
        return UNKNOWN_PRODUCT_TYPE
    label = str(value).strip()
    return PRODUCT_TYPE_ALIASES.get(label.upper(), label)


def parse_currency_to_cents(value: Any) -> int:
    """"$1,234.56" -> 123456. Blank or unparseable values are 0."""
    if _is_missing(value):
        return 0
    if isinstance(value, Real) and not isinstance(value, bool):
        raw = value
    else:
        raw = re.sub(r"[$,\s]", "", str(value))
    try:
        amount = float(raw)
    except (OverflowError, ValueError):  # "" and ints too large for a float
        return 0
    cents = amount * 100
    if not math.isfinite(cents):         # "inf", "NaN", 1e400
        return 0
    return int(round(cents))


def parse_sale_date(value: Any) -> date | None:
    """
    Parse a sale date cell.

    Accepts date/datetime/Timestamp cells, Excel serial numbers, "MM/DD/YYYY"
    strings and ISO strings ("YYYY-MM-DD", optionally followed by a time).
    Returns None for anything else.
    """
    if _is_missing(value):
        return None
    if isinstance(value, datetime):      # pd.Timestamp is a datetime subclass
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, Real) and not isinstance(value, bool):
        try:
            serial = float(value)
            if not math.isfinite(serial) or serial <= 0:
                return None
            return (_EXCEL_EPOCH + timedelta(days=serial)).date()
        except (OverflowError, ValueError):  # serial past year 9999
            return None

    text = str(value).strip()
    us_match = _US_DATE_RE.match(text)
    try:
        if us_match:
            month, day, year = (int(part) for part in us_match.groups())
            return date(year, month, day)
        iso_match = _ISO_DATE_RE.match(text)
        if iso_match:
            year, month, day = (int(part) for part in iso_match.groups())
            return date(year, month, day)
    except ValueError:                   # e.g. 02/30/2024
        return None
    return None


def parse_items_sold(value: Any) -> int:
    """Positive item count; blank, zero or unparseable values default to 1."""
    if _is_missing(value):
        return 1
    try:
        items = int(float(str(value).strip()))
    except (OverflowError, ValueError):  # "inf", "nan", "n/a"
        return 1
    return items if items > 0 else 1


def parse_sub_producer(value: Any) -> tuple[str | None, str | None]:
    """
    Split a raw sub-producer cell into (code, name).

    Examples:
        "009"                   -> ("009", None)
        "723-ANTHONY MCDERMOTT" -> ("723", "ANTHONY MCDERMOTT")
        "Jane Agent"            -> (None, "Jane Agent")
    """
    if _is_missing(value):
        return None, None
    text = str(value).strip()
    if not text:
        return None, None

    hyphen = text.find("-")
    if hyphen > 0:
        code = text[:hyphen].strip()
        name = text[hyphen + 1:].strip()
        return code or None, name or None

    if text.isdigit():
        return text, None
    return None, text


def parse_customer_name(value: Any) -> tuple[str, str]:
    """
    Split a combined customer name into (first, last).

    "SMITH, JOHN A" -> ("JOHN", "SMITH"); "JOHN A SMITH" -> ("JOHN", "SMITH").
    A single word is treated as a first name with an UNKNOWN last name.
    """
    if _is_missing(value) or not str(value).strip():
        return "UNKNOWN", "UNKNOWN"
    text = str(value).strip().upper()

    if "," in text:
        last, _, rest = text.partition(",")
        rest_parts = rest.split()
        return (rest_parts[0] if rest_parts else "UNKNOWN"), (last.strip() or "UNKNOWN")

    parts = text.split()
    if len(parts) >= 2:
        return parts[0], parts[-1]
    return text, "UNKNOWN"


# --- Series helpers ------------------------------------------------------------

def normalize_text_series(
    series: pd.Series,
    *,                          # '*' makes strip and upper keyword-only arguments
    strip: bool = True,
    upper: bool = False,
) -> pd.Series:
    """Normalize text to pandas string dtype with optional strip/upper."""
    s = series.astype("string")
    if strip:
        s = s.str.strip()
    if upper:
        s = s.str.upper()
    return s


def normalize_zip_series(series: pd.Series) -> pd.Series:
    """Vectorized ZIP normalization with pandas string dtype."""
    return series.map(normalize_zip).astype("string")


def normalize_product_type_series(series: pd.Series) -> pd.Series:
    return series.map(normalize_product_type).astype("string")


def parse_currency_to_cents_series(series: pd.Series) -> pd.Series:
    """Premium column -> integer cents (Int64)."""
    return series.map(parse_currency_to_cents).astype("Int64")


def parse_sale_date_series(series: pd.Series) -> pd.Series:
    """Date column -> datetime.date objects, None where unparseable (object dtype)."""
    return series.map(parse_sale_date).astype("object")
