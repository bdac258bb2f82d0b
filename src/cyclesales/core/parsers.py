"""
Field-level normalizers for the sales spreadsheet.

These parsers handle the messy reality of the export:
- Management codes buried in free text ("13706 - DEPT NAME") or stored as numbers
- Product codes with lost leading zeros or stray characters
- Cycles written as MM/YYYY or MM-YYYY
- Capture dates as text, real date cells or spreadsheet day serials
- Channel names with assorted dash characters and spacing

Every function is total: malformed input degrades to a sentinel value
(UNKNOWN / INVALID / None / 0) instead of raising.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from .models import INVALID_SKU, UNKNOWN, DeliveryCategory, TransactionType

# Spreadsheet day 0 is 1899-12-30; day 25569 is 1970-01-01
EXCEL_EPOCH_OFFSET = 25569
_UNIX_EPOCH = date(1970, 1, 1)

_MANAGEMENT_CODE = re.compile(r"\d{5}")
_NON_DIGITS = re.compile(r"\D")
_CYCLE = re.compile(r"(\d{1,2})[/-](\d{4})")
_WHITESPACE = re.compile(r"\s+")
_DASH_VARIANTS = re.compile(r"[–—−]")  # en dash, em dash, minus sign
_SPACED_HYPHEN = re.compile(r"\s*-\s*")
_NUMERIC_TEXT = re.compile(r"^\d+(\.\d+)?$")

_TRANSACTION_TYPES = {
    "venda": TransactionType.SALE,
    "brinde": TransactionType.GIFT,
    "doação": TransactionType.DONATION,
    "doacao": TransactionType.DONATION,
}


@dataclass(frozen=True)
class CycleInfo:
    """A parsed sales cycle. index = year * 12 + month, -1 when unknown."""

    label: str
    index: int
    month: int
    year: int

    @property
    def is_known(self) -> bool:
        return self.index >= 0


UNKNOWN_CYCLE = CycleInfo(label=UNKNOWN, index=-1, month=0, year=0)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _as_text(value: Any) -> str:
    # 1234.0 -> "1234": float codes would otherwise gain a trailing zero digit
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def extract_management_code(value: str | int | float | None) -> str:
    """Return the first run of 5 digits ("13706 - DEPT" -> "13706") or UNKNOWN."""
    if _is_missing(value):
        return UNKNOWN

    match = _MANAGEMENT_CODE.search(_as_text(value))
    return match.group(0) if match else UNKNOWN


def normalize_sku(value: str | int | float | None) -> str:
    """
    Normalize a product code to a zero-padded 5 digit SKU.

    Non-digit characters are stripped first. Codes with no digits or more
    than 6 digits are INVALID. Six digit codes pass through unpadded.
    """
    if _is_missing(value):
        return INVALID_SKU

    digits = _NON_DIGITS.sub("", _as_text(value))
    if len(digits) == 0 or len(digits) > 6:
        return INVALID_SKU

    return digits.zfill(5)


def parse_cycle(value: str | None) -> CycleInfo:
    """Parse "MM/YYYY" or "MM-YYYY" into a CycleInfo."""
    if _is_missing(value):
        return UNKNOWN_CYCLE

    text = str(value)
    match = _CYCLE.search(text)
    if not match:
        return UNKNOWN_CYCLE

    month = int(match.group(1))
    year = int(match.group(2))
    if not 1 <= month <= 12 or not 2000 <= year <= 2100:
        return UNKNOWN_CYCLE

    return CycleInfo(label=text.strip(), index=year * 12 + month, month=month, year=year)


def _collapse_whitespace(value: Any) -> str:
    if _is_missing(value):
        return ""
    return _WHITESPACE.sub(" ", str(value).strip())


def normalize_customer_name(name: str | None) -> str:
    """Trim, collapse internal whitespace and upper-case."""
    result = _collapse_whitespace(name)
    return result.upper() if result else UNKNOWN


def normalize_product_name(name: str | None) -> str:
    return _collapse_whitespace(name) or UNKNOWN


def normalize_channel(channel: str | None) -> str:
    """
    Normalize the capture channel.

    "APP  –  Loja" and "App-Loja" style variants collapse to "APP - Loja":
    dash variants become ASCII hyphens with exactly one space either side.
    """
    result = _collapse_whitespace(channel)
    if not result:
        return UNKNOWN

    result = _DASH_VARIANTS.sub("-", result)
    return _SPACED_HYPHEN.sub(" - ", result)


def categorize_delivery(delivery_type: str | None) -> DeliveryCategory:
    if _is_missing(delivery_type):
        return DeliveryCategory.UNKNOWN

    text = str(delivery_type).lower().strip()
    if "endereço" in text or "endereco" in text:
        return DeliveryCategory.SHIPPED
    if "retirar" in text or "central" in text:
        return DeliveryCategory.PICKED_UP
    return DeliveryCategory.UNKNOWN


def normalize_transaction_type(value: str | None) -> TransactionType:
    if _is_missing(value):
        return TransactionType.OTHER
    return _TRANSACTION_TYPES.get(str(value).lower().strip(), TransactionType.OTHER)


def excel_serial_to_date(serial: float) -> date | None:
    """Convert a spreadsheet day serial (1899-12-30 based) to a date."""
    if not math.isfinite(serial):
        return None
    try:
        return _UNIX_EPOCH + timedelta(days=math.floor(serial - EXCEL_EPOCH_OFFSET))
    except OverflowError:
        return None


class DateParser:
    """
    Text date parser that tries several formats found in the exports.

    ISO forms come first, then day-first localized forms (DD/MM/YYYY).
    To extend: add patterns to DATE_FORMATS or pass custom_formats.
    """

    DATE_FORMATS = [
        "%Y-%m-%d",  # ISO: 2025-07-25
        "%Y-%m-%dT%H:%M:%S",  # ISO with time
        "%Y-%m-%d %H:%M:%S",
        "%d/%m/%Y",  # localized: 25/07/2025
        "%d/%m/%Y %H:%M:%S",
        "%d/%m/%Y %H:%M",
        "%d-%m-%Y",  # 25-07-2025
        "%d/%m/%y",  # 25/07/25
        "%Y/%m/%d",  # 2025/07/25
    ]

    def __init__(self, custom_formats: list[str] | None = None):
        """
        Args:
            custom_formats: Additional date formats to try (prepended to defaults)
        """
        self.formats = (custom_formats or []) + self.DATE_FORMATS
        self._cache: dict[str, date | None] = {}

    def parse(self, date_str: str | None) -> date | None:
        """Parse a date string, trying multiple formats."""
        if _is_missing(date_str) or not str(date_str).strip():
            return None

        date_str = str(date_str).strip()

        if date_str in self._cache:
            return self._cache[date_str]

        result = None
        for fmt in self.formats:
            try:
                result = datetime.strptime(date_str, fmt).date()
                break
            except ValueError:
                continue

        if result is None:
            try:
                result = datetime.fromisoformat(date_str).date()
            except ValueError:
                result = None

        self._cache[date_str] = result
        return result


_default_date_parser = DateParser()


def normalize_capture_date(
    value: date | datetime | str | float | None, parser: DateParser | None = None
) -> str | None:
    """
    Normalize a capture date to "YYYY-MM-DD".

    Accepts date/datetime values, text dates and spreadsheet day serials
    (numbers or purely numeric text). Anything unparseable returns None.
    """
    if _is_missing(value) or isinstance(value, bool):
        return None

    parsed: date | None
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = excel_serial_to_date(float(value))
    else:
        text = str(value).strip()
        if _NUMERIC_TEXT.match(text):
            parsed = excel_serial_to_date(float(text))
        else:
            parsed = (parser or _default_date_parser).parse(text)

    return parsed.isoformat() if parsed else None


def sanitize_number(value: Any, default: float = 0.0) -> float:
    """Coerce to a non-negative float; absent or NaN returns the default."""
    if _is_missing(value) or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number):
        return default
    return max(0.0, number)


def compute_basket_key(customer_name: str, cycle_label: str, capture_date: str | None) -> str:
    """Key of the synthetic transaction: customer|cycle[|date]."""
    base = f"{customer_name}|{cycle_label}"
    return f"{base}|{capture_date}" if capture_date else base
