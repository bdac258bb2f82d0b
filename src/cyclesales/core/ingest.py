"""
Row-by-row normalization of parsed spreadsheet data.

Takes the rows produced by a file reader (plain mappings keyed by the
spreadsheet headers, or RawRow instances) and turns each one into a
CanonicalRecord. A bad row never stops the run: it is kept with sentinel
values, annotated with its errors and counted in the quality report.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from pydantic import ValidationError

from .models import INVALID_SKU, UNKNOWN, CanonicalRecord, RawRow, TransactionType
from .parsers import (
    categorize_delivery,
    compute_basket_key,
    extract_management_code,
    normalize_capture_date,
    normalize_channel,
    normalize_customer_name,
    normalize_product_name,
    normalize_sku,
    normalize_transaction_type,
    parse_cycle,
    sanitize_number,
)
from .quality import (
    CYCLE_INVALID,
    MANAGEMENT_INVALID,
    MISSING_FIELDS,
    NEGATIVE_VALUE,
    SKU_INVALID,
    DataQualityReport,
    QualityTracker,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionResult:
    """Normalized records plus the quality report for one input."""

    records: tuple[CanonicalRecord, ...]
    quality: DataQualityReport


def _customer_fallback(raw: RawRow) -> str:
    name = normalize_customer_name(raw.customer_name)
    if name == UNKNOWN and raw.customer_code is not None:
        code = str(raw.customer_code).strip()
        if code:
            return f"CUSTOMER_{code}"
    return name


def normalize_row(raw: RawRow, index: int) -> tuple[CanonicalRecord, list[str]]:
    """
    Normalize one validated row.

    Returns the record and the quality categories it failed, in the order
    the fields are checked.
    """
    errors: list[str] = []
    categories: list[str] = []

    management_code = extract_management_code(raw.management)
    if management_code == UNKNOWN:
        errors.append("Invalid or missing management code")
        categories.append(MANAGEMENT_INVALID)

    sector = raw.sector.strip() if raw.sector and raw.sector.strip() else UNKNOWN

    customer_name = _customer_fallback(raw)
    if customer_name == UNKNOWN:
        errors.append("Missing customer name")
        categories.append(MISSING_FIELDS)

    points = sanitize_number(raw.points, 0.0)

    cycle = parse_cycle(raw.capture_cycle)
    if not cycle.is_known:
        errors.append("Invalid or missing cycle")
        categories.append(CYCLE_INVALID)

    sku = normalize_sku(raw.product_code)
    if sku == INVALID_SKU:
        errors.append("Invalid or missing SKU")
        categories.append(SKU_INVALID)

    transaction_type = normalize_transaction_type(raw.transaction_type)
    capture_date = normalize_capture_date(raw.capture_date)

    item_quantity = sanitize_number(raw.item_quantity, 0.0)
    if raw.item_quantity is not None and raw.item_quantity < 0:
        errors.append("Negative item quantity")
        categories.append(NEGATIVE_VALUE)

    practiced_value = sanitize_number(raw.practiced_value, 0.0)
    if raw.practiced_value is not None and raw.practiced_value < 0:
        errors.append("Negative practiced value")
        categories.append(NEGATIVE_VALUE)

    # The practiced value is already the line total
    sale_line_value = practiced_value if transaction_type is TransactionType.SALE else 0.0

    record = CanonicalRecord(
        management_code=management_code,
        sector=sector,
        customer_name=customer_name,
        points=points,
        cycle_label=cycle.label,
        cycle_index=cycle.index,
        sku=sku,
        product_name=normalize_product_name(raw.product_name),
        transaction_type=transaction_type,
        capture_date=capture_date,
        item_quantity=item_quantity,
        practiced_value=practiced_value,
        sale_line_value=sale_line_value,
        channel=normalize_channel(raw.capture_channel),
        delivery_category=categorize_delivery(raw.delivery_type),
        basket_key=compute_basket_key(customer_name, cycle.label, capture_date),
        source_row_index=index,
        has_errors=bool(errors),
        errors=tuple(errors),
    )
    return record, categories


def _validate(row: Mapping[str, Any] | RawRow, index: int) -> tuple[RawRow, str | None]:
    if isinstance(row, RawRow):
        return row, None
    try:
        return RawRow.model_validate(row), None
    except ValidationError as exc:
        logger.warning("Row %d does not match the row schema: %s", index, exc)
        return RawRow(), f"Unreadable row ({exc.error_count()} schema errors)"


def normalize_rows(rows: Iterable[Mapping[str, Any] | RawRow]) -> IngestionResult:
    """Normalize every row in order and build the quality report."""
    tracker = QualityTracker()
    records: list[CanonicalRecord] = []

    for index, row in enumerate(rows):
        raw, schema_error = _validate(row, index)
        record, categories = normalize_row(raw, index)

        if schema_error:
            # An empty row is already counted as missing its required fields
            record = replace(
                record, has_errors=True, errors=(schema_error, *record.errors)
            )

        records.append(record)
        tracker.add_row(categories)

    quality = tracker.report()
    logger.debug(
        "Normalized %d rows (%d with errors)", quality.total_rows, quality.error_rows
    )
    return IngestionResult(records=tuple(records), quality=quality)
