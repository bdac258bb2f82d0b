"""
Data quality accounting for spreadsheet ingestion.

Each normalized row reports the error categories it hit; the tracker
counts them and produces a DataQualityReport with human readable warnings.
"""

from dataclasses import dataclass, field

# Error categories, in the order warnings are reported
MANAGEMENT_INVALID = "management_invalid"
CYCLE_INVALID = "cycle_invalid"
SKU_INVALID = "sku_invalid"
NEGATIVE_VALUE = "negative_value"
MISSING_FIELDS = "missing_fields"

ERROR_CATEGORIES = (
    MANAGEMENT_INVALID,
    CYCLE_INVALID,
    SKU_INVALID,
    NEGATIVE_VALUE,
    MISSING_FIELDS,
)

_WARNING_TEMPLATES = {
    MANAGEMENT_INVALID: "{count:,} rows with invalid or missing management code",
    CYCLE_INVALID: "{count:,} rows with invalid or missing cycle",
    SKU_INVALID: "{count:,} rows with invalid or missing SKU",
    NEGATIVE_VALUE: "{count:,} negative quantities or values (adjusted to 0)",
    MISSING_FIELDS: "{count:,} rows missing the customer name or other required fields",
}


def _empty_counts() -> dict[str, int]:
    return {category: 0 for category in ERROR_CATEGORIES}


@dataclass(frozen=True)
class DataQualityReport:
    """Summary of how clean one ingested file was."""

    total_rows: int
    valid_rows: int
    error_rows: int
    error_counts: dict[str, int] = field(default_factory=_empty_counts)

    @property
    def percent_valid(self) -> float:
        if self.total_rows == 0:
            return 0.0
        return self.valid_rows / self.total_rows * 100

    @property
    def has_errors(self) -> bool:
        return self.error_rows > 0

    @property
    def warnings(self) -> list[str]:
        return [
            _WARNING_TEMPLATES[category].format(count=self.error_counts.get(category, 0))
            for category in ERROR_CATEGORIES
            if self.error_counts.get(category, 0) > 0
        ]

    def summary(self) -> dict:
        """Return a summary dict for display."""
        return {
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "error_rows": self.error_rows,
            "percent_valid": round(self.percent_valid, 1),
            "error_counts": dict(self.error_counts),
            "warnings": self.warnings,
        }


class QualityTracker:
    """Accumulates per-row error categories while a file is normalized."""

    def __init__(self):
        self.total_rows = 0
        self.valid_rows = 0
        self.error_rows = 0
        self.error_counts = _empty_counts()

    def add_row(self, categories: list[str]) -> None:
        self.total_rows += 1
        for category in categories:
            self.error_counts[category] += 1
        if categories:
            self.error_rows += 1
        else:
            self.valid_rows += 1

    def report(self) -> DataQualityReport:
        return DataQualityReport(
            total_rows=self.total_rows,
            valid_rows=self.valid_rows,
            error_rows=self.error_rows,
            error_counts=dict(self.error_counts),
        )
