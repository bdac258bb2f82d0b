"""
Structured export summary of an analytics snapshot.

Uses Pydantic models so the summary can be validated and serialized to
JSON for whatever writes the export file (CSV/XLSX writers live outside
this package).
"""

from dataclasses import asdict
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from .analysis import count_segments
from .filters import RecordFilters
from .pipeline import AnalyticsSnapshot


class ExportedProduct(BaseModel):
    """A top product by Sale revenue."""

    sku: str = Field(description="5 digit product code")
    product_name: str
    quantity: float = Field(description="Units counted under the include flag")
    revenue: float = Field(description="Sale-only revenue")
    transaction_count: int
    customer_count: int


class ExportedPair(BaseModel):
    """A frequently co-purchased product pair."""

    item_a: str
    item_b: str
    name_a: str
    name_b: str
    support: float = Field(description="Share of baskets containing both products")
    confidence: float = Field(description="P(item_b | item_a)")
    lift: float = Field(description="Above 1 means bought together more than by chance")
    occurrences: int


class AnalyticsExport(BaseModel):
    """Everything a report export needs, in one serializable document."""

    timestamp: datetime
    filters: dict = Field(description="Filters the snapshot was computed with")
    overview: dict[str, float | int] = Field(description="Headline metrics")
    top_products: list[ExportedProduct]
    top_pairs: list[ExportedPair]
    segment_counts: dict[str, int] = Field(description="Clients per segment")


def build_export(
    snapshot: AnalyticsSnapshot,
    filters: RecordFilters,
    top_n: int = 20,
    timestamp: datetime | None = None,
) -> AnalyticsExport:
    filter_values = asdict(filters)
    filter_values["delivery_categories"] = [c.value for c in filters.delivery_categories]

    return AnalyticsExport(
        timestamp=timestamp or datetime.now(timezone.utc),
        filters=filter_values,
        overview=asdict(snapshot.overview),
        top_products=[ExportedProduct(**asdict(p)) for p in snapshot.products[:top_n]],
        top_pairs=[ExportedPair(**asdict(p)) for p in snapshot.pairs[:top_n]],
        segment_counts=count_segments(snapshot.clients),
    )
