"""
Application state and the full analytics snapshot.

State is an immutable value: every change (new file, new filters, a load
failure) produces a new AnalyticsState through one of the reducer
functions below. compute_snapshot derives every output from a state from
scratch, so identical states always give equal snapshots.
"""

from dataclasses import dataclass, field, replace

from ..config import AnalyticsSettings, get_settings
from .analysis import (
    ClientMetrics,
    CycleRollup,
    OverviewMetrics,
    ProductRanking,
    compute_client_metrics,
    compute_cycle_rollup,
    compute_overview_metrics,
    compute_product_ranking,
    records_to_frame,
)
from .baskets import (
    Basket,
    BasketPair,
    BasketStats,
    build_baskets,
    compute_basket_stats,
    mine_association_rules,
    product_names_by_sku,
)
from .filters import RecordFilters, apply_filters
from .forecasting import Prediction, find_growing_products, generate_predictions
from .ingest import IngestionResult
from .models import CanonicalRecord
from .quality import DataQualityReport


@dataclass(frozen=True)
class AnalyticsState:
    records: tuple[CanonicalRecord, ...] = ()
    quality: DataQualityReport | None = None
    filters: RecordFilters = field(default_factory=RecordFilters)
    error: str | None = None

    @property
    def has_data(self) -> bool:
        return len(self.records) > 0


def load_result(state: AnalyticsState, result: IngestionResult) -> AnalyticsState:
    """Replace the data with a freshly ingested file. Filters are kept."""
    return replace(state, records=result.records, quality=result.quality, error=None)


def update_filters(state: AnalyticsState, **changes) -> AnalyticsState:
    return replace(state, filters=replace(state.filters, **changes))


def reset_filters(state: AnalyticsState) -> AnalyticsState:
    return replace(state, filters=RecordFilters())


def record_failure(state: AnalyticsState, message: str) -> AnalyticsState:
    """Keep the previous data; a failed load never yields a partial result."""
    return replace(state, error=message)


def clear_data(state: AnalyticsState) -> AnalyticsState:
    return AnalyticsState()


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Every output of the pipeline for one state."""

    records: tuple[CanonicalRecord, ...]
    overview: OverviewMetrics
    products: list[ProductRanking]
    cycles: list[CycleRollup]
    clients: list[ClientMetrics]
    baskets: list[Basket]
    basket_stats: BasketStats
    pairs: list[BasketPair]
    predictions: list[Prediction]
    growing_products: list[Prediction]


def compute_snapshot(
    state: AnalyticsState, settings: AnalyticsSettings | None = None
) -> AnalyticsSnapshot:
    settings = settings or get_settings()
    include = state.filters.include_non_sales

    records = apply_filters(state.records, state.filters)
    frame = records_to_frame(records)
    baskets = build_baskets(records, include)
    predictions = generate_predictions(records, include, settings.min_cycles)

    return AnalyticsSnapshot(
        records=records,
        overview=compute_overview_metrics(frame, include),
        products=compute_product_ranking(frame, include),
        cycles=compute_cycle_rollup(frame, include),
        clients=compute_client_metrics(frame, include),
        baskets=baskets,
        basket_stats=compute_basket_stats(baskets),
        pairs=mine_association_rules(
            baskets, settings.min_support, product_names_by_sku(records)
        ),
        predictions=predictions,
        growing_products=find_growing_products(predictions, settings.growing_top_n),
    )
