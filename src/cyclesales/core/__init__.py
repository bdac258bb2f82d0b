# Pure pipeline: normalization, aggregation, basket mining and forecasting.
# Nothing in this package performs I/O.

from .models import (
    INVALID_SKU,
    UNKNOWN,
    CanonicalRecord,
    ClientSegment,
    DeliveryCategory,
    ForecastConfidence,
    RawRow,
    TransactionType,
    Trend,
)
from .parsers import (
    CycleInfo,
    DateParser,
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
from .quality import DataQualityReport
from .ingest import IngestionResult, normalize_row, normalize_rows
from .filters import RecordFilters, apply_filters, available_values
from .analysis import (
    ClientMetrics,
    CycleRollup,
    OverviewMetrics,
    ProductRanking,
    compute_client_metrics,
    compute_cycle_rollup,
    compute_overview_metrics,
    compute_product_ranking,
    count_segments,
    percentile,
    segment_clients,
)
from .baskets import (
    Basket,
    BasketPair,
    BasketStats,
    SegmentProduct,
    build_baskets,
    compute_basket_stats,
    find_segment_products,
    mine_association_rules,
    product_names_by_sku,
    suggest_complementary_products,
)
from .forecasting import (
    CategoryPrediction,
    HistoryPoint,
    LinearTrendModel,
    Prediction,
    calculate_growth_rate,
    find_growing_products,
    generate_category_predictions,
    generate_predictions,
    predict_sku,
)
from .pipeline import AnalyticsSnapshot, AnalyticsState, compute_snapshot
from .summary import AnalyticsExport, build_export

__all__ = [
    "INVALID_SKU",
    "UNKNOWN",
    "CanonicalRecord",
    "ClientSegment",
    "DeliveryCategory",
    "ForecastConfidence",
    "RawRow",
    "TransactionType",
    "Trend",
    "CycleInfo",
    "DateParser",
    "categorize_delivery",
    "compute_basket_key",
    "extract_management_code",
    "normalize_capture_date",
    "normalize_channel",
    "normalize_customer_name",
    "normalize_product_name",
    "normalize_sku",
    "normalize_transaction_type",
    "parse_cycle",
    "sanitize_number",
    "DataQualityReport",
    "IngestionResult",
    "normalize_row",
    "normalize_rows",
    "RecordFilters",
    "apply_filters",
    "available_values",
    "ClientMetrics",
    "CycleRollup",
    "OverviewMetrics",
    "ProductRanking",
    "compute_client_metrics",
    "compute_cycle_rollup",
    "compute_overview_metrics",
    "compute_product_ranking",
    "count_segments",
    "percentile",
    "segment_clients",
    "Basket",
    "BasketPair",
    "BasketStats",
    "SegmentProduct",
    "build_baskets",
    "compute_basket_stats",
    "find_segment_products",
    "mine_association_rules",
    "product_names_by_sku",
    "suggest_complementary_products",
    "CategoryPrediction",
    "HistoryPoint",
    "LinearTrendModel",
    "Prediction",
    "calculate_growth_rate",
    "find_growing_products",
    "generate_category_predictions",
    "generate_predictions",
    "predict_sku",
    "AnalyticsSnapshot",
    "AnalyticsState",
    "compute_snapshot",
    "AnalyticsExport",
    "build_export",
]
