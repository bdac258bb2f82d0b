"""
Sales aggregation functions.

Computes metrics for:
- Overview (revenue, tickets, items, points, distinct counts)
- Product ranking
- Per-cycle rollup
- Per-customer metrics and heuristic segmentation

Every function is a pure reduction over the canonical records (or a frame
built from them by records_to_frame) plus the include_non_sales flag.
Revenue and ticket figures always use Sale rows only; the flag only widens
the quantity and SKU coverage aggregates to gifts, donations and others.
"""

from collections.abc import Sequence
from dataclasses import dataclass, fields, replace

import numpy as np
import pandas as pd

from .models import (
    INVALID_SKU,
    CanonicalRecord,
    ClientSegment,
    DeliveryCategory,
    TransactionType,
)

FRAME_COLUMNS = [f.name for f in fields(CanonicalRecord)]

RecordsOrFrame = Sequence[CanonicalRecord] | pd.DataFrame


@dataclass(frozen=True)
class OverviewMetrics:
    total_revenue: float
    average_ticket_per_purchase: float
    average_ticket_per_customer: float
    items_sold: float
    total_points: float
    distinct_transactions: int
    distinct_customers: int
    distinct_skus: int


@dataclass(frozen=True)
class ProductRanking:
    sku: str
    product_name: str
    quantity: float
    revenue: float
    transaction_count: int
    customer_count: int


@dataclass(frozen=True)
class CycleRollup:
    cycle_label: str
    cycle_index: int
    revenue: float
    items: float
    transaction_count: int
    customer_count: int


@dataclass(frozen=True)
class ClientMetrics:
    customer_name: str
    management_code: str
    sector: str

    # Frequency
    transaction_count: int
    active_cycles: int

    # Volume and value
    items_purchased: float
    revenue: float
    ticket_per_purchase: float
    ticket_per_cycle: float

    distinct_skus: int

    # Logistics and channel, as percentages of the customer's rows
    shipped_percentage: float
    pickup_percentage: float
    dominant_channel: str
    dominant_channel_share: float

    points: float

    score: int = 0
    segment: ClientSegment = ClientSegment.NEW


def records_to_frame(records: Sequence[CanonicalRecord]) -> pd.DataFrame:
    """Flatten records into a DataFrame; enum columns hold their string values."""
    df = pd.DataFrame(
        [[getattr(r, col) for col in FRAME_COLUMNS] for r in records],
        columns=FRAME_COLUMNS,
    )
    df["transaction_type"] = df["transaction_type"].map(lambda t: t.value)
    df["delivery_category"] = df["delivery_category"].map(lambda d: d.value)
    for col in ("points", "item_quantity", "practiced_value", "sale_line_value"):
        df[col] = df[col].astype(float)
    df["cycle_index"] = df["cycle_index"].astype(int)
    return df


def _as_frame(data: RecordsOrFrame) -> pd.DataFrame:
    if isinstance(data, pd.DataFrame):
        return data
    return records_to_frame(data)


def _sales_mask(df: pd.DataFrame) -> pd.Series:
    return df["transaction_type"] == TransactionType.SALE.value


def _analysis_mask(df: pd.DataFrame, include_non_sales: bool) -> pd.Series:
    """Rows that count towards quantity/SKU aggregates."""
    if include_non_sales:
        return pd.Series(True, index=df.index)
    return _sales_mask(df)


def _with_counted_quantity(df: pd.DataFrame, include_non_sales: bool) -> pd.DataFrame:
    mask = _analysis_mask(df, include_non_sales)
    return df.assign(counted_quantity=df["item_quantity"].where(mask, 0.0))


def _mean(values: pd.Series) -> float:
    return float(values.mean()) if len(values) > 0 else 0.0


def compute_overview_metrics(
    data: RecordsOrFrame, include_non_sales: bool = False
) -> OverviewMetrics:
    """
    Compute headline metrics.

    Distinct customer/SKU/transaction counts use every record regardless of
    the flag. Points are a per-cycle snapshot, so each (customer, cycle)
    contributes its highest value once.
    """
    df = _as_frame(data)
    sales = df[_sales_mask(df)]
    analysed = df[_analysis_mask(df, include_non_sales)]

    revenue_per_basket = sales.groupby("basket_key")["sale_line_value"].sum()
    revenue_per_customer = sales.groupby("customer_name")["sale_line_value"].sum()
    points_per_cycle = df.groupby(["customer_name", "cycle_label"])["points"].max()

    return OverviewMetrics(
        total_revenue=float(sales["sale_line_value"].sum()),
        average_ticket_per_purchase=_mean(revenue_per_basket),
        average_ticket_per_customer=_mean(revenue_per_customer),
        items_sold=float(analysed["item_quantity"].sum()),
        total_points=float(points_per_cycle.sum()),
        distinct_transactions=int(df["basket_key"].nunique()),
        distinct_customers=int(df["customer_name"].nunique()),
        distinct_skus=int(df.loc[df["sku"] != INVALID_SKU, "sku"].nunique()),
    )


def compute_product_ranking(
    data: RecordsOrFrame, include_non_sales: bool = False
) -> list[ProductRanking]:
    """
    Rank products by Sale revenue.

    Returns one entry per valid SKU with summed quantity, revenue and the
    number of distinct transactions and customers, highest revenue first.
    """
    df = _as_frame(data)
    analysed = df[_analysis_mask(df, include_non_sales) & (df["sku"] != INVALID_SKU)]
    if analysed.empty:
        return []

    ranking = (
        analysed.groupby("sku", sort=False)
        .agg(
            product_name=("product_name", "first"),
            quantity=("item_quantity", "sum"),
            revenue=("sale_line_value", "sum"),
            transaction_count=("basket_key", "nunique"),
            customer_count=("customer_name", "nunique"),
        )
        .reset_index()
        .sort_values("revenue", ascending=False, kind="stable")
    )

    return [
        ProductRanking(
            sku=row.sku,
            product_name=row.product_name,
            quantity=float(row.quantity),
            revenue=float(row.revenue),
            transaction_count=int(row.transaction_count),
            customer_count=int(row.customer_count),
        )
        for row in ranking.itertuples(index=False)
    ]


def compute_cycle_rollup(
    data: RecordsOrFrame, include_non_sales: bool = False
) -> list[CycleRollup]:
    """Group every record by cycle, in calendar order (unknown cycle first)."""
    df = _as_frame(data)
    if df.empty:
        return []

    df = _with_counted_quantity(df, include_non_sales)
    rollup = (
        df.groupby("cycle_label", sort=False)
        .agg(
            cycle_index=("cycle_index", "first"),
            revenue=("sale_line_value", "sum"),
            items=("counted_quantity", "sum"),
            transaction_count=("basket_key", "nunique"),
            customer_count=("customer_name", "nunique"),
        )
        .reset_index()
        .sort_values("cycle_index", kind="stable")
    )

    return [
        CycleRollup(
            cycle_label=row.cycle_label,
            cycle_index=int(row.cycle_index),
            revenue=float(row.revenue),
            items=float(row.items),
            transaction_count=int(row.transaction_count),
            customer_count=int(row.customer_count),
        )
        for row in rollup.itertuples(index=False)
    ]


def compute_client_metrics(
    data: RecordsOrFrame, include_non_sales: bool = False
) -> list[ClientMetrics]:
    """
    Compute per-customer metrics, then score and segment them.

    Customers appear in order of first appearance. Item quantities follow
    the include flag; revenue is always Sale-only. Points are the highest
    value per cycle, summed over the customer's cycles.
    """
    df = _as_frame(data)
    if df.empty:
        return []

    df = _with_counted_quantity(df, include_non_sales)
    df = df.assign(valid_sku=df["sku"].where(df["sku"] != INVALID_SKU))

    summary = df.groupby("customer_name", sort=False).agg(
        management_code=("management_code", "first"),
        sector=("sector", "first"),
        transaction_count=("basket_key", "nunique"),
        active_cycles=("cycle_label", "nunique"),
        items_purchased=("counted_quantity", "sum"),
        revenue=("sale_line_value", "sum"),
        distinct_skus=("valid_sku", "nunique"),
        row_count=("sku", "size"),
    )

    deliveries = pd.crosstab(df["customer_name"], df["delivery_category"]).reindex(
        index=summary.index, columns=[c.value for c in DeliveryCategory], fill_value=0
    )

    # First channel reaching the highest count wins ties
    channel_counts = df.groupby(["customer_name", "channel"], sort=False).size()
    by_customer = channel_counts.groupby(level=0, sort=False)
    dominant_channel = by_customer.idxmax().map(lambda key: key[1])
    dominant_count = by_customer.max()

    points = (
        df.groupby(["customer_name", "cycle_label"], sort=False)["points"]
        .max()
        .groupby(level=0, sort=False)
        .sum()
    )

    clients = []
    for name, row in summary.iterrows():
        rows = int(row["row_count"])
        transactions = int(row["transaction_count"])
        cycles = int(row["active_cycles"])
        revenue = float(row["revenue"])

        clients.append(
            ClientMetrics(
                customer_name=name,
                management_code=row["management_code"],
                sector=row["sector"],
                transaction_count=transactions,
                active_cycles=cycles,
                items_purchased=float(row["items_purchased"]),
                revenue=revenue,
                ticket_per_purchase=revenue / transactions if transactions > 0 else 0.0,
                ticket_per_cycle=revenue / cycles if cycles > 0 else 0.0,
                distinct_skus=int(row["distinct_skus"]),
                shipped_percentage=(
                    float(deliveries.at[name, DeliveryCategory.SHIPPED.value]) / rows * 100
                    if rows > 0
                    else 0.0
                ),
                pickup_percentage=(
                    float(deliveries.at[name, DeliveryCategory.PICKED_UP.value]) / rows * 100
                    if rows > 0
                    else 0.0
                ),
                dominant_channel=dominant_channel[name],
                dominant_channel_share=(
                    float(dominant_count[name]) / rows * 100 if rows > 0 else 0.0
                ),
                points=float(points[name]),
            )
        )

    return segment_clients(clients)


def percentile(values: Sequence[float], p: float) -> float:
    """
    Percentile with linear interpolation between order statistics.

    index = (p / 100) * (n - 1), interpolated between floor and ceil ranks.
    Returns 0 for an empty sequence.
    """
    if len(values) == 0:
        return 0.0
    return float(np.percentile(np.asarray(values, dtype=float), p, method="linear"))


@dataclass(frozen=True)
class SegmentThresholds:
    """Revenue and frequency cut-offs across the client set under analysis."""

    p50_revenue: float
    p75_revenue: float
    p90_revenue: float
    p50_frequency: float
    p75_frequency: float

    @classmethod
    def from_clients(cls, clients: Sequence[ClientMetrics]) -> "SegmentThresholds":
        revenues = [c.revenue for c in clients]
        frequencies = [c.transaction_count for c in clients]
        return cls(
            p50_revenue=percentile(revenues, 50),
            p75_revenue=percentile(revenues, 75),
            p90_revenue=percentile(revenues, 90),
            p50_frequency=percentile(frequencies, 50),
            p75_frequency=percentile(frequencies, 75),
        )


def score_client(client: ClientMetrics, t: SegmentThresholds) -> int:
    """
    Score a client from 0 to 100.

    Revenue band (10-40) + frequency band (10-30) + ticket band (0-20)
    + product mix band (0-10). The ticket band is skipped when the median
    frequency is zero.
    """
    score = 0

    if client.revenue >= t.p90_revenue:
        score += 40
    elif client.revenue >= t.p75_revenue:
        score += 30
    elif client.revenue >= t.p50_revenue:
        score += 20
    else:
        score += 10

    if client.transaction_count >= t.p75_frequency:
        score += 30
    elif client.transaction_count >= t.p50_frequency:
        score += 20
    else:
        score += 10

    if t.p50_frequency > 0:
        if client.ticket_per_purchase >= t.p75_revenue / t.p50_frequency:
            score += 20
        elif client.ticket_per_purchase >= t.p50_revenue / t.p50_frequency:
            score += 10

    if client.distinct_skus >= 10:
        score += 10
    elif client.distinct_skus >= 5:
        score += 5

    return score


def classify_client(client: ClientMetrics, t: SegmentThresholds) -> ClientSegment:
    """First matching rule wins."""
    if client.revenue >= t.p90_revenue and client.transaction_count >= t.p75_frequency:
        return ClientSegment.VIP
    if client.revenue >= t.p75_revenue or client.transaction_count >= t.p75_frequency:
        return ClientSegment.POTENTIAL
    if client.transaction_count < t.p50_frequency and client.active_cycles <= 1:
        return ClientSegment.NEW
    if (
        t.p75_frequency > 0
        and client.ticket_per_purchase < t.p50_revenue / t.p75_frequency
        and client.items_purchased > t.p75_frequency
    ):
        return ClientSegment.PROMO_HUNTER
    if client.pickup_percentage >= 80:
        return ClientSegment.LOGISTICS_SENSITIVE
    return ClientSegment.OCCASIONAL


def segment_clients(clients: Sequence[ClientMetrics]) -> list[ClientMetrics]:
    """Return copies of the clients with score and segment filled in."""
    if not clients:
        return []

    thresholds = SegmentThresholds.from_clients(clients)
    return [
        replace(
            c,
            score=score_client(c, thresholds),
            segment=classify_client(c, thresholds),
        )
        for c in clients
    ]


def count_segments(clients: Sequence[ClientMetrics]) -> dict[str, int]:
    """Clients per segment, every segment present (zero when empty)."""
    counts = {segment.value: 0 for segment in ClientSegment}
    for c in clients:
        counts[c.segment.value] += 1
    return counts
