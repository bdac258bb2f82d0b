"""
Next-cycle demand forecasts.

Each SKU's quantity per cycle is fitted with an ordinary least squares line
over a zero-based cycle offset; the line is extended one cycle ahead. No
seasonality is modelled.
"""

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from .models import INVALID_SKU, CanonicalRecord, ForecastConfidence, Trend

logger = logging.getLogger(__name__)

DEFAULT_MIN_CYCLES = 3


class LinearTrendModel:
    """Simple linear regression y = slope * x + intercept."""

    def __init__(self):
        self.slope = 0.0
        self.intercept = 0.0
        self.r_squared = 0.0

    def fit(self, x: Sequence[float], y: Sequence[float]) -> "LinearTrendModel":
        """Fit by least squares. A zero-variance x gives a flat line at mean(y)."""
        if len(x) != len(y) or len(x) == 0:
            raise ValueError("x and y must be non-empty and of equal length")

        xs = np.asarray(x, dtype=float)
        ys = np.asarray(y, dtype=float)
        mean_x = xs.mean()
        mean_y = ys.mean()

        numerator = float(((xs - mean_x) * (ys - mean_y)).sum())
        denominator = float(((xs - mean_x) ** 2).sum())

        self.slope = numerator / denominator if denominator != 0 else 0.0
        self.intercept = float(mean_y - self.slope * mean_x)

        ss_res = float(((ys - self.predict(xs)) ** 2).sum())
        ss_tot = float(((ys - mean_y) ** 2).sum())
        self.r_squared = 1 - ss_res / ss_tot if ss_tot != 0 else 0.0
        return self

    def predict(self, x):
        return self.slope * x + self.intercept

    def mean_absolute_error(self, x: Sequence[float], y: Sequence[float]) -> float:
        if len(x) != len(y) or len(x) == 0:
            return 0.0
        residuals = np.asarray(y, dtype=float) - self.predict(np.asarray(x, dtype=float))
        return float(np.abs(residuals).mean())


@dataclass(frozen=True)
class HistoryPoint:
    cycle_label: str
    cycle_index: int
    quantity: float


@dataclass(frozen=True)
class Prediction:
    sku: str
    product_name: str
    history: tuple[HistoryPoint, ...]
    next_cycle_forecast: int
    trend: Trend
    confidence: ForecastConfidence
    mean_absolute_error: float
    r_squared: float
    slope: float


@dataclass(frozen=True)
class CategoryPrediction:
    category: str  # first two SKU digits
    history: tuple[HistoryPoint, ...]
    next_cycle_forecast: int
    trend: Trend


def _round_half_up(value: float, digits: int = 0) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def classify_trend(slope: float, mean_demand: float) -> Trend:
    """Growth/decline when the slope moves more than 10% of mean demand per cycle."""
    if slope > 0.1 * mean_demand:
        return Trend.GROWTH
    if slope < -0.1 * mean_demand:
        return Trend.DECLINE
    return Trend.STABLE


def classify_confidence(r_squared: float) -> ForecastConfidence:
    if r_squared >= 0.7:
        return ForecastConfidence.HIGH
    if r_squared >= 0.4:
        return ForecastConfidence.MEDIUM
    return ForecastConfidence.LOW


@dataclass
class _CycleDemand:
    cycle_index: int
    quantity: float
    product_name: str


def _demand_series(
    records: Iterable[CanonicalRecord], include_non_sales: bool, key
) -> dict[str, dict[str, _CycleDemand]]:
    """
    Sum quantities per (group, cycle label), skipping invalid SKUs and
    unknown cycles.
    """
    series: dict[str, dict[str, _CycleDemand]] = {}
    for r in records:
        if not include_non_sales and not r.is_sale:
            continue
        if r.sku == INVALID_SKU or r.cycle_index == -1:
            continue

        cycles = series.setdefault(key(r), {})
        if r.cycle_label in cycles:
            cycles[r.cycle_label].quantity += r.item_quantity
        else:
            cycles[r.cycle_label] = _CycleDemand(r.cycle_index, r.item_quantity, r.product_name)
    return series


def _history(cycles: dict[str, _CycleDemand]) -> tuple[HistoryPoint, ...]:
    ordered = sorted(cycles.items(), key=lambda item: item[1].cycle_index)
    return tuple(
        HistoryPoint(cycle_label=label, cycle_index=d.cycle_index, quantity=d.quantity)
        for label, d in ordered
    )


def _fit_history(
    history: Sequence[HistoryPoint],
) -> tuple[LinearTrendModel, list[int], list[float]]:
    first_index = min(h.cycle_index for h in history)
    x = [h.cycle_index - first_index for h in history]
    y = [h.quantity for h in history]
    return LinearTrendModel().fit(x, y), x, y


def _forecast(model: LinearTrendModel, x: Sequence[int]) -> int:
    return int(_round_half_up(max(0.0, model.predict(max(x) + 1))))


def generate_predictions(
    records: Iterable[CanonicalRecord],
    include_non_sales: bool = False,
    min_cycles: int = DEFAULT_MIN_CYCLES,
) -> list[Prediction]:
    """
    Forecast next-cycle quantity for every SKU with enough history.

    SKUs seen in fewer than min_cycles distinct cycles are skipped. Results
    are ordered by forecast, largest first.
    """
    predictions = []

    for sku, cycles in _demand_series(records, include_non_sales, lambda r: r.sku).items():
        if len(cycles) < min_cycles:
            logger.debug("Skipping SKU %s: %d cycles of history", sku, len(cycles))
            continue

        history = _history(cycles)
        model, x, y = _fit_history(history)
        mean_demand = sum(y) / len(y)

        predictions.append(
            Prediction(
                sku=sku,
                product_name=cycles[history[0].cycle_label].product_name,
                history=history,
                next_cycle_forecast=_forecast(model, x),
                trend=classify_trend(model.slope, mean_demand),
                confidence=classify_confidence(model.r_squared),
                mean_absolute_error=_round_half_up(model.mean_absolute_error(x, y), 1),
                r_squared=model.r_squared,
                slope=model.slope,
            )
        )

    return sorted(predictions, key=lambda p: p.next_cycle_forecast, reverse=True)


def predict_sku(
    sku: str,
    records: Iterable[CanonicalRecord],
    include_non_sales: bool = False,
    min_cycles: int = DEFAULT_MIN_CYCLES,
) -> Prediction | None:
    """Forecast for a single SKU, or None without enough history."""
    selected = [r for r in records if r.sku == sku]
    for prediction in generate_predictions(selected, include_non_sales, min_cycles):
        return prediction
    return None


def find_growing_products(
    predictions: Sequence[Prediction], top_n: int = 10
) -> list[Prediction]:
    """Growing SKUs with at least medium confidence, high confidence first."""
    growing = [
        p
        for p in predictions
        if p.trend is Trend.GROWTH and p.confidence is not ForecastConfidence.LOW
    ]
    growing.sort(
        key=lambda p: (p.confidence is not ForecastConfidence.HIGH, -p.next_cycle_forecast)
    )
    return growing[:top_n]


def calculate_growth_rate(history: Sequence[HistoryPoint]) -> float:
    """Mean cycle-over-cycle change in percent, ignoring zero predecessors."""
    if len(history) < 2:
        return 0.0

    rates = [
        (current.quantity - previous.quantity) / previous.quantity * 100
        for previous, current in zip(history, history[1:])
        if previous.quantity > 0
    ]
    return sum(rates) / len(rates) if rates else 0.0


def generate_category_predictions(
    records: Iterable[CanonicalRecord],
    include_non_sales: bool = False,
    min_cycles: int = DEFAULT_MIN_CYCLES,
) -> list[CategoryPrediction]:
    """Same forecast, aggregated by SKU category (its first two digits)."""
    predictions = []
    series = _demand_series(records, include_non_sales, lambda r: r.sku[:2])

    for category, cycles in series.items():
        if len(cycles) < min_cycles:
            continue

        history = _history(cycles)
        model, x, y = _fit_history(history)

        predictions.append(
            CategoryPrediction(
                category=category,
                history=history,
                next_cycle_forecast=_forecast(model, x),
                trend=classify_trend(model.slope, sum(y) / len(y)),
            )
        )

    return sorted(predictions, key=lambda p: p.next_cycle_forecast, reverse=True)
