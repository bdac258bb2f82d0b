import pytest

from cyclesales.core.forecasting import (
    HistoryPoint,
    LinearTrendModel,
    _round_half_up,
    calculate_growth_rate,
    classify_confidence,
    classify_trend,
    find_growing_products,
    generate_category_predictions,
    generate_predictions,
    predict_sku,
)
from cyclesales.core.models import ForecastConfidence, Trend


def series(make_row, quantities, product_code=1, start_month=1):
    return [
        make_row(
            product_code=product_code,
            capture_cycle=f"{start_month + i:02d}/2026",
            item_quantity=quantity,
        )
        for i, quantity in enumerate(quantities)
    ]


def test_linear_model_exact_fit():
    model = LinearTrendModel().fit([0, 1, 2, 3], [10, 20, 30, 40])

    assert model.slope == pytest.approx(10.0)
    assert model.intercept == pytest.approx(10.0)
    assert model.r_squared == pytest.approx(1.0)
    assert model.predict(4) == pytest.approx(50.0)
    assert model.mean_absolute_error([0, 1, 2, 3], [10, 20, 30, 40]) == pytest.approx(0.0)


def test_linear_model_degenerate_inputs():
    flat = LinearTrendModel().fit([0, 1, 2], [5, 5, 5])
    assert flat.slope == 0.0
    assert flat.r_squared == 0.0

    single_x = LinearTrendModel().fit([2, 2], [4, 6])
    assert single_x.slope == 0.0
    assert single_x.intercept == pytest.approx(5.0)

    with pytest.raises(ValueError):
        LinearTrendModel().fit([], [])
    with pytest.raises(ValueError):
        LinearTrendModel().fit([0, 1], [1])


def test_classifiers():
    assert classify_trend(3.0, 20.0) is Trend.GROWTH
    assert classify_trend(-3.0, 20.0) is Trend.DECLINE
    assert classify_trend(2.0, 20.0) is Trend.STABLE
    assert classify_confidence(0.7) is ForecastConfidence.HIGH
    assert classify_confidence(0.4) is ForecastConfidence.MEDIUM
    assert classify_confidence(0.39) is ForecastConfidence.LOW


def test_linear_series_forecast(make_row, make_records):
    records = make_records(*series(make_row, [10, 20, 30, 40]))
    (prediction,) = generate_predictions(records)

    assert prediction.sku == "00001"
    assert [h.quantity for h in prediction.history] == [10, 20, 30, 40]
    assert prediction.r_squared == pytest.approx(1.0)
    assert prediction.confidence is ForecastConfidence.HIGH
    assert prediction.trend is Trend.GROWTH
    assert prediction.next_cycle_forecast == 50
    assert prediction.mean_absolute_error == 0.0


def test_constant_series_forecast(make_row, make_records):
    records = make_records(*series(make_row, [10, 10, 10, 10]))
    (prediction,) = generate_predictions(records)

    assert prediction.trend is Trend.STABLE
    assert prediction.next_cycle_forecast == 10
    assert prediction.confidence is ForecastConfidence.LOW


def test_forecast_and_error_are_rounded(make_row, make_records):
    records = make_records(*series(make_row, [10, 25, 20, 40]))
    (prediction,) = generate_predictions(records)

    # Fitted line 11 + 8.5x; residuals -1, 5.5, -8, 3.5
    assert prediction.slope == pytest.approx(8.5)
    assert prediction.mean_absolute_error == 4.5
    assert prediction.next_cycle_forecast == 45
    assert prediction.confidence is ForecastConfidence.HIGH


def test_half_forecast_rounds_up(make_row, make_records):
    # Line 1 + 0.5x extended to x=3 gives exactly 2.5
    records = make_records(*series(make_row, [1, 1.5, 2]))
    (prediction,) = generate_predictions(records)

    assert prediction.next_cycle_forecast == 3


def test_round_half_up():
    assert _round_half_up(2.5) == 3
    assert _round_half_up(3.5) == 4
    assert _round_half_up(2.49) == 2
    assert _round_half_up(0.25, 1) == 0.3
    assert _round_half_up(4.5, 1) == 4.5


def test_forecast_never_negative(make_row, make_records):
    records = make_records(*series(make_row, [30, 20, 10, 1]))
    (prediction,) = generate_predictions(records)

    assert prediction.trend is Trend.DECLINE
    assert prediction.next_cycle_forecast == 0


def test_history_is_summed_per_cycle_in_calendar_order(make_row, make_records):
    records = make_records(
        make_row(capture_cycle="02/2026", item_quantity=4),
        make_row(capture_cycle="12/2025", item_quantity=1),
        make_row(capture_cycle="02/2026", item_quantity=6),
        make_row(capture_cycle="01/2026", item_quantity=5),
        make_row(capture_cycle="sem ciclo", item_quantity=100),
    )
    (prediction,) = generate_predictions(records)

    assert [(h.cycle_label, h.quantity) for h in prediction.history] == [
        ("12/2025", 1),
        ("01/2026", 5),
        ("02/2026", 10),
    ]


def test_skus_with_short_history_are_skipped(make_row, make_records):
    records = make_records(*series(make_row, [10, 20]))

    assert generate_predictions(records) == []
    assert len(generate_predictions(records, min_cycles=2)) == 1
    assert predict_sku("00001", records) is None


def test_non_sales_follow_the_include_flag(make_row, make_records):
    rows = series(make_row, [10, 20, 30])
    rows.append(make_row(capture_cycle="03/2026", item_quantity=30, transaction_type="Brinde"))
    records = make_records(*rows)

    (sales_only,) = generate_predictions(records)
    (with_gifts,) = generate_predictions(records, include_non_sales=True)
    assert sales_only.history[-1].quantity == 30
    assert with_gifts.history[-1].quantity == 60


def test_predictions_sorted_by_forecast(make_row, make_records):
    records = make_records(
        *series(make_row, [1, 2, 3], product_code=1),
        *series(make_row, [10, 20, 30], product_code=2),
    )
    assert [p.sku for p in generate_predictions(records)] == ["00002", "00001"]
    assert predict_sku("00001", records).next_cycle_forecast == 4


def test_find_growing_products(make_row, make_records):
    records = make_records(
        *series(make_row, [10, 20, 30, 40], product_code=1),
        *series(make_row, [10, 10, 10, 10], product_code=2),
        *series(make_row, [40, 30, 20, 10], product_code=3),
        *series(make_row, [5, 30, 10, 45], product_code=4),
    )
    growing = find_growing_products(generate_predictions(records))

    assert growing[0].sku == "00001"
    assert {p.sku for p in growing} <= {"00001", "00004"}
    assert all(p.confidence is not ForecastConfidence.LOW for p in growing)
    assert find_growing_products(generate_predictions(records), top_n=1) == growing[:1]


def test_calculate_growth_rate():
    history = [
        HistoryPoint("01/2026", 1, 10),
        HistoryPoint("02/2026", 2, 20),
        HistoryPoint("03/2026", 3, 0),
        HistoryPoint("04/2026", 4, 5),
    ]
    # +100% and -100%; the step from zero is ignored
    assert calculate_growth_rate(history) == pytest.approx(0.0)
    assert calculate_growth_rate(history[:2]) == pytest.approx(100.0)
    assert calculate_growth_rate(history[:1]) == 0.0


def test_category_predictions(make_row, make_records):
    records = make_records(
        *series(make_row, [1, 2, 3], product_code=12001),
        *series(make_row, [2, 4, 6], product_code=12002),
        *series(make_row, [5, 5, 5], product_code=34001),
    )
    categories = {c.category: c for c in generate_category_predictions(records)}

    assert set(categories) == {"12", "34"}
    assert [h.quantity for h in categories["12"].history] == [3, 6, 9]
    assert categories["12"].next_cycle_forecast == 12
    assert categories["12"].trend is Trend.GROWTH
    assert categories["34"].trend is Trend.STABLE
