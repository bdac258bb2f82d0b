from cyclesales.core.filters import RecordFilters, apply_filters, available_values
from cyclesales.core.models import DeliveryCategory


def test_empty_filters_keep_everything(sample_records):
    assert apply_filters(sample_records, RecordFilters()) == tuple(sample_records)


def test_selection_filters(sample_records):
    by_cycle = apply_filters(sample_records, RecordFilters(cycles=("02/2026",)))
    assert [r.cycle_label for r in by_cycle] == ["02/2026"]

    pickups = apply_filters(
        sample_records, RecordFilters(delivery_categories=(DeliveryCategory.PICKED_UP,))
    )
    assert {r.customer_name for r in pickups} == {"BIA"}

    nothing = apply_filters(sample_records, RecordFilters(management_codes=("99999",)))
    assert nothing == ()


def test_customer_search_is_case_insensitive(sample_records):
    matched = apply_filters(sample_records, RecordFilters(customer_search="bi"))
    assert [r.customer_name for r in matched] == ["BIA"]


def test_product_search_matches_name_or_sku(make_records, make_row):
    records = make_records(
        make_row(product_code=1234, product_name="Perfume Floral"),
        make_row(product_code=5678, product_name="Sabonete"),
    )

    assert [r.sku for r in apply_filters(records, RecordFilters(product_search="floral"))] == [
        "01234"
    ]
    assert [r.sku for r in apply_filters(records, RecordFilters(product_search="567"))] == [
        "05678"
    ]


def test_include_flag_is_not_a_predicate(sample_records):
    filters = RecordFilters(include_non_sales=False)
    assert len(apply_filters(sample_records, filters)) == len(sample_records)


def test_available_values(make_records, make_row):
    records = make_records(
        make_row(capture_cycle="01/2026", sector="B"),
        make_row(capture_cycle="12/2025", sector="A"),
        make_row(capture_cycle="02/2025", sector="A"),
    )
    options = available_values(records)

    assert options["cycles"] == ["02/2025", "12/2025", "01/2026"]
    assert options["sectors"] == ["A", "B"]
    assert options["management_codes"] == ["13706"]
    assert options["channels"] == ["APP - Loja"]
