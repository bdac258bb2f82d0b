import math

import numpy as np
import pandas as pd
import pytest

from cyclesales.core.ingest import normalize_rows
from cyclesales.core.models import INVALID_SKU, UNKNOWN, RawRow, TransactionType
from cyclesales.core.quality import (
    CYCLE_INVALID,
    MANAGEMENT_INVALID,
    MISSING_FIELDS,
    NEGATIVE_VALUE,
    SKU_INVALID,
)


def test_raw_row_accepts_spreadsheet_headers():
    raw = RawRow.model_validate(
        {
            "Gerencia": "13706 - GER SUL",
            "NomeRevendedora": "Ana",
            "CicloCaptacao": "01/2026",
            "CodigoProduto": np.int64(1234),
            "ValorPraticado": "55,41",
            " Meio Captacao ": "APP - Loja",
            "Coluna Extra": "ignored",
        }
    )
    assert raw.management == "13706 - GER SUL"
    assert raw.product_code == 1234
    assert raw.practiced_value == pytest.approx(55.41)
    assert raw.capture_channel == "APP - Loja"


def test_raw_row_treats_blank_cells_as_absent():
    raw = RawRow.model_validate(
        {
            "NomeRevendedora": "   ",
            "QuantidadeItens": float("nan"),
            "DataCaptacao": pd.NaT,
            "ValorPraticado": "n/a",
        }
    )
    assert raw.customer_name is None
    assert raw.item_quantity is None
    assert raw.capture_date is None
    assert raw.practiced_value is None


def test_raw_row_cycle_from_date_cell():
    raw = RawRow.model_validate({"CicloCaptacao": pd.Timestamp("2026-01-01")})
    assert raw.capture_cycle == "01/2026"


def test_clean_row(make_row):
    result = normalize_rows([make_row(customer_name="  ana  maria ")])
    record = result.records[0]

    assert record.management_code == "13706"
    assert record.customer_name == "ANA MARIA"
    assert record.cycle_label == "01/2026"
    assert record.cycle_index == 2026 * 12 + 1
    assert record.sku == "00001"
    assert record.capture_date == "2026-01-10"
    assert record.basket_key == "ANA MARIA|01/2026|2026-01-10"
    assert record.source_row_index == 0
    assert not record.has_errors
    assert record.errors == ()

    assert result.quality.total_rows == 1
    assert result.quality.valid_rows == 1
    assert result.quality.percent_valid == 100.0
    assert result.quality.warnings == []


def test_practiced_value_is_the_line_total(make_row):
    (record,) = normalize_rows(
        [make_row(item_quantity=3, practiced_value="55,41")]
    ).records

    assert record.sale_line_value == pytest.approx(55.41)
    assert record.sale_line_value != pytest.approx(166.23)


@pytest.mark.parametrize("kind", ["Brinde", "Doação", "Troca"])
def test_non_sales_carry_no_revenue(make_row, kind):
    (record,) = normalize_rows([make_row(transaction_type=kind, practiced_value=12.0)]).records

    assert record.transaction_type is not TransactionType.SALE
    assert record.practiced_value == 12.0
    assert record.sale_line_value == 0.0


def test_customer_code_fallback(make_row):
    (record,) = normalize_rows([make_row(customer_name=None, customer_code=4321)]).records

    assert record.customer_name == "CUSTOMER_4321"
    assert not record.has_errors


def test_bad_rows_are_kept_and_counted(make_row):
    result = normalize_rows(
        [
            make_row(),
            make_row(management="sem codigo"),
            make_row(capture_cycle="13/2026"),
            make_row(product_code="abc"),
            make_row(item_quantity=-2, practiced_value=-5.0),
            make_row(customer_name=None, customer_code=None),
        ]
    )
    records = result.records
    quality = result.quality

    assert len(records) == 6
    assert [r.source_row_index for r in records] == list(range(6))

    assert records[1].management_code == UNKNOWN
    assert records[2].cycle_index == -1
    assert records[2].cycle_label == UNKNOWN
    assert records[3].sku == INVALID_SKU
    assert records[4].item_quantity == 0.0
    assert records[4].practiced_value == 0.0
    assert records[4].errors == ("Negative item quantity", "Negative practiced value")
    assert records[5].customer_name == UNKNOWN

    assert quality.total_rows == 6
    assert quality.valid_rows == 1
    assert quality.error_rows == 5
    assert quality.error_counts == {
        MANAGEMENT_INVALID: 1,
        CYCLE_INVALID: 1,
        SKU_INVALID: 1,
        NEGATIVE_VALUE: 2,
        MISSING_FIELDS: 1,
    }
    assert quality.has_errors
    assert "1 rows with invalid or missing SKU" in quality.warnings
    assert "2 negative quantities or values (adjusted to 0)" in quality.warnings


def test_unreadable_row_does_not_stop_ingestion(make_row):
    result = normalize_rows([make_row(), ["not", "a", "mapping"], make_row()])

    assert len(result.records) == 3
    broken = result.records[1]
    assert broken.has_errors
    assert broken.errors[0].startswith("Unreadable row")
    assert broken.sku == INVALID_SKU
    assert result.quality.valid_rows == 2
    assert result.quality.error_counts[MISSING_FIELDS] == 1


def test_no_non_finite_numbers(make_row):
    (record,) = normalize_rows(
        [make_row(points="inf", item_quantity=float("nan"), practiced_value=None)]
    ).records

    for value in (record.points, record.item_quantity, record.practiced_value):
        assert math.isfinite(value)
        assert value == 0.0


def test_empty_input():
    result = normalize_rows([])

    assert result.records == ()
    assert result.quality.total_rows == 0
    assert result.quality.percent_valid == 0.0
    assert result.quality.summary()["warnings"] == []
