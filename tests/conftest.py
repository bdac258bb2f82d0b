import pytest

from cyclesales.core.ingest import normalize_rows

BASE_ROW = {
    "management": "13706 - GER SUL",
    "sector": "SETOR 1",
    "customer_code": 1001,
    "customer_name": "Ana",
    "points": 100,
    "capture_cycle": "01/2026",
    "product_code": 1,
    "product_name": "Perfume",
    "transaction_type": "Venda",
    "capture_date": "2026-01-10",
    "item_quantity": 1,
    "practiced_value": 10.0,
    "capture_channel": "APP - Loja",
    "delivery_type": "Entrega no endereço",
}


def build_row(**overrides):
    """A well-formed spreadsheet row keyed by field name."""
    row = dict(BASE_ROW)
    row.update(overrides)
    return row


def build_records(*rows):
    return normalize_rows(rows).records


@pytest.fixture
def make_row():
    return build_row


@pytest.fixture
def make_records():
    return build_records


@pytest.fixture
def sample_records():
    """Two customers, two cycles, one gift line."""
    return build_records(
        build_row(product_code=1, item_quantity=2, practiced_value=30.0),
        build_row(product_code=2, item_quantity=1, practiced_value=20.0),
        build_row(
            capture_cycle="02/2026",
            capture_date="2026-02-10",
            product_code=1,
            transaction_type="Brinde",
            points=150,
        ),
        build_row(
            customer_name="Bia",
            customer_code=1002,
            product_code=3,
            item_quantity=5,
            practiced_value=50.0,
            points=40,
            delivery_type="Retirar na central",
        ),
    )
