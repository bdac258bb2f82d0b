"""
Record types shared by every stage of the pipeline.

RawRow is the schema-validated shape of one spreadsheet row (all fields
optional, spreadsheet column headers accepted as aliases). CanonicalRecord is
the cleaned row every analysis consumes.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

UNKNOWN = "UNKNOWN"
INVALID_SKU = "INVALID"


class TransactionType(str, Enum):
    """Kind of movement recorded on a line. Only SALE carries revenue."""

    SALE = "Sale"
    GIFT = "Gift"
    DONATION = "Donation"
    OTHER = "Other"


class DeliveryCategory(str, Enum):
    SHIPPED = "Shipped"  # delivered to the customer's address
    PICKED_UP = "PickedUp"  # collected at a pickup point
    UNKNOWN = "Unknown"


class ClientSegment(str, Enum):
    VIP = "VIP"
    POTENTIAL = "Potential"
    NEW = "New"
    PROMO_HUNTER = "PromoHunter"
    LOGISTICS_SENSITIVE = "LogisticsSensitive"
    OCCASIONAL = "Occasional"


class Trend(str, Enum):
    GROWTH = "Growth"
    STABLE = "Stable"
    DECLINE = "Decline"


class ForecastConfidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


_DECIMAL_COMMA = re.compile(r"^-?\d+,\d+$")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _to_python(value: Any) -> Any:
    """Unwrap pandas/numpy scalars into plain Python values."""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def _integral(value: Any) -> Any:
    # Integer columns with blanks come out of pandas as floats (1234.0)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class RawRow(BaseModel):
    """
    One spreadsheet row before normalization.

    Every field is optional: absence must never stop ingestion. Blank cells,
    NaN and NaT are treated as absent; unparseable numbers become absent
    too, so the normalizer falls back to its defaults.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    management: str | int | float | None = Field(default=None, alias="Gerencia")
    sector: str | None = Field(default=None, alias="Setor")
    customer_code: str | int | float | None = Field(
        default=None, alias="CodigoRevendedora"
    )
    customer_name: str | None = Field(default=None, alias="NomeRevendedora")
    points: float | None = Field(default=None, alias="QuantidadePontos")
    capture_cycle: str | None = Field(default=None, alias="CicloCaptacao")
    product_code: str | int | float | None = Field(default=None, alias="CodigoProduto")
    product_name: str | None = Field(default=None, alias="NomeProduto")
    transaction_type: str | None = Field(default=None, alias="Tipo")
    capture_date: datetime | date | str | float | None = Field(
        default=None, alias="DataCaptacao"
    )
    item_quantity: float | None = Field(default=None, alias="QuantidadeItens")
    practiced_value: float | None = Field(default=None, alias="ValorPraticado")
    capture_channel: str | None = Field(default=None, alias="Meio Captacao")
    delivery_type: str | None = Field(default=None, alias="Tipo Entrega")

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_cells(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        return {
            str(key).strip(): _to_python(value)
            for key, value in data.items()
            if not _is_blank(value)
        }

    @field_validator("management", "customer_code", "product_code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return str(value)
        return _integral(value)

    @field_validator("points", "item_quantity", "practiced_value", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            text = str(value).strip()
            if _DECIMAL_COMMA.match(text):
                text = text.replace(",", ".")
            try:
                number = float(text)
            except ValueError:
                return None
        return number if math.isfinite(number) else None

    @field_validator(
        "sector",
        "customer_name",
        "capture_cycle",
        "product_name",
        "transaction_type",
        "capture_channel",
        "delivery_type",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, str):
            return value
        # Spreadsheets sometimes turn a "01/2026" cycle into a real date cell
        if info.field_name == "capture_cycle" and isinstance(value, (datetime, date)):
            return value.strftime("%m/%Y")
        return str(_integral(value))

    @field_validator("capture_date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return None
        return value


@dataclass(frozen=True)
class CanonicalRecord:
    """A cleaned transaction line. Rows with errors are kept, never dropped."""

    management_code: str
    sector: str
    customer_name: str
    points: float
    cycle_label: str
    cycle_index: int
    sku: str
    product_name: str
    transaction_type: TransactionType
    capture_date: str | None  # ISO YYYY-MM-DD
    item_quantity: float
    practiced_value: float  # already the line total, never multiply by quantity
    sale_line_value: float
    channel: str
    delivery_category: DeliveryCategory
    basket_key: str
    source_row_index: int
    has_errors: bool = False
    errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_sale(self) -> bool:
        return self.transaction_type is TransactionType.SALE
