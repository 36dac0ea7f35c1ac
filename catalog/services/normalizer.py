"""
Row normalization for CSV product imports.

Turns one raw CSV record into a ProductCreate candidate, or rejects it with
RowDefect when a required column is missing or unusable.
"""
from typing import Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from catalog.models.product import MAX_STOCK, parse_status
from catalog.schemas.product import ProductCreate
from catalog.logging_config import get_logger

logger = get_logger("normalizer")

CSV_FIELDS = ["name", "unit", "category", "brand", "stock", "status", "image"]
REQUIRED_FIELDS = ("name", "unit", "category", "brand", "stock")


class RowDefect(Exception):
    """A record that cannot become a product. The row is dropped, never reported."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def _clean(record: Mapping[Optional[str], object]) -> dict[str, str]:
    out = {}
    for key, value in record.items():
        # DictReader stores surplus cells under the None key
        if key is None or not isinstance(value, str):
            continue
        out[key.strip().lower()] = value.strip()
    return out


def parse_stock(text: str) -> int:
    """Parse a whole, non-negative quantity ("3" or "3.0")."""
    try:
        qty = int(text)
    except ValueError:
        try:
            as_float = float(text)
        except ValueError:
            raise RowDefect(f"stock '{text}' is not a number")
        if not as_float.is_integer():
            raise RowDefect(f"stock '{text}' is not a whole number")
        qty = int(as_float)
    if qty < 0:
        raise RowDefect(f"stock '{text}' is negative")
    if qty > MAX_STOCK:
        raise RowDefect(f"stock '{text}' is too large")
    return qty


def normalize_row(record: Mapping[Optional[str], object]) -> ProductCreate:
    """
    Validate one CSV record.

    Args:
        record: column name -> raw cell text, as produced by csv.DictReader

    Returns:
        ProductCreate with stock coerced to int; status and image passed through

    Raises:
        RowDefect: a required field is absent/empty or stock is not a quantity
    """
    fields = _clean(record)

    missing = [name for name in REQUIRED_FIELDS if not fields.get(name)]
    if missing:
        raise RowDefect(f"missing required fields: {', '.join(missing)}")

    stock = parse_stock(fields["stock"])

    status = None
    raw_status = fields.get("status")
    if raw_status:
        status = parse_status(raw_status)
        if status is None:
            logger.warning(f"Unrecognized status '{raw_status}' for '{fields['name']}', deriving from stock")

    try:
        return ProductCreate(
            name=fields["name"],
            unit=fields["unit"],
            category=fields["category"],
            brand=fields["brand"],
            stock=stock,
            status=status,
            image=fields.get("image") or None,
        )
    except PydanticValidationError as e:
        raise RowDefect("; ".join(err["msg"] for err in e.errors()))
