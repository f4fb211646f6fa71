from __future__ import annotations
from datetime import datetime
from laundrypos.time_utils import parse_iso_datetime, to_naive_utc

from typing import Any

from .errors import ValidationError
from .models.orders import PAYMENT_METHODS


# Maximum amount: 9,999,999.99 in major units (999,999,999 minor units)
# This prevents database overflow issues and nonsensical totals
MAX_AMOUNT_CENTS = 999_999_999

MAX_ITEMS_PER_ORDER = 200
MAX_ITEM_QUANTITY = 10_000

_ITEM_STRING_LIMITS = {
    "name": 128,
    "size": 32,
    "note": 255,
    "photo_url": 512,
}


def coerce_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion for client input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals
    and scientific notation.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return result


def coerce_amount(value: Any, field: str, *, allow_zero: bool = False) -> int:
    """Money amount in minor units: > 0 (or >= 0 when allow_zero)."""
    return coerce_int(
        value,
        field,
        minimum=0 if allow_zero else 1,
        maximum=MAX_AMOUNT_CENTS,
    )


def _clean_string(raw: Any, field: str, *, required: bool) -> str | None:
    if raw is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"{field} must be a string")
    val = raw.strip()
    if not val:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    limit = _ITEM_STRING_LIMITS.get(field.rsplit(".", 1)[-1])
    if limit and len(val) > limit:
        raise ValidationError(f"{field} exceeds max length {limit}")
    return val


def validate_order_items(items: Any) -> list[dict]:
    """
    Validate and normalize order line items.

    Each item is a snapshot: name, size, unit_price_cents, quantity,
    and optional note/photo_url. line_total_cents is computed here.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")
    if len(items) > MAX_ITEMS_PER_ORDER:
        raise ValidationError(f"An order cannot have more than {MAX_ITEMS_PER_ORDER} items")

    cleaned = []
    for i, raw in enumerate(items):
        prefix = f"items[{i}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{prefix} must be an object")

        unit_price = coerce_amount(raw.get("unit_price_cents"), f"{prefix}.unit_price_cents", allow_zero=True)
        quantity = coerce_int(
            raw.get("quantity", 1),
            f"{prefix}.quantity",
            minimum=1,
            maximum=MAX_ITEM_QUANTITY,
        )

        cleaned.append({
            "position": i + 1,
            "name": _clean_string(raw.get("name"), f"{prefix}.name", required=True),
            "size": _clean_string(raw.get("size"), f"{prefix}.size", required=True),
            "unit_price_cents": unit_price,
            "quantity": quantity,
            "line_total_cents": unit_price * quantity,
            "note": _clean_string(raw.get("note"), f"{prefix}.note", required=False),
            "photo_url": _clean_string(raw.get("photo_url"), f"{prefix}.photo_url", required=False),
        })
    return cleaned


def validate_payment_method(method: Any) -> str:
    if not isinstance(method, str) or method.strip().upper() not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {PAYMENT_METHODS}")
    return method.strip().upper()


def parse_client_timestamp(value: Any, field: str = "client_created_at") -> datetime | None:
    """Original creation time reported by an offline client (optional)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def validate_pickup_pin_input(pin: Any) -> str:
    if pin is None or (isinstance(pin, str) and not pin.strip()):
        raise ValidationError("PIN is required")
    # Integers would drop leading zeros
    if not isinstance(pin, str):
        raise ValidationError("PIN must be a string of digits")
    pin = pin.strip()
    if not (pin.isascii() and pin.isdigit()):
        raise ValidationError("PIN must be a string of digits")
    return pin
