from __future__ import annotations
from datetime import date, datetime
from loja.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, Date, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: R$ 9.999.999,99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Maximum quantity on a single line or stock movement
MAX_QUANTITY = 1_000_000

# Largest value an INTEGER column holds (signed 64-bit)
MAX_DB_INT = 2**63 - 1


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level uniqueness conflict (e.g., duplicate product code)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


@dataclass(frozen=True)
class LineInput:
    """One requested document line: product, quantity and unit price."""
    product_id: int
    quantity: int
    unit_price_cents: int


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _in_db_range(value: int, field: str) -> int:
    if abs(value) > MAX_DB_INT:
        raise ValidationError(f"{field} is out of range")
    return value


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer coercion.

    Accepts ints (not bools) and plain digit strings with an optional leading
    minus. Rejects floats, decimals and scientific notation.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return _in_db_range(value, field)
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
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
            parsed = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
        return _in_db_range(parsed, field)
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_optional_int(value: Any, field: str) -> int | None:
    """Query-string integer: missing or blank -> None, anything else must parse."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_int(value, field)


def parse_quantity(value: Any, field: str = "quantity") -> int:
    qty = parse_int(value, field)
    if qty <= 0:
        raise ValidationError(f"{field} must be > 0")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return qty


def parse_cents(value: Any, field: str = "unit_price_cents") -> int:
    cents = parse_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")
    return cents


def parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            d = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date")
        if d is not None:
            return d
    raise ValidationError(f"{field} must be an ISO-8601 date")


def parse_lines(raw_lines: Any) -> list[LineInput]:
    """
    Normalize the line set of a new purchase, loan or sale.

    Each entry is a LineInput or a mapping with product_id, quantity and
    unit_price_cents. At least one line is required and a product may appear
    only once per document.
    """
    if isinstance(raw_lines, (str, bytes)) or not isinstance(raw_lines, (list, tuple)):
        raise ValidationError("lines must be a list")
    if not raw_lines:
        raise ValidationError("At least one line is required")

    lines: list[LineInput] = []
    seen: set[int] = set()
    for i, raw in enumerate(raw_lines):
        if isinstance(raw, LineInput):
            line = LineInput(
                product_id=parse_int(raw.product_id, f"lines[{i}].product_id"),
                quantity=parse_quantity(raw.quantity, f"lines[{i}].quantity"),
                unit_price_cents=parse_cents(raw.unit_price_cents, f"lines[{i}].unit_price_cents"),
            )
        elif isinstance(raw, dict):
            for key in ("product_id", "quantity", "unit_price_cents"):
                if raw.get(key) is None:
                    raise ValidationError(f"lines[{i}].{key} is required")
            line = LineInput(
                product_id=parse_int(raw["product_id"], f"lines[{i}].product_id"),
                quantity=parse_quantity(raw["quantity"], f"lines[{i}].quantity"),
                unit_price_cents=parse_cents(raw["unit_price_cents"], f"lines[{i}].unit_price_cents"),
            )
        else:
            raise ValidationError(f"lines[{i}] must be an object")

        if line.product_id in seen:
            raise ValidationError(f"Duplicate product {line.product_id} in lines")
        seen.add(line.product_id)
        lines.append(line)
    return lines


def parse_unit_prices(raw: Any) -> dict[int, int]:
    """
    {product_id: unit_price_cents}. JSON object keys arrive as strings.
    None -> {}.
    """
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("unit_prices must be an object of product_id -> unit_price_cents")
    return {
        parse_int(k, "unit_prices key"): parse_cents(v, f"unit_prices[{k}]")
        for k, v in raw.items()
    }


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        return parse_date(value, col.key)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        parse_cents(patch["price_cents"], "price_cents")
