# Overview: Validates and prices invoice line items against the catalog.

"""
Line-item pricing.

WHY: Invoice totals must always be derivable from the lines and the tax rate.
Unit prices come from the catalog record, never from the request body.

ARITHMETIC:
- Money is integer cents, tax is integer basis points (1% = 100)
- line_total = quantity * unit_price - discount
- subtotal = sum of line totals, accumulated in input order
- tax = subtotal * tax_bp / 10000, rounded half-up to the cent
- grand_total = subtotal + tax

A discount larger than the line value is accepted and yields a negative line
total (pass-through policy, see DESIGN.md).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..errors import NotFoundError, ValidationError
from . import catalog_service
from .identity_service import require_identifier


MAX_TAX_BASIS_POINTS = 10_000
MAX_LINE_QUANTITY = 1_000_000


@dataclass(frozen=True)
class PricedLine:
    position: int
    item_id: str
    item_name: str
    quantity: int
    unit_price_cents: int
    discount_cents: int
    line_total_cents: int
    item_description: str | None = None

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "item_description": self.item_description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
        }


@dataclass(frozen=True)
class PricedInvoiceTotals:
    lines: list[PricedLine] = field(default_factory=list)
    subtotal_cents: int = 0
    tax_basis_points: int = 0
    tax_cents: int = 0
    grand_total_cents: int = 0


def parse_tax_percent(value) -> int:
    """
    Convert a tax percentage (8, 7.5, "12.25") to basis points.

    None means 0. At most two decimal places, range 0..100.
    """
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError("tax must be a number")
    try:
        percent = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("tax must be a number")
    if not percent.is_finite():
        raise ValidationError("tax must be a number")

    basis_points = percent * 100
    if basis_points != basis_points.to_integral_value():
        raise ValidationError("tax supports at most two decimal places")
    basis_points = int(basis_points)
    if basis_points < 0 or basis_points > MAX_TAX_BASIS_POINTS:
        raise ValidationError("tax must be between 0 and 100")
    return basis_points


def compute_tax_cents(subtotal_cents: int, tax_basis_points: int) -> int:
    raw = Decimal(subtotal_cents) * Decimal(tax_basis_points) / Decimal(10_000)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_totals(line_totals: list[int], tax_basis_points: int) -> tuple[int, int, int]:
    """Return (subtotal, tax, grand_total) in cents for already-priced lines."""
    subtotal = 0
    for line_total in line_totals:
        subtotal += line_total
    tax_cents = compute_tax_cents(subtotal, tax_basis_points)
    return subtotal, tax_cents, subtotal + tax_cents


def _require_int(value, label: str, *, minimum: int, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer")
    if value < minimum:
        raise ValidationError(f"{label} must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{label} cannot exceed {maximum}")
    return value


def _validate_item(raw: dict, index: int, item_key: str) -> dict:
    label = f"items[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{label} must be an object")

    item_id = raw.get(item_key)
    if item_id is None or item_id == "":
        raise ValidationError(f"{label}.{item_key} is required")
    require_identifier(item_id, f"{label}.{item_key}")

    if raw.get("quantity") is None:
        raise ValidationError(f"{label}.quantity is required")
    quantity = _require_int(raw["quantity"], f"{label}.quantity", minimum=1, maximum=MAX_LINE_QUANTITY)

    discount = raw.get("discount_cents", 0)
    if discount is None:
        discount = 0
    discount = _require_int(discount, f"{label}.discount_cents", minimum=0)

    description = raw.get("item_description")
    if description is not None:
        description = str(description).strip()[:255] or None

    return {
        "item_id": item_id,
        "quantity": quantity,
        "discount_cents": discount,
        "item_description": description,
    }


def validate_line_items(items, *, item_key: str = "item_id") -> list[dict]:
    """Shape-check every item without touching the catalog."""
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one line item is required")
    return [_validate_item(raw, i, item_key) for i, raw in enumerate(items)]


def price_line_items(
    items,
    tax=None,
    *,
    item_type: str,
    item_key: str = "item_id",
) -> PricedInvoiceTotals:
    """
    Validate and price an ordered list of line items.

    Raises ValidationError / InvalidIdentifierError for malformed input
    (checked for every item before any catalog lookup) and NotFoundError
    naming the first missing catalog reference.
    """
    tax_basis_points = parse_tax_percent(tax)
    validated = validate_line_items(items, item_key=item_key)

    catalog = catalog_service.find_items([v["item_id"] for v in validated], item_type=item_type)

    lines: list[PricedLine] = []
    for position, entry in enumerate(validated):
        record = catalog.get(entry["item_id"])
        if record is None:
            raise NotFoundError(
                f"Catalog item {entry['item_id']} not found",
                details={item_key: entry["item_id"]},
            )

        line_total = entry["quantity"] * record.price_cents - entry["discount_cents"]
        lines.append(PricedLine(
            position=position,
            item_id=record.id,
            item_name=record.name,
            quantity=entry["quantity"],
            unit_price_cents=record.price_cents,
            discount_cents=entry["discount_cents"],
            line_total_cents=line_total,
            item_description=entry["item_description"],
        ))

    subtotal, tax_cents, grand_total = compute_totals(
        [line.line_total_cents for line in lines], tax_basis_points
    )

    return PricedInvoiceTotals(
        lines=lines,
        subtotal_cents=subtotal,
        tax_basis_points=tax_basis_points,
        tax_cents=tax_cents,
        grand_total_cents=grand_total,
    )
