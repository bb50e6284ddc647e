# Overview: Catalog items that back invoice line pricing.

from __future__ import annotations

from ..extensions import db
from ..errors import ValidationError
from ..models import CatalogItem
from ..models.catalog import VALID_ITEM_TYPES, ITEM_TYPE_PRODUCT


# Maximum unit price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


def create_item(
    *,
    name: str,
    price_cents: int,
    item_type: str = ITEM_TYPE_PRODUCT,
    category: str | None = None,
) -> CatalogItem:
    if not name or not str(name).strip():
        raise ValidationError("Item name is required")
    if item_type not in VALID_ITEM_TYPES:
        raise ValidationError(f"item_type must be one of: {', '.join(sorted(VALID_ITEM_TYPES))}")
    if not isinstance(price_cents, int) or isinstance(price_cents, bool):
        raise ValidationError("price_cents must be an integer")
    if price_cents < 0:
        raise ValidationError("price_cents must be >= 0")
    if price_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    item = CatalogItem(
        name=str(name).strip(),
        price_cents=price_cents,
        item_type=item_type,
        category=category,
        is_active=True,
    )
    db.session.add(item)
    db.session.commit()
    return item


def find_items(item_ids: list[str], *, item_type: str | None = None) -> dict[str, CatalogItem]:
    """Batch lookup; missing ids are simply absent from the result."""
    if not item_ids:
        return {}
    query = db.session.query(CatalogItem).filter(
        CatalogItem.id.in_(set(item_ids)),
        CatalogItem.is_active.is_(True),
    )
    if item_type is not None:
        query = query.filter(CatalogItem.item_type == item_type)
    return {item.id: item for item in query.all()}


def deactivate_item(item_id: str) -> bool:
    item = db.session.get(CatalogItem, item_id)
    if not item:
        return False
    item.is_active = False
    db.session.commit()
    return True
