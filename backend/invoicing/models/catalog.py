from __future__ import annotations

from ..extensions import db
from ..identifiers import new_id
from invoicing.time_utils import to_utc_z


ITEM_TYPE_PRODUCT = "PRODUCT"
ITEM_TYPE_EXPENSE = "EXPENSE"
VALID_ITEM_TYPES = {ITEM_TYPE_PRODUCT, ITEM_TYPE_EXPENSE}


class CatalogItem(db.Model):
    """
    Priced catalog entry referenced by invoice lines.

    price_cents is the authoritative unit price: invoice pricing always reads
    it from here and ignores any price sent by the caller.
    PRODUCT items back sales receipts, EXPENSE items back expense invoices.
    """
    __tablename__ = "catalog_items"
    __table_args__ = (
        db.Index("ix_catalog_items_type_active", "item_type", "is_active"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    item_type = db.Column(db.String(16), nullable=False, default=ITEM_TYPE_PRODUCT)
    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    price_cents = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<CatalogItem id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_type": self.item_type,
            "name": self.name,
            "category": self.category,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
