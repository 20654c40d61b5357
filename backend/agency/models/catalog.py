from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_to_str


def new_id() -> str:
    return str(uuid.uuid4())


class Brand(db.Model):
    """
    Brand master data. Owns products.

    Deleting a brand deletes its products (ORM cascade plus ON DELETE CASCADE
    for writers that bypass the ORM).
    """
    __tablename__ = "brands"
    __table_args__ = (
        db.Index("ix_brands_name", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=True, unique=True)
    description = db.Column(db.Text, nullable=True)
    logo_url = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    products = db.relationship(
        "Product",
        back_populates="brand",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Brand id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "logo_url": self.logo_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data.

    stock_count is the single source of truth for available inventory. It is
    only ever changed through stock_ledger.decrement / increment, which are
    guarded UPDATE statements evaluated by the database. The check
    constraint is the last line of defence against a negative count.

    price is the live selling price; order lines snapshot it at checkout.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_count >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        db.Index("ix_products_brand_name", "brand_id", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    brand_id = db.Column(
        db.String(36),
        db.ForeignKey("brands.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    stock_count = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    brand = db.relationship("Brand", back_populates="products")

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock_count={self.stock_count}>"

    def to_dict(self, include_brand: bool = False) -> dict:
        data = {
            "id": self.id,
            "brand_id": self.brand_id,
            "name": self.name,
            "description": self.description,
            "price": money_to_str(self.price),
            "stock_count": self.stock_count,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_brand:
            data["brand_name"] = self.brand.name if self.brand else None
        return data
