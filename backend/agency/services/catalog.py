# Overview: Uncached brand, product and customer storage used behind CachedCatalog.

"""
Plain data-entry operations for the catalog tables.

Nothing in here touches the list cache; CachedCatalog wraps these functions
and invalidates after every successful write. Product stock_count can be
set once at creation and is otherwise owned by the stock ledger.
"""

from __future__ import annotations

import re

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..models import Brand, Customer, OrderLine, Product
from ..validation import (
    ConflictError,
    ValidationError,
    clean_text,
    parse_price,
    parse_stock_count,
    require_text,
)

BRAND_MUTABLE_FIELDS = {"name", "slug", "description", "logo_url"}
PRODUCT_MUTABLE_FIELDS = {"brand_id", "name", "description", "price", "image_url"}
CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "address", "image_url"}


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return slug or "brand"


def _commit_or_conflict(session: Session, message: str) -> None:
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(message)


# -- brands -------------------------------------------------------------

def list_brands(session: Session) -> list[dict]:
    brands = session.scalars(select(Brand).order_by(Brand.name.asc(), Brand.id.asc()))
    return [b.to_dict() for b in brands]


def create_brand(session: Session, payload: dict) -> dict:
    name = require_text(payload, "name")
    brand = Brand(
        name=name,
        slug=clean_text(payload.get("slug")) or slugify(name),
        description=clean_text(payload.get("description")),
        logo_url=clean_text(payload.get("logo_url")),
    )
    session.add(brand)
    _commit_or_conflict(session, "Brand slug already exists")
    return brand.to_dict()


def update_brand(session: Session, brand_id: str, payload: dict) -> dict | None:
    brand = session.get(Brand, brand_id)
    if brand is None:
        return None
    patch = {k: v for k, v in payload.items() if k in BRAND_MUTABLE_FIELDS}
    if "name" in patch:
        brand.name = require_text(patch, "name")
        if "slug" not in patch:
            brand.slug = slugify(brand.name)
    if "slug" in patch:
        brand.slug = clean_text(patch["slug"]) or slugify(brand.name)
    for field in ("description", "logo_url"):
        if field in patch:
            setattr(brand, field, clean_text(patch[field]))
    _commit_or_conflict(session, "Brand slug already exists")
    return brand.to_dict()


def delete_brand(session: Session, brand_id: str) -> bool:
    brand = session.get(Brand, brand_id)
    if brand is None:
        return False
    product_ids = select(Product.id).where(Product.brand_id == brand_id)
    if session.scalar(select(exists().where(OrderLine.product_id.in_(product_ids)))):
        raise ConflictError("Brand has products with orders; cancel those orders first")
    session.delete(brand)
    session.commit()
    return True


# -- products -----------------------------------------------------------

def list_products(session: Session, brand_name: str | None = None) -> list[dict]:
    """
    Products with their brand name, ordered by brand then product name.

    brand_name filters by case-insensitive partial match on the brand's name.
    """
    query = (
        select(Product)
        .join(Brand, Product.brand_id == Brand.id)
        .options(joinedload(Product.brand))
        .order_by(Brand.name.asc(), Product.name.asc(), Product.id.asc())
    )
    brand_name = clean_text(brand_name)
    if brand_name:
        query = query.where(Brand.name.ilike(f"%{brand_name}%"))
    return [p.to_dict(include_brand=True) for p in session.scalars(query)]


def get_product(session: Session, product_id: str) -> dict | None:
    product = session.get(Product, product_id)
    return product.to_dict(include_brand=True) if product else None


def _require_brand(session: Session, brand_id) -> str:
    brand_id = clean_text(brand_id)
    if not brand_id:
        raise ValidationError("brand_id is required")
    if session.get(Brand, brand_id) is None:
        raise ValidationError("brand_id does not reference an existing brand")
    return brand_id


def create_product(session: Session, payload: dict) -> dict:
    product = Product(
        brand_id=_require_brand(session, payload.get("brand_id")),
        name=require_text(payload, "name"),
        description=clean_text(payload.get("description")),
        price=parse_price(payload.get("price")),
        stock_count=parse_stock_count(payload.get("stock_count")),
        image_url=clean_text(payload.get("image_url")),
    )
    session.add(product)
    session.commit()
    return product.to_dict(include_brand=True)


def update_product(session: Session, product_id: str, payload: dict) -> dict | None:
    if "stock_count" in payload:
        raise ValidationError("stock_count cannot be set directly; it changes only through orders")
    product = session.get(Product, product_id)
    if product is None:
        return None
    patch = {k: v for k, v in payload.items() if k in PRODUCT_MUTABLE_FIELDS}
    if "brand_id" in patch:
        product.brand_id = _require_brand(session, patch["brand_id"])
    if "name" in patch:
        product.name = require_text(patch, "name")
    if "price" in patch:
        product.price = parse_price(patch["price"])
    for field in ("description", "image_url"):
        if field in patch:
            setattr(product, field, clean_text(patch[field]))
    session.commit()
    return product.to_dict(include_brand=True)


def delete_product(session: Session, product_id: str) -> bool:
    product = session.get(Product, product_id)
    if product is None:
        return False
    if session.scalar(select(exists().where(OrderLine.product_id == product_id))):
        raise ConflictError("Product has orders; cancel those orders first")
    session.delete(product)
    session.commit()
    return True


# -- customers ----------------------------------------------------------

def list_customers(session: Session) -> list[dict]:
    customers = session.scalars(select(Customer).order_by(Customer.name.asc(), Customer.id.asc()))
    return [c.to_dict() for c in customers]


def create_customer(session: Session, payload: dict) -> dict:
    customer = Customer(
        name=require_text(payload, "name"),
        phone=clean_text(payload.get("phone")),
        address=clean_text(payload.get("address")),
        image_url=clean_text(payload.get("image_url")),
    )
    session.add(customer)
    session.commit()
    return customer.to_dict()


def update_customer(session: Session, customer_id: str, payload: dict) -> dict | None:
    customer = session.get(Customer, customer_id)
    if customer is None:
        return None
    for field, value in payload.items():
        if field not in CUSTOMER_MUTABLE_FIELDS:
            continue
        if field == "name":
            customer.name = require_text(payload, "name")
        else:
            setattr(customer, field, clean_text(value))
    session.commit()
    return customer.to_dict()


def delete_customer(session: Session, customer_id: str) -> bool:
    """Deletes the customer and, by cascade, their order lines (stock is not restored)."""
    customer = session.get(Customer, customer_id)
    if customer is None:
        return False
    session.delete(customer)
    session.commit()
    return True
