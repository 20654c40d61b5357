# Overview: Flask API routes for brands, products and customers; cached list views.

# backend/agency/routes/catalog.py
"""
Catalog routes.

List endpoints read through the list cache; every write goes to the store
and then invalidates the affected cached lists. Product stock is read-only
here: it is set once on create and afterwards changes only through orders.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth
from ..extensions import db
from ..services.cached_catalog import CachedCatalog
from ..validation import ConflictError, ValidationError

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


def _catalog() -> CachedCatalog:
    return CachedCatalog(
        db.session,
        current_app.extensions["list_cache"],
        current_app.extensions["cache_keys"],
        ttl=current_app.config["CACHE_TTL_LIST"],
    )


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _write(op, not_found: str, status: int = 200):
    try:
        result = op()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    if result is None or result is False:
        return jsonify({"error": not_found}), 404
    if result is True:
        return jsonify({"deleted": True}), status
    return jsonify(result), status


# -- brands -------------------------------------------------------------

@catalog_bp.get("/brands")
@require_auth
def list_brands_route():
    return jsonify(_catalog().list_brands())


@catalog_bp.post("/brands")
@require_auth
def create_brand_route():
    payload = _payload()
    return _write(lambda: _catalog().create_brand(payload), "Brand not found", 201)


@catalog_bp.patch("/brands/<brand_id>")
@require_auth
def update_brand_route(brand_id: str):
    payload = _payload()
    return _write(lambda: _catalog().update_brand(brand_id, payload), "Brand not found")


@catalog_bp.delete("/brands/<brand_id>")
@require_auth
def delete_brand_route(brand_id: str):
    """Delete a brand and, by cascade, its products."""
    return _write(lambda: _catalog().delete_brand(brand_id), "Brand not found")


# -- products -----------------------------------------------------------

@catalog_bp.get("/products")
@require_auth
def list_products_route():
    """
    List products with brand name.

    Query params:
    - brandName: str (optional) - case-insensitive partial match on brand name
    """
    brand_name = request.args.get("brandName")
    return jsonify(_catalog().list_products(brand_name))


@catalog_bp.post("/products")
@require_auth
def create_product_route():
    payload = _payload()
    return _write(lambda: _catalog().create_product(payload), "Product not found", 201)


@catalog_bp.patch("/products/<product_id>")
@require_auth
def update_product_route(product_id: str):
    payload = _payload()
    return _write(lambda: _catalog().update_product(product_id, payload), "Product not found")


@catalog_bp.delete("/products/<product_id>")
@require_auth
def delete_product_route(product_id: str):
    return _write(lambda: _catalog().delete_product(product_id), "Product not found")


# -- customers ----------------------------------------------------------

@catalog_bp.get("/customers")
@require_auth
def list_customers_route():
    return jsonify(_catalog().list_customers())


@catalog_bp.post("/customers")
@require_auth
def create_customer_route():
    payload = _payload()
    return _write(lambda: _catalog().create_customer(payload), "Customer not found", 201)


@catalog_bp.patch("/customers/<customer_id>")
@require_auth
def update_customer_route(customer_id: str):
    payload = _payload()
    return _write(lambda: _catalog().update_customer(customer_id, payload), "Customer not found")


@catalog_bp.delete("/customers/<customer_id>")
@require_auth
def delete_customer_route(customer_id: str):
    """Delete a customer together with their order lines."""
    return _write(lambda: _catalog().delete_customer(customer_id), "Customer not found")
