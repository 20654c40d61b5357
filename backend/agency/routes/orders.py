# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/agency/routes/orders.py
"""Order API routes: checkout, stock recheck, cancellation and reporting."""

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..decorators import require_auth
from ..extensions import db
from ..services.order_workflow import (
    CustomerNotFoundError,
    InsufficientStockError,
    OrderError,
    OrderNotFoundError,
    OrderValidationError,
    OrderWorkflow,
    ProductNotFoundError,
)

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _workflow() -> OrderWorkflow:
    return OrderWorkflow(
        db.session,
        current_app.extensions["list_cache"],
        current_app.extensions["cache_keys"],
        commit_attempts=current_app.config["ORDER_COMMIT_ATTEMPTS"],
    )


def _error_response(e: OrderError):
    if isinstance(e, OrderValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, InsufficientStockError):
        return jsonify({"error": str(e), **e.details}), 400
    if isinstance(e, (OrderNotFoundError, ProductNotFoundError, CustomerNotFoundError)):
        return jsonify({"error": str(e), **e.details}), 404
    return jsonify({"error": str(e), "details": e.details}), 400


@orders_bp.get("")
@require_auth
def list_orders_route():
    """Order lines grouped by customer, then by order, with totals."""
    return jsonify(_workflow().list_orders_by_customer())


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order.

    Body: { customer_id, items: [{ product_id, quantity }] }
    Prices come from the product rows, never from the client.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON"}), 400

    try:
        result = _workflow().create_order(data.get("customer_id"), data.get("items"))
        return jsonify(result), 201

    except OrderError as e:
        return _error_response(e)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Failed to create order"}), 500


@orders_bp.post("/check-stock")
@require_auth
def check_stock_route():
    """
    Recheck stock before checkout.

    Body: { items: [{ product_id, quantity }] }
    Always 200: ok is false when any item exceeds available stock.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON"}), 400
    return jsonify(_workflow().check_stock(data.get("items")))


@orders_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        return jsonify(_workflow().get_order(order_id))
    except OrderError as e:
        return _error_response(e)


@orders_bp.delete("/<order_id>")
@require_auth
def cancel_order_route(order_id: str):
    """Cancel an order: restore stock for every line and delete the lines, atomically."""
    try:
        return jsonify(_workflow().cancel_order(order_id))

    except OrderError as e:
        return _error_response(e)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Failed to cancel order"}), 500
