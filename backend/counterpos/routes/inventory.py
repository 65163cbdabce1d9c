# backend/counterpos/routes/inventory.py
"""
Inventory management routes.

All routes are staff-only (X-Operator-Id required).
- Product master data: list, view, create, patch
- Stock adjustments: add / deduct / correction, with audit history
- Low-stock watch list

Stock on hand is never patched directly; it moves through adjustments.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import error_response, require_operator
from ..errors import CounterPosError


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _services():
    return current_app.extensions["counterpos"]


@inventory_bp.get("/products")
@require_operator
def list_products_route():
    try:
        products = _services().catalog.list_products(request.args.get("category") or None)
        items = [p.to_dict() for p in products]
        return jsonify({
            "products": items,
            "count": len(items),
            "summary": {
                "total_products": len(items),
                "low_stock_count": sum(1 for item in items if item["stock_status"] == "low"),
                "out_of_stock_count": sum(1 for item in items if item["current_stock"] == 0),
            },
        }), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/products/<int:product_id>")
@require_operator
def get_product_route(product_id: int):
    try:
        product = _services().catalog.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/products")
@require_operator
def create_product_route():
    """
    Create a product.

    Body: {name, category, price_cents, current_stock?, low_stock_threshold?, unit?, description?}
    """
    data = request.get_json(silent=True) or {}
    try:
        product = _services().catalog.create_product(
            name=data.get("name"),
            category=data.get("category"),
            price_cents=data.get("price_cents"),
            current_stock=data.get("current_stock", 0),
            low_stock_threshold=data.get("low_stock_threshold"),
            unit=data.get("unit", "pieces"),
            description=data.get("description"),
            operator_id=g.operator_id,
        )
        return jsonify({"product": product.to_dict()}), 201

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.patch("/products/<int:product_id>")
@require_operator
def update_product_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product = _services().catalog.update_product(product_id, data)
        return jsonify({"product": product.to_dict()}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/adjustments")
@require_operator
def adjust_stock_route():
    """
    Apply a manual stock adjustment.

    Body: {product_id, kind: add|deduct|correction, quantity, reason?}
    For a correction, quantity is the counted level on hand.
    """
    data = request.get_json(silent=True) or {}
    try:
        adjustment = _services().stock.adjust(
            data.get("product_id"),
            data.get("kind"),
            data.get("quantity"),
            reason=data.get("reason"),
            operator_id=g.operator_id,
        )
        current_app.logger.info(
            "Stock adjusted by operator %s: product=%s kind=%s %s -> %s",
            g.operator_id,
            adjustment.product_id,
            adjustment.kind,
            adjustment.previous_stock,
            adjustment.new_stock,
        )
        return jsonify({"adjustment": adjustment.to_dict(), "new_stock": adjustment.new_stock}), 201

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/adjustments")
@require_operator
def adjustment_history_route():
    """Adjustment audit trail, newest first. Query: product_id?, days? (default 30)"""
    try:
        adjustments = _services().stock.adjustment_history(
            product_id=request.args.get("product_id") or None,
            days=request.args.get("days") or 30,
        )
        return jsonify({
            "adjustments": [a.to_dict() for a in adjustments],
            "count": len(adjustments),
        }), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load adjustment history")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/low-stock")
@require_operator
def low_stock_route():
    try:
        products = _services().stock.low_stock()
        return jsonify({
            "products": [
                dict(p.to_dict(), shortfall=p.low_stock_threshold - p.current_stock)
                for p in products
            ],
            "count": len(products),
        }), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load low stock products")
        return jsonify({"error": "Internal server error"}), 500
