# Overview: Flask API routes for counter orders; parses input and returns JSON responses.

# backend/counterpos/routes/orders.py
"""Order routes: creation, discounts, payment and the pending kiosk queue"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import error_response, require_operator
from ..errors import CounterPosError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _services():
    return current_app.extensions["counterpos"]


@orders_bp.post("")
@require_operator
def create_order_route():
    """
    Create a pending order.

    Body: {channel, lines: [{product_id, quantity, note?}], customer_name?, notes?}
    pos orders deduct stock immediately; kiosk orders wait for payment.
    """
    data = request.get_json(silent=True) or {}
    try:
        order = _services().orders.create_order(
            channel=data.get("channel", "pos"),
            lines=data.get("lines"),
            operator_id=g.operator_id,
            customer_name=data.get("customer_name"),
            notes=data.get("notes"),
        )
        return jsonify({"order": order.to_dict()}), 201

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_operator
def get_order_route(order_id: int):
    try:
        order = _services().orders.get_order(order_id)
        return jsonify({"order": order.to_dict()}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/discount")
@require_operator
def apply_discount_route(order_id: int):
    """
    Apply or replace the discount on a pending order.

    Body: {reason, amount_cents?}
    """
    data = request.get_json(silent=True) or {}
    try:
        order = _services().pricing.apply_discount(
            order_id,
            data.get("reason"),
            data.get("amount_cents"),
        )
        return jsonify({"order": order.to_dict()}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to apply discount")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/payment")
@require_operator
def pay_order_route(order_id: int):
    """
    Take payment and complete the order.

    Body: {amount_paid_cents}
    """
    data = request.get_json(silent=True) or {}
    try:
        order = _services().settlement.pay(order_id, data.get("amount_paid_cents"))
        current_app.logger.info(
            "Order %s settled by operator %s: paid=%s change=%s",
            order.order_number,
            g.operator_id,
            order.amount_paid_cents,
            order.change_cents,
        )
        return jsonify({"order": order.to_dict()}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process payment")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/kiosk/pending")
@require_operator
def pending_kiosk_orders_route():
    """Kiosk orders waiting to be paid at the counter, newest first."""
    try:
        orders = _services().orders.list_pending_kiosk_orders()
        return jsonify({
            "orders": [o.to_dict() for o in orders],
            "count": len(orders),
        }), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list pending kiosk orders")
        return jsonify({"error": "Internal server error"}), 500
