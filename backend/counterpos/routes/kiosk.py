# Overview: Public kiosk routes; anonymous sessions build a cart and submit it as an order.

# backend/counterpos/routes/kiosk.py
"""
Kiosk routes.

No operator identity: these are called by the self-order kiosk. The session
token in the URL is the only credential, and it expires on its own.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import error_response
from ..errors import CounterPosError


kiosk_bp = Blueprint("kiosk", __name__, url_prefix="/api/kiosk")


def _services():
    return current_app.extensions["counterpos"]


@kiosk_bp.post("/sessions")
def create_session_route():
    try:
        session = _services().kiosk.create_session()
        return jsonify({"session": session.to_dict()}), 201

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create kiosk session")
        return jsonify({"error": "Internal server error"}), 500


@kiosk_bp.get("/menu")
def menu_route():
    """In-stock customer-facing products grouped by category."""
    try:
        return jsonify({"menu": _services().kiosk.menu()}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load kiosk menu")
        return jsonify({"error": "Internal server error"}), 500


@kiosk_bp.get("/sessions/<session_id>/cart")
def read_cart_route(session_id: str):
    try:
        return jsonify({"cart": _services().kiosk.read_cart(session_id)}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to read kiosk cart")
        return jsonify({"error": "Internal server error"}), 500


@kiosk_bp.post("/sessions/<session_id>/cart")
def add_item_route(session_id: str):
    """
    Add a product to the cart.

    Body: {product_id, quantity, note?}
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = _services().kiosk.add_item(
            session_id,
            data.get("product_id"),
            data.get("quantity"),
            data.get("note"),
        )
        return jsonify({"cart": cart}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add item to kiosk cart")
        return jsonify({"error": "Internal server error"}), 500


@kiosk_bp.delete("/sessions/<session_id>/cart/<int:product_id>")
def remove_item_route(session_id: str, product_id: int):
    try:
        cart = _services().kiosk.remove_item(session_id, product_id)
        return jsonify({"cart": cart}), 200

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to remove item from kiosk cart")
        return jsonify({"error": "Internal server error"}), 500


@kiosk_bp.post("/sessions/<session_id>/submit")
def submit_route(session_id: str):
    """
    Submit the cart as a pending kiosk order.

    Body: {customer_name?}
    """
    data = request.get_json(silent=True) or {}
    try:
        order = _services().kiosk.submit(session_id, data.get("customer_name"))
        current_app.logger.info("Kiosk order %s submitted", order.order_number)
        return jsonify({"order": order.to_dict()}), 201

    except CounterPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit kiosk order")
        return jsonify({"error": "Internal server error"}), 500
