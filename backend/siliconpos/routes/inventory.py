# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory routes.

- Direct stock adjustments require admin or manager
- Low-stock listing is available to every active role
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..services import catalog_service, inventory_service
from ..services.authorization import ADJUST_INVENTORY_ROLES, VIEW_ROLES
from ..services.errors import PosError
from ..validation import MAX_ID
from ..decorators import require_auth, require_roles


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/adjust")
@require_auth
@require_roles(*ADJUST_INVENTORY_ROLES)
def adjust_inventory_route():
    """
    Adjust stock outside of a sale.

    Body: {"product_id": int, "quantity_delta": int (non-zero), "note"?: str}
    """
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id")
    quantity_delta = data.get("quantity_delta")

    if not isinstance(product_id, int) or isinstance(product_id, bool) or not 0 < product_id <= MAX_ID:
        return jsonify({"error": "product_id must be an integer"}), 400

    note = data.get("note")
    if note is not None and (not isinstance(note, str) or len(note) > 255):
        return jsonify({"error": "note must be a string of at most 255 characters"}), 400

    try:
        product = inventory_service.adjust_stock(
            product_id,
            quantity_delta,
            actor=g.identity,
            note=note,
        )
        return jsonify({"product": product.to_dict()}), 200

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust inventory")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/low-stock")
@require_auth
@require_roles(*VIEW_ROLES)
def low_stock_route():
    products = inventory_service.list_low_stock_products()
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@inventory_bp.get("/<int:product_id>/movements")
@require_auth
@require_roles(*ADJUST_INVENTORY_ROLES)
def movements_route(product_id: int):
    if catalog_service.get_product(product_id) is None:
        return jsonify({"error": "Product not found"}), 404

    movements = inventory_service.list_movements(product_id)
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200
