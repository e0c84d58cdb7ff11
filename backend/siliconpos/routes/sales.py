# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""Sales API routes with role enforcement"""

from flask import Blueprint, current_app, g, jsonify, request

from ..services import ledger_service, sales_service
from ..services.authorization import SUBMIT_SALE_ROLES, VIEW_ROLES
from ..services.errors import PosError
from ..decorators import require_auth, require_roles


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_roles(*SUBMIT_SALE_ROLES)
def commit_sale_route():
    """
    Commit a cart as a completed sale.

    Body: {"items": [...], "customer_name"?, "customer_phone"?, "discount"?, "notes"?}
    Available to: admin, manager, sales
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        sale = sales_service.commit_sale(
            data.get("items"),
            actor=g.identity,
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
            discount=data.get("discount"),
            notes=data.get("notes"),
        )
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_roles(*VIEW_ROLES)
def list_sales_route():
    """All sales in creation order."""
    sales = ledger_service.list_sales()
    return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_roles(*VIEW_ROLES)
def get_sale_route(sale_id: int):
    """Sale with its items in cart order."""
    try:
        sale = ledger_service.get_sale(sale_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"sale": sale.to_dict(include_items=True)}), 200
