# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations are open to every active role
- Write operations require admin or manager

Stock is set once on create. Afterwards it only changes through sales and
/api/inventory/adjust.
"""
from flask import Blueprint, request

from ..models import Product
from ..services import catalog_service
from ..services.authorization import MANAGE_CATALOG_ROLES, VIEW_ROLES
from ..services.errors import NotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_roles

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "sku", "category", "price", "cost_price",
        "stock_quantity", "low_stock_threshold", "is_active",
    },
    required_on_create={"name", "category", "price"},
    money_fields={"price", "cost_price"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"stock_quantity"},
    money_fields=PRODUCT_POLICY.money_fields,
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_roles(*VIEW_ROLES)
def list_products_route():
    """
    List products ordered by name.

    Query params:
    - include_inactive: "true" to include deactivated products
    """
    include_inactive = request.args.get("include_inactive", "").lower() == "true"
    products = catalog_service.list_products(include_inactive=include_inactive)
    return {"products": [p.to_dict() for p in products]}, 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_roles(*VIEW_ROLES)
def get_product_route(product_id: int):
    product = catalog_service.get_product(product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return {"product": product.to_dict()}, 200


@products_bp.post("")
@require_auth
@require_roles(*MANAGE_CATALOG_ROLES)
def create_product_route():
    """Create a product. Requires admin or manager."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = catalog_service.create_product(patch)
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"product": created.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_roles(*MANAGE_CATALOG_ROLES)
def update_product_route(product_id: int):
    """Partial update. stock_quantity is rejected here."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = catalog_service.update_product(product_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"product": updated.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_roles(*MANAGE_CATALOG_ROLES)
def delete_product_route(product_id: int):
    """
    Deactivate a product. Requires admin or manager.

    Rows referenced by past sales are never removed.
    """
    try:
        product = catalog_service.deactivate_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True, "product": product.to_dict()}, 200
