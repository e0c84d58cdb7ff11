# Overview: Flask API routes for services operations; parses input and returns JSON responses.

"""Billable service catalog routes (installation, maintenance, ...)."""
from flask import Blueprint, request

from ..models import Service
from ..services import catalog_service
from ..services.authorization import MANAGE_CATALOG_ROLES, VIEW_ROLES
from ..services.errors import NotFoundError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_service,
    ValidationError,
)
from ..decorators import require_auth, require_roles

SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "category", "price", "duration", "is_active"},
    required_on_create={"name", "price"},
    money_fields={"price"},
)

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


@services_bp.get("")
@require_auth
@require_roles(*VIEW_ROLES)
def list_services_route():
    include_inactive = request.args.get("include_inactive", "").lower() == "true"
    services = catalog_service.list_services(include_inactive=include_inactive)
    return {"services": [s.to_dict() for s in services]}, 200


@services_bp.get("/<int:service_id>")
@require_auth
@require_roles(*VIEW_ROLES)
def get_service_route(service_id: int):
    service = catalog_service.get_service(service_id)
    if service is None:
        return {"error": "Service not found"}, 404
    return {"service": service.to_dict()}, 200


@services_bp.post("")
@require_auth
@require_roles(*MANAGE_CATALOG_ROLES)
def create_service_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=False)
        enforce_rules_service(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    created = catalog_service.create_service(patch)
    return {"service": created.to_dict()}, 201


@services_bp.put("/<int:service_id>")
@require_auth
@require_roles(*MANAGE_CATALOG_ROLES)
def update_service_route(service_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=True)
        enforce_rules_service(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = catalog_service.update_service(service_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"service": updated.to_dict()}, 200


@services_bp.delete("/<int:service_id>")
@require_auth
@require_roles(*MANAGE_CATALOG_ROLES)
def delete_service_route(service_id: int):
    """Deactivate a service; it stays referenced by past sales."""
    try:
        service = catalog_service.deactivate_service(service_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True, "service": service.to_dict()}, 200
