# Overview: Catalog reads and CRUD for products and services.

"""
Catalog Service

The sale core only reads the catalog (get_product / get_service) and never
writes catalog fields. Stock is deliberately not patchable here: after
creation it changes only through inventory_service.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Service
from ..validation import ConflictError
from .errors import NotFoundError


def get_product(product_id: int) -> Product | None:
    return db.session.get(Product, product_id)


def get_service(service_id: int) -> Service | None:
    return db.session.get(Service, service_id)


def list_products(*, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def list_services(*, include_inactive: bool = False) -> list[Service]:
    query = db.session.query(Service)
    if not include_inactive:
        query = query.filter(Service.is_active.is_(True))
    return query.order_by(Service.name.asc(), Service.id.asc()).all()


def _ensure_unique_sku(sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"SKU already exists: {sku}")


def create_product(patch: dict) -> Product:
    """Create a product from a validated patch (see validation.validate_payload)."""
    _ensure_unique_sku(patch.get("sku"))

    product = Product(**patch)
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product violates a uniqueness constraint")
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")

    if "sku" in patch:
        _ensure_unique_sku(patch["sku"], exclude_id=product_id)

    for key, value in patch.items():
        setattr(product, key, value)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product violates a uniqueness constraint")
    return product


def deactivate_product(product_id: int) -> Product:
    """
    Soft delete. Sale items and movements keep pointing at the row, so it is
    only hidden from listings and refused by new sales.
    """
    return update_product(product_id, {"is_active": False})


def create_service(patch: dict) -> Service:
    service = Service(**patch)
    db.session.add(service)
    db.session.commit()
    return service


def update_service(service_id: int, patch: dict) -> Service:
    service = get_service(service_id)
    if service is None:
        raise NotFoundError("Service not found")

    for key, value in patch.items():
        setattr(service, key, value)

    db.session.commit()
    return service



def deactivate_service(service_id: int) -> Service:
    """Soft delete; see deactivate_product."""
    return update_service(service_id, {"is_active": False})


def seed_catalog() -> tuple[int, int]:
    """
    Insert the sample catalog. Skipped when any product exists.

    Returns (products_created, services_created).
    """
    from ..money import parse_money
    from ..seed_data import SAMPLE_PRODUCTS, SAMPLE_SERVICES

    if db.session.query(Product.id).first() is not None:
        return 0, 0

    for row in SAMPLE_PRODUCTS:
        data = dict(row)
        data["price_cents"] = parse_money(data.pop("price"), "price")
        data["cost_price_cents"] = parse_money(data.pop("cost_price"), "cost_price")
        db.session.add(Product(**data))

    for row in SAMPLE_SERVICES:
        data = dict(row)
        data["price_cents"] = parse_money(data.pop("price"), "price")
        db.session.add(Service(**data))

    db.session.commit()
    return len(SAMPLE_PRODUCTS), len(SAMPLE_SERVICES)
