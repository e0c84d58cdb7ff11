# Overview: Append-only persistence for sales and sale items.

"""
Sale Ledger Invariants (authoritative)

- Sales and sale items are only ever inserted. There is no update or delete
  path here; status changes are a separate capability.
- Writes never commit: they join the transaction opened by commit_sale so a
  failed commit leaves no header or line behind.
- list_sales returns creation order (created_at, then id).
"""

from __future__ import annotations

import secrets
import string
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleItem
from ..models.sales import SALE_STATUS_COMPLETED
from ..time_utils import utcnow
from .errors import ConsistencyFailureError, NotFoundError


SALE_NUMBER_ALPHABET = string.ascii_uppercase + string.digits
SALE_NUMBER_TOKEN_LENGTH = 4
SALE_NUMBER_ATTEMPTS = 10


def _random_token(length: int = SALE_NUMBER_TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(SALE_NUMBER_ALPHABET) for _ in range(length))


def _sale_number_exists(sale_number: str) -> bool:
    return db.session.query(Sale.id).filter(Sale.sale_number == sale_number).first() is not None


def next_sale_number(now: datetime | None = None) -> str:
    """
    Generate a unique human-readable sale number, e.g. "SL-20260118-K3ZQ".

    Collisions with existing sales are detected and regenerated. The unique
    constraint on sales.sale_number backs this up for concurrent writers.
    """
    now = now or utcnow()
    prefix = current_app.config.get("SALE_NUMBER_PREFIX", "SL")
    for _ in range(SALE_NUMBER_ATTEMPTS):
        candidate = f"{prefix}-{now:%Y%m%d}-{_random_token()}"
        if not _sale_number_exists(candidate):
            return candidate
    raise ConsistencyFailureError("Could not allocate a unique sale number")


def create_sale(
    *,
    staff_user_id: int,
    subtotal_cents: int,
    discount_cents: int,
    tax_cents: int,
    total_cents: int,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
    status: str = SALE_STATUS_COMPLETED,
) -> Sale:
    sale = Sale(
        sale_number=next_sale_number(),
        staff_user_id=staff_user_id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        subtotal_cents=subtotal_cents,
        tax_cents=tax_cents,
        discount_cents=discount_cents,
        total_cents=total_cents,
        status=status,
        notes=notes,
    )
    db.session.add(sale)
    db.session.flush()
    return sale


def create_sale_item(sale: Sale, line, line_number: int) -> SaleItem:
    """Snapshot one cart line onto sale."""
    item = SaleItem(
        sale=sale,
        line_number=line_number,
        product_id=line.product_id,
        service_id=line.service_id,
        name=line.name,
        quantity=line.quantity,
        unit_price_cents=line.unit_price_cents,
        total_cents=line.total_cents,
    )
    db.session.add(item)
    db.session.flush()
    return item


def list_sales() -> list[Sale]:
    return (
        db.session.query(Sale)
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def list_sale_items(sale_id: int) -> list[SaleItem]:
    return (
        db.session.query(SaleItem)
        .filter(SaleItem.sale_id == sale_id)
        .order_by(SaleItem.line_number.asc())
        .all()
    )
