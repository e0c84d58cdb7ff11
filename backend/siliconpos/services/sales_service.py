# Overview: Sale commit workflow; validates a cart and writes sale, items and stock as one unit.

"""
Sale Commit Service

A sale touches three things at once: the sale header, its line items,
and product stock. They must change together or not at all.

Flow (commit_sale):
1. Authorization guard (SUBMIT_SALE_ROLES).
2. Parse the cart. Every line is validated before anything is written.
3. In one DB transaction:
   - take the write lock (BEGIN IMMEDIATE on SQLite, FOR UPDATE elsewhere)
   - resolve catalog references and check stock for the whole cart
   - compute totals in integer cents
   - insert the Sale, then per line (cart order) its SaleItem and the
     stock decrement
   - commit
4. Any failure rolls the transaction back. Failures after writing began
   that are not domain errors surface as ConsistencyFailureError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, Sale, Service
from ..money import MAX_AMOUNT_CENTS, format_cents, parse_money
from ..validation import MAX_ID, MAX_QUANTITY, ValidationError
from . import inventory_service, ledger_service
from .authorization import SUBMIT_SALE_ROLES, Identity, ensure_authorized
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .errors import (
    ConsistencyFailureError,
    InsufficientStockError,
    InvalidInputError,
    PosError,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartLine:
    """A requested line, not yet persisted. Amounts in cents."""
    product_id: int | None
    service_id: int | None
    name: str | None
    quantity: int
    unit_price_cents: int | None

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int


def no_tax(taxable_cents: int) -> int:
    return 0


def _optional_id(value, field: str, index: int) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidInputError(f"Line {index}: {field} must be an integer id")
    if isinstance(value, str) and value.strip().isascii() and value.strip().isdecimal():
        value = int(value.strip())
    if isinstance(value, int) and 0 < value <= MAX_ID:
        return value
    raise InvalidInputError(f"Line {index}: {field} must be an integer id")


def _optional_text(value, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} must be a string")
    value = value.strip()
    if not value:
        return None
    if len(value) > max_length:
        raise InvalidInputError(f"{field} exceeds max length {max_length}")
    return value


def parse_cart(items) -> list[CartLine]:
    """
    Validate raw cart lines (JSON objects) into CartLine values.

    Each line: product_id?, service_id?, name?, quantity (> 0),
    unit_price? (>= 0, at most 2 decimals).
    """
    if items is None or (isinstance(items, list) and not items):
        raise InvalidInputError("cart empty")
    if not isinstance(items, list):
        raise InvalidInputError("items must be a list")

    lines: list[CartLine] = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise InvalidInputError(f"Line {index}: must be an object")

        product_id = _optional_id(raw.get("product_id"), "product_id", index)
        service_id = _optional_id(raw.get("service_id"), "service_id", index)
        if product_id is not None and service_id is not None:
            raise InvalidInputError(f"Line {index}: reference a product or a service, not both")

        quantity = raw.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise InvalidInputError(f"Line {index}: quantity must be a positive integer")
        if quantity > MAX_QUANTITY:
            raise InvalidInputError(f"Line {index}: quantity cannot exceed {MAX_QUANTITY}")

        unit_price_cents = None
        if raw.get("unit_price") is not None:
            try:
                unit_price_cents = parse_money(raw["unit_price"], "unit_price")
            except ValidationError as e:
                raise InvalidInputError(f"Line {index}: {e}")
            if unit_price_cents < 0:
                raise InvalidInputError(f"Line {index}: unit_price must be >= 0")

        name = _optional_text(raw.get("name"), f"Line {index}: name", 255)

        if product_id is None and service_id is None:
            if name is None:
                raise InvalidInputError(f"Line {index}: name is required for a free-form line")
            if unit_price_cents is None:
                raise InvalidInputError(f"Line {index}: unit_price is required for a free-form line")

        lines.append(CartLine(
            product_id=product_id,
            service_id=service_id,
            name=name,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
        ))

    return lines


def _parse_discount(discount) -> int:
    if discount is None or discount == "":
        return 0
    try:
        cents = parse_money(discount, "discount")
    except ValidationError as e:
        raise InvalidInputError(str(e))
    if cents < 0:
        raise InvalidInputError("discount must be >= 0")
    return cents


def _resolve_lines(lines: list[CartLine]) -> tuple[list[CartLine], dict[int, Product]]:
    """
    Load referenced catalog rows and snapshot name and price onto each line.

    Product rows are locked (ordered by id) for the rest of the transaction.
    """
    product_ids = sorted({line.product_id for line in lines if line.product_id is not None})
    service_ids = sorted({line.service_id for line in lines if line.service_id is not None})

    products: dict[int, Product] = {}
    if product_ids:
        query = (
            db.session.query(Product)
            .filter(Product.id.in_(product_ids))
            .order_by(Product.id.asc())
            .populate_existing()
        )
        products = {p.id: p for p in lock_for_update(query).all()}

    services: dict[int, Service] = {}
    if service_ids:
        services = {
            s.id: s
            for s in db.session.query(Service).filter(Service.id.in_(service_ids)).all()
        }

    resolved = []
    for index, line in enumerate(lines, start=1):
        if line.product_id is not None:
            product = products.get(line.product_id)
            if product is None:
                raise InvalidInputError(f"Line {index}: product {line.product_id} not found")
            if not product.is_active:
                raise InvalidInputError(f"Line {index}: product {line.product_id} is inactive")
            line = replace(
                line,
                name=product.name,
                unit_price_cents=(
                    line.unit_price_cents if line.unit_price_cents is not None else product.price_cents
                ),
            )
        elif line.service_id is not None:
            service = services.get(line.service_id)
            if service is None:
                raise InvalidInputError(f"Line {index}: service {line.service_id} not found")
            if not service.is_active:
                raise InvalidInputError(f"Line {index}: service {line.service_id} is inactive")
            line = replace(
                line,
                name=service.name,
                unit_price_cents=(
                    line.unit_price_cents if line.unit_price_cents is not None else service.price_cents
                ),
            )
        resolved.append(line)

    return resolved, products


def check_stock(lines: list[CartLine], products: dict[int, Product]) -> None:
    """
    Verify stock for the whole cart before any decrement.

    Quantities of the same product on several lines are summed.
    """
    requested: dict[int, int] = {}
    for line in lines:
        if line.product_id is not None:
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    insufficient = []
    for product_id, quantity in requested.items():
        available = products[product_id].stock_quantity
        if available < quantity:
            insufficient.append({
                "product_id": product_id,
                "available": available,
                "requested": quantity,
            })

    if insufficient:
        first = insufficient[0]
        raise InsufficientStockError(
            first["product_id"],
            first["available"],
            first["requested"],
            items=insufficient,
        )


def compute_totals(
    lines: list[CartLine],
    discount_cents: int,
    tax_rule: Callable[[int], int] = no_tax,
) -> SaleTotals:
    """
    subtotal = sum(unit_price * quantity); total = subtotal - discount + tax.

    A discount larger than the subtotal is rejected, not clamped.
    """
    subtotal_cents = sum(line.total_cents for line in lines)
    if subtotal_cents > MAX_AMOUNT_CENTS:
        raise InvalidInputError(
            f"subtotal cannot exceed {format_cents(MAX_AMOUNT_CENTS)}",
            details={"subtotal": format_cents(subtotal_cents)},
        )

    if discount_cents > subtotal_cents:
        raise InvalidInputError(
            "discount exceeds subtotal",
            details={
                "discount": format_cents(discount_cents),
                "subtotal": format_cents(subtotal_cents),
            },
        )

    tax_cents = tax_rule(subtotal_cents - discount_cents)
    if not isinstance(tax_cents, int) or tax_cents < 0:
        raise InvalidInputError("tax rule must return a non-negative amount in cents")
    if subtotal_cents - discount_cents + tax_cents > MAX_AMOUNT_CENTS:
        raise InvalidInputError(f"total cannot exceed {format_cents(MAX_AMOUNT_CENTS)}")

    return SaleTotals(
        subtotal_cents=subtotal_cents,
        discount_cents=discount_cents,
        tax_cents=tax_cents,
        total_cents=subtotal_cents - discount_cents + tax_cents,
    )


def _write_sale(
    lines: list[CartLine],
    totals: SaleTotals,
    actor: Identity,
    *,
    customer_name: str | None,
    customer_phone: str | None,
    notes: str | None,
) -> Sale:
    try:
        sale = ledger_service.create_sale(
            staff_user_id=actor.id,
            subtotal_cents=totals.subtotal_cents,
            discount_cents=totals.discount_cents,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            customer_name=customer_name,
            customer_phone=customer_phone,
            notes=notes,
        )

        for line_number, line in enumerate(lines, start=1):
            ledger_service.create_sale_item(sale, line, line_number)
            if line.product_id is not None:
                inventory_service.decrement_stock(
                    line.product_id,
                    line.quantity,
                    sale_id=sale.id,
                    actor_user_id=actor.id,
                    note=f"Sale {sale.sale_number}",
                )
    except (PosError, OperationalError, StaleDataError):
        raise
    except Exception as exc:
        raise ConsistencyFailureError(
            "Sale could not be committed; no changes were saved"
        ) from exc

    return sale


def commit_sale(
    items,
    *,
    actor: Identity | None,
    customer_name: str | None = None,
    customer_phone: str | None = None,
    discount=None,
    notes: str | None = None,
    tax_rule: Callable[[int], int] | None = None,
) -> Sale:
    """
    Validate a cart and commit it as a completed sale.

    Either the Sale, all of its SaleItems and every stock decrement persist,
    or none of them do.

    Raises UnauthorizedError, InvalidInputError, InsufficientStockError or
    ConsistencyFailureError.
    """
    ensure_authorized(actor, SUBMIT_SALE_ROLES)

    lines = parse_cart(items)
    discount_cents = _parse_discount(discount)
    customer_name = _optional_text(customer_name, "customer_name", 255)
    customer_phone = _optional_text(customer_phone, "customer_phone", 32)
    notes = _optional_text(notes, "notes", 2000)
    tax_rule = tax_rule or no_tax

    def _op() -> Sale:
        try:
            begin_write_transaction()
            resolved, products = _resolve_lines(lines)
            check_stock(resolved, products)
            totals = compute_totals(resolved, discount_cents, tax_rule)
            sale = _write_sale(
                resolved,
                totals,
                actor,
                customer_name=customer_name,
                customer_phone=customer_phone,
                notes=notes,
            )
            db.session.commit()
            return sale
        except Exception:
            db.session.rollback()
            raise

    try:
        sale = run_with_retry(_op)
    except (OperationalError, StaleDataError) as exc:
        logger.warning("Sale commit by user %s failed after retries: %s", actor.id, exc)
        raise ConsistencyFailureError(
            "Sale could not be committed; no changes were saved"
        ) from exc
    except ConsistencyFailureError:
        logger.exception("Sale commit by user %s rolled back", actor.id)
        raise
    except SQLAlchemyError as exc:
        logger.exception("Sale commit by user %s rolled back", actor.id)
        raise ConsistencyFailureError(
            "Sale could not be committed; no changes were saved"
        ) from exc

    logger.info(
        "Committed sale %s by user %s: %d lines, total %s",
        sale.sale_number,
        actor.id,
        len(lines),
        format_cents(sale.total_cents),
    )
    return sale
