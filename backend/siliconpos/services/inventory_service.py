# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
SiliconPOS Inventory Invariants (authoritative)

Inventory model:
- Product.stock_quantity is the authoritative on-hand count.
- Every change goes through decrement_stock / increment_stock, which issue a
  single conditional UPDATE. The check and the write happen in one statement,
  so concurrent writers can never both take the last unit.

Business invariants:
- stock_quantity is never negative. A decrement larger than the stock on
  hand fails with InsufficientStockError; it is never clamped to zero.
- Each stock change appends an InventoryMovement row in the same DB
  transaction.

Transactions:
- decrement_stock / increment_stock never commit; they run inside the
  caller's transaction (commit_sale).
- adjust_stock is a standalone operation and commits on its own.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm.util import identity_key

from ..extensions import db
from ..models import Product, InventoryMovement
from ..models.inventory import MOVEMENT_SALE, MOVEMENT_ADJUSTMENT, MOVEMENT_RETURN
from ..validation import MAX_QUANTITY
from .authorization import ADJUST_INVENTORY_ROLES, Identity, ensure_authorized
from .concurrency import begin_write_transaction, run_with_retry
from .errors import InvalidInputError, InsufficientStockError, NotFoundError


def _require_positive_amount(amount) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidInputError("amount must be a positive integer")


def _expire_cached(product_id: int) -> None:
    # Bulk UPDATE bypasses the identity map; drop any stale in-session copy.
    cached = db.session.identity_map.get(identity_key(Product, product_id))
    if cached is not None:
        db.session.expire(cached)


def _current_quantity(product_id: int) -> int | None:
    return (
        db.session.query(Product.stock_quantity)
        .filter(Product.id == product_id)
        .scalar()
    )


def _record_movement(
    *,
    product_id: int,
    movement_type: str,
    quantity_delta: int,
    quantity_after: int,
    sale_id: int | None,
    actor_user_id: int | None,
    note: str | None,
) -> InventoryMovement:
    movement = InventoryMovement(
        product_id=product_id,
        movement_type=movement_type,
        quantity_delta=quantity_delta,
        quantity_after=quantity_after,
        sale_id=sale_id,
        user_id=actor_user_id,
        note=note,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def decrement_stock(
    product_id: int,
    amount: int,
    *,
    movement_type: str = MOVEMENT_SALE,
    sale_id: int | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> int:
    """
    Remove amount units from stock and return the new quantity.

    Compare-and-swap: the UPDATE only matches while stock_quantity >= amount,
    so the check is re-verified at write time under the row's write lock.
    """
    _require_positive_amount(amount)

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= amount)
        .values(
            stock_quantity=Product.stock_quantity - amount,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    _expire_cached(product_id)

    if not result.rowcount:
        available = _current_quantity(product_id)
        if available is None:
            raise NotFoundError(f"Product {product_id} not found")
        raise InsufficientStockError(product_id, available, amount)

    new_quantity = _current_quantity(product_id)
    _record_movement(
        product_id=product_id,
        movement_type=movement_type,
        quantity_delta=-amount,
        quantity_after=new_quantity,
        sale_id=sale_id,
        actor_user_id=actor_user_id,
        note=note,
    )
    return new_quantity


def increment_stock(
    product_id: int,
    amount: int,
    *,
    movement_type: str = MOVEMENT_RETURN,
    sale_id: int | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
) -> int:
    """Add amount units to stock (returns, cancellations, receiving)."""
    _require_positive_amount(amount)

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock_quantity=Product.stock_quantity + amount,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    _expire_cached(product_id)
    if not result.rowcount:
        raise NotFoundError(f"Product {product_id} not found")

    new_quantity = _current_quantity(product_id)
    _record_movement(
        product_id=product_id,
        movement_type=movement_type,
        quantity_delta=amount,
        quantity_after=new_quantity,
        sale_id=sale_id,
        actor_user_id=actor_user_id,
        note=note,
    )
    return new_quantity


def adjust_stock(
    product_id: int,
    quantity_delta: int,
    *,
    actor: Identity | None,
    note: str | None = None,
) -> Product:
    """
    Direct stock adjustment outside of a sale (count corrections, receiving).

    Requires admin or manager. Negative deltas follow the same no-oversell
    rule as sales.
    """
    ensure_authorized(actor, ADJUST_INVENTORY_ROLES)

    if not isinstance(quantity_delta, int) or isinstance(quantity_delta, bool) or quantity_delta == 0:
        raise InvalidInputError("quantity_delta must be a non-zero integer")
    if abs(quantity_delta) > MAX_QUANTITY:
        raise InvalidInputError(f"quantity_delta cannot exceed {MAX_QUANTITY}")

    def _op():
        try:
            begin_write_transaction()
            if quantity_delta < 0:
                decrement_stock(
                    product_id,
                    -quantity_delta,
                    movement_type=MOVEMENT_ADJUSTMENT,
                    actor_user_id=actor.id,
                    note=note,
                )
            else:
                increment_stock(
                    product_id,
                    quantity_delta,
                    movement_type=MOVEMENT_ADJUSTMENT,
                    actor_user_id=actor.id,
                    note=note,
                )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return db.session.get(Product, product_id)

    return run_with_retry(_op)


def list_movements(product_id: int) -> list[InventoryMovement]:
    return (
        db.session.query(InventoryMovement)
        .filter(InventoryMovement.product_id == product_id)
        .order_by(InventoryMovement.occurred_at.asc(), InventoryMovement.id.asc())
        .all()
    )


def list_low_stock_products() -> list[Product]:
    """Active products at or below their low-stock threshold."""
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.stock_quantity <= Product.low_stock_threshold,
        )
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .all()
    )
