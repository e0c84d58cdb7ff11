from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z


SALE_STATUS_PENDING = "pending"
SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_CANCELLED = "cancelled"
SALE_STATUSES = (SALE_STATUS_PENDING, SALE_STATUS_COMPLETED, SALE_STATUS_CANCELLED)


class Sale(db.Model):
    """
    Sale header: who sold, to whom, and the computed totals.

    Created exactly once per committed cart by sales_service.commit_sale and
    never updated afterwards. All amounts in cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint(
            "subtotal_cents >= 0 AND tax_cents >= 0 AND discount_cents >= 0 AND total_cents >= 0",
            name="ck_sales_amounts_nonnegative",
        ),
        db.CheckConstraint("status IN ('pending', 'completed', 'cancelled')", name="ck_sales_status"),
        db.Index("ix_sales_created", "created_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "SL-20260118-K3ZQ")
    sale_number = db.Column(db.String(32), nullable=False, unique=True)

    staff_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    staff_user = db.relationship("User", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.line_number",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "staff_user_id": self.staff_user_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "subtotal": format_cents(self.subtotal_cents),
            "tax": format_cents(self.tax_cents),
            "discount": format_cents(self.discount_cents),
            "total": format_cents(self.total_cents),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    One line of a sale.

    name and unit_price_cents are snapshots taken at sale time, so later
    catalog edits never rewrite history.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_items_sale_line"),
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint(
            "unit_price_cents >= 0 AND total_cents >= 0",
            name="ck_sale_items_amounts_nonnegative",
        ),
        db.CheckConstraint(
            "product_id IS NULL OR service_id IS NULL",
            name="ck_sale_items_single_reference",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    # Position in the submitted cart (1-based)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")
    service = db.relationship("Service")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "service_id": self.service_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": format_cents(self.unit_price_cents),
            "total": format_cents(self.total_cents),
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }
