"""
Sale commit tests.

Covers the commit workflow end to end against the database:
- totals in exact cents, stock decrements, item order
- cart validation and discount rules
- stock checks (whole cart, aggregated per product)
- rollback when a step fails after writing began
- stock re-verification at write time
"""

import pytest
from sqlalchemy import update

from siliconpos.extensions import db
from siliconpos.models import InventoryMovement, Product, Sale, SaleItem
from siliconpos.services import ledger_service, sales_service
from siliconpos.services.errors import (
    ConsistencyFailureError,
    InsufficientStockError,
    InvalidInputError,
    UnauthorizedError,
)
from siliconpos.services.sales_service import commit_sale


def _stock(product_id: int) -> int:
    return db.session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()


def _assert_nothing_persisted():
    assert db.session.query(Sale).count() == 0
    assert db.session.query(SaleItem).count() == 0
    assert db.session.query(InventoryMovement).count() == 0


# =============================================================================
# HAPPY PATH
# =============================================================================


class TestCommitSale:

    def test_two_product_cart_with_discount(self, cashier, cable, switch):
        cable_id, switch_id = cable.id, switch.id

        sale = commit_sale(
            [
                {"product_id": cable_id, "quantity": 2, "unit_price": 15.99},
                {"product_id": switch_id, "quantity": 1, "unit_price": 45.99},
            ],
            actor=cashier,
            discount="5.00",
        )

        assert sale.subtotal_cents == 7797
        assert sale.discount_cents == 500
        assert sale.tax_cents == 0
        assert sale.total_cents == 7297
        assert sale.status == "completed"
        assert sale.staff_user_id == cashier.id

        items = ledger_service.list_sale_items(sale.id)
        assert [item.product_id for item in items] == [cable_id, switch_id]
        assert [item.total_cents for item in items] == [3198, 4599]

        assert _stock(cable_id) == 98
        assert _stock(switch_id) == 4
        assert db.session.query(Sale).count() == 1

    def test_response_shape(self, cashier, cable):
        sale = commit_sale(
            [{"product_id": cable.id, "quantity": 2}],
            actor=cashier,
            customer_name="  Jane Doe ",
            customer_phone="555-0100",
            notes="Deliver Friday",
        )

        data = sale.to_dict(include_items=True)
        assert data["subtotal"] == "31.98"
        assert data["total"] == "31.98"
        assert data["discount"] == "0.00"
        assert data["customer_name"] == "Jane Doe"
        assert data["customer_phone"] == "555-0100"
        assert data["notes"] == "Deliver Friday"
        assert data["sale_number"].startswith("SL-")
        assert data["items"][0]["name"] == "Cat6 Ethernet Cable 10m"
        assert data["items"][0]["unit_price"] == "15.99"
        assert data["items"][0]["line_number"] == 1

    def test_catalog_price_used_when_unit_price_omitted(self, cashier, switch):
        sale = commit_sale([{"product_id": switch.id, "quantity": 3}], actor=cashier)
        assert sale.subtotal_cents == 3 * 4599

    def test_unit_price_override_is_snapshotted(self, cashier, switch):
        sale = commit_sale(
            [{"product_id": switch.id, "quantity": 1, "unit_price": "39.99"}],
            actor=cashier,
        )
        db.session.refresh(switch)
        switch.price_cents = 9999
        db.session.commit()

        item = ledger_service.list_sale_items(sale.id)[0]
        assert item.unit_price_cents == 3999
        assert item.name == "TP-Link 8-Port Gigabit Switch"

    def test_service_and_free_form_lines_do_not_touch_stock(self, cashier, cable, installation):
        sale = commit_sale(
            [
                {"service_id": installation.id, "quantity": 1},
                {"name": "Site survey", "quantity": 2, "unit_price": "25.00"},
                {"product_id": cable.id, "quantity": 1},
            ],
            actor=cashier,
        )

        items = ledger_service.list_sale_items(sale.id)
        assert [item.name for item in items] == [
            "Network Installation - Basic",
            "Site survey",
            "Cat6 Ethernet Cable 10m",
        ]
        assert items[0].service_id == installation.id
        assert items[1].product_id is None and items[1].service_id is None
        assert sale.subtotal_cents == 29999 + 5000 + 1599
        assert _stock(cable.id) == 99

    def test_same_product_on_two_lines(self, cashier, switch):
        commit_sale(
            [
                {"product_id": switch.id, "quantity": 2},
                {"product_id": switch.id, "quantity": 3},
            ],
            actor=cashier,
        )
        assert _stock(switch.id) == 0

    def test_movements_reference_the_sale(self, cashier, cable):
        sale = commit_sale([{"product_id": cable.id, "quantity": 4}], actor=cashier)

        movement = db.session.query(InventoryMovement).one()
        assert movement.sale_id == sale.id
        assert movement.movement_type == "SALE"
        assert movement.quantity_delta == -4
        assert movement.quantity_after == 96
        assert movement.user_id == cashier.id

    def test_tax_rule_is_applied_after_discount(self, cashier, switch):
        sale = commit_sale(
            [{"product_id": switch.id, "quantity": 2}],
            actor=cashier,
            discount="1.98",
            tax_rule=lambda taxable: taxable // 10,
        )
        assert sale.subtotal_cents == 9198
        assert sale.tax_cents == 900
        assert sale.total_cents == 9900

    @pytest.mark.parametrize("lines", [
        [("0.10", 1), ("0.20", 1)],
        [("0.10", 3), ("0.70", 7)],
        [("19.99", 13), ("0.01", 99), ("1234.56", 2)],
        [("33.33", 3)],
    ])
    def test_sums_are_exact(self, cashier, lines):
        items = [
            {"name": f"Item {i}", "quantity": qty, "unit_price": price}
            for i, (price, qty) in enumerate(lines)
        ]
        sale = commit_sale(items, actor=cashier, discount="0.30")

        persisted = ledger_service.list_sale_items(sale.id)
        assert sum(item.total_cents for item in persisted) == sale.subtotal_cents
        assert sale.total_cents == sale.subtotal_cents - sale.discount_cents


# =============================================================================
# VALIDATION
# =============================================================================


class TestCartValidation:

    def test_guard_runs_before_payload_validation(self, db_session):
        with pytest.raises(UnauthorizedError) as exc:
            commit_sale([], actor=None)
        assert exc.value.reason == "unauthenticated"

    def test_empty_cart(self, cashier):
        with pytest.raises(InvalidInputError, match="cart empty"):
            commit_sale([], actor=cashier)

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None, 1_000_001, 10**19])
    def test_quantity_must_be_positive_integer(self, cashier, cable, quantity):
        with pytest.raises(InvalidInputError):
            commit_sale([{"product_id": cable.id, "quantity": quantity}], actor=cashier)
        _assert_nothing_persisted()

    @pytest.mark.parametrize("price", ["-1.00", "1.999", "abc", "NaN", True, "1e30", 10**30, "9" * 29])
    def test_bad_unit_price(self, cashier, cable, price):
        with pytest.raises(InvalidInputError):
            commit_sale([{"product_id": cable.id, "quantity": 1, "unit_price": price}], actor=cashier)

    @pytest.mark.parametrize("product_id", ["\u00b2", "-3", 0, 10**30])
    def test_malformed_product_id(self, cashier, product_id):
        with pytest.raises(InvalidInputError, match="integer id"):
            commit_sale([{"product_id": product_id, "quantity": 1}], actor=cashier)

    def test_numeric_string_id_is_accepted(self, cashier, cable):
        sale = commit_sale([{"product_id": f" {cable.id} ", "quantity": 1}], actor=cashier)
        assert ledger_service.list_sale_items(sale.id)[0].product_id == cable.id

    def test_subtotal_above_maximum(self, cashier):
        with pytest.raises(InvalidInputError, match="subtotal cannot exceed"):
            commit_sale(
                [{"name": "Campus fibre backbone", "quantity": 2, "unit_price": "9999999.99"}],
                actor=cashier,
            )
        _assert_nothing_persisted()

    def test_product_and_service_on_one_line(self, cashier, cable, installation):
        with pytest.raises(InvalidInputError):
            commit_sale(
                [{"product_id": cable.id, "service_id": installation.id, "quantity": 1}],
                actor=cashier,
            )

    def test_free_form_line_needs_name_and_price(self, cashier):
        with pytest.raises(InvalidInputError, match="name"):
            commit_sale([{"quantity": 1, "unit_price": "5.00"}], actor=cashier)
        with pytest.raises(InvalidInputError, match="unit_price"):
            commit_sale([{"name": "Labour", "quantity": 1}], actor=cashier)

    def test_unknown_product(self, cashier, cable):
        with pytest.raises(InvalidInputError, match="not found"):
            commit_sale(
                [
                    {"product_id": cable.id, "quantity": 1},
                    {"product_id": cable.id + 1000, "quantity": 1},
                ],
                actor=cashier,
            )
        assert _stock(cable.id) == 100
        _assert_nothing_persisted()

    def test_inactive_product(self, cashier, make_product):
        retired = make_product("Old Hub", 999, 10, is_active=False)
        with pytest.raises(InvalidInputError, match="inactive"):
            commit_sale([{"product_id": retired.id, "quantity": 1}], actor=cashier)

    def test_discount_above_subtotal_is_rejected(self, cashier, cable):
        with pytest.raises(InvalidInputError, match="discount exceeds subtotal") as exc:
            commit_sale([{"product_id": cable.id, "quantity": 1}], actor=cashier, discount="16.00")
        assert exc.value.details == {"discount": "16.00", "subtotal": "15.99"}
        assert _stock(cable.id) == 100
        _assert_nothing_persisted()

    def test_discount_equal_to_subtotal(self, cashier, cable):
        sale = commit_sale([{"product_id": cable.id, "quantity": 1}], actor=cashier, discount=15.99)
        assert sale.total_cents == 0

    @pytest.mark.parametrize("discount", ["-1", "0.001", "ten", "1e40", 10**30])
    def test_bad_discount(self, cashier, cable, discount):
        with pytest.raises(InvalidInputError):
            commit_sale([{"product_id": cable.id, "quantity": 1}], actor=cashier, discount=discount)


# =============================================================================
# STOCK
# =============================================================================


class TestStockChecks:

    def test_oversell_is_rejected(self, cashier, make_product):
        product = make_product("Hikvision 4MP IP Dome Camera", 12999, 3)
        product_id = product.id

        with pytest.raises(InsufficientStockError) as exc:
            commit_sale([{"product_id": product_id, "quantity": 5}], actor=cashier)

        assert exc.value.product_id == product_id
        assert exc.value.available == 3
        assert exc.value.requested == 5
        assert _stock(product_id) == 3
        _assert_nothing_persisted()

    def test_quantities_are_summed_per_product(self, cashier, cable, switch):
        with pytest.raises(InsufficientStockError) as exc:
            commit_sale(
                [
                    {"product_id": cable.id, "quantity": 1},
                    {"product_id": switch.id, "quantity": 3},
                    {"product_id": switch.id, "quantity": 3},
                ],
                actor=cashier,
            )
        assert exc.value.requested == 6
        assert exc.value.available == 5
        assert _stock(cable.id) == 100
        _assert_nothing_persisted()

    def test_every_short_product_is_reported(self, cashier, make_product):
        a = make_product("POE Switch 4-Port", 7599, 1)
        b = make_product("8-Channel NVR Recorder", 34999, 0)

        with pytest.raises(InsufficientStockError) as exc:
            commit_sale(
                [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
                actor=cashier,
            )
        assert [item["product_id"] for item in exc.value.details["items"]] == [a.id, b.id]

    def test_stock_change_after_validation_is_caught_at_write(self, cashier, cable, switch, monkeypatch):
        switch_id = switch.id
        real_compute_totals = sales_service.compute_totals

        def compute_totals_then_race(*args, **kwargs):
            # Another writer empties the switch after the stock check passed
            db.session.execute(
                update(Product)
                .where(Product.id == switch_id)
                .values(stock_quantity=0)
                .execution_options(synchronize_session=False)
            )
            return real_compute_totals(*args, **kwargs)

        monkeypatch.setattr(sales_service, "compute_totals", compute_totals_then_race)

        with pytest.raises(InsufficientStockError) as exc:
            commit_sale(
                [
                    {"product_id": cable.id, "quantity": 2},
                    {"product_id": switch_id, "quantity": 1},
                ],
                actor=cashier,
            )

        assert exc.value.product_id == switch_id
        assert exc.value.available == 0
        assert _stock(cable.id) == 100
        _assert_nothing_persisted()


# =============================================================================
# ROLLBACK
# =============================================================================


class TestRollback:

    def test_failure_between_items_leaves_no_trace(self, cashier, cable, switch, monkeypatch):
        cable_id, switch_id = cable.id, switch.id
        real_create_sale_item = ledger_service.create_sale_item
        calls = []

        def failing_create_sale_item(sale, line, line_number):
            calls.append(line_number)
            if line_number == 2:
                raise RuntimeError("disk full")
            return real_create_sale_item(sale, line, line_number)

        monkeypatch.setattr(ledger_service, "create_sale_item", failing_create_sale_item)

        with pytest.raises(ConsistencyFailureError) as exc:
            commit_sale(
                [
                    {"product_id": cable_id, "quantity": 2},
                    {"product_id": switch_id, "quantity": 1},
                ],
                actor=cashier,
            )

        assert calls == [1, 2]
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert _stock(cable_id) == 100
        assert _stock(switch_id) == 5
        _assert_nothing_persisted()

    def test_session_is_usable_after_failure(self, cashier, cable, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(ledger_service, "create_sale_item", broken)
        with pytest.raises(ConsistencyFailureError):
            commit_sale([{"product_id": cable.id, "quantity": 1}], actor=cashier)

        monkeypatch.undo()
        sale = commit_sale([{"product_id": cable.id, "quantity": 1}], actor=cashier)
        assert sale.id is not None
        assert _stock(cable.id) == 99
