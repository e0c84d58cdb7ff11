"""Sale ledger tests: numbering, ordering and lookups."""

from datetime import datetime

import pytest

from siliconpos.extensions import db
from siliconpos.models import Sale
from siliconpos.services import ledger_service
from siliconpos.services.errors import ConsistencyFailureError, NotFoundError
from siliconpos.services.sales_service import commit_sale


def _insert_sale(staff_user_id: int, sale_number: str) -> Sale:
    sale = Sale(
        sale_number=sale_number,
        staff_user_id=staff_user_id,
        subtotal_cents=100,
        total_cents=100,
    )
    db.session.add(sale)
    db.session.commit()
    return sale


class TestSaleNumbers:

    def test_format(self, db_session):
        number = ledger_service.next_sale_number(now=datetime(2026, 1, 18, 9, 30))
        prefix, day, token = number.split("-")
        assert prefix == "SL"
        assert day == "20260118"
        assert len(token) == 4
        assert all(c in ledger_service.SALE_NUMBER_ALPHABET for c in token)

    def test_collision_is_regenerated(self, sales_user, monkeypatch):
        _insert_sale(sales_user.id, "SL-20260118-AAAA")
        tokens = iter(["AAAA", "AAAA", "BBBB"])
        monkeypatch.setattr(ledger_service, "_random_token", lambda *args: next(tokens))

        number = ledger_service.next_sale_number(now=datetime(2026, 1, 18))
        assert number == "SL-20260118-BBBB"

    def test_gives_up_after_bounded_attempts(self, sales_user, monkeypatch):
        _insert_sale(sales_user.id, "SL-20260118-AAAA")
        monkeypatch.setattr(ledger_service, "_random_token", lambda *args: "AAAA")

        with pytest.raises(ConsistencyFailureError):
            ledger_service.next_sale_number(now=datetime(2026, 1, 18))

    def test_prefix_from_config(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, "SALE_NUMBER_PREFIX", "INV")
        assert ledger_service.next_sale_number().startswith("INV-")


class TestQueries:

    def test_list_sales_in_creation_order(self, cashier, cable):
        first = commit_sale([{"product_id": cable.id, "quantity": 1}], actor=cashier)
        second = commit_sale([{"product_id": cable.id, "quantity": 2}], actor=cashier)
        third = commit_sale([{"name": "Labour", "quantity": 1, "unit_price": "40"}], actor=cashier)

        assert [s.id for s in ledger_service.list_sales()] == [first.id, second.id, third.id]

    def test_get_sale(self, cashier, cable):
        sale = commit_sale([{"product_id": cable.id, "quantity": 1}], actor=cashier)
        assert ledger_service.get_sale(sale.id).sale_number == sale.sale_number

    def test_get_missing_sale(self, db_session):
        with pytest.raises(NotFoundError):
            ledger_service.get_sale(12345)
