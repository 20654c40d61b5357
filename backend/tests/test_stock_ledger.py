import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from agency.models import Product
from agency.services import stock_ledger
from agency.services.stock_ledger import StockShortage


class TestDecrement:
    def test_decrement_reduces_stock(self, db_session, make_product, stock_of):
        product_id = make_product(stock=10).id

        updated = stock_ledger.decrement(db_session, product_id, 3)
        db_session.commit()

        assert updated is not None
        assert updated.stock_count == 7
        assert stock_of(product_id) == 7

    def test_decrement_exact_stock_reaches_zero(self, db_session, make_product, stock_of):
        product_id = make_product(stock=4).id

        updated = stock_ledger.decrement(db_session, product_id, 4)
        db_session.commit()

        assert updated.stock_count == 0
        assert stock_of(product_id) == 0

    def test_decrement_guard_fails_without_writing(self, db_session, make_product, stock_of):
        product_id = make_product(stock=4).id

        assert stock_ledger.decrement(db_session, product_id, 5) is None
        db_session.commit()

        assert stock_of(product_id) == 4

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_decrement_rejects_non_positive_quantity(self, db_session, make_product, stock_of, quantity):
        product_id = make_product(stock=4).id

        assert stock_ledger.decrement(db_session, product_id, quantity) is None
        assert stock_of(product_id) == 4

    def test_decrement_unknown_product(self, db_session):
        assert stock_ledger.decrement(db_session, "missing", 1) is None


class TestIncrement:
    def test_increment_has_no_upper_bound(self, db_session, make_product, stock_of):
        product_id = make_product(stock=0).id

        updated = stock_ledger.increment(db_session, product_id, 1000)
        db_session.commit()

        assert updated.stock_count == 1000
        assert stock_of(product_id) == 1000

    def test_increment_rejects_non_positive_quantity(self, db_session, make_product, stock_of):
        product_id = make_product(stock=2).id

        assert stock_ledger.increment(db_session, product_id, 0) is None
        assert stock_of(product_id) == 2

    def test_increment_unknown_product(self, db_session):
        assert stock_ledger.increment(db_session, "missing", 1) is None


class TestCheckAvailability:
    def test_reports_every_shortage(self, db_session, make_product):
        low = make_product(name="Low", stock=1).id
        ok = make_product(name="Plenty", stock=50).id
        empty = make_product(name="Empty", stock=0).id

        shortages = stock_ledger.check_availability(db_session, [
            {"product_id": low, "quantity": 2},
            {"product_id": ok, "quantity": 5},
            {"product_id": empty, "quantity": 1},
        ])

        assert shortages == [
            StockShortage(low, 2, 1),
            StockShortage(empty, 1, 0),
        ]
        assert shortages[0].to_dict() == {"product_id": low, "requested": 2, "available": 1}

    def test_unknown_product_counts_as_zero_available(self, db_session):
        shortages = stock_ledger.check_availability(db_session, [{"product_id": "nope", "quantity": 1}])
        assert shortages == [StockShortage("nope", 1, 0)]

    def test_skips_blank_and_non_positive_items(self, db_session, make_product):
        product_id = make_product(stock=0).id
        shortages = stock_ledger.check_availability(db_session, [
            {"product_id": "", "quantity": 3},
            {"product_id": product_id, "quantity": 0},
        ])
        assert shortages == []

    def test_empty_input(self, db_session):
        assert stock_ledger.check_availability(db_session, []) == []

    def test_is_read_only(self, db_session, make_product, stock_of):
        product_id = make_product(stock=3).id
        stock_ledger.check_availability(db_session, [{"product_id": product_id, "quantity": 2}])
        assert stock_of(product_id) == 3


def test_database_rejects_negative_stock(db_session, make_product):
    product_id = make_product(stock=1).id

    with pytest.raises(IntegrityError):
        db_session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock_count=-1)
            .execution_options(synchronize_session=False)
        )
        db_session.flush()
    db_session.rollback()
