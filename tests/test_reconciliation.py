"""
Stock reconciliation: single and bulk sales against batch stock, the
received/sold invariant, and all-or-nothing commits.
"""

import threading
import time
from datetime import timedelta
from decimal import Decimal

import pytest

from petstock.errors import InsufficientStockError, NotFoundError, TransactionError, ValidationError
from petstock.services import catalog, ledger
from petstock.services.reconciliation import SaleLineInput, record_bulk_sale, record_sale
from petstock.store import PRODUCTS, MemoryDocumentStore

from conftest import D0, TODAY


def assert_ledger_invariant(store, product_id):
    p = catalog.get_product(store, product_id)
    sold = sum(s.quantity for s in ledger.sales_for_product(store, product_id))
    assert p.items_sold == sold
    assert p.stock_in_hand == p.total_received - sold
    assert p.stock_in_hand >= 0


# ══════════════════════════════════════════════════════════════
# record_sale
# ══════════════════════════════════════════════════════════════

class TestRecordSale:
    def test_sale_decrements_stock_and_records_total(self, store, make_product):
        p = make_product(store, price=100, stock=10)
        sale = record_sale(store, p.id, 3, TODAY, "Alice", today=TODAY)

        assert sale.quantity == 3
        assert sale.total_amount == Decimal("300")
        assert sale.product_name == p.name
        assert sale.customer_name == "Alice"
        assert sale.sale_date == TODAY

        after = catalog.get_product(store, p.id)
        assert after.stock_in_hand == 7
        assert after.items_sold == 3
        assert ledger.all_sales(store) == [sale]

    def test_insufficient_stock_leaves_state_untouched(self, store, make_product):
        p = make_product(store, stock=5)
        with pytest.raises(InsufficientStockError) as exc:
            record_sale(store, p.id, 10, TODAY, "Bob", today=TODAY)

        assert exc.value.available == 5
        assert exc.value.requested == 10
        assert "Only 5 available" in str(exc.value)
        assert exc.value.product_name == p.label
        assert str(exc.value) == f"{p.label}: Not enough stock. Only 5 available."
        assert catalog.get_product(store, p.id).stock_in_hand == 5
        assert ledger.all_sales(store) == []

    def test_selling_exactly_the_stock_is_allowed(self, store, make_product):
        p = make_product(store, stock=4)
        record_sale(store, p.id, 4, TODAY, "Bob", today=TODAY)
        assert catalog.get_product(store, p.id).stock_in_hand == 0

    def test_unknown_product(self, store):
        with pytest.raises(NotFoundError):
            record_sale(store, "prod_nope", 1, TODAY, "Bob", today=TODAY)

    @pytest.mark.parametrize("qty", [0, -2])
    def test_non_positive_quantity(self, store, make_product, qty):
        p = make_product(store, stock=5)
        with pytest.raises(ValidationError, match="> 0"):
            record_sale(store, p.id, qty, TODAY, "Bob", today=TODAY)
        assert catalog.get_product(store, p.id).stock_in_hand == 5

    def test_future_date_rejected(self, store, make_product):
        p = make_product(store, stock=5)
        with pytest.raises(ValidationError, match="future"):
            record_sale(store, p.id, 1, TODAY + timedelta(days=1), "Bob", today=TODAY)
        assert ledger.all_sales(store) == []

    def test_blank_customer_becomes_walk_in(self, store, make_product):
        p = make_product(store)
        sale = record_sale(store, p.id, 1, TODAY, "   ", today=TODAY)
        assert sale.customer_name == "Walk-in"

    def test_price_is_read_at_sale_time(self, store, make_product):
        p = make_product(store, price=100, stock=10)
        first = record_sale(store, p.id, 1, TODAY, "Alice", today=TODAY)
        store.update("products", p.id, {"price": "150"})
        second = record_sale(store, p.id, 1, TODAY, "Alice", today=TODAY)

        recorded = {s.id: s.total_amount for s in ledger.all_sales(store)}
        assert recorded[first.id] == Decimal("100")
        assert recorded[second.id] == Decimal("150")

    def test_commit_failure_is_transaction_error(self, flaky_store, make_product):
        p = make_product(flaky_store, stock=10)
        flaky_store.fail_commits = True
        with pytest.raises(TransactionError) as exc:
            record_sale(flaky_store, p.id, 2, TODAY, "Alice", today=TODAY)

        assert exc.value.__cause__ is not None
        assert catalog.get_product(flaky_store, p.id).stock_in_hand == 10
        assert ledger.all_sales(flaky_store) == []

    def test_invariant_over_receipts_and_sales(self, store, make_product):
        p = make_product(store, stock=10)
        steps = [("sell", 3), ("receive", 20), ("sell", 12), ("sell", 15), ("receive", 1), ("sell", 1)]
        for kind, qty in steps:
            if kind == "sell":
                record_sale(store, p.id, qty, TODAY, "Alice", today=TODAY)
            else:
                catalog.receive_stock(store, p.id, qty, D0)
            assert_ledger_invariant(store, p.id)

        final = catalog.get_product(store, p.id)
        assert final.stock_in_hand == 10 + 20 + 1 - (3 + 12 + 15 + 1)
        assert final.items_sold == 31

    def test_rejected_oversell_never_goes_negative(self, store, make_product):
        p = make_product(store, stock=2)
        for qty in (1, 5, 1, 1):
            try:
                record_sale(store, p.id, qty, TODAY, "Alice", today=TODAY)
            except InsufficientStockError:
                pass
            assert_ledger_invariant(store, p.id)
        assert catalog.get_product(store, p.id).stock_in_hand == 0


# ══════════════════════════════════════════════════════════════
# record_bulk_sale
# ══════════════════════════════════════════════════════════════

class TestRecordBulkSale:
    def test_commits_every_line(self, store, make_product):
        food = make_product(store, name="Dog Food", batch_number="F1", price=1500, stock=10)
        toy = make_product(store, name="Chew Toy", batch_number="T1", price=400, stock=5)

        sales = record_bulk_sale(
            store,
            "Priya Sharma",
            TODAY,
            [SaleLineInput(food.id, 2), {"product_id": toy.id, "quantity": 3}],
            today=TODAY,
        )

        assert [(s.product_name, s.quantity, s.total_amount) for s in sales] == [
            ("Dog Food", 2, Decimal("3000")),
            ("Chew Toy", 3, Decimal("1200")),
        ]
        assert all(s.customer_name == "Priya Sharma" for s in sales)
        assert catalog.get_product(store, food.id).stock_in_hand == 8
        assert catalog.get_product(store, toy.id).stock_in_hand == 2
        assert len(ledger.all_sales(store)) == 2
        assert_ledger_invariant(store, food.id)
        assert_ledger_invariant(store, toy.id)

    def test_tuple_lines_accepted(self, store, make_product):
        p = make_product(store, stock=3)
        sales = record_bulk_sale(store, "Amit", TODAY, [(p.id, 1)], today=TODAY)
        assert sales[0].quantity == 1

    def test_duplicate_batch_rejected_before_any_write(self, store, make_product):
        p = make_product(store, stock=10)
        with pytest.raises(ValidationError, match="Duplicate") as exc:
            record_bulk_sale(store, "Amit", TODAY, [(p.id, 1), (p.id, 2)], today=TODAY)

        assert p.id in str(exc.value)
        assert catalog.get_product(store, p.id).stock_in_hand == 10
        assert ledger.all_sales(store) == []

    def test_insufficient_line_rolls_back_everything(self, store, make_product):
        ok = make_product(store, name="Dog Food", batch_number="F1", stock=10)
        short = make_product(store, name="Chew Toy", batch_number="T1", stock=1)

        with pytest.raises(InsufficientStockError) as exc:
            record_bulk_sale(store, "Amit", TODAY, [(ok.id, 4), (short.id, 2)], today=TODAY)

        assert exc.value.available == 1
        assert "Chew Toy" in str(exc.value)
        assert catalog.get_product(store, ok.id).stock_in_hand == 10
        assert catalog.get_product(store, short.id).stock_in_hand == 1
        assert ledger.all_sales(store) == []

    def test_first_insufficient_line_is_reported(self, store, make_product):
        a = make_product(store, name="A", batch_number="1", stock=1)
        b = make_product(store, name="B", batch_number="1", stock=1)
        with pytest.raises(InsufficientStockError) as exc:
            record_bulk_sale(store, "Amit", TODAY, [(a.id, 5), (b.id, 5)], today=TODAY)
        assert exc.value.product_name == a.label

    def test_unknown_product_rolls_back(self, store, make_product):
        p = make_product(store, stock=10)
        with pytest.raises(NotFoundError):
            record_bulk_sale(store, "Amit", TODAY, [(p.id, 1), ("prod_ghost", 1)], today=TODAY)
        assert catalog.get_product(store, p.id).stock_in_hand == 10

    def test_bad_quantity_in_later_line_rolls_back(self, store, make_product):
        a = make_product(store, name="A", batch_number="1", stock=5)
        b = make_product(store, name="B", batch_number="1", stock=5)
        with pytest.raises(ValidationError):
            record_bulk_sale(store, "Amit", TODAY, [(a.id, 1), (b.id, 0)], today=TODAY)
        assert ledger.all_sales(store) == []

    def test_empty_lines_rejected(self, store):
        with pytest.raises(ValidationError, match="At least one"):
            record_bulk_sale(store, "Amit", TODAY, [], today=TODAY)

    def test_future_date_rejected(self, store, make_product):
        p = make_product(store)
        with pytest.raises(ValidationError, match="future"):
            record_bulk_sale(store, "Amit", TODAY + timedelta(days=2), [(p.id, 1)], today=TODAY)

    def test_malformed_line_rejected(self, store):
        with pytest.raises(ValidationError):
            record_bulk_sale(store, "Amit", TODAY, [{"product_id": "x"}], today=TODAY)

    def test_commit_failure_applies_nothing(self, flaky_store, make_product):
        a = make_product(flaky_store, name="A", batch_number="1", stock=5)
        b = make_product(flaky_store, name="B", batch_number="1", stock=5)
        flaky_store.fail_commits = True

        with pytest.raises(TransactionError):
            record_bulk_sale(flaky_store, "Amit", TODAY, [(a.id, 1), (b.id, 2)], today=TODAY)

        flaky_store.fail_commits = False
        assert catalog.get_product(flaky_store, a.id).stock_in_hand == 5
        assert catalog.get_product(flaky_store, b.id).stock_in_hand == 5
        assert ledger.all_sales(flaky_store) == []

    def test_single_commit_per_checkout(self, flaky_store, make_product):
        a = make_product(flaky_store, name="A", batch_number="1", stock=5)
        b = make_product(flaky_store, name="B", batch_number="1", stock=5)
        before = flaky_store.commit_attempts
        record_bulk_sale(flaky_store, "Amit", TODAY, [(a.id, 1), (b.id, 1)], today=TODAY)
        assert flaky_store.commit_attempts == before + 1


# ══════════════════════════════════════════════════════════════
# Writers sharing one store
# ══════════════════════════════════════════════════════════════

class SlowFirstReadStore(MemoryDocumentStore):
    """Stalls the first product read once armed, leaving room for a second writer."""

    def __init__(self):
        super().__init__()
        self.armed = False
        self.first_read = threading.Event()

    def get(self, collection, doc_id):
        doc = super().get(collection, doc_id)
        if self.armed and collection == PRODUCTS and not self.first_read.is_set():
            self.first_read.set()
            time.sleep(0.2)
        return doc


class TestSharedStoreWriters:
    def _run_both(self, store, first, second):
        errors = []

        def guarded(fn):
            try:
                fn()
            except Exception as e:  # surfaced through the assertion below
                errors.append(e)

        store.armed = True
        t1 = threading.Thread(target=guarded, args=(first,))
        t2 = threading.Thread(target=guarded, args=(second,))
        t1.start()
        assert store.first_read.wait(2)
        t2.start()
        t1.join(5)
        t2.join(5)
        assert errors == []

    def test_receive_and_sale_do_not_lose_updates(self, make_product):
        store = SlowFirstReadStore()
        p = make_product(store, stock=10)

        self._run_both(
            store,
            lambda: catalog.receive_stock(store, p.id, 20, TODAY),
            lambda: record_sale(store, p.id, 3, TODAY, "Ravi Kumar", today=TODAY),
        )

        after = catalog.get_product(store, p.id)
        assert after.total_received == 30
        assert after.items_sold == 3
        assert after.stock_in_hand == 27
        assert_ledger_invariant(store, p.id)

    def test_two_checkouts_cannot_oversell(self, make_product):
        store = SlowFirstReadStore()
        p = make_product(store, stock=5)
        outcomes = []

        def checkout(customer):
            try:
                record_bulk_sale(store, customer, TODAY, [(p.id, 4)], today=TODAY)
                outcomes.append("sold")
            except InsufficientStockError:
                outcomes.append("short")

        self._run_both(store, lambda: checkout("Amit Singh"), lambda: checkout("Sunita Rao"))

        assert sorted(outcomes) == ["short", "sold"]
        assert catalog.get_product(store, p.id).stock_in_hand == 1
        assert_ledger_invariant(store, p.id)
