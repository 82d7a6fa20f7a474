from datetime import date

import pytest

from petstock.errors import StoreError
from petstock.models import Category
from petstock.services.catalog import register_product
from petstock.store import MemoryDocumentStore

TODAY = date(2026, 2, 20)
D0 = date(2026, 2, 1)


class FlakyStore(MemoryDocumentStore):
    """Memory store whose commits can be made to fail on demand."""

    def __init__(self):
        super().__init__()
        self.fail_commits = False
        self.commit_attempts = 0

    def _apply(self, batch):
        self.commit_attempts += 1
        if self.fail_commits:
            raise StoreError("simulated storage outage")
        super()._apply(batch)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def flaky_store():
    return FlakyStore()


@pytest.fixture
def make_product():
    def _make(
        store,
        name="Canine Plus Dog Food",
        batch_number="CPDF2024A",
        price=100,
        stock=10,
        category=Category.MEDICINES_AND_PET_FOODS,
        expiry_date=None,
    ):
        return register_product(
            store,
            name=name,
            category=category,
            batch_number=batch_number,
            price=price,
            initial_stock=stock,
            expiry_date=expiry_date,
            source="Pet Food Inc.",
            received_date=D0,
        )

    return _make
