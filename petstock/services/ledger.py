from __future__ import annotations

from typing import Any

from petstock.errors import ValidationError
from petstock.models import Sale
from petstock.store import SALES, DocumentStore, WriteBatch
from petstock.utils import to_date


def append(batch: WriteBatch, sale: Sale) -> WriteBatch:
    """
    Stages a sale insert on the caller's write batch.

    Only the reconciliation engine (and first-run seeding) call this; the sale
    becomes visible when that batch commits.
    """
    return batch.set(SALES, sale.id, sale.to_doc())


def _newest_first(sales: list[Sale]) -> list[Sale]:
    return sorted(sales, key=lambda s: (s.sale_date, s.recorded_at), reverse=True)


def all_sales(store: DocumentStore) -> list[Sale]:
    return _newest_first([Sale.from_doc(sid, doc) for sid, doc in store.snapshot(SALES).items()])


def sales_on_date(store: DocumentStore, day: Any) -> list[Sale]:
    d = to_date(day, "Sale date")
    return [s for s in all_sales(store) if s.sale_date == d]


def sales_in_range(store: DocumentStore, start: Any, end: Any) -> list[Sale]:
    """Sales with start <= sale_date <= end."""
    s_d = to_date(start, "Start date")
    e_d = to_date(end, "End date")
    if s_d > e_d:
        raise ValidationError("Start date must be on or before end date.")
    return [s for s in all_sales(store) if s_d <= s.sale_date <= e_d]


def sales_for_product(store: DocumentStore, product_id: str) -> list[Sale]:
    return [s for s in all_sales(store) if s.product_id == str(product_id)]


def sales_for_customer(store: DocumentStore, customer_name: str) -> list[Sale]:
    wanted = str(customer_name).strip().lower()
    return [s for s in all_sales(store) if s.customer_name.strip().lower() == wanted]


def sold_quantity(sales: list[Sale]) -> int:
    return sum(s.quantity for s in sales)

