"""
Stock reconciliation: turns sale intents into committed stock + ledger changes.

This is the only module that decrements `stock_in_hand`, bumps `items_sold`
and creates sale documents. Every call validates first, against a local
working copy of the affected products, and then writes everything through a
single atomic batch, holding `store.exclusive()` from the first product read
through the commit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from petstock.errors import InsufficientStockError, ValidationError
from petstock.models import Product, Sale
from petstock.services import ledger
from petstock.services.catalog import get_product
from petstock.store import PRODUCTS, DocumentStore, commit_atomic
from petstock.utils import clean_text, iso_now, new_id, to_date, to_int

logger = logging.getLogger(__name__)

WALK_IN = "Walk-in"


@dataclass(frozen=True)
class SaleLineInput:
    product_id: str
    quantity: int


def _normalize_customer(customer: Optional[str]) -> str:
    return clean_text(customer) or WALK_IN


def _sale_date(sale_date: Any, today: Optional[date]) -> date:
    d = to_date(sale_date, "Sale date")
    if d > (today or date.today()):
        raise ValidationError("Sale date cannot be in the future.")
    return d


def _as_line(item: Any) -> SaleLineInput:
    if isinstance(item, SaleLineInput):
        return item
    if isinstance(item, dict):
        if "product_id" not in item or "quantity" not in item:
            raise ValidationError("Each sale line needs a product_id and a quantity.")
        return SaleLineInput(product_id=str(item["product_id"]), quantity=item["quantity"])
    try:
        product_id, quantity = item
    except (TypeError, ValueError):
        raise ValidationError("Each sale line needs a product_id and a quantity.")
    return SaleLineInput(product_id=str(product_id), quantity=quantity)


def _build_sale(product: Product, quantity: int, sale_date: date, customer: str) -> Sale:
    # Price is read now; later price edits never touch recorded sales.
    return Sale(
        id=new_id("sale"),
        product_id=product.id,
        product_name=product.name,
        customer_name=customer,
        quantity=quantity,
        sale_date=sale_date,
        total_amount=Decimal(quantity) * product.price,
        recorded_at=iso_now(),
    )


def _stage_stock_out(batch, product: Product) -> None:
    batch.update(
        PRODUCTS,
        product.id,
        {"stock_in_hand": product.stock_in_hand, "items_sold": product.items_sold},
    )


def record_sale(
    store: DocumentStore,
    product_id: str,
    quantity: Any,
    sale_date: Any,
    customer_name: Optional[str],
    *,
    today: Optional[date] = None,
) -> Sale:
    """
    Sells `quantity` units of one batch.

    Raises NotFoundError (unknown batch), InsufficientStockError (carries the
    available quantity), ValidationError (quantity <= 0, future date) or
    TransactionError (commit failed, nothing applied).
    """
    with store.exclusive():
        product = get_product(store, product_id)

        qty = to_int(quantity, "Quantity")
        if product.stock_in_hand < qty:
            raise InsufficientStockError(
                requested=qty, available=product.stock_in_hand, product_name=product.label
            )
        if qty <= 0:
            raise ValidationError("Quantity sold must be > 0.")
        day = _sale_date(sale_date, today)

        customer = _normalize_customer(customer_name)
        sale = _build_sale(product, qty, day, customer)

        product.stock_in_hand -= qty
        product.items_sold += qty

        batch = store.batch()
        _stage_stock_out(batch, product)
        ledger.append(batch, sale)
        commit_atomic(store, batch, f"recording sale of {qty} x {product.label}")

    logger.info(
        "Sale %s: %d x %s to %s = %s", sale.id, qty, product.label, customer, sale.total_amount
    )
    return sale


def record_bulk_sale(
    store: DocumentStore,
    customer_name: Optional[str],
    sale_date: Any,
    items: Iterable[Any],
    *,
    today: Optional[date] = None,
) -> list[Sale]:
    """
    One checkout with several line items, committed all-or-nothing.

    Every line is validated before anything is written. Stock checks run in
    line order against a working copy, so an earlier line's quantity is
    already reserved when a later line is checked.
    """
    lines = [_as_line(i) for i in items]
    if not lines:
        raise ValidationError("At least one sale line is required.")
    day = _sale_date(sale_date, today)
    customer = _normalize_customer(customer_name)

    seen: set[str] = set()
    for line in lines:
        if line.product_id in seen:
            raise ValidationError(f"Duplicate batch selected: {line.product_id}")
        seen.add(line.product_id)

    with store.exclusive():
        working: dict[str, Product] = {}
        planned: list[tuple[Product, int]] = []
        for line in lines:
            product = working.get(line.product_id)
            if product is None:
                product = get_product(store, line.product_id)
                working[product.id] = product

            qty = to_int(line.quantity, "Quantity")
            if qty <= 0:
                raise ValidationError(f"Quantity for {product.label} must be > 0.")
            if product.stock_in_hand < qty:
                raise InsufficientStockError(
                    requested=qty, available=product.stock_in_hand, product_name=product.label
                )

            product.stock_in_hand -= qty
            product.items_sold += qty
            planned.append((product, qty))

        sales = [_build_sale(product, qty, day, customer) for product, qty in planned]

        batch = store.batch()
        for product in working.values():
            _stage_stock_out(batch, product)
        for sale in sales:
            ledger.append(batch, sale)
        commit_atomic(store, batch, f"recording bulk sale for {customer}")

    logger.info(
        "Bulk sale for %s: %d line(s), %d item(s), total %s",
        customer,
        len(sales),
        sum(s.quantity for s in sales),
        sum((s.total_amount for s in sales), Decimal(0)),
    )
    return sales
