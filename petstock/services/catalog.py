from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Optional

from petstock.errors import NotFoundError, ValidationError
from petstock.models import Category, Product, ReceivedEntry
from petstock.store import PRODUCTS, DocumentStore, commit_atomic
from petstock.utils import clean_text, new_id, to_date, to_int, to_money, to_optional_date

logger = logging.getLogger(__name__)


def _load(store: DocumentStore, product_id: str) -> Optional[Product]:
    doc = store.get(PRODUCTS, str(product_id))
    return Product.from_doc(str(product_id), doc) if doc is not None else None


def get_product(store: DocumentStore, product_id: str) -> Product:
    p = _load(store, product_id)
    if p is None:
        raise NotFoundError(f"Product not found: {product_id}")
    return p


def list_products(
    store: DocumentStore,
    *,
    category: Optional[Any] = None,
    search: str = "",
) -> list[Product]:
    products = [Product.from_doc(pid, doc) for pid, doc in store.snapshot(PRODUCTS).items()]
    if category not in (None, "", "All"):
        cat = Category.parse(category)
        products = [p for p in products if p.category == cat]
    term = (search or "").strip().lower()
    if term:
        products = [p for p in products if term in p.name.lower()]
    return sorted(products, key=lambda p: (p.name.lower(), p.batch_number))


def find_batches_by_name(store: DocumentStore, name: str) -> list[Product]:
    """All batches registered under exactly this product name."""
    wanted = str(name).strip()
    return sorted(
        (p for p in list_products(store) if p.name == wanted),
        key=lambda p: p.batch_number,
    )


def product_names(store: DocumentStore) -> list[str]:
    return sorted({p.name for p in list_products(store)}, key=str.lower)


def total_stock(store: DocumentStore) -> int:
    return sum(p.stock_in_hand for p in list_products(store))


def expiring_products(store: DocumentStore, today: date, window_days: int = 30) -> list[Product]:
    """Batches whose expiry date falls in [today, today + window_days], soonest first."""
    horizon = today + timedelta(days=int(window_days))
    out = [
        p
        for p in list_products(store)
        if p.expiry_date is not None and today <= p.expiry_date <= horizon
    ]
    return sorted(out, key=lambda p: (p.expiry_date, p.name.lower()))


def register_product(
    store: DocumentStore,
    *,
    name: str,
    category: Any,
    batch_number: str,
    price: Any,
    initial_stock: Any,
    expiry_date: Any = None,
    source: Optional[str] = None,
    received_date: Any = None,
) -> Product:
    """
    Creates a new batch record. The initial stock is logged as the first
    received entry (dated `received_date`, default today).
    """
    name_s = clean_text(name)
    batch_s = clean_text(batch_number)
    if not name_s:
        raise ValidationError("Product name is required.")
    if category is None or (isinstance(category, str) and not category.strip()):
        raise ValidationError("Category is required.")
    if not batch_s:
        raise ValidationError("Batch number is required.")

    cat = Category.parse(category)
    price_d = to_money(price, "Price")
    if price_d < 0:
        raise ValidationError("Price must be >= 0.")
    qty = to_int(initial_stock, "Initial stock")
    if qty < 0:
        raise ValidationError("Initial stock must be >= 0.")

    expiry = to_optional_date(expiry_date, "Expiry date")
    received = to_date(received_date, "Received date") if received_date is not None else date.today()

    with store.exclusive():
        for existing in find_batches_by_name(store, name_s):
            if existing.batch_number.lower() == batch_s.lower():
                raise ValidationError(f"Batch {batch_s} already exists for {name_s}.")

        product = Product(
            id=new_id("prod"),
            name=name_s,
            category=cat,
            batch_number=batch_s,
            source=clean_text(source),
            price=price_d,
            stock_in_hand=qty,
            items_sold=0,
            expiry_date=expiry,
            received_log=[ReceivedEntry(date=received, quantity=qty)],
        )

        batch = store.batch().set(PRODUCTS, product.id, product.to_doc())
        commit_atomic(store, batch, f"registering {product.label}")

    logger.info("Registered %s with %d in stock", product.label, qty)
    return product


def receive_stock(store: DocumentStore, product_id: str, quantity: Any, received_date: Any) -> Product:
    """Adds stock to an existing batch. New batch numbers go through register_product."""
    with store.exclusive():
        product = get_product(store, product_id)

        qty = to_int(quantity, "Quantity")
        if qty <= 0:
            raise ValidationError("Quantity received must be > 0.")
        day = to_date(received_date, "Received date")

        product.stock_in_hand += qty
        product.received_log.append(ReceivedEntry(date=day, quantity=qty))

        batch = store.batch().update(
            PRODUCTS,
            product.id,
            {
                "stock_in_hand": product.stock_in_hand,
                "received_log": [e.to_doc() for e in product.received_log],
            },
        )
        commit_atomic(store, batch, f"receiving stock for {product.label}")

    logger.info("Received %d x %s (now %d in stock)", qty, product.label, product.stock_in_hand)
    return product
