from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from petstock.errors import ValidationError
from petstock.models import Customer, Product, Sale

PRODUCT_COLUMNS = [
    "Product",
    "Batch",
    "Category",
    "Source",
    "Price",
    "In stock",
    "Sold",
    "Received",
    "Expiry",
]
SALE_COLUMNS = ["Date", "Product", "Customer", "Qty", "Total"]
CUSTOMER_COLUMNS = ["Name", "Phone", "WhatsApp", "Email", "Pets"]


def products_frame(products: Iterable[Product], today: Optional[date] = None) -> pd.DataFrame:
    rows = []
    for p in products:
        row = {
            "Product": p.name,
            "Batch": p.batch_number,
            "Category": p.category.value,
            "Source": p.source or "",
            "Price": float(p.price),
            "In stock": p.stock_in_hand,
            "Sold": p.items_sold,
            "Received": p.total_received,
            "Expiry": p.expiry_date.isoformat() if p.expiry_date else "N/A",
        }
        if today is not None:
            days = p.days_until_expiry(today)
            row["Days to expiry"] = days if days is not None else pd.NA
        rows.append(row)
    columns = PRODUCT_COLUMNS + (["Days to expiry"] if today is not None else [])
    return pd.DataFrame(rows, columns=columns)


def received_log_frame(product: Product) -> pd.DataFrame:
    return pd.DataFrame(
        [{"Date": e.date.isoformat(), "Quantity": e.quantity} for e in product.received_log],
        columns=["Date", "Quantity"],
    )


def sales_frame(sales: Iterable[Sale]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Date": s.sale_date.isoformat(),
                "Product": s.product_name,
                "Customer": s.customer_name,
                "Qty": s.quantity,
                "Total": float(s.total_amount),
            }
            for s in sales
        ],
        columns=SALE_COLUMNS,
    )


def customers_frame(customers: Iterable[Customer]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Name": c.name,
                "Phone": c.phone_number,
                "WhatsApp": c.whatsapp_number or "",
                "Email": c.email or "",
                "Pets": ", ".join(f"{p.count} x {p.species} ({p.breed})" for p in c.pets),
            }
            for c in customers
        ],
        columns=CUSTOMER_COLUMNS,
    )


# -------------------------
# Editor rows back to service input
# -------------------------
# st.data_editor hands back NaN/None for cells the user left empty.

def _blank(value: Any) -> bool:
    if value is None:
        return True
    if not isinstance(value, str) and pd.isna(value):
        return True
    return not str(value).strip()


def pets_from_frame(df: pd.DataFrame) -> list[dict]:
    """Species/Breed/Count rows -> pet mappings. Rows with no species and no breed are skipped."""
    pets = []
    for _, r in df.iterrows():
        species, breed, count = r.get("Species"), r.get("Breed"), r.get("Count")
        if _blank(species) and _blank(breed):
            continue
        pets.append(
            {
                "species": None if _blank(species) else str(species),
                "breed": None if _blank(breed) else str(breed),
                "count": None if _blank(count) else count,
            }
        )
    return pets


def sale_lines_from_frame(df: pd.DataFrame, by_label: Mapping[str, Product]) -> list[tuple[str, Any]]:
    """Batch/Quantity rows -> (product_id, quantity) lines. Empty rows are skipped."""
    lines = []
    for _, r in df.iterrows():
        label, qty = r.get("Batch"), r.get("Quantity")
        if _blank(label) and _blank(qty):
            continue
        if _blank(label):
            raise ValidationError("Pick a batch for every sale line.")
        product = by_label.get(str(label))
        if product is None:
            raise ValidationError("Selected batch is no longer available.")
        lines.append((product.id, None if _blank(qty) else qty))
    return lines
