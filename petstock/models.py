from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from petstock.errors import ValidationError


class Category(str, Enum):
    MEDICINES_AND_PET_FOODS = "Medicines & Pet Foods"
    VACCINES = "Vaccines"
    ACCESSORIES = "Accessories"

    @classmethod
    def parse(cls, value: Any) -> "Category":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            options = ", ".join(c.value for c in cls)
            raise ValidationError(f"Invalid category. Use one of: {options}.")


@dataclass(frozen=True)
class ReceivedEntry:
    date: date
    quantity: int

    def to_doc(self) -> dict:
        return {"date": self.date.isoformat(), "quantity": int(self.quantity)}

    @classmethod
    def from_doc(cls, doc: dict) -> "ReceivedEntry":
        return cls(date=date.fromisoformat(doc["date"]), quantity=int(doc["quantity"]))


@dataclass
class Product:
    """One batch of a named product, with its stock counters."""

    id: str
    name: str
    category: Category
    batch_number: str
    price: Decimal
    stock_in_hand: int
    items_sold: int = 0
    source: Optional[str] = None
    expiry_date: Optional[date] = None
    received_log: list[ReceivedEntry] = field(default_factory=list)

    @property
    def total_received(self) -> int:
        return sum(e.quantity for e in self.received_log)

    def days_until_expiry(self, today: date) -> Optional[int]:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - today).days

    @property
    def label(self) -> str:
        return f"{self.name} (Batch {self.batch_number})"

    def to_doc(self) -> dict:
        return {
            "name": self.name,
            "category": self.category.value,
            "batch_number": self.batch_number,
            "source": self.source,
            "price": str(self.price),
            "stock_in_hand": int(self.stock_in_hand),
            "items_sold": int(self.items_sold),
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "received_log": [e.to_doc() for e in self.received_log],
        }

    @classmethod
    def from_doc(cls, doc_id: str, doc: dict) -> "Product":
        expiry = doc.get("expiry_date")
        return cls(
            id=doc_id,
            name=str(doc["name"]),
            category=Category(doc["category"]),
            batch_number=str(doc["batch_number"]),
            source=doc.get("source"),
            price=Decimal(str(doc["price"])),
            stock_in_hand=int(doc["stock_in_hand"]),
            items_sold=int(doc.get("items_sold", 0)),
            expiry_date=date.fromisoformat(expiry) if expiry else None,
            received_log=[ReceivedEntry.from_doc(e) for e in doc.get("received_log", [])],
        )


@dataclass(frozen=True)
class Sale:
    id: str
    product_id: str
    product_name: str
    customer_name: str
    quantity: int
    sale_date: date
    total_amount: Decimal
    recorded_at: str = ""

    def to_doc(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "customer_name": self.customer_name,
            "quantity": int(self.quantity),
            "sale_date": self.sale_date.isoformat(),
            "total_amount": str(self.total_amount),
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_doc(cls, doc_id: str, doc: dict) -> "Sale":
        return cls(
            id=doc_id,
            product_id=str(doc["product_id"]),
            product_name=str(doc["product_name"]),
            customer_name=str(doc.get("customer_name") or ""),
            quantity=int(doc["quantity"]),
            sale_date=date.fromisoformat(doc["sale_date"]),
            total_amount=Decimal(str(doc["total_amount"])),
            recorded_at=str(doc.get("recorded_at") or ""),
        )


@dataclass(frozen=True)
class Pet:
    species: str
    breed: str
    count: int = 1

    def to_doc(self) -> dict:
        return {"species": self.species, "breed": self.breed, "count": int(self.count)}


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone_number: str
    pets: tuple[Pet, ...] = ()
    whatsapp_number: Optional[str] = None
    email: Optional[str] = None

    def to_doc(self) -> dict:
        return {
            "name": self.name,
            "phone_number": self.phone_number,
            "whatsapp_number": self.whatsapp_number,
            "email": self.email,
            "pets": [p.to_doc() for p in self.pets],
        }

    @classmethod
    def from_doc(cls, doc_id: str, doc: dict) -> "Customer":
        return cls(
            id=doc_id,
            name=str(doc["name"]),
            phone_number=str(doc["phone_number"]),
            whatsapp_number=doc.get("whatsapp_number"),
            email=doc.get("email"),
            pets=tuple(
                Pet(species=str(p["species"]), breed=str(p["breed"]), count=int(p["count"]))
                for p in doc.get("pets", [])
            ),
        )
