"""
Client for the external notification text service.

The service takes a structured summary and returns human-readable text:

    POST <url>  {"kind": "expiry" | "sale", "fields": {...}}
    200         {"message": "..."}

It is only ever called after a sale or stock change has committed, and a
failure here is reported to the user without touching stock state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

import requests

from petstock.errors import NotificationError
from petstock.models import Category, Product, Sale

logger = logging.getLogger(__name__)

EXPIRY = "expiry"
SALE = "sale"

_PRODUCT_TYPES = {
    Category.MEDICINES_AND_PET_FOODS: "medicine / pet food",
    Category.VACCINES: "vaccine",
    Category.ACCESSORIES: "accessory",
}


@dataclass(frozen=True)
class NotificationRequest:
    kind: str
    fields: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {"kind": self.kind, "fields": self.fields}


def expiry_request(product: Product) -> NotificationRequest:
    if product.expiry_date is None:
        raise NotificationError(f"{product.label} has no expiry date.")
    return NotificationRequest(
        kind=EXPIRY,
        fields={
            "productType": _PRODUCT_TYPES[product.category],
            "productName": product.name,
            "batchNumber": product.batch_number,
            "quantity": int(product.stock_in_hand),
            "expiryDate": product.expiry_date.isoformat(),
        },
    )


def sale_request(customer_name: str, sales: Iterable[Sale]) -> NotificationRequest:
    sales = list(sales)
    if not sales:
        raise NotificationError("Nothing to summarise: no sales given.")
    total = sum((s.total_amount for s in sales), Decimal(0))
    return NotificationRequest(
        kind=SALE,
        fields={
            "customerName": customer_name,
            "items": [
                {
                    "productName": s.product_name,
                    "quantity": int(s.quantity),
                    "price": float(s.total_amount / s.quantity),
                }
                for s in sales
            ],
            "totalAmount": float(total),
        },
    )


class NotificationClient:
    def __init__(self, url: Optional[str], timeout: float = 15):
        self.url = url
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def generate(self, request: NotificationRequest) -> str:
        if not self.url:
            raise NotificationError("Notification service is not configured (set PETSTOCK_NOTIFY_URL).")

        try:
            response = requests.post(self.url, json=request.to_payload(), timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning("Notification request (%s) failed: %s", request.kind, e)
            raise NotificationError("Failed to generate notification.") from e
        except ValueError as e:
            logger.warning("Notification service returned invalid JSON: %s", e)
            raise NotificationError("Failed to generate notification.") from e

        message = body.get("message") if isinstance(body, dict) else None
        if not isinstance(message, str) or not message.strip():
            raise NotificationError("Notification service returned no message.")
        return message.strip()


def days_left_label(product: Product, today: date) -> str:
    days = product.days_until_expiry(today)
    if days is None:
        return "no expiry"
    if days == 0:
        return "expires today"
    return f"{days} day{'s' if days != 1 else ''} left"
