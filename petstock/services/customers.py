from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional

from petstock.errors import NotFoundError, ValidationError
from petstock.models import Customer, Pet
from petstock.store import CUSTOMERS, DocumentStore, commit_atomic
from petstock.utils import clean_text, new_id, to_int

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _as_pet(raw: Any, index: int) -> Pet:
    if isinstance(raw, Pet):
        species, breed, count = raw.species, raw.breed, raw.count
    elif isinstance(raw, dict):
        species, breed, count = raw.get("species"), raw.get("breed"), raw.get("count", 1)
    else:
        raise ValidationError(f"Pet #{index + 1} must have species, breed and count.")

    species_s = clean_text(species)
    breed_s = clean_text(breed)
    if not species_s:
        raise ValidationError(f"Pet #{index + 1}: species is required.")
    if not breed_s:
        raise ValidationError(f"Pet #{index + 1}: breed is required.")
    n = to_int(count, f"Pet #{index + 1} count")
    if n < 1:
        raise ValidationError(f"Pet #{index + 1}: count must be at least 1.")
    return Pet(species=species_s, breed=breed_s, count=n)


def add_customer(
    store: DocumentStore,
    *,
    name: str,
    phone_number: str,
    pets: Optional[Iterable[Any]] = None,
    whatsapp_number: Optional[str] = None,
    email: Optional[str] = None,
) -> Customer:
    name_s = clean_text(name)
    phone_s = clean_text(phone_number)
    if not name_s:
        raise ValidationError("Customer name is required.")
    if not phone_s:
        raise ValidationError("Phone number is required.")

    email_s = clean_text(email)
    if email_s and not _EMAIL_RE.match(email_s):
        raise ValidationError("Email address is not valid.")

    customer = Customer(
        id=new_id("cust"),
        name=name_s,
        phone_number=phone_s,
        whatsapp_number=clean_text(whatsapp_number),
        email=email_s,
        pets=tuple(_as_pet(p, i) for i, p in enumerate(pets or [])),
    )

    batch = store.batch().set(CUSTOMERS, customer.id, customer.to_doc())
    commit_atomic(store, batch, f"adding customer {name_s}")
    logger.info("Added customer %s with %d pet record(s)", name_s, len(customer.pets))
    return customer


def list_customers(store: DocumentStore) -> list[Customer]:
    customers = [Customer.from_doc(cid, doc) for cid, doc in store.snapshot(CUSTOMERS).items()]
    return sorted(customers, key=lambda c: c.name.lower())


def get_customer(store: DocumentStore, customer_id: str) -> Customer:
    doc = store.get(CUSTOMERS, str(customer_id))
    if doc is None:
        raise NotFoundError(f"Customer not found: {customer_id}")
    return Customer.from_doc(str(customer_id), doc)


def find_customers_by_name(store: DocumentStore, name: str) -> list[Customer]:
    # Names are not unique; every match is returned.
    wanted = str(name).strip().lower()
    return [c for c in list_customers(store) if c.name.lower() == wanted]
