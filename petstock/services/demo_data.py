from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from petstock.models import Category, Customer, Pet, Product, ReceivedEntry, Sale
from petstock.services import ledger
from petstock.store import CUSTOMERS, PRODUCTS, SALES, DocumentStore, commit_atomic

logger = logging.getLogger(__name__)

# (id, name, category, batch, source, price, received qty, received days ago, expiry in days)
DEMO_PRODUCTS = [
    ("prod_canine_plus_food_a", "Canine Plus Dog Food", Category.MEDICINES_AND_PET_FOODS, "CPDF2024A", "Pet Food Inc.", 1500, 100, 45, 365),
    ("prod_feline_fine_treats_b", "Feline Fine Cat Treats", Category.MEDICINES_AND_PET_FOODS, "FFCT2024B", "Pet Food Inc.", 350, 200, 60, 180),
    ("prod_rabies_vaccine_c", "Rabies Vaccine (1-year)", Category.VACCINES, "RABVAC25A", "Vet Pharma", 800, 50, 20, 730),
    ("prod_lepto_vaccine_d", "Leptospirosis Vaccine", Category.VACCINES, "LEPVAC25B", "Vet Pharma", 650, 50, 20, 25),
    ("prod_pet_carrier_e", "Deluxe Pet Carrier", Category.ACCESSORIES, "DPCAR24A", "Happy Pets Gear", 2500, 30, 90, None),
    ("prod_chew_toy_f", "Durable Chew Toy", Category.ACCESSORIES, "DCTOY24B", "Happy Pets Gear", 400, 100, 30, None),
    ("prod_flea_tick_med_g", "Flea & Tick Prevention", Category.MEDICINES_AND_PET_FOODS, "FTP2024C", "Vet Pharma", 950, 60, 35, 400),
    ("prod_vitamin_drops_h", "Multi-Vitamin Drops", Category.MEDICINES_AND_PET_FOODS, "MVD2024D", "Vet Pharma", 550, 75, 40, 15),
    ("prod_grooming_brush_i", "Grooming Brush", Category.ACCESSORIES, "GRB24C", "Happy Pets Gear", 700, 50, 14, None),
    ("prod_nail_clippers_j", "Nail Clippers", Category.ACCESSORIES, "NLC24D", "Happy Pets Gear", 600, 50, 25, None),
]

# (product id, customer, quantity, days ago)
DEMO_SALES = [
    ("prod_canine_plus_food_a", "Ravi Kumar", 1, 0),
    ("prod_chew_toy_f", "Priya Sharma", 2, 0),
    ("prod_feline_fine_treats_b", "Anjali Verma", 3, 1),
    ("prod_rabies_vaccine_c", "Suresh Gupta", 1, 1),
    ("prod_grooming_brush_i", "Anjali Verma", 1, 1),
    ("prod_canine_plus_food_a", "Amit Singh", 5, 3),
    ("prod_pet_carrier_e", "Sunita Rao", 1, 4),
    ("prod_nail_clippers_j", "Vikram Mehta", 1, 5),
    ("prod_feline_fine_treats_b", "Rina Desai", 10, 6),
    ("prod_lepto_vaccine_d", "Deepak Kumar", 2, 7),
    ("prod_chew_toy_f", "Amit Singh", 5, 8),
    ("prod_vitamin_drops_h", "Priya Sharma", 2, 9),
    ("prod_flea_tick_med_g", "Ravi Kumar", 1, 10),
    ("prod_grooming_brush_i", "Sunita Rao", 3, 12),
    ("prod_canine_plus_food_a", "Vikram Mehta", 3, 15),
    ("prod_rabies_vaccine_c", "Rina Desai", 5, 18),
    ("prod_feline_fine_treats_b", "Suresh Gupta", 5, 20),
    ("prod_nail_clippers_j", "Deepak Kumar", 4, 22),
    ("prod_chew_toy_f", "Anjali Verma", 5, 25),
    ("prod_pet_carrier_e", "Amit Singh", 2, 28),
]

DEMO_CUSTOMERS = [
    ("Ravi Kumar", "9876543210", "9876543210", "ravi.k@example.com", [("Dog", "Labrador Retriever", 1)]),
    ("Priya Sharma", "9876543211", None, "priya.s@example.com", [("Cat", "Siamese", 2), ("Dog", "Golden Retriever", 1)]),
    ("Anjali Verma", "9876543212", "9876543212", "anjali.v@example.com", [("Cat", "Persian", 1)]),
    ("Suresh Gupta", "9876543213", None, None, [("Dog", "German Shepherd", 1)]),
    ("Amit Singh", "9876543214", None, "amit.s@example.com", [("Dog", "Pug", 2)]),
    ("Sunita Rao", "9876543215", None, None, [("Dog", "Beagle", 1)]),
    ("Vikram Mehta", "9876543216", None, "vikram.m@example.com", [("Parrot", "Macaw", 2)]),
    ("Rina Desai", "9876543217", None, None, [("Cat", "Maine Coon", 1)]),
    ("Deepak Kumar", "9876543218", "9876543218", None, [("Rabbit", "Holland Lop", 3)]),
]


def is_empty(store: DocumentStore) -> bool:
    return not store.snapshot(PRODUCTS)


def _demo_products(today: date) -> dict[str, Product]:
    out: dict[str, Product] = {}
    for pid, name, cat, batch_no, source, price, qty, ago, expiry_in in DEMO_PRODUCTS:
        out[pid] = Product(
            id=pid,
            name=name,
            category=cat,
            batch_number=batch_no,
            source=source,
            price=Decimal(price),
            stock_in_hand=qty,
            items_sold=0,
            expiry_date=(today + timedelta(days=expiry_in)) if expiry_in is not None else None,
            received_log=[ReceivedEntry(date=today - timedelta(days=ago), quantity=qty)],
        )
    return out


def seed_if_empty(store: DocumentStore, today: Optional[date] = None) -> bool:
    """
    First-run bootstrap: loads the sample products, sales and customers in one
    atomic batch. Returns False (and writes nothing) if products already exist.
    """
    if not is_empty(store):
        return False
    today = today or date.today()

    products = _demo_products(today)
    batch = store.batch()

    # Stock counters are derived from the seeded sales so the ledger invariant holds.
    for i, (pid, customer, qty, ago) in enumerate(DEMO_SALES):
        p = products[pid]
        p.stock_in_hand -= qty
        p.items_sold += qty
        sale = Sale(
            id=f"sale_demo_{i + 1:03d}",
            product_id=pid,
            product_name=p.name,
            customer_name=customer,
            quantity=qty,
            sale_date=today - timedelta(days=ago),
            total_amount=Decimal(qty) * p.price,
            recorded_at=f"{(today - timedelta(days=ago)).isoformat()}T12:00:00+00:00",
        )
        ledger.append(batch, sale)

    for p in products.values():
        batch.set(PRODUCTS, p.id, p.to_doc())

    for i, (name, phone, whatsapp, email, pets) in enumerate(DEMO_CUSTOMERS):
        c = Customer(
            id=f"cust_demo_{i + 1:03d}",
            name=name,
            phone_number=phone,
            whatsapp_number=whatsapp,
            email=email,
            pets=tuple(Pet(species=s, breed=b, count=n) for s, b, n in pets),
        )
        batch.set(CUSTOMERS, c.id, c.to_doc())

    commit_atomic(store, batch, "seeding demo data")
    logger.info(
        "Seeded %d products, %d sales, %d customers",
        len(products),
        len(DEMO_SALES),
        len(DEMO_CUSTOMERS),
    )
    return True


def wipe_all(store: DocumentStore) -> None:
    # Keep schema, delete every document in one batch.
    batch = store.batch()
    for collection in (SALES, PRODUCTS, CUSTOMERS):
        for doc_id in store.snapshot(collection):
            batch.delete(collection, doc_id)
    commit_atomic(store, batch, "wiping all data")
    logger.info("Wiped %d document(s)", len(batch))


def collection_counts(store: DocumentStore) -> dict[str, int]:
    return {c: len(store.snapshot(c)) for c in (PRODUCTS, SALES, CUSTOMERS)}
