from __future__ import annotations

import streamlit as st

from petstock.config import get_settings
from petstock.logger import setup_logger
from petstock.services.demo_data import seed_if_empty
from petstock.store import get_store

st.set_page_config(page_title="PetStock", page_icon="🐾", layout="wide")

settings = get_settings()
setup_logger("petstock", log_dir=settings.log_dir)

st.title("🐾 PetStock — Inventory & Sales")
st.caption("Batch-level stock for medicines, pet foods, vaccines and accessories, with sales, customers and a dashboard.")

store = get_store(settings.db_path)
if seed_if_empty(store):
    st.toast("Empty store detected: sample products, sales and customers were loaded.")

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")
    st.write(f"**Notifications:** {'configured' if settings.notify_url else 'not configured'}")

st.info(
    "Use the left sidebar navigation. **Stock Entry** registers batches and receipts, **Sales** records "
    "checkouts, and **Dashboard** summarises revenue and top sellers.",
    icon="ℹ️",
)
