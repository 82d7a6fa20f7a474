from __future__ import annotations

import streamlit as st

from petstock.config import get_settings
from petstock.logger import setup_logger

st.set_page_config(page_title="PetStock", page_icon="🐾", layout="wide")
setup_logger("petstock", log_dir=get_settings().log_dir)

pages = [
    st.Page("home.py", title="Home", icon="🏠"),
    st.Page("pages/1_📊_Dashboard.py", title="Dashboard", icon="📊"),
    st.Page("pages/2_📦_Inventory.py", title="Inventory", icon="📦"),
    st.Page("pages/3_📥_Stock_Entry.py", title="Stock Entry", icon="📥"),
    st.Page("pages/4_🛒_Sales.py", title="Sales", icon="🛒"),
    st.Page("pages/5_👥_Customers.py", title="Customers", icon="👥"),
    st.Page("pages/6_🔔_Notifications.py", title="Notifications", icon="🔔"),
    st.Page("pages/7_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
