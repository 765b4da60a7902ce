from __future__ import annotations

import streamlit as st

from core.config import get_settings
from core.logging import configure_logging

st.set_page_config(page_title="Stock Movement Reports", page_icon="📊", layout="wide")

configure_logging(get_settings())

pages = [
    st.Page("home.py", title="Home", icon="🏠"),
    st.Page("pages/1_📊_Productwise_Report.py", title="Product-wise Report", icon="📊"),
    st.Page("pages/2_🧪_Data_Management.py", title="Data Management", icon="🧪"),
]

st.navigation(pages).run()
