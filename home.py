from __future__ import annotations

import streamlit as st

from core.config import get_settings
from core.db import get_conn, ensure_schema
from core.services.demo_data import upsert_reference_data

st.title("📊 Stock Movement Reports")
st.caption("Per-warehouse movement and as-of stock position reports, product by product, with spreadsheet export.")

settings = get_settings()
conn = get_conn(settings.db_path)
ensure_schema(conn)
upsert_reference_data(conn)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")
    st.write(f"**As-of start:** `{settings.as_of_start.isoformat()}`")

st.info(
    "Use the left sidebar navigation. Start with **🧪 Data Management** to load demo data, then open **Product-wise Report**.",
    icon="ℹ️",
)
