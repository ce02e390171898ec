"""
Coverage Roster - technician coverage and location search
"""

import streamlit as st

from ui_components import (
    inject_base_styles,
    page_header,
    status_badge,
    metric_card,
    empty_state,
    LAYOUT,
)

st.set_page_config(
    page_title="Coverage Roster",
    page_icon="◉",
    layout="wide",
)

# Apply design system styles
inject_base_styles()

# --- Initialize & Status ---
try:
    from turso_db import get_database
    db = get_database()
except Exception as e:
    st.error(f"Database connection failed: {e}")
    st.caption("Check `.streamlit/secrets.toml` configuration")
    st.stop()

technicians = db.get_technicians()
active = [t for t in technicians if t.is_active]
unlocated = [t for t in technicians if not t.has_coordinates]
city_centroids = db.count_city_centroids()

if city_centroids:
    badge = (status_badge("success", f"{city_centroids:,} city centroids"), "Centroid cache ready")
else:
    badge = (status_badge("warning", "Centroids not seeded"), "Run scripts/seed_centroids.py")

page_header("Coverage Roster", "Field technicians, bulk import and location search", right_content=badge)

cols = st.columns(LAYOUT["metric_4col"])
with cols[0]:
    metric_card("Technicians", len(technicians))
with cols[1]:
    metric_card("Active", len(active))
with cols[2]:
    metric_card("Without coordinates", len(unlocated))
with cols[3]:
    metric_card("ZIP centroids", db.count_zip_centroids())

st.markdown("")
if not technicians:
    empty_state("No technicians yet", hint="Import a CSV or add one on the Technicians page.")

st.page_link("pages/1_Technicians.py", label="Open Technicians", use_container_width=True)
