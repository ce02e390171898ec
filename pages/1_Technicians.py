"""
Technicians - Location search, roster management, bulk import and centroid maintenance.
"""

import streamlit as st
import streamlit_shadcn_ui as ui

from centroids import fill_missing_zip_centroids, run_seed
from errors import PipelineError
from export import export_roster_csv
from geocoder import get_geocoder
from importer import run_import
from models import BATCH_ABORT_ALL, BATCH_ISOLATE_PER_ROW, UNRESOLVED_DROP, UNRESOLVED_KEEP_WITH_SENTINEL, ImportPolicy
from roster import create_technician, delete_technicians, set_active, update_technician
from search import search_technicians
from turso_db import get_database
from ui_components import (
    inject_base_styles,
    page_header,
    scope_badge,
    metric_card,
    empty_state,
    roster_frame,
    search_results_frame,
    skip_reason_chart,
    LAYOUT,
)
from validation import parse_delimited

st.set_page_config(page_title="Technicians", page_icon="📍", layout="wide")

# Apply design system styles
inject_base_styles()

try:
    db = get_database()
except Exception as e:
    st.error(f"Failed to connect: {e}")
    st.stop()

page_header("Technicians", "Find coverage, manage the roster, import in bulk")

active_tab = ui.tabs(
    options=["Search", "Roster", "Import", "Add", "Maintenance"],
    default_value="Search",
    key="tech_main_tabs",
)


# =============================================================================
# SEARCH
# =============================================================================
if active_tab == "Search":
    query = st.text_input("Location", placeholder="75201, Austin TX, Texas, 123 Main St Dallas")
    if st.button("Search", type="primary", disabled=not query.strip()):
        try:
            with st.spinner("Searching..."):
                st.session_state.search_outcome = search_technicians(query, db, get_geocoder())
        except PipelineError as e:
            st.session_state.search_outcome = None
            st.error(e.user_message)

    outcome = st.session_state.get("search_outcome")
    if outcome:
        st.markdown(scope_badge(outcome.result_type, outcome.is_fallback), unsafe_allow_html=True)
        st.caption(outcome.display_name)
        if outcome.results:
            st.dataframe(search_results_frame(outcome.results), use_container_width=True, hide_index=True)
        else:
            empty_state("No active technicians on the roster")


# =============================================================================
# ROSTER
# =============================================================================
elif active_tab == "Roster":
    technicians = db.get_technicians()
    if not technicians:
        empty_state("No technicians yet", hint="Use the Import or Add tab.")
    else:
        st.dataframe(roster_frame(technicians), use_container_width=True, hide_index=True)

        csv_content, filename = export_roster_csv(technicians)
        st.download_button("Export CSV", csv_content, file_name=filename, mime="text/csv")

        labels = {f"{t.name} ({t.city_state})": t for t in technicians}
        selected = st.multiselect("Select technicians", list(labels.keys()))
        chosen = [labels[label] for label in selected]

        col1, col2, col3 = st.columns(3)
        with col1:
            if st.button("Activate", disabled=not chosen):
                for t in chosen:
                    set_active(db, t.id, True)
                st.rerun()
        with col2:
            if st.button("Deactivate", disabled=not chosen):
                for t in chosen:
                    set_active(db, t.id, False)
                st.rerun()
        with col3:
            if st.button("Delete", type="primary", disabled=not chosen):
                progress = st.progress(0.0)
                delete_technicians(db, [t.id for t in chosen], progress=lambda d, n: progress.progress(d / n))
                st.rerun()

        st.subheader("Edit technician")
        edit_label = st.selectbox("Technician", list(labels.keys()), key="edit_technician_select")
        tech = labels[edit_label]
        with st.form(f"edit_technician_{tech.id}"):
            col1, col2 = st.columns(2)
            with col1:
                name = st.text_input("Name *", value=tech.name)
                phone = st.text_input("Phone", value=tech.phone or "")
                email = st.text_input("Email", value=tech.email or "")
                city = st.text_input("City *", value=tech.city)
                state = st.text_input("State *", value=tech.state)
                zip_code = st.text_input("ZIP", value=tech.zip)
            with col2:
                latitude = st.text_input("Latitude", value=str(tech.latitude) if tech.has_coordinates else "")
                longitude = st.text_input("Longitude", value=str(tech.longitude) if tech.has_coordinates else "")
                radius = st.number_input("Service radius (miles)", min_value=1, value=int(tech.service_radius_miles))
                specialty = st.text_input("Specialties (; separated)", value="; ".join(tech.specialty))
                priorities = ["normal", "best", "last"]
                priority = st.selectbox(
                    "Priority", priorities,
                    index=priorities.index(tech.priority) if tech.priority in priorities else 0,
                )
                is_new = st.checkbox("New technician", value=tech.is_new)
            notes = st.text_area("Notes", value=tech.notes or "")
            saved = st.form_submit_button("Save changes", type="primary")

        if saved:
            try:
                record = update_technician(
                    db, tech.id,
                    name=name, phone=phone, email=email, city=city, state=state, zip_code=zip_code,
                    latitude=latitude, longitude=longitude, service_radius_miles=radius,
                    specialty=specialty, priority=priority, notes=notes, is_new=is_new,
                )
                st.success(f"Updated {record.name} ({record.city_state})")
                if not record.has_coordinates:
                    st.warning("No coordinates found; the technician won't rank by distance.")
            except PipelineError as e:
                st.error(e.user_message)


# =============================================================================
# IMPORT
# =============================================================================
elif active_tab == "Import":
    st.caption(
        "Columns: name, phone, email, city, state, [zip, latitude, longitude, "
        "radius, specialties (; separated), priority, notes]. A header row is optional."
    )
    uploaded = st.file_uploader("CSV or tab-delimited file", type=["csv", "tsv", "txt"])

    default_policy = ImportPolicy.from_config()
    col1, col2 = st.columns(2)
    with col1:
        unresolved = st.radio(
            "Rows without coordinates",
            [UNRESOLVED_KEEP_WITH_SENTINEL, UNRESOLVED_DROP],
            index=0 if default_policy.on_unresolved_coordinate == UNRESOLVED_KEEP_WITH_SENTINEL else 1,
            format_func=lambda v: "Keep (unlocated)" if v == UNRESOLVED_KEEP_WITH_SENTINEL else "Skip",
        )
    with col2:
        batch_failure = st.radio(
            "When a batch fails",
            [BATCH_ISOLATE_PER_ROW, BATCH_ABORT_ALL],
            index=0 if default_policy.on_batch_failure == BATCH_ISOLATE_PER_ROW else 1,
            format_func=lambda v: "Retry rows individually" if v == BATCH_ISOLATE_PER_ROW else "Cancel whole import",
        )

    if uploaded and st.button("Import", type="primary"):
        grid = parse_delimited(uploaded.getvalue().decode("utf-8-sig", errors="replace"))
        progress = st.progress(0.0)
        # Cancel-whole-import holds one transaction open, so it gets its own connection
        import_db = db.dedicated() if batch_failure == BATCH_ABORT_ALL else db
        try:
            st.session_state.import_report = run_import(
                grid,
                import_db,
                policy=ImportPolicy(unresolved, batch_failure),
                progress=lambda d, n: progress.progress(d / n, text=f"{d}/{n} rows"),
            )
        except PipelineError as e:
            st.session_state.import_report = None
            st.error(e.user_message)
        finally:
            if import_db is not db:
                import_db.close()

    report = st.session_state.get("import_report")
    if report:
        st.success(report.summary())
        cols = st.columns(LAYOUT["metric_4col"])
        with cols[0]:
            metric_card("Rows", report.total_rows)
        with cols[1]:
            metric_card("Imported", report.imported_count)
        with cols[2]:
            metric_card("Skipped", report.skipped_count)
        with cols[3]:
            metric_card("Without coordinates", len(report.without_coordinates))

        if report.skipped:
            st.plotly_chart(skip_reason_chart(report.reason_counts), use_container_width=True)
            skipped_csv, skipped_name = report.skipped_to_csv()
            st.download_button("Download skipped rows", skipped_csv, file_name=skipped_name, mime="text/csv")
        if report.without_coordinates:
            with st.expander("Imported without coordinates"):
                for row in report.without_coordinates:
                    st.write(f"Row {row.row_number}: {row.name} ({row.city_state})")


# =============================================================================
# ADD
# =============================================================================
elif active_tab == "Add":
    with st.form("add_technician"):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Name *")
            phone = st.text_input("Phone")
            email = st.text_input("Email")
            city = st.text_input("City *")
            state = st.text_input("State *")
            zip_code = st.text_input("ZIP")
        with col2:
            latitude = st.text_input("Latitude")
            longitude = st.text_input("Longitude")
            radius = st.number_input("Service radius (miles)", min_value=1, value=25)
            specialty = st.text_input("Specialties (; separated)")
            priority = st.selectbox("Priority", ["normal", "best", "last"])
            is_new = st.checkbox("New technician")
        notes = st.text_area("Notes")
        submitted = st.form_submit_button("Add technician", type="primary")

    if submitted:
        try:
            record = create_technician(
                db,
                name=name, phone=phone, email=email, city=city, state=state, zip_code=zip_code,
                latitude=latitude, longitude=longitude, service_radius_miles=radius,
                specialty=specialty, priority=priority, notes=notes, is_new=is_new,
            )
            st.success(f"Added {record.name} ({record.city_state})")
            if not record.has_coordinates:
                st.warning("No coordinates found; the technician won't rank by distance.")
        except PipelineError as e:
            st.error(e.user_message)


# =============================================================================
# MAINTENANCE
# =============================================================================
elif active_tab == "Maintenance":
    st.subheader("Centroid cache")
    st.caption(f"{db.count_zip_centroids():,} ZIP centroids, {db.count_city_centroids():,} city centroids cached")

    force = st.checkbox("Re-seed even if already populated")
    if st.button("Seed centroids"):
        try:
            with st.spinner("Downloading dataset and seeding..."):
                result = run_seed(db, force=force)
            if result["status"] == "skipped":
                st.info(f"Already seeded ({result['city_count']:,} cities).")
            else:
                st.success(f"Seeded {result['zip_count']:,} ZIPs and {result['city_count']:,} cities.")
        except PipelineError as e:
            st.error(e.user_message)

    st.subheader("Geocode roster ZIPs")
    st.caption("Looks up ZIPs on the roster that the cache doesn't have yet (about one per second).")
    if st.button("Fill missing ZIP centroids"):
        zips = [t.zip for t in db.get_technicians()]
        with st.spinner("Geocoding..."):
            centroids = fill_missing_zip_centroids(db, get_geocoder(), zips)
        st.success(f"{len(centroids):,} roster ZIPs now have centroids.")
