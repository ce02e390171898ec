"""
Design System - Shared UI components and styles for the coverage roster.

Usage:
    from ui_components import inject_base_styles, page_header, status_badge, metric_card

    # At the start of every page:
    inject_base_styles()

    page_header("Technicians", "Roster, import and location search")
    st.markdown(status_badge("success", "Active"), unsafe_allow_html=True)
    metric_card("Imported", 412)
"""

from typing import Literal, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from models import SearchResult, TechnicianRecord

# =============================================================================
# COLOR PALETTE
# =============================================================================

COLORS = {
    "primary": "#6366f1",       # Indigo-500
    "accent": "#06b6d4",        # Cyan-500

    "success": "#22c55e",
    "success_light": "#4ade80",
    "success_dark": "#16a34a",
    "success_bg": "#14532d",

    "warning": "#f59e0b",
    "warning_light": "#fbbf24",
    "warning_dark": "#d97706",
    "warning_bg": "#451a03",

    "error": "#ef4444",
    "error_light": "#f87171",
    "error_dark": "#dc2626",
    "error_bg": "#450a0a",

    "info": "#3b82f6",
    "info_light": "#60a5fa",
    "info_dark": "#2563eb",
    "info_bg": "#172554",

    "bg_secondary": "#141922",
    "bg_tertiary": "#1e2530",
    "border": "#262d3a",
    "text_primary": "#f0f2f5",
    "text_secondary": "#8b929e",
    "text_muted": "#5c6370",
}

SPACING = {
    "xs": "0.25rem",
    "sm": "0.5rem",
    "md": "1rem",
    "lg": "1.5rem",
    "xl": "2rem",
}

FONT_SIZES = {
    "xs": "0.75rem",
    "sm": "0.875rem",
    "base": "1rem",
}

LAYOUT = {
    "header": [3, 1],
    "metric_4col": [1, 1, 1, 1],
}

# Search scope -> badge status
SCOPE_STATUS = {
    "address": "info",
    "neighborhood": "info",
    "zip": "success",
    "city": "success",
    "state": "success",
    "unknown": "neutral",
}


# =============================================================================
# BASE STYLES
# =============================================================================

def inject_base_styles():
    """Inject base CSS styles. Call once at the start of each page."""
    st.markdown(f"""
<style>
    .block-container {{
        padding-top: 1.25rem;
    }}

    .status-badge {{
        display: inline-flex;
        align-items: center;
        gap: {SPACING['xs']};
        padding: {SPACING['xs']} {SPACING['sm']};
        border-radius: 9999px;
        font-size: {FONT_SIZES['sm']};
        font-weight: 500;
        line-height: 1;
        min-height: 24px;
    }}
    .status-badge-success {{
        background-color: {COLORS['success_bg']};
        color: {COLORS['success_light']};
        border: 1px solid {COLORS['success_dark']};
    }}
    .status-badge-warning {{
        background-color: {COLORS['warning_bg']};
        color: {COLORS['warning_light']};
        border: 1px solid {COLORS['warning_dark']};
    }}
    .status-badge-error {{
        background-color: {COLORS['error_bg']};
        color: {COLORS['error_light']};
        border: 1px solid {COLORS['error_dark']};
    }}
    .status-badge-info {{
        background-color: {COLORS['info_bg']};
        color: {COLORS['info_light']};
        border: 1px solid {COLORS['info_dark']};
    }}
    .status-badge-neutral {{
        background-color: {COLORS['bg_tertiary']};
        color: {COLORS['text_secondary']};
        border: 1px solid {COLORS['border']};
    }}

    .metric-card {{
        background: {COLORS['bg_secondary']};
        border: 1px solid {COLORS['border']};
        border-radius: 10px;
        padding: 1rem 1rem 0.75rem;
    }}
    .metric-card-value {{
        font-size: 1.5rem;
        font-weight: 700;
        color: {COLORS['text_primary']};
        margin: 0;
        line-height: 1.2;
        font-variant-numeric: tabular-nums;
    }}
    .metric-card-label {{
        font-size: {FONT_SIZES['xs']};
        font-weight: 500;
        color: {COLORS['text_muted']};
        text-transform: uppercase;
        letter-spacing: 0.05em;
        margin: 0 0 4px 0;
    }}
</style>
""", unsafe_allow_html=True)


# =============================================================================
# HEADER / BADGES / CARDS
# =============================================================================

def page_header(title: str, caption: Optional[str] = None, right_content: Optional[tuple[str, str]] = None) -> None:
    """
    Render a consistent page header with optional right-side badge.

    Args:
        title: The page title
        caption: Optional subtitle/description
        right_content: Optional tuple of (badge_html, caption) to display on right side
    """
    col1, col2 = st.columns(LAYOUT["header"])

    with col1:
        st.title(title)
        if caption:
            st.caption(caption)

    with col2:
        if right_content:
            badge_html, right_caption = right_content
            st.markdown("")  # Align vertically with title
            st.markdown(badge_html, unsafe_allow_html=True)
            if right_caption:
                st.caption(right_caption)

    st.markdown("---")


StatusType = Literal["success", "warning", "error", "info", "neutral"]


def status_badge(status: StatusType, label: str) -> str:
    """
    Create a colored status badge.

    Returns:
        HTML string for the badge

    Usage:
        st.markdown(status_badge("success", "Active"), unsafe_allow_html=True)
    """
    return f'<span class="status-badge status-badge-{status}" role="status">{label}</span>'


def scope_badge(result_type: str, is_fallback: bool) -> str:
    """Badge for a search scope; fallback results are shown as a warning."""
    if is_fallback:
        return status_badge("warning", f"{result_type}: nearest technicians")
    return status_badge(SCOPE_STATUS.get(result_type, "neutral"), result_type)


def metric_card(label: str, value: str | int | float) -> None:
    """Render a metric card."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        formatted_value = f"{value:,}" if isinstance(value, int) else f"{value:,.2f}"
    else:
        formatted_value = str(value)

    st.markdown(
        f"""
    <div class="metric-card">
        <p class="metric-card-label">{label}</p>
        <p class="metric-card-value">{formatted_value}</p>
    </div>
    """,
        unsafe_allow_html=True,
    )


def empty_state(message: str, hint: Optional[str] = None) -> None:
    """Render a centered empty state with optional hint."""
    hint_html = f'<p style="color: {COLORS["text_muted"]}; font-size: {FONT_SIZES["sm"]}; margin-top: 0.25rem;">{hint}</p>' if hint else ""
    st.markdown(
        f'''<div style="text-align: center; padding: {SPACING["xl"]} 0 {SPACING["lg"]};">
            <p style="color: {COLORS["text_secondary"]}; margin: 0;">{message}</p>
            {hint_html}
        </div>''',
        unsafe_allow_html=True,
    )


# =============================================================================
# TABLES AND CHARTS
# =============================================================================

def roster_frame(technicians: list[TechnicianRecord]) -> pd.DataFrame:
    """Roster table for st.dataframe."""
    return pd.DataFrame([
        {
            "Name": t.name,
            "Phone": t.phone or "",
            "City": t.city,
            "State": t.state,
            "ZIP": t.zip,
            "Radius (mi)": t.service_radius_miles,
            "Priority": t.priority,
            "Specialty": ", ".join(t.specialty),
            "Active": t.is_active,
            "New": t.is_new,
            "Located": t.has_coordinates,
        }
        for t in technicians
    ], columns=["Name", "Phone", "City", "State", "ZIP", "Radius (mi)", "Priority",
                "Specialty", "Active", "New", "Located"])


def search_results_frame(results: list[SearchResult]) -> pd.DataFrame:
    """Ranked search results table, distance rounded to 0.1 mi."""
    return pd.DataFrame([
        {
            "Name": r.technician.name,
            "Phone": r.technician.phone or "",
            "City/State": r.technician.city_state,
            "ZIP": r.technician.zip,
            "Distance (mi)": round(r.distance_miles, 1),
            "Radius (mi)": r.technician.service_radius_miles,
            "New": r.technician.is_new,
        }
        for r in results
    ], columns=["Name", "Phone", "City/State", "ZIP", "Distance (mi)", "Radius (mi)", "New"])


def skip_reason_chart(reason_counts: dict[str, int]) -> go.Figure:
    """Horizontal bar chart of skipped rows by reason."""
    reasons = list(reason_counts.keys())
    counts = list(reason_counts.values())
    fig = go.Figure(data=[go.Bar(
        x=counts,
        y=reasons,
        orientation="h",
        marker_color=COLORS["warning"],
        text=counts,
        textposition="auto",
    )])
    fig.update_layout(
        height=max(160, 40 * len(reasons) + 60),
        margin=dict(l=10, r=10, t=10, b=10),
        yaxis=dict(autorange="reversed"),
        xaxis_title="Rows",
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
    )
    return fig
