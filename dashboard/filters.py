"""Sidebar filters for the Jobs view."""
import streamlit as st

from core.models import DEFAULT_HOURLY_RATE_RANGE, DEFAULT_MAX_DISTANCE, Job, JobFilter


# Keys that hold filter state (must match what render_sidebar_filters reads).
FILTER_KEYS = (
    "filter_search",
    "filter_rate_range",
    "filter_max_distance",
    "filter_job_type",
    "filter_certificates",
    "filter_applied_only",
)

ALL_JOB_TYPES = "Alle types"


def clear_all_filter_keys() -> None:
    """Reset every filter to show-all. Call before st.rerun()."""
    st.session_state.filter_search = ""
    st.session_state.filter_rate_range = DEFAULT_HOURLY_RATE_RANGE
    st.session_state.filter_max_distance = DEFAULT_MAX_DISTANCE
    st.session_state.filter_job_type = ALL_JOB_TYPES
    st.session_state.filter_certificates = []
    st.session_state.filter_applied_only = False


def build_filter_options(jobs: list[Job]) -> dict:
    """Options for the selectboxes, derived from the loaded jobs."""
    job_types = sorted({j.job_type for j in jobs if j.job_type})
    certificates = sorted({c for j in jobs for c in j.required_certificates})
    max_rate = max([j.hourly_rate for j in jobs] + [DEFAULT_HOURLY_RATE_RANGE[1]])
    return {"job_types": job_types, "certificates": certificates, "max_rate": float(max_rate)}


def render_sidebar_filters(options: dict) -> tuple[JobFilter, bool]:
    """Render the filter widgets. Returns the current JobFilter and the applied-only toggle."""
    if "filter_search" not in st.session_state:
        clear_all_filter_keys()

    st.sidebar.header("Filters")
    search = st.sidebar.text_input("Zoeken", key="filter_search", placeholder="Titel, bedrijf, locatie...")
    rate_range = st.sidebar.slider(
        "Uurtarief (€)",
        min_value=0.0,
        max_value=options["max_rate"],
        key="filter_rate_range",
        step=0.5,
    )
    max_distance = st.sidebar.slider(
        "Maximale afstand (km)",
        min_value=1.0,
        max_value=DEFAULT_MAX_DISTANCE,
        key="filter_max_distance",
        step=1.0,
    )
    job_type = st.sidebar.selectbox(
        "Type opdracht",
        [ALL_JOB_TYPES] + options["job_types"],
        key="filter_job_type",
    )
    certificates = st.sidebar.multiselect(
        "Vereiste certificaten",
        options["certificates"],
        key="filter_certificates",
    )
    applied_only = st.sidebar.checkbox("Alleen gesolliciteerd", key="filter_applied_only")

    if st.sidebar.button("Filters wissen", use_container_width=True):
        clear_all_filter_keys()
        st.session_state.page = 0
        st.rerun()

    job_filter = JobFilter().copy_with(
        search_query=search or "",
        hourly_rate_range=tuple(rate_range),
        max_distance=float(max_distance),
        job_type="" if job_type == ALL_JOB_TYPES else job_type,
        certificates=certificates,
    )
    return job_filter, applied_only
