"""Dashboard app: page config and view routing."""
import time

import streamlit as st

from .activity import render_activity_view
from .constants import DEFAULT_GUARD_ID
from .data import load_job_data
from .finance_view import render_finance_view
from .jobs_view import render_jobs_view
from .notifications_view import render_notifications_view
from .settings import render_settings_view
from .styles import CUSTOM_CSS, PAGER_JS


def main() -> None:
    """Run the dashboard: route to Jobs, Finance, Notifications, Activity, or Settings."""
    st.set_page_config(
        page_title="SecuryFlex",
        page_icon="🛡️",
        layout="wide",
    )
    st.markdown(CUSTOM_CSS, unsafe_allow_html=True)

    if "last_refresh" not in st.session_state:
        st.session_state.last_refresh = time.time()

    view = st.sidebar.radio(
        "View",
        ["Jobs", "Financiën", "Meldingen", "Activity", "Settings"],
        index=0,
        key="dashboard_view",
    )
    guard_id = st.sidebar.text_input("Guard ID", value=DEFAULT_GUARD_ID, key="guard_id").strip() or DEFAULT_GUARD_ID
    st.sidebar.markdown("---")

    if view == "Activity":
        render_activity_view()
        return
    if view == "Settings":
        render_settings_view()
        return
    if view == "Financiën":
        render_finance_view(guard_id)
        return
    if view == "Meldingen":
        render_notifications_view(guard_id)
        return

    st.title("🛡️ Beveiligingsopdrachten")
    st.components.v1.html(PAGER_JS, height=0)

    if st.sidebar.button("Vernieuwen", key="jobs_refresh", use_container_width=True):
        load_job_data.clear()
        st.session_state.pop("df", None)

    if "df" not in st.session_state:
        df, error = load_job_data()
        if error:
            st.error(error)
            return
        st.session_state.df = df

    render_jobs_view(guard_id)
