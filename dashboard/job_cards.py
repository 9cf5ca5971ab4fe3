"""Rendering of a single job card in the Jobs view."""
import html

import streamlit as st

from core.models import Job
from utils.formatting import format_dutch_date


def _esc(text: str) -> str:
    return html.escape(text or "", quote=True)


def job_card_html(job: Job, applied: bool) -> str:
    badges = "".join(f'<span class="sf-badge">{_esc(c)}</span>' for c in job.required_certificates)
    applied_badge = '<span class="sf-badge sf-applied">Gesolliciteerd</span>' if applied else ""
    start = f" · start {format_dutch_date(job.start_date)}" if job.start_date else ""
    return (
        '<div class="sf-job-card">'
        f'<div class="sf-job-title">{_esc(job.job_title)} {applied_badge}</div>'
        f'<div class="sf-job-meta">{_esc(job.company_name)} · {_esc(job.location)} · '
        f'{_esc(job.dutch_formatted_distance)}{_esc(start)}</div>'
        f'<div class="sf-job-rate">{_esc(job.dutch_formatted_rate)} · {_esc(job.job_type)}</div>'
        f'<div>{badges}</div>'
        '</div>'
    )


def render_job_card(job: Job, applied: bool, on_apply, on_withdraw) -> None:
    """Card plus apply/withdraw button. Callbacks receive the job."""
    col_card, col_action = st.columns([5, 1])
    with col_card:
        st.markdown(job_card_html(job, applied), unsafe_allow_html=True)
        if job.description:
            with st.expander("Omschrijving"):
                st.markdown(job.description)
    with col_action:
        if applied:
            if st.button("Intrekken", key=f"withdraw_{job.job_id}", use_container_width=True):
                on_withdraw(job)
        elif st.button("Solliciteren", key=f"apply_{job.job_id}", type="primary", use_container_width=True):
            on_apply(job)
