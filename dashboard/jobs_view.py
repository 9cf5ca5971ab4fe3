"""Jobs view: filters, statistics, pagination and apply/withdraw."""
import streamlit as st

from core.errors import error_from_exception
from core.models import Job
from utils.formatting import format_distance, format_hourly_rate

from .constants import PAGE_SIZE
from .data import apply_to_job, get_job_repository, load_applied_job_ids, withdraw_application
from .filters import build_filter_options, render_sidebar_filters
from .job_cards import render_job_card


def _init_jobs_session_state() -> None:
    if "page_index" not in st.session_state:
        st.session_state.page_index = 0
    if "flash" not in st.session_state:
        st.session_state.flash = None


def _show_flash() -> None:
    flash = st.session_state.flash
    if flash:
        kind, message = flash
        (st.success if kind == "success" else st.error)(message)
        st.session_state.flash = None


def _handle_apply(job: Job, guard_id: str) -> None:
    try:
        if apply_to_job(job.job_id, guard_id):
            st.session_state.flash = ("success", f"Sollicitatie voor '{job.job_title}' verstuurd.")
        else:
            st.session_state.flash = ("error", "Je hebt al gesolliciteerd op deze opdracht.")
    except Exception as e:
        st.session_state.flash = ("error", error_from_exception(e).message)
    st.rerun()


def _handle_withdraw(job: Job, guard_id: str) -> None:
    try:
        if withdraw_application(job.job_id, guard_id):
            st.session_state.flash = ("success", f"Sollicitatie voor '{job.job_title}' ingetrokken.")
    except Exception as e:
        st.session_state.flash = ("error", error_from_exception(e).message)
    st.rerun()


def _render_statistics(jobs: list[Job]) -> None:
    if not jobs:
        return
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Opdrachten", len(jobs))
    col2.metric("Gem. uurtarief", format_hourly_rate(sum(j.hourly_rate for j in jobs) / len(jobs)))
    col3.metric("Bedrijven", len({j.company_name for j in jobs if j.company_name}))
    col4.metric("Gem. afstand", format_distance(sum(j.distance for j in jobs) / len(jobs)))


def _render_pager(total_pages: int) -> None:
    def _go_prev():
        st.session_state.page_index = max(0, st.session_state.page_index - 1)

    def _go_next():
        st.session_state.page_index = min(total_pages - 1, st.session_state.page_index + 1)

    with st.container():
        st.markdown('<span class="pagination-marker-unique"></span>', unsafe_allow_html=True)
        pager_cols = st.columns([1.1, 3.8, 1.1])
        with pager_cols[0]:
            st.button("◀ Vorige", key="pager_prev", on_click=_go_prev,
                      disabled=(st.session_state.page_index <= 0), use_container_width=True)
        with pager_cols[1]:
            st.markdown(
                f'<p class="pager-text">Pagina <b>{st.session_state.page_index + 1}</b> / <b>{total_pages}</b></p>',
                unsafe_allow_html=True,
            )
        with pager_cols[2]:
            st.button("Volgende ▶", key="pager_next", on_click=_go_next,
                      disabled=(st.session_state.page_index >= total_pages - 1), use_container_width=True)


def render_jobs_view(guard_id: str) -> None:
    """Render the Jobs view from st.session_state.df."""
    _init_jobs_session_state()
    _show_flash()

    df = st.session_state.df
    all_jobs = [Job.from_row(row) for row in df.fillna("").to_dict("records")]
    all_jobs = [j for j in all_jobs if j.is_active]

    job_filter, applied_only = render_sidebar_filters(build_filter_options(all_jobs))
    applied_ids = set(load_applied_job_ids(guard_id))

    repository = get_job_repository()
    low, high = job_filter.hourly_rate_range
    jobs = repository.filter_jobs(
        search_query=job_filter.search_query,
        min_hourly_rate=low,
        max_hourly_rate=high,
        max_distance=job_filter.max_distance,
        job_type=job_filter.job_type,
        required_certificates=list(job_filter.certificates),
        jobs=all_jobs,
    )
    if applied_only:
        jobs = [j for j in jobs if j.job_id in applied_ids]

    _render_statistics(jobs)
    if job_filter.has_active_filters or applied_only:
        st.caption(f"{len(jobs)} van {len(all_jobs)} opdrachten")
    if not jobs:
        st.info("Geen opdrachten gevonden die aan je filters voldoen.")
        return

    total_pages = max(1, (len(jobs) + PAGE_SIZE - 1) // PAGE_SIZE)
    st.session_state.page_index = max(0, min(int(st.session_state.page_index), total_pages - 1))
    start_idx = st.session_state.page_index * PAGE_SIZE

    for job in jobs[start_idx:start_idx + PAGE_SIZE]:
        render_job_card(
            job,
            job.job_id in applied_ids,
            on_apply=lambda j: _handle_apply(j, guard_id),
            on_withdraw=lambda j: _handle_withdraw(j, guard_id),
        )

    _render_pager(total_pages)
