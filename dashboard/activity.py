"""Activity view: what the runner did, newest first, with alerts and payments highlighted."""
import html
import time

import streamlit as st

from .constants import ACTIVITY_AUTO_REFRESH_SEC, ACTIVITY_LOG_PATH, ACTIVITY_LOG_TAIL_LINES
from .log_lines import LEVELS, filter_lines, level_counts

_LEVEL_LABELS = {
    "error": "Fouten",
    "warning": "Waarschuwingen",
    "alert": "Certificaatmeldingen",
    "finance": "Facturen & betalingen",
    "cycle": "Runner-cycli",
    "info": "Overig",
}

_LOG_CSS = """
<style>
.log-row { border-radius: 8px; padding: 8px 12px; margin: 4px 0; font-family: monospace; font-size: 0.88rem; }
.log-row .log-time { color: #6c757d; margin-right: 10px; }
.log-row.log-error   { border-left: 4px solid #dc3545; background-color: rgba(220, 53, 69, 0.12); }
.log-row.log-warning { border-left: 4px solid #fd7e14; background-color: rgba(253, 126, 20, 0.12); }
.log-row.log-alert   { border-left: 4px solid #a371f7; background-color: rgba(163, 113, 247, 0.14); }
.log-row.log-finance { border-left: 4px solid #198754; background-color: rgba(25, 135, 84, 0.10); }
.log-row.log-cycle   { border-left: 4px solid #6c757d; background-color: rgba(108, 117, 125, 0.10); }
.log-row.log-info    { border-left: 4px solid #0d6efd; background-color: rgba(13, 110, 253, 0.06); }
</style>
"""


@st.cache_data(ttl=2)
def _read_activity_log_tail(max_lines: int = ACTIVITY_LOG_TAIL_LINES) -> list[str]:
    if not ACTIVITY_LOG_PATH.exists():
        return []
    try:
        with open(ACTIVITY_LOG_PATH, "r", encoding="utf-8", errors="replace") as f:
            return f.readlines()[-max_lines:]
    except OSError as e:
        print(f"Could not read activity log {ACTIVITY_LOG_PATH}: {e}")
        return []


def _render_line(line) -> None:
    stamp = line.timestamp.strftime("%d-%m %H:%M:%S") if line.timestamp else ""
    preview = line.text[:160] + ("..." if len(line.text) > 160 else "")
    st.markdown(
        f'<div class="log-row log-{line.level}" title="{html.escape(line.text[:300])}">'
        f'<span class="log-time">{html.escape(stamp)}</span>{html.escape(preview)}</div>',
        unsafe_allow_html=True,
    )


def render_activity_view() -> None:
    """Render the Activity view from the tail of the runner's activity log."""
    st.title("Activiteit")
    st.caption(f"Uitvoer van main.py (`{ACTIVITY_LOG_PATH}`).")

    raw_lines = _read_activity_log_tail()
    if not raw_lines:
        st.info("Nog geen activiteit. Start `python main.py` om hier de runner te volgen.")
        return

    st.markdown(_LOG_CSS, unsafe_allow_html=True)

    counts = level_counts(filter_lines(raw_lines))
    metric_cols = st.columns(3)
    metric_cols[0].metric("Certificaatmeldingen", counts["alert"])
    metric_cols[1].metric("Facturen & betalingen", counts["finance"])
    metric_cols[2].metric("Fouten", counts["error"])

    col1, col2, col3 = st.columns([1, 1, 3])
    with col1:
        if st.button("Vernieuwen", key="activity_refresh", use_container_width=True):
            _read_activity_log_tail.clear()
            st.rerun()
    with col2:
        auto = st.checkbox("Automatisch", value=True, key="activity_auto_refresh")
    with col3:
        levels = st.multiselect(
            "Soorten", LEVELS, default=LEVELS, format_func=_LEVEL_LABELS.get, key="activity_level_filter"
        )
    query = st.text_input("Zoeken in log", key="activity_query")

    shown = filter_lines(raw_lines, levels, query)
    for line in shown:
        _render_line(line)

    st.caption(f"{len(shown)} van de laatste {len(raw_lines)} regels getoond.")
    if auto:
        time.sleep(ACTIVITY_AUTO_REFRESH_SEC)
        st.rerun()
