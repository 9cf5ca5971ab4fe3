"""Settings view: securyflex_settings.yaml and .env."""
from pathlib import Path

import streamlit as st
import yaml
from dotenv import dotenv_values

from config import CONFIG_FILE, DEFAULT_SETTINGS, _get_app_settings, _save_app_settings

ENV_PATH = Path(".env")

ENV_KEYS = [
    "SECURYFLEX_DB_PATH",
    "SECURYFLEX_GUARD_ID",
    "JOB_SOURCES",
    "JOB_FEED_URL",
    "PAYMENT_API_URL",
    "PAYMENT_API_KEY",
    "CHECK_INTERVAL_SEC",
    "LAUNCH_DASHBOARD",
]

_SECRET_ENV_KEYS = {"PAYMENT_API_KEY"}


def _split_lines(text: str) -> list[str]:
    if not text:
        return []
    return [ln.strip() for ln in str(text).splitlines() if ln.strip()]


def _read_env_map(env_path: Path) -> dict[str, str]:
    """Read .env file and return key-value dict."""
    if not env_path.exists():
        return {}
    return {str(k): "" if v is None else str(v) for k, v in (dotenv_values(env_path) or {}).items() if k}


def _format_env_line(key: str, value: str) -> str:
    s = "" if value is None else str(value)
    if any(ch in s for ch in [" ", "#", "=", "\n", '"']):
        s = s.replace("\\", "\\\\").replace('"', '\\"')
        return f'{key}="{s}"'
    return f"{key}={s}"


def _write_env_file(env_path: Path, merged: dict[str, str]) -> None:
    """Known keys first in a stable order, then any extra keys."""
    lines = ["# Managed by the dashboard Settings page"]
    lines += [_format_env_line(k, merged[k]) for k in ENV_KEYS if k in merged]
    extras = sorted(k for k in merged if k not in ENV_KEYS)
    if extras:
        lines += ["", "# Extra keys"] + [_format_env_line(k, merged[k]) for k in extras]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _render_env_tab() -> None:
    st.subheader("Environment (.env)")
    existing = _read_env_map(ENV_PATH)
    with st.form("settings_env_form", clear_on_submit=False):
        values = {}
        for key in ENV_KEYS:
            values[key] = st.text_input(
                key,
                value=existing.get(key, ""),
                type="password" if key in _SECRET_ENV_KEYS else "default",
            )
        if st.form_submit_button("Opslaan"):
            merged = {**existing, **{k: v.strip() for k, v in values.items() if v.strip()}}
            _write_env_file(ENV_PATH, merged)
            st.success("`.env` opgeslagen. Herstart main.py om wijzigingen toe te passen.")


def _render_search_tab(settings: dict) -> None:
    search = settings["search"]
    with st.form("settings_search_form"):
        debounce_ms = st.number_input("Zoekvertraging (ms)", min_value=0, value=int(search["debounce_ms"]), step=50)
        cache_minutes = st.number_input("Cache (minuten)", min_value=0.0, value=float(search["cache_minutes"]), step=1.0)
        max_distance = st.number_input(
            "Standaard maximale afstand (km)", min_value=1.0, value=float(search["default_max_distance_km"]), step=1.0
        )
        job_sources = st.text_area("Jobbronnen (een per regel)", value="\n".join(search["job_sources"]))
        feed_url = st.text_input("Feed URL", value=search.get("job_feed_url", ""))
        if st.form_submit_button("Opslaan"):
            search.update({
                "debounce_ms": int(debounce_ms),
                "cache_minutes": float(cache_minutes),
                "default_max_distance_km": float(max_distance),
                "job_sources": _split_lines(job_sources) or ["static"],
                "job_feed_url": feed_url.strip(),
            })
            _save_app_settings(settings)
            st.success("Zoekinstellingen opgeslagen.")


def _render_notifications_tab(settings: dict) -> None:
    notifications = settings["notifications"]
    with st.form("settings_notifications_form"):
        quiet_start = st.text_input("Stille uren vanaf (HH:MM)", value=notifications["quiet_hours_start"])
        quiet_end = st.text_input("Stille uren tot (HH:MM)", value=notifications["quiet_hours_end"])
        alert_distance = st.number_input(
            "Max. afstand jobmeldingen (km)",
            min_value=1.0,
            max_value=200.0,
            value=min(max(float(notifications["max_job_alert_distance_km"]), 1.0), 200.0),
            step=1.0,
        )
        muted = st.text_area("Gedempte bedrijven (een per regel)", value="\n".join(settings["muted_companies"]))
        preferred = st.text_area("Voorkeur jobtypes (een per regel)", value="\n".join(settings["preferred_job_types"]))
        if st.form_submit_button("Opslaan"):
            notifications.update({
                "quiet_hours_start": quiet_start.strip(),
                "quiet_hours_end": quiet_end.strip(),
                "max_job_alert_distance_km": float(alert_distance),
            })
            settings["muted_companies"] = _split_lines(muted)
            settings["preferred_job_types"] = _split_lines(preferred)
            _save_app_settings(settings)
            st.success("Meldingsinstellingen opgeslagen.")


def _render_company_tab(settings: dict) -> None:
    btw = settings["btw"]
    with st.form("settings_company_form"):
        name = st.text_input("Bedrijfsnaam", value=btw["company_name"])
        address = st.text_input("Adres", value=btw["company_address"])
        kvk = st.text_input("KvK-nummer", value=btw["company_kvk_number"])
        btw_number = st.text_input("BTW-nummer", value=btw["company_btw_number"])
        if st.form_submit_button("Opslaan"):
            btw.update({
                "company_name": name.strip(),
                "company_address": address.strip(),
                "company_kvk_number": kvk.strip(),
                "company_btw_number": btw_number.strip(),
            })
            _save_app_settings(settings)
            st.success("Bedrijfsgegevens opgeslagen.")


def _render_import_export_tab(settings: dict) -> None:
    st.download_button(
        "Download settings",
        data=yaml.safe_dump(settings, sort_keys=False, allow_unicode=True),
        file_name=CONFIG_FILE,
        mime="text/yaml",
    )
    uploaded = st.file_uploader("Importeer settings", type=["yaml", "yml"])
    if uploaded is not None and st.button("Importeren"):
        try:
            imported = yaml.safe_load(uploaded.getvalue().decode("utf-8"))
        except yaml.YAMLError as e:
            st.error(f"Ongeldige YAML: {e}")
            return
        if not isinstance(imported, dict):
            st.error("Het bestand bevat geen settings.")
            return
        _save_app_settings(imported)
        st.success("Settings geïmporteerd.")
        st.rerun()


def render_settings_view() -> None:
    """Render the Settings view (tabs: .env, Search, Notifications, Company, Import/Export, Reset)."""
    st.title("Settings")
    st.caption(f"Edits here update `{ENV_PATH}` and `{CONFIG_FILE}`.")

    settings = _get_app_settings()
    tabs = st.tabs(["App config (.env)", "Zoeken", "Meldingen", "Bedrijf", "Import / Export", "Reset"])
    with tabs[0]:
        _render_env_tab()
    with tabs[1]:
        _render_search_tab(settings)
    with tabs[2]:
        _render_notifications_tab(settings)
    with tabs[3]:
        _render_company_tab(settings)
    with tabs[4]:
        _render_import_export_tab(settings)
    with tabs[5]:
        st.warning("Zet alle instellingen terug naar de standaardwaarden.")
        if st.button("Reset naar standaard", key="settings_reset"):
            _save_app_settings(yaml.safe_load(yaml.safe_dump(DEFAULT_SETTINGS)))
            st.success("Instellingen teruggezet.")
            st.rerun()
