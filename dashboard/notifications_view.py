"""Notifications view: inbox and certificate status."""
from datetime import date

import streamlit as st

from core.certificates import CertificateStatus
from utils.formatting import format_dutch_date

from .data import get_certificate_service, get_notification_service


_STATUS_COLORS = {
    CertificateStatus.VALID: "#3fb950",
    CertificateStatus.EXPIRING_SOON: "#fd7e14",
    CertificateStatus.EXPIRED: "#dc3545",
}


def _render_inbox(guard_id: str) -> None:
    service = get_notification_service()
    unread_only = st.checkbox("Alleen ongelezen", key="inbox_unread_only")
    notifications = service.get_notifications(guard_id, unread_only=unread_only)

    col1, col2 = st.columns([3, 1])
    col1.caption(f"{service.unread_count(guard_id)} ongelezen")
    with col2:
        if st.button("Alles gelezen", key="inbox_mark_all", use_container_width=True):
            service.mark_all_as_read(guard_id)
            st.rerun()

    if not notifications:
        st.info("Geen meldingen.")
        return

    for notification in notifications:
        marker = "🔴 " if notification.urgent else ("" if notification.read else "🔵 ")
        with st.expander(f"{marker}{notification.title} · {notification.time_ago()}"):
            st.write(notification.body)
            st.caption(notification.category.dutch_label)
            b1, b2 = st.columns(2)
            if not notification.read and b1.button("Gelezen", key=f"read_{notification.id}"):
                service.mark_as_read(notification.id)
                st.rerun()
            if b2.button("Verwijderen", key=f"delete_{notification.id}"):
                service.delete(notification.id)
                st.rerun()


def _render_certificates(guard_id: str) -> None:
    service = get_certificate_service()
    today = date.today()
    certificates = service.get_user_certificates(guard_id)
    if not certificates:
        st.info("Geen certificaten geregistreerd.")
        return

    for cert in certificates:
        status = cert.current_status(today)
        color = _STATUS_COLORS.get(status, "#6c757d")
        st.markdown(
            f'<div class="sf-alert-card" style="border-left-color:{color};">'
            f'<b>{cert.type.code}</b> {cert.number} · {status.dutch_label} · '
            f'verloopt {format_dutch_date(cert.expiration_date)}</div>',
            unsafe_allow_html=True,
        )
        if status in (CertificateStatus.EXPIRING_SOON, CertificateStatus.EXPIRED):
            with st.expander("Verlengingscursussen"):
                for course in service.get_renewal_courses(cert.type, today):
                    st.write(f"**{course.name}** · {course.provider} · {course.formatted_price} · start {course.formatted_start_date}")


def render_notifications_view(guard_id: str) -> None:
    st.title("Meldingen")
    try:
        tab_inbox, tab_certs = st.tabs(["Inbox", "Certificaten"])
        with tab_inbox:
            _render_inbox(guard_id)
        with tab_certs:
            _render_certificates(guard_id)
    except FileNotFoundError as e:
        st.info(str(e))
