"""Data loading and store updates for the dashboard views."""
import pandas as pd
import streamlit as st

from core.factory import create_repository
from core.services import DutchInvoiceService, GuardNotificationService, PaymentService
from core.services.certificate_alerts import CertificateAlertService
from local_storage import SecuryFlexDatabase

from .constants import DB_PATH


def get_database() -> SecuryFlexDatabase | None:
    if not DB_PATH.exists():
        return None
    return SecuryFlexDatabase(str(DB_PATH))


def _require_database() -> SecuryFlexDatabase:
    db = get_database()
    if db is None:
        raise FileNotFoundError("No data found. Please run the main application first.")
    return db


@st.cache_data(ttl=60)  # 1 minute so new jobs from main.py show up soon after refresh
def load_job_data():
    """Load jobs as a DataFrame. Returns (df, error)."""
    try:
        db = get_database()
        if db is None:
            return None, "No job data found. Please run the main application first."

        records = db.jobs.get_all_records()
        if not records:
            return None, "No jobs found in the database."
        return pd.DataFrame(records), None
    except Exception as e:
        return None, f"Error loading data: {str(e)}"


def get_job_repository():
    return create_repository(_require_database())


@st.cache_data(ttl=30)
def load_applied_job_ids(guard_id: str) -> list[str]:
    try:
        return get_job_repository().get_applied_jobs(guard_id)
    except FileNotFoundError:
        return []


def apply_to_job(job_id: str, guard_id: str) -> bool:
    applied = get_job_repository().apply_to_job(job_id, guard_id)
    load_applied_job_ids.clear()
    return applied


def withdraw_application(job_id: str, guard_id: str) -> bool:
    removed = get_job_repository().remove_application(job_id, guard_id)
    load_applied_job_ids.clear()
    return removed


@st.cache_data(ttl=60)
def load_invoice_data(guard_id: str):
    """Invoices for one guard as a DataFrame. Returns (df, error)."""
    try:
        invoices = DutchInvoiceService(_require_database(), save_files=False).list_invoices(guard_id)
    except Exception as e:
        return None, f"Error loading invoices: {str(e)}"
    if not invoices:
        return None, None
    return pd.DataFrame([{
        "Factuurnummer": inv.invoice_number,
        "Type": inv.type.dutch_label,
        "Datum": inv.issue_date,
        "Vervaldatum": inv.due_date,
        "Subtotaal": inv.subtotal,
        "BTW": inv.btw_amount,
        "Totaal": inv.total,
        "Status": inv.payment_status.dutch_label,
    } for inv in invoices]), None


@st.cache_data(ttl=60)
def load_payment_data(guard_id: str):
    """Payments for one guard as a DataFrame. Returns (df, error)."""
    try:
        payments = PaymentService(_require_database()).list_payments(guard_id)
    except Exception as e:
        return None, f"Error loading payments: {str(e)}"
    if not payments:
        return None, None
    return pd.DataFrame([{
        "Betaling": p.payment_id,
        "Type": p.payment_type.dutch_label,
        "Bedrag": p.amount,
        "Status": p.status.dutch_label,
        "Omschrijving": p.description,
        "Aangemaakt": p.created_at,
    } for p in payments]), None


def get_notification_service() -> GuardNotificationService:
    return GuardNotificationService(_require_database())


def get_certificate_service() -> CertificateAlertService:
    return CertificateAlertService(_require_database())
