"""
SecuryFlex background worker.

Collects new security jobs from the configured sources and runs the daily
certificate expiry check. Jobs, invoices and activity are viewed with
`streamlit run dashboard.py`.
"""

import argparse
from datetime import date

from pipeline.runner import main as run_loop


def _check_certificates_now():
    from config import _get_app_settings
    from core.services import CertificateAlertService, GuardNotificationService
    from pipeline.constants import DB_PATH
    from utils.storage import setup_database

    settings = _get_app_settings()
    db = setup_database(DB_PATH)
    alerts = CertificateAlertService(db, GuardNotificationService(db, settings=settings), settings=settings)
    sent = alerts.run_daily_check(date.today())
    print(f"Certificate check complete: {sent} alert(s) sent.")
    return sent


def main():
    parser = argparse.ArgumentParser(
        description="Collect security jobs and send certificate expiry alerts."
    )
    parser.add_argument(
        '--once',
        action='store_true',
        help="Run a single processing cycle and exit"
    )
    parser.add_argument(
        '--check-certificates',
        action='store_true',
        help="Only run the certificate expiry check and exit"
    )
    args = parser.parse_args()

    if args.check_certificates:
        _check_certificates_now()
        return
    run_loop(once=args.once)


if __name__ == "__main__":
    main()
