"""Setup, shutdown handlers, processing cycle and main loop."""

import os
import time
from datetime import date, datetime, timedelta

from config import CONFIG_FILE, _get_app_settings, _save_app_settings
from core.factory import create_repository
from core.services.certificate_alerts import CertificateAlertService
from core.services.notifications import GuardNotificationService
from utils.storage import setup_database

from .collection import build_sources, collect_new_jobs
from .constants import (
    CHECK_INTERVAL_SEC,
    DB_PATH,
    LAUNCH_DASHBOARD,
    MAX_SLEEP_INTERVAL_SEC,
    SLEEP_CHUNK_SEC,
)
from .logging_dashboard import _launch_dashboard_once, _setup_log_capture

LAST_CERTIFICATE_CHECK_KEY = "runner_last_certificate_check"
MAX_CATCH_UP_DAYS = 7


def setup_signal_handlers():
    """Set up signal handlers for graceful shutdown. Returns shutdown_requested dict."""
    import signal

    shutdown_requested = {'flag': False}

    def signal_handler(signum, frame):
        print("\n\nShutdown signal received. Finishing current operation and exiting...")
        shutdown_requested['flag'] = True

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    if hasattr(signal, 'SIGBREAK'):
        signal.signal(signal.SIGBREAK, signal_handler)

    return shutdown_requested


def initialize_settings():
    """Ensure securyflex_settings.yaml exists and return the merged settings."""
    settings = _get_app_settings()
    if not os.path.exists(CONFIG_FILE):
        print(f"Creating default {CONFIG_FILE}...")
        _save_app_settings(settings)
    return settings


def initialize_storage(db_path=DB_PATH):
    """Open the local SQLite store and ensure the file directories exist."""
    from local_storage import ensure_local_directories

    ensure_local_directories()
    db = setup_database(db_path)
    print("To view jobs, invoices and activity: streamlit run dashboard.py")
    return db


def _days_to_check(last_checked, today):
    """Calendar days since the last recorded check, oldest first (at most MAX_CATCH_UP_DAYS)."""
    try:
        last = date.fromisoformat(last_checked) if last_checked else None
    except ValueError:
        print(f"Ignoring invalid last certificate check date: {last_checked!r}")
        last = None
    if last == today:
        return []
    if last is None or last > today:
        return [today]
    first = max(last + timedelta(days=1), today - timedelta(days=MAX_CATCH_UP_DAYS - 1))
    return [first + timedelta(days=n) for n in range((today - first).days + 1)]


def run_certificate_check_if_due(store, alert_service: CertificateAlertService, today: date | None = None) -> int:
    """Run the certificate check once per calendar day, catching up on days that were missed.

    Returns the number of alerts sent.
    """
    today = today or date.today()
    sent = 0
    for day in _days_to_check(store.get_value(LAST_CERTIFICATE_CHECK_KEY), today):
        sent += alert_service.run_daily_check(day)
        store.set_value(LAST_CERTIFICATE_CHECK_KEY, day.isoformat())
    return sent


def _seconds_until_midnight(now=None):
    now = now or datetime.now()
    midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time())
    return max(int((midnight - now).total_seconds()) + 1, 1)


def _sleep_interruptible(seconds, shutdown_requested):
    slept = 0
    while slept < seconds and not shutdown_requested['flag']:
        time.sleep(min(SLEEP_CHUNK_SEC, seconds - slept))
        slept += SLEEP_CHUNK_SEC


def _handle_sleep_logic(progress_made_in_cycle, current_sleep_interval, base_sleep_interval, shutdown_requested):
    """Sleep until the next cycle. Doubles the interval (max 24h) after a cycle without progress."""
    if progress_made_in_cycle:
        print(f"Sleeping for {current_sleep_interval / 60:.1f} minutes until next check...")
    else:
        print(f"No new jobs or alerts. Sleeping for {current_sleep_interval / 60:.1f} minutes "
              f"(exponential backoff: {current_sleep_interval / 3600:.1f}h)...")
    print("(Press Ctrl+C to interrupt and exit)")
    sleep_seconds = min(current_sleep_interval, _seconds_until_midnight())
    if sleep_seconds < current_sleep_interval:
        print(f"Waking at midnight for the daily certificate check ({sleep_seconds / 60:.1f} minutes)")
    _sleep_interruptible(sleep_seconds, shutdown_requested)

    if shutdown_requested['flag']:
        print("\nShutdown requested during sleep, exiting...")
        return current_sleep_interval

    if progress_made_in_cycle:
        return base_sleep_interval

    new_interval = min(current_sleep_interval * 2, MAX_SLEEP_INTERVAL_SEC)
    if new_interval != current_sleep_interval:
        print(f"Exponential backoff: Next sleep interval will be {new_interval / 3600:.1f}h")
    return new_interval


def _run_processing_cycle(store, repository, sources, alert_service, shutdown_requested):
    """Run a single processing cycle. Returns True if any progress was made."""
    new_jobs = collect_new_jobs(repository, sources, shutdown_requested)

    alerts_sent = 0
    if not shutdown_requested['flag']:
        alerts_sent = run_certificate_check_if_due(store, alert_service)

    print("\nCycle summary:")
    print(f" - New jobs collected: {new_jobs}")
    print(f" - Certificate alerts sent: {alerts_sent}")
    print(f"\nProcessing cycle completed at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    return new_jobs > 0 or alerts_sent > 0


def main(once: bool = False):
    """Main loop that runs continuously (or a single cycle when once=True)."""
    _setup_log_capture()
    shutdown_requested = setup_signal_handlers()
    settings = initialize_settings()
    store = initialize_storage()

    repository = create_repository(store, settings["search"].get("cache_minutes"))
    sources = build_sources(settings)
    notification_service = GuardNotificationService(store, settings=settings)
    alert_service = CertificateAlertService(store, notification_service, settings=settings)

    base_sleep_interval = CHECK_INTERVAL_SEC
    current_sleep_interval = base_sleep_interval
    dashboard_launched = {"launched": not LAUNCH_DASHBOARD}

    while not shutdown_requested['flag']:
        try:
            print(f"\n{'=' * 60}")
            print(f"Starting new processing cycle at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            print(f"{'=' * 60}\n")

            progress_made_in_cycle = _run_processing_cycle(
                store, repository, sources, alert_service, shutdown_requested
            )
            _launch_dashboard_once(repository, store, dashboard_launched)

            if once or shutdown_requested['flag']:
                break

            current_sleep_interval = _handle_sleep_logic(
                progress_made_in_cycle, current_sleep_interval, base_sleep_interval, shutdown_requested
            )

        except KeyboardInterrupt:
            print("\n\nKeyboard interrupt received. Shutting down gracefully...")
            shutdown_requested['flag'] = True
            break
        except Exception as e:
            if shutdown_requested['flag']:
                break
            print(f"\n\nAn error occurred: {e}")
            import traceback
            traceback.print_exc()
            if once:
                break
            _sleep_interruptible(min(current_sleep_interval, 60), shutdown_requested)

    print("\nShutdown complete. Goodbye!")
