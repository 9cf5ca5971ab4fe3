"""Activity log capture for the runner and the one-time dashboard launch."""

import os
import subprocess
import sys
import time
import webbrowser
from datetime import datetime

from .constants import (
    ACTIVITY_LOG_MAX_BYTES,
    ACTIVITY_LOG_PATH,
    DASHBOARD_LAUNCH_DELAY_SEC,
    DASHBOARD_URL,
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class _TimestampedLog:
    """
    Stream wrapper installed as sys.stdout/sys.stderr by the runner.
    The console gets the output unchanged; every line copied to the activity
    log starts with "[YYYY-MM-DD HH:MM:SS] " so the dashboard can show when
    a cycle ran or an alert went out.
    """

    def __init__(self, stream, log_file, clock=datetime.now):
        self._stream = stream
        self._file = log_file
        self._clock = clock
        self._at_line_start = True

    def write(self, data):
        self._stream.write(data)
        self._stream.flush()
        if self._file is None or not data:
            return
        try:
            self._file.write(self._stamp(data))
            self._file.flush()
        except OSError as e:
            self._file = None
            self._stream.write(f"Activity log disabled: {e}\n")

    def _stamp(self, data):
        prefix = f"[{self._clock().strftime(TIMESTAMP_FORMAT)}] "
        out = []
        for piece in data.splitlines(keepends=True):
            if self._at_line_start:
                out.append(prefix)
            out.append(piece)
            self._at_line_start = piece.endswith("\n")
        return "".join(out)

    def flush(self):
        self._stream.flush()
        if self._file is not None:
            try:
                self._file.flush()
            except OSError:
                self._file = None

    def isatty(self):
        return getattr(self._stream, "isatty", lambda: False)()


def _rotate_if_large(log_path, max_bytes):
    """Move an oversized activity log to <name>.1 so the dashboard tail stays cheap to read."""
    try:
        if log_path.stat().st_size <= max_bytes:
            return False
    except FileNotFoundError:
        return False
    os.replace(log_path, log_path.with_name(log_path.name + ".1"))
    return True


def _setup_log_capture(log_path=ACTIVITY_LOG_PATH, max_bytes=ACTIVITY_LOG_MAX_BYTES):
    """Copy stdout and stderr into the activity log. Returns False if the log cannot be opened."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        _rotate_if_large(log_path, max_bytes)
        log_file = open(log_path, "a", encoding="utf-8")
    except OSError as e:
        print(f"Could not open activity log {log_path}: {e}")
        return False
    sys.stdout = _TimestampedLog(sys.__stdout__, log_file)
    sys.stderr = _TimestampedLog(sys.__stderr__, log_file)
    return True


def _dashboard_content(repository, store) -> dict:
    """Count what the dashboard would show: open jobs and sent certificate alerts."""
    content = {"jobs": 0, "alerts": 0}
    try:
        content["jobs"] = sum(1 for row in repository.get_all_records() if row.get("Job ID"))
    except Exception as e:
        print(f"Could not read jobs for dashboard launch: {e}")
    if store is not None:
        try:
            content["alerts"] = store.table("certificate_alerts").count()
        except Exception as e:
            print(f"Could not read certificate alerts for dashboard launch: {e}")
    return content


def _launch_dashboard_once(repository, store, launched_flag: dict) -> None:
    """Start Streamlit the first time there are jobs or certificate alerts to look at."""
    if launched_flag.get("launched"):
        return
    content = _dashboard_content(repository, store)
    if not content["jobs"] and not content["alerts"]:
        return
    launched_flag["launched"] = True
    project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    dashboard_script = os.path.join(project_dir, "dashboard.py")
    if not os.path.isfile(dashboard_script):
        print(f"Dashboard script not found: {dashboard_script}")
        return
    print(f"\nOpening dashboard ({content['jobs']} jobs, {content['alerts']} certificate alerts)...")
    try:
        subprocess.Popen(
            [sys.executable, "-m", "streamlit", "run", dashboard_script, "--server.headless", "true"],
            cwd=project_dir,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        time.sleep(DASHBOARD_LAUNCH_DELAY_SEC)
        webbrowser.open(DASHBOARD_URL)
    except OSError as e:
        print(f"Could not auto-open dashboard: {e}. Run manually: streamlit run dashboard.py\n")
