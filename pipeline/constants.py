"""Environment variables and constants used by the runner."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Storage
DB_PATH = Path(os.getenv("SECURYFLEX_DB_PATH", str(Path("local_data") / "securyflex.db")))

# Job sources
JOB_FEED_URL = os.getenv("JOB_FEED_URL", "")
JOB_SOURCES = [s.strip() for s in os.getenv("JOB_SOURCES", "").split(",") if s.strip()]

# Payment provider
PAYMENT_API_URL = os.getenv("PAYMENT_API_URL", "")
PAYMENT_API_KEY = os.getenv("PAYMENT_API_KEY", "")

# Loop timing
CHECK_INTERVAL_SEC = int(os.getenv("CHECK_INTERVAL_SEC", "3600"))
MAX_SLEEP_INTERVAL_SEC = 86400
SLEEP_CHUNK_SEC = 5

# Dashboard
LAUNCH_DASHBOARD = os.getenv("LAUNCH_DASHBOARD", "true").lower() == "true"
DASHBOARD_URL = "http://localhost:8501"
DASHBOARD_LAUNCH_DELAY_SEC = 2.5

# Activity log (must match dashboard/constants.py)
ACTIVITY_LOG_PATH = Path("local_data") / "activity.log"
ACTIVITY_LOG_MAX_BYTES = int(os.getenv("ACTIVITY_LOG_MAX_BYTES", str(5 * 1024 * 1024)))
