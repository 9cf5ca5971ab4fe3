"""Dashboard constants and configuration."""
import os
from pathlib import Path

# Storage (must match pipeline/constants.py DB_PATH)
DB_PATH = Path(os.getenv("SECURYFLEX_DB_PATH", str(Path("local_data") / "securyflex.db")))

# Guard shown when nobody has been picked in the sidebar yet
DEFAULT_GUARD_ID = os.getenv("SECURYFLEX_GUARD_ID", "guard-1")

# Pagination
PAGE_SIZE = 25

# Activity log (must match pipeline/constants.py ACTIVITY_LOG_PATH)
ACTIVITY_LOG_PATH = Path("local_data") / "activity.log"
ACTIVITY_LOG_TAIL_LINES = 500
ACTIVITY_AUTO_REFRESH_SEC = 5
