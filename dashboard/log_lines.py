"""Parsing and classification of activity log lines written by the runner."""
import re
from datetime import datetime
from typing import NamedTuple

LEVELS = ["error", "warning", "alert", "finance", "cycle", "info"]

_TIMESTAMP_RE = re.compile(r"^\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\] ?(.*)$")

_ERROR_MARKERS = ("Error", "error:", "Traceback", "failed", "Failed", "Exception", "Could not")
_WARNING_MARKERS = ("Warning", "WARNING", "Skipping", "unavailable", "Ignoring")
_CYCLE_MARKERS = ("Starting new processing cycle", "--- Collecting jobs", "Cycle summary",
                  "Processing cycle completed", "Sleeping for", "Waking at midnight")
# Certificate expiry alerts and the guard notifications they trigger
_ALERT_MARKERS = ("Certificate check", "Certificate ", "Notification [", "alert(s) sent")
_FINANCE_MARKERS = ("Invoice ", "Payment ", "SEPA", "iDEAL", "Refund")


class LogLine(NamedTuple):
    timestamp: datetime | None
    text: str
    level: str


def classify_line(text: str) -> str:
    stripped = text.strip()
    if any(m in text for m in _ERROR_MARKERS):
        return "error"
    if any(m in text for m in _WARNING_MARKERS):
        return "warning"
    if any(m in text for m in _ALERT_MARKERS):
        return "alert"
    if any(m in text for m in _FINANCE_MARKERS):
        return "finance"
    if len(stripped) > 2 and set(stripped) <= {"=", "-"}:
        return "cycle"
    if any(m in text for m in _CYCLE_MARKERS):
        return "cycle"
    return "info"


def parse_line(raw: str) -> LogLine | None:
    """Split off the "[YYYY-MM-DD HH:MM:SS]" prefix and classify. Blank lines give None."""
    line = raw.rstrip("\r\n")
    timestamp = None
    match = _TIMESTAMP_RE.match(line)
    if match:
        timestamp = datetime.strptime(match.group(1), "%Y-%m-%d %H:%M:%S")
        line = match.group(2)
    if not line.strip():
        return None
    return LogLine(timestamp, line, classify_line(line))


def filter_lines(raw_lines: list[str], levels: list[str] | None = None, query: str = "") -> list[LogLine]:
    """Newest first; keep only the given levels and lines containing query (case-insensitive)."""
    needle = query.strip().lower()
    result = []
    for raw in reversed(raw_lines):
        parsed = parse_line(raw)
        if parsed is None:
            continue
        if levels and parsed.level not in levels:
            continue
        if needle and needle not in parsed.text.lower():
            continue
        result.append(parsed)
    return result


def level_counts(lines: list[LogLine]) -> dict[str, int]:
    counts = {level: 0 for level in LEVELS}
    for line in lines:
        counts[line.level] += 1
    return counts
