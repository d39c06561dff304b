"""In-memory run monitor with bounded buffers for recent runs and log lines."""

import logging
import threading
from collections import deque
from datetime import datetime, timezone

from config import MONITOR_BUFFER_SIZE
from models import VendorResult


class RingBufferHandler(logging.Handler):
    """Keeps the last ``capacity`` formatted log records."""

    def __init__(self, capacity: int = MONITOR_BUFFER_SIZE, level=logging.INFO):
        super().__init__(level)
        self.records: deque[dict] = deque(maxlen=capacity)
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord):
        try:
            self.records.append({
                "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": self.format(record),
            })
        except Exception:
            self.handleError(record)


class RunMonitor:
    """Recent scrape runs and log lines, newest last.

    Constructed once per process and passed to whatever needs it.
    """

    def __init__(self, capacity: int = MONITOR_BUFFER_SIZE):
        self.runs: deque[dict] = deque(maxlen=capacity)
        self.alerts: deque[dict] = deque(maxlen=capacity)
        self.log_handler = RingBufferHandler(capacity)
        self._lock = threading.Lock()

    def attach(self, *logger_names: str):
        """Start capturing records from the named loggers (root if none)."""
        for name in logger_names or ("",):
            logging.getLogger(name).addHandler(self.log_handler)

    def detach(self, *logger_names: str):
        for name in logger_names or ("",):
            logging.getLogger(name).removeHandler(self.log_handler)

    def record_vendor(self, vendor_slug: str, result: VendorResult):
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "vendor": result.vendor,
            "vendor_slug": vendor_slug,
            "status": result.status,
            "found": result.found,
            "updated": result.updated,
            "errors": list(result.errors),
            "duration_ms": result.duration_ms,
        }
        with self._lock:
            self.runs.append(entry)
            if result.status != "success":
                self.alerts.append({
                    "timestamp": entry["timestamp"],
                    "severity": "critical" if result.status == "failed" else "warning",
                    "vendor": result.vendor,
                    "message": "; ".join(result.errors),
                })

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "runs": list(self.runs),
                "alerts": list(self.alerts),
                "logs": list(self.log_handler.records),
            }
