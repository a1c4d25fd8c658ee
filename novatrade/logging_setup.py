"""Root logger setup plus an in-memory ring of recent records for the admin API."""

import logging
import threading
from collections import deque

FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"


class RecentRecordsHandler(logging.Handler):
    """Keeps the last `max_records` formatted log lines."""

    def __init__(self, max_records=500):
        super().__init__()
        self._records = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def emit(self, record):
        msg = self.format(record)
        with self._lock:
            self._records.append(msg)

    def get_records(self, count=100):
        with self._lock:
            items = list(self._records)
        return items[-count:]


recent_records = RecentRecordsHandler()
_configured = False


def setup_logging(level="INFO"):
    """Configure the root logger once with console and recent-records handlers."""
    global _configured

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if _configured:
        return recent_records

    formatter = logging.Formatter(FORMAT, datefmt=DATEFMT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    recent_records.setFormatter(formatter)
    root.addHandler(recent_records)

    _configured = True
    return recent_records
