# utils.py
# Utility helpers for the podcast frontend server.

import logging
import time
from typing import Optional, Tuple, List

logger = logging.getLogger(__name__)


# --- Performance Monitoring Utility ---
class PerformanceMonitor:
    """
    A simple helper class for recording and reporting elapsed time for the
    stages of a request (normalization, phonemization, feed fetching).
    """

    def __init__(
        self, enabled: bool = True, logger_instance: Optional[logging.Logger] = None
    ):
        self.enabled: bool = enabled
        self.logger = logger_instance if logger_instance is not None else logger
        self.start_time: float = 0.0
        self.events: List[Tuple[str, float]] = []
        if self.enabled:
            self.start_time = time.monotonic()
            self.events.append(("Monitoring Started", self.start_time))

    def record(self, event_name: str):
        if not self.enabled:
            return
        self.events.append((event_name, time.monotonic()))

    def report(self, log_level: int = logging.DEBUG) -> str:
        if not self.enabled or not self.events:
            return "Performance monitoring was disabled or no events recorded."

        report_lines = ["Performance Report:"]
        last_event_time = self.events[0][1]

        for (prev_event_name, _), (event_name, timestamp) in zip(self.events, self.events[1:]):
            report_lines.append(
                f"  - '{event_name}' (after '{prev_event_name}') "
                f"{timestamp - last_event_time:.4f}s, elapsed {timestamp - self.start_time:.4f}s"
            )
            last_event_time = timestamp

        total_duration = self.events[-1][1] - self.start_time
        report_lines.append(f"Total: {total_duration:.4f}s over {len(self.events) - 1} stages")
        full_report_str = "\n".join(report_lines)

        if self.logger:
            self.logger.log(log_level, full_report_str)
        return full_report_str
