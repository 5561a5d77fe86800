"""
Performance monitoring utilities for the Bolão scoring service
"""

import time

from flask import current_app, has_app_context

from bolao.utils.logging_config import get_logger

logger = get_logger(__name__)


class PerformanceMonitor:
    """Context manager for monitoring performance of code blocks

    Passes slower than ``log_threshold`` seconds are logged at WARNING. The
    threshold defaults to the SLOW_SCORING_THRESHOLD setting.
    """

    def __init__(self, operation_name, log_threshold=None):
        self.operation_name = operation_name
        self.log_threshold = log_threshold
        self.start_time = None
        self.end_time = None

    @property
    def duration(self):
        if self.start_time is None:
            return 0.0
        end_time = self.end_time if self.end_time is not None else time.time()
        return end_time - self.start_time

    @property
    def duration_ms(self):
        return int(self.duration * 1000)

    def __enter__(self):
        if self.log_threshold is None:
            self.log_threshold = (
                current_app.config.get("SLOW_SCORING_THRESHOLD", 2.0)
                if has_app_context()
                else 2.0
            )
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        duration = self.duration

        if exc_type:
            logger.error(
                f"Operation '{self.operation_name}' failed after {duration:.3f}s: {exc_val}"
            )
        elif duration > self.log_threshold:
            logger.warning(
                f"Slow operation '{self.operation_name}' took {duration:.3f}s "
                f"(threshold: {self.log_threshold}s)"
            )
        else:
            logger.debug(
                f"Operation '{self.operation_name}' completed in {duration:.3f}s"
            )
