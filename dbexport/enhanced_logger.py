#!/usr/bin/env python3
"""
Structured logging for dbexport
Prefixes every message with the current export context and redacts credentials
"""

import logging
import os
import re
import threading
import time
from dataclasses import dataclass
from typing import Optional

import psutil


def redact_sensitive_data(text):
    """Redact sensitive information from log messages"""
    if not isinstance(text, str):
        text = str(text)

    patterns = [
        (r'(password|pwd|pass|secret|token|api_key|access_key)\s*[:=]\s*[^\s,]+', r'\1=***REDACTED***'),
        (r'://([^:/@]+):([^@]+)@', r'://\1:***REDACTED***@'),
    ]

    redacted_text = text
    for pattern, replacement in patterns:
        redacted_text = re.sub(pattern, replacement, redacted_text, flags=re.IGNORECASE)

    return redacted_text


class SensitiveDataFilter(logging.Filter):
    """Logging filter to redact sensitive information"""
    def filter(self, record):
        if record.msg:
            record.msg = redact_sensitive_data(record.msg)
        if record.args:
            record.args = tuple(
                redact_sensitive_data(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True


@dataclass
class ExportContext:
    """Export-level context for structured logging"""
    name: str
    start_time: float
    total_queries: int = 0
    completed_queries: int = 0
    failed_queries: int = 0
    processed_rows: int = 0


class EnhancedLogger:
    """
    Structured logger with export progress and process memory in every line
    """

    def __init__(self, name: str = "dbexport"):
        self.logger = logging.getLogger(name)
        self._setup_logger()

        self._local = threading.local()
        self._lock = threading.Lock()

    def _setup_logger(self):
        """Configure structured logging format"""
        if self.logger.handlers:
            return

        formatter = logging.Formatter(
            '[%(asctime)s] [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        redactor = SensitiveDataFilter()

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.addFilter(redactor)
        self.logger.addHandler(console_handler)

        log_file_path = os.environ.get('DBEXPORT_LOG_FILE')
        if log_file_path:
            try:
                log_dir = os.path.dirname(log_file_path)
                if log_dir:
                    os.makedirs(log_dir, exist_ok=True)
                file_handler = logging.FileHandler(log_file_path, mode='a')
                file_handler.setFormatter(formatter)
                file_handler.addFilter(redactor)
                self.logger.addHandler(file_handler)
            except OSError as e:
                # If file logging fails, continue with console logging only
                self.logger.warning(f"Failed to setup file logging to {log_file_path}: {e}")

        level_name = os.environ.get('DBEXPORT_LOG_LEVEL', 'INFO').upper()
        self.logger.setLevel(getattr(logging, level_name, logging.INFO))
        self.logger.propagate = False

    def set_export_context(self, name: str, total_queries: int = 0) -> ExportContext:
        """Set export-level context for current thread"""
        context = ExportContext(name=name, start_time=time.time(), total_queries=total_queries)
        self._local.export_context = context
        return context

    def get_export_context(self) -> Optional[ExportContext]:
        """Get current export context"""
        return getattr(self._local, 'export_context', None)

    def clear_export_context(self):
        self._local.export_context = None

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable form"""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            return f"{seconds/60:.1f}m"
        else:
            return f"{seconds/3600:.1f}h"

    def _format_rows(self, count: int) -> str:
        """Format row count in human-readable form"""
        if count < 1000:
            return str(count)
        elif count < 1000000:
            return f"{count/1000:.1f}K"
        elif count < 1000000000:
            return f"{count/1000000:.1f}M"
        else:
            return f"{count/1000000000:.1f}B"

    def _get_memory_usage(self) -> str:
        """Get current memory usage"""
        try:
            memory_mb = psutil.Process().memory_info().rss / 1024 / 1024
            return f"{memory_mb:.1f}MB"
        except psutil.Error:
            return "Unknown"

    def _build_context_prefix(self) -> str:
        """Build context prefix for log messages"""
        parts = []

        ctx = self.get_export_context()
        if ctx:
            parts.append(f"EXPORT:{ctx.name}")
            if ctx.total_queries > 0:
                with self._lock:
                    parts.append(f"QUERIES:{ctx.completed_queries}/{ctx.total_queries}")
                    if ctx.processed_rows > 0:
                        parts.append(f"ROWS:{self._format_rows(ctx.processed_rows)}")

        parts.append(f"MEM:{self._get_memory_usage()}")

        return "[" + "] [".join(parts) + "]"

    def _log(self, level: int, message: str, **kwargs):
        if not self.logger.isEnabledFor(level):
            return
        prefix = self._build_context_prefix()
        self.logger.log(level, f"{prefix} {message}", **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with context"""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with context"""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with context"""
        self._log(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug message with context"""
        self._log(logging.DEBUG, message, **kwargs)

    # Query planning events
    def request_validated(self, source: str, partition=None, split_column: Optional[str] = None,
                          parallelism: Optional[int] = None):
        details = [f"source={source}"]
        if partition is not None:
            details.append(f"partition={partition}")
        if split_column:
            details.append(f"split={split_column}x{parallelism}")
        self.info(f"Export request validated: {', '.join(details)}")

    def probe_completed(self, column: str, min_value: int, max_value: int, duration: float):
        self.info(f"Probed {column} bounds [{min_value}, {max_value}] in {self._format_duration(duration)}")

    def queries_built(self, count: int, requested_parallelism: Optional[int] = None):
        if requested_parallelism and count < requested_parallelism:
            self.info(f"Built {count} queries (parallelism {requested_parallelism} "
                      f"reduced to fit the value range)")
        else:
            self.info(f"Built {count} queries")

    # Export-level events
    def export_started(self, name: str, total_queries: int, max_workers: int):
        self.set_export_context(name, total_queries)
        self.info(f"Started export of {total_queries} queries with {max_workers} workers")

    def query_completed(self, index: int, rows: int, duration: float):
        ctx = self.get_export_context()
        if ctx:
            with self._lock:
                ctx.completed_queries += 1
                ctx.processed_rows += rows
        self.info(f"Query {index} completed: {self._format_rows(rows)} rows in {self._format_duration(duration)}")

    def query_failed(self, index: int, error: str):
        ctx = self.get_export_context()
        if ctx:
            with self._lock:
                ctx.failed_queries += 1
        self.error(f"Query {index} failed: {error}")

    def export_completed(self, total_rows: int, duration: float):
        throughput = int(total_rows / duration) if duration > 0 else 0
        self.info(f"Export completed: {self._format_rows(total_rows)} rows "
                  f"in {self._format_duration(duration)} at {self._format_rows(throughput)}/sec")

    def export_failed(self, error: str):
        self.error(f"Export failed: {error}")


# Global logger instance
logger = EnhancedLogger("dbexport")
