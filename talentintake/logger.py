"""
Structured logging for the intake pipeline.

One process-wide logger writes to the console and to a dated file under
``logs/`` and keeps counters that summarize a batch run: provider calls,
lookup outcomes per enrichment back-end, and item outcomes.
"""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredLogger:
    """
    Pipeline logger. Keyword context is appended to each message as JSON.
    """

    def __init__(
        self,
        name: str = "talentintake",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Name of the underlying ``logging`` logger
            level: Threshold for the logger and its console output
            log_dir: Where the dated log file goes; ``logs/`` when omitted
            enable_file: Attach the file handler (always at DEBUG)
            enable_console: Attach a stderr handler
        """
        threshold = logging.getLevelName(level.upper())
        self.logger = logging.getLogger(name)
        self.logger.setLevel(threshold)
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = self._empty_metrics()

        if enable_console:
            # stdout carries the NDJSON event stream
            self._attach(logging.StreamHandler(sys.stderr), threshold, CONSOLE_FORMAT)

        if enable_file:
            directory = Path("logs") if log_dir is None else Path(log_dir)
            directory.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now().strftime("%Y%m%d")
            handler = logging.FileHandler(directory / f"talentintake_{stamp}.log", encoding="utf-8")
            self._attach(handler, logging.DEBUG, FILE_FORMAT)

    def _attach(self, handler: logging.Handler, level, fmt: str):
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
        self.logger.addHandler(handler)

    @staticmethod
    def _empty_metrics() -> dict:
        return {
            "api_calls": 0,
            "lookups_attempted": 0,
            "lookups_successful": 0,
            "lookups_failed": 0,
            "items_processed": 0,
            "items_successful": 0,
            "items_failed": 0,
            "errors_by_type": {},
            "provider_success_rate": {},
        }

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking

    def record_api_call(self):
        self.metrics["api_calls"] += 1

    def record_lookup_attempt(self, provider: str):
        """Record an enrichment lookup against one back-end."""
        self.metrics["lookups_attempted"] += 1
        stats = self.metrics["provider_success_rate"].setdefault(
            provider, {"attempts": 0, "successes": 0}
        )
        stats["attempts"] += 1

    def record_lookup_success(self, provider: str):
        self.metrics["lookups_successful"] += 1
        if provider in self.metrics["provider_success_rate"]:
            self.metrics["provider_success_rate"][provider]["successes"] += 1

    def record_lookup_failure(self, provider: str, error_type: str):
        self.metrics["lookups_failed"] += 1
        self._count_error(error_type)

    def record_item(self, success: bool, error_type: Optional[str] = None):
        """Record the outcome of one batch item."""
        self.metrics["items_processed"] += 1
        if success:
            self.metrics["items_successful"] += 1
        else:
            self.metrics["items_failed"] += 1
            if error_type:
                self._count_error(error_type)

    def _count_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a copy of current metrics with per-provider success rates."""
        metrics_copy = json.loads(json.dumps(self.metrics))
        for stats in metrics_copy["provider_success_rate"].values():
            if stats["attempts"] > 0:
                stats["success_rate"] = round(stats["successes"] / stats["attempts"], 3)
        return metrics_copy

    def reset_metrics(self):
        self.metrics = self._empty_metrics()

    def log_metrics_summary(self):
        metrics = self.get_metrics()

        processed = metrics["items_processed"]
        ok = metrics["items_successful"]
        rate = round(ok / processed * 100, 1) if processed else 0

        lines = [
            "=== Intake Batch Metrics ===",
            f"Provider calls: {metrics['api_calls']}",
            f"Items: {ok}/{processed} ({rate}% success)",
            f"Lookups: {metrics['lookups_successful']}/{metrics['lookups_attempted']} found",
        ]
        for provider, stats in metrics["provider_success_rate"].items():
            pct = stats.get("success_rate", 0) * 100
            lines.append(f"  lookup {provider}: {stats['successes']}/{stats['attempts']} ({pct:.1f}%)")
        for kind, count in sorted(metrics["errors_by_type"].items()):
            lines.append(f"  error {kind}: {count}")

        for line in lines:
            self.info(line)


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "talentintake",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Level, log directory and file output default to LOG_LEVEL,
    INTAKE_LOG_DIR and INTAKE_LOG_FILE (set to 0 to disable the file).
    """
    global _global_logger

    if _global_logger is None:
        if level is None:
            level = os.getenv("LOG_LEVEL", "INFO")
        if "log_dir" not in kwargs and os.getenv("INTAKE_LOG_DIR"):
            kwargs["log_dir"] = Path(os.environ["INTAKE_LOG_DIR"])
        if "enable_file" not in kwargs:
            kwargs["enable_file"] = os.getenv("INTAKE_LOG_FILE", "1") not in ("0", "false", "no")
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
