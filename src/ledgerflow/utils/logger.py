"""Logging infrastructure with pipeline run context."""
import logging
import sys
import threading
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


class RunContextFilter(logging.Filter):
    """Add pipeline run context to log records."""

    def __init__(self):
        super().__init__()
        self._local = threading.local()

    @property
    def run_id(self) -> Optional[str]:
        return getattr(self._local, "run_id", None)

    @run_id.setter
    def run_id(self, value: Optional[str]):
        self._local.run_id = value

    def filter(self, record):
        """Add run_id to record."""
        record.run_id = self.run_id or "-"
        return True


class LedgerFlowLogger:
    """Centralized logging manager."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Optional[str] = None,
        max_file_size_mb: int = 10,
        backup_count: int = 30
    ):
        self.run_filter = RunContextFilter()

        self.logger = logging.getLogger("ledgerflow")
        self.logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        self.logger.propagate = False

        # Remove existing handlers
        self.logger.handlers.clear()

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [run:%(run_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(self.run_filter)
        self.logger.addHandler(console_handler)

        self.log_file: Optional[Path] = None
        if log_dir:
            log_path = Path(log_dir).expanduser()
            log_path.mkdir(parents=True, exist_ok=True)
            self.log_file = log_path / "ledgerflow.log"

            file_handler = RotatingFileHandler(
                self.log_file,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8"
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(self.run_filter)
            self.logger.addHandler(file_handler)

    def set_run_context(self, run_id: Optional[str]):
        """Set current run context for logging on this thread."""
        self.run_filter.run_id = run_id

    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[LedgerFlowLogger] = None


def configure_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 30
) -> logging.Logger:
    """(Re)build the global logger, e.g. once settings are known."""
    global _logger_instance
    _logger_instance = LedgerFlowLogger(log_level, log_dir, max_file_size_mb, backup_count)
    return _logger_instance.get_logger()


def get_logger(log_level: str = "INFO") -> logging.Logger:
    """Get or create global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = LedgerFlowLogger(log_level)
    return _logger_instance.get_logger()


def set_run_context(run_id: Optional[str]):
    """Set run context for logging."""
    if _logger_instance:
        _logger_instance.set_run_context(run_id)


def mask_identifier(value: Optional[str], visible: int = 3) -> str:
    """Redact all but the last few characters of an identifier or secret."""
    if not value:
        return "<empty>"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
