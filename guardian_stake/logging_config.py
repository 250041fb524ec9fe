"""
Structured Logging Configuration

Provides:
- Wallet / request context attached to every record
- JSON formatting for machine parsing
- Human-readable console formatting
- Keyword-field logging via StructuredLogger
"""

import contextvars
import json
import logging
import logging.handlers
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union
from uuid import uuid4


wallet_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("wallet", default=None)
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


class WalletContext:
    """Context manager tagging log records with a wallet and request id."""

    def __init__(self, wallet: Optional[str] = None, request_id: Optional[str] = None):
        self.wallet = wallet
        self.request_id = request_id or str(uuid4())
        self._tokens = []

    def __enter__(self):
        self._tokens.append((request_id_var, request_id_var.set(self.request_id)))
        if self.wallet:
            self._tokens.append((wallet_var, wallet_var.set(self.wallet)))
        return self

    def __exit__(self, *args):
        for var, token in reversed(self._tokens):
            var.reset(token)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_traceback: bool = True, extra_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.include_traceback = include_traceback
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        wallet = wallet_var.get()
        if request_id:
            log_data["request_id"] = request_id
        if wallet:
            log_data["wallet"] = wallet

        log_data.update(self.extra_fields)

        if record.exc_info and self.include_traceback:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, default=str)


class StructuredFormatter(logging.Formatter):
    """Human-readable structured formatter for console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        level = record.levelname
        if self.use_color and sys.stdout.isatty():
            level = f"{self.COLORS.get(level, '')}{level}{self.COLORS['RESET']}"

        parts = [f"[{timestamp}]", f"[{level}]", f"[{record.name}]", record.getMessage()]

        wallet = wallet_var.get()
        if wallet:
            parts.append(f"[wallet={wallet[:8]}]")

        if hasattr(record, "extra_data"):
            parts.append(" ".join(f"{k}={v}" for k, v in record.extra_data.items()))

        if record.exc_info:
            parts.append("\n" + "".join(traceback.format_exception(*record.exc_info)))

        return " ".join(parts)


class StructuredLogger:
    """Logger wrapper taking structured fields as keyword arguments."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def _log(self, level: int, msg: str, extra_data: Dict[str, Any], **kwargs):
        if extra_data:
            kwargs.setdefault("extra", {})["extra_data"] = extra_data
        self._logger.log(level, msg, **kwargs)

    def debug(self, msg: str, **extra_data):
        self._log(logging.DEBUG, msg, extra_data)

    def info(self, msg: str, **extra_data):
        self._log(logging.INFO, msg, extra_data)

    def warning(self, msg: str, **extra_data):
        self._log(logging.WARNING, msg, extra_data)

    def error(self, msg: str, exc_info: bool = False, **extra_data):
        self._log(logging.ERROR, msg, extra_data, exc_info=exc_info)

    def exception(self, msg: str, **extra_data):
        self._log(logging.ERROR, msg, extra_data, exc_info=True)


def setup_logging(
    level: Union[str, int] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    log_file: str = "guardian_stake.log",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
    extra_fields: Optional[Dict[str, Any]] = None,
) -> logging.Logger:
    """
    Configure logging for the staking client.

    Args:
        level: Logging level name or number
        log_dir: Directory for a rotating log file (no file when None)
        log_file: Name of the log file
        json_format: Use JSON formatting for the file handler
        console_output: Enable console output
        max_bytes: Max size of log file before rotation
        backup_count: Number of rotated files to keep
        extra_fields: Fields added to every JSON record

    Returns:
        Configured root logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        if json_format:
            file_handler.setFormatter(JSONFormatter(extra_fields=extra_fields))
        else:
            file_handler.setFormatter(StructuredFormatter(use_color=False))
        root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(StructuredFormatter(use_color=True))
        root_logger.addHandler(console_handler)

    return root_logger


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(name))
