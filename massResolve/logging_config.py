"""
Centralized logging configuration for massResolve.

Provides structured JSONL logging with rotation and component-specific
loggers. Standard output is reserved for result lines, so the console
handler always writes to stderr and file logging is only enabled when a
log file is configured.

Run Context:
    Use `set_run_id()` once per pipeline run. The run ID is attached to
    every JSONL record emitted while that run is in progress, including
    records produced inside worker tasks.

    Example:
        from massResolve.logging_config import set_run_id, get_logger

        set_run_id(uuid.uuid4().hex[:12])
        logger = get_logger("pipeline")
        logger.info("Batch started", extra={"batch_size": 100})
"""
import contextvars
import logging
import logging.handlers
import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback


# Context variable for run ID propagation across worker tasks
_run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "run_id", default=""
)


def set_run_id(run_id: str) -> contextvars.Token:
    """
    Set the current run ID for this async context.

    Args:
        run_id: The run ID to set

    Returns:
        Token that can be used to reset the context variable
    """
    return _run_id_var.set(run_id)


def get_run_id() -> str:
    """Return the current run ID, or an empty string if not set."""
    return _run_id_var.get()


def reset_run_id(token: contextvars.Token) -> None:
    """Reset the run ID context variable to its previous state."""
    _run_id_var.reset(token)


class JSONLFormatter(logging.Formatter):
    """
    Formatter that outputs logs in JSON Lines format.
    Each log entry is a single-line JSON object with standardized fields.
    """

    # Extra attributes copied from the record when present
    EXTRA_ATTRS = (
        "run_id", "domain", "endpoint", "attempts", "duration", "outcome",
        "state", "error_type", "batch_size", "workers", "queue_size",
        "mode", "country", "url", "entries", "jobs", "resolved", "failed",
        "answers", "rejected", "lines", "worker", "config",
    )

    def __init__(self, component: str = "massresolve"):
        super().__init__()
        self.component = component
        self.hostname = os.getenv("HOSTNAME", os.getenv("COMPUTERNAME", "unknown"))

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "process_id": record.process,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = get_run_id()
        if run_id:
            log_data["run_id"] = run_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        for attr in self.EXTRA_ATTRS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that injects fixed context into every record.
    Workers use it to tag their records with a worker index.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    component: str = "massresolve",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: int = 5,
    enable_console: bool = True
) -> logging.Logger:
    """
    Set up logging configuration for a massResolve component.

    Args:
        component: Component name (cli, pipeline, workers, resolvers, ...)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to a JSONL log file (default: $MASSRESOLVE_LOG_FILE,
            no file logging when unset)
        max_bytes: Max bytes per log file before rotation (default: 50MB)
        backup_count: Number of backup files to keep (default: 5)
        enable_console: Whether to log human-readable lines to stderr

    Returns:
        Configured logger instance
    """
    log_level = (log_level or os.getenv("MASSRESOLVE_LOG_LEVEL", "WARNING")).upper()
    log_file = log_file or os.getenv("MASSRESOLVE_LOG_FILE") or None
    max_bytes = max_bytes or int(os.getenv("MASSRESOLVE_LOG_MAX_BYTES", str(50 * 1024 * 1024)))

    numeric_level = getattr(logging, log_level, logging.WARNING)

    logger = logging.getLogger(f"massresolve.{component}")
    logger.setLevel(numeric_level)
    logger.propagate = False

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8"
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(JSONLFormatter(component=component))
            logger.addHandler(file_handler)
        except OSError as e:
            sys.stderr.write(f"Failed to set up file logging to {log_file}: {e}\n")

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        logger.addHandler(console_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.debug(
        "Logging configured",
        extra={"state": "configured", "mode": "file" if log_file else "console"}
    )

    return logger


def get_logger(component: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get or create a logger for a component with optional context.

    Args:
        component: Component name (cli, pipeline, workers, resolvers, ...)
        context: Optional context dictionary to inject into all logs

    Returns:
        Logger or ContextAdapter if context is provided
    """
    logger = logging.getLogger(f"massresolve.{component}")

    if not logger.handlers:
        logger = setup_logging(component)

    if context:
        return ContextAdapter(logger, context)

    return logger


def configure_all(log_level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """Reconfigure every component logger with the given level and file."""
    for component in COMPONENTS:
        setup_logging(component, log_level=log_level, log_file=log_file)


COMPONENTS = ("cli", "pipeline", "workers", "aggregator", "resolvers", "pool", "discovery")


def sanitize_log_data(data: Dict[str, Any], sensitive_keys: Optional[list] = None) -> Dict[str, Any]:
    """
    Redact sensitive values from a dictionary before logging it.

    Args:
        data: Dictionary containing log data
        sensitive_keys: List of key fragments to redact (case-insensitive)

    Returns:
        Sanitized dictionary with sensitive values replaced
    """
    sensitive_keys = sensitive_keys or [
        "password", "passwd", "token", "secret", "api_key", "apikey",
        "auth", "authorization",
    ]

    sanitized = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value, sensitive_keys)
        else:
            sanitized[key] = value

    return sanitized
