import asyncio
import logging
import os
import re
import sys
import time
from contextlib import contextmanager
from typing import Iterator, Optional


class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in log records."""

    PATTERNS = [
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(token["\']?\s*[:=]\s*["\']?)([^"\'}\s,\]]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(authorization["\']?\s*[:=]\s*["\']?)(?!bearer\s)([^"\'}\s,]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(bearer\s+)([^\s,}\'\"\]]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(/p/(?:f/)?)([A-Za-z0-9_\-]+)'), r'\1***MASKED***'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Mask sensitive data in the log message."""
        if isinstance(record.msg, str):
            record.msg = self._mask_value(record.msg)

        if hasattr(record, 'args') and record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask_value(arg) for arg in record.args)

        return True

    def _mask_value(self, value):
        """Mask sensitive values in arguments."""
        if isinstance(value, str):
            for pattern, replacement in self.PATTERNS:
                value = pattern.sub(replacement, value)
        return value


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    correlation_id: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Args:
        component_name: Name of the component (e.g., 'vaultclient', 'cli')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO
        correlation_id: Optional correlation ID to include in log format

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(correlation_id))
    handler.addFilter(SensitiveDataFilter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def _build_formatter(correlation_id: Optional[str]) -> logging.Formatter:
    if correlation_id:
        fmt = f'%(asctime)s - %(name)s - %(levelname)s - [{correlation_id}] - %(message)s'
    else:
        fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    return logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')


def _format_meta(meta: dict) -> str:
    if not meta:
        return ""
    return " [" + " ".join(f"{key}={value}" for key, value in meta.items()) + "]"


@contextmanager
def log_operation(
    logger: logging.Logger,
    scope: str,
    action: str,
    **meta
) -> Iterator[dict]:
    """
    Log the start, success and failure of a timed operation.

    Lines read ``[SCOPE] action:start``, ``[SCOPE] action:ok [ms=..]`` and
    ``[SCOPE] action:err``; cancellation is logged at DEBUG as
    ``action:cancelled``. The yielded dict may be filled with extra
    fields to attach to the ``ok`` line.

    Args:
        logger: Logger to write to
        scope: Short scope tag such as 'PREVIEW' or 'UPLOAD'
        action: Operation name
        **meta: Context attached to the start line
    """
    logger.info(f"[{scope}] {action}:start{_format_meta(meta)}")
    extra: dict = {}
    started = time.perf_counter()
    try:
        yield extra
    except asyncio.CancelledError:
        ms = round((time.perf_counter() - started) * 1000)
        logger.debug(f"[{scope}] {action}:cancelled [ms={ms}]")
        raise
    except BaseException as e:
        ms = round((time.perf_counter() - started) * 1000)
        logger.warning(f"[{scope}] {action}:err [ms={ms} error={type(e).__name__}: {e}]")
        raise
    ms = round((time.perf_counter() - started) * 1000)
    logger.info(f"[{scope}] {action}:ok{_format_meta({'ms': ms, **extra})}")
