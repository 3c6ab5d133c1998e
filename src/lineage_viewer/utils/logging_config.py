"""
Logging for the lineage viewer.

All loggers live under the ``lineage_viewer`` namespace and write to stderr,
so JSON exports and rendered tables on stdout stay machine-readable. The
namespace does not propagate to the root logger.

Environment:
    LINEAGE_VIEWER_LOG_LEVEL   level for the namespace (default WARNING)
    LINEAGE_VIEWER_LOG_FORMAT  format string for the stderr handler
    LINEAGE_VIEWER_LOG_FILE    optional path of a rotating log file
"""

import logging
import logging.config
import os
import time
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Optional

NAMESPACE = 'lineage_viewer'
DEFAULT_LEVEL = 'WARNING'
DEFAULT_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d]: %(message)s'
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def build_logging_config(level: str,
                         format_string: str,
                         log_file: Optional[str] = None,
                         enable_console: bool = True) -> Dict[str, Any]:
    """Return the dictConfig mapping for the viewer's logger namespace."""
    handlers: Dict[str, Dict[str, Any]] = {}
    if enable_console:
        handlers['stderr'] = {
            'class': 'logging.StreamHandler',
            'formatter': 'console',
            'stream': 'ext://sys.stderr',
        }
    if log_file:
        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'file',
            'filename': log_file,
            'maxBytes': LOG_FILE_MAX_BYTES,
            'backupCount': LOG_FILE_BACKUPS,
            'encoding': 'utf8',
        }

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'console': {'format': format_string, 'datefmt': '%H:%M:%S'},
            'file': {'format': FILE_FORMAT, 'datefmt': '%Y-%m-%d %H:%M:%S'},
        },
        'handlers': handlers,
        'loggers': {
            NAMESPACE: {
                'level': level,
                'handlers': list(handlers),
                'propagate': False,
            },
        },
    }


class LineageViewerLogger:
    """Configures the viewer's logger namespace once and hands out child loggers."""

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger for one component, e.g. ``get_logger('loader.local')``."""
        if name not in cls._loggers:
            if not cls._configured:
                cls.setup_logging()
            cls._loggers[name] = logging.getLogger(f"{NAMESPACE}.{name}")
        return cls._loggers[name]

    @classmethod
    def setup_logging(cls,
                      level: Optional[str] = None,
                      log_file: Optional[str] = None,
                      format_string: Optional[str] = None,
                      enable_console: bool = True) -> None:
        """
        (Re)configure the namespace. Arguments override the environment.

        Args:
            level: Level name such as DEBUG or WARNING
            log_file: Rotating log file path; its directory is created
            format_string: Format for the stderr handler
            enable_console: Attach the stderr handler
        """
        log_level = (level or os.getenv('LINEAGE_VIEWER_LOG_LEVEL') or DEFAULT_LEVEL).upper()
        log_file = log_file or os.getenv('LINEAGE_VIEWER_LOG_FILE')
        format_string = format_string or os.getenv('LINEAGE_VIEWER_LOG_FORMAT') or DEFAULT_FORMAT

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        logging.config.dictConfig(build_logging_config(log_level, format_string, log_file, enable_console))
        cls._configured = True
        logging.getLogger(f"{NAMESPACE}.logging").debug(
            f"Viewer logging at {log_level} (log file: {log_file or 'none'})"
        )


def get_logger(name: str) -> logging.Logger:
    return LineageViewerLogger.get_logger(name)


def log_performance(logger: logging.Logger, level: int = logging.INFO):
    """Decorator logging how long a graph-building step took, or when it failed."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{func.__qualname__} failed after {time.perf_counter() - started:.3f}s: {e}")
                raise
            logger.log(level, f"{func.__qualname__} took {time.perf_counter() - started:.3f}s")
            return result
        return wrapper
    return decorator
