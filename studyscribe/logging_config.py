"""
Unified Logging Configuration for StudyScribe

This module provides a centralized logging system that combines:
- A session trace file (debug_flow.txt in the logs directory)
- The standard Python logger 'StudyScribe' (logs/processing.log)
- Console output when DEBUG_MODE is enabled
- Performance timing via the Timer context manager

All modules should import logging functions from this module:
    from studyscribe.logging_config import debug_log, info, warning, error, Timer

Log Levels:
- debug_log(): Always writes to the trace file; console only in DEBUG_MODE
- info(): Standard information messages
- warning(): Warning messages (always shown)
- error(): Error messages with optional exception info
"""

import logging
import sys
import threading
import time
from datetime import datetime

from studyscribe.config import (
    DEBUG_LOG_FILE,
    DEBUG_MODE,
    LOG_DATE_FORMAT,
    LOG_FILE,
    LOG_FORMAT,
)

# =============================================================================
# Trace File Setup (debug_flow.txt)
# =============================================================================

class _DebugFileLogger:
    """
    Manages the debug_flow.txt trace file.

    Writes every debug message regardless of DEBUG_MODE so that a failed
    generation job can be reconstructed after the fact. Background jobs log
    from worker threads, so writes are serialized.
    """

    _instance = None
    _log_file = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._initialize_log_file()
        return cls._instance

    @classmethod
    def _initialize_log_file(cls):
        """Create and initialize the trace file."""
        try:
            cls._log_file = open(DEBUG_LOG_FILE, 'w', encoding='utf-8')
        except OSError:
            cls._log_file = None
            return
        cls._log_file.write("=== StudyScribe Debug Log ===\n")
        cls._log_file.write(f"Started: {datetime.now().isoformat()}\n")
        cls._log_file.write(f"DEBUG_MODE: {DEBUG_MODE}\n")
        cls._log_file.write("=" * 60 + "\n\n")
        cls._log_file.flush()

    def write(self, message: str):
        """Write message to the trace file."""
        with self._lock:
            if self._log_file:
                timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
                self._log_file.write(f"[{timestamp}] {message}\n")
                self._log_file.flush()


_debug_file_logger = _DebugFileLogger()


# =============================================================================
# Standard Python Logging Setup
# =============================================================================

def _setup_standard_logging() -> logging.Logger:
    """
    Configure the standard Python logging framework.

    Returns:
        Configured logger instance for StudyScribe
    """
    logger = logging.getLogger('StudyScribe')
    logger.setLevel(logging.DEBUG if DEBUG_MODE else logging.INFO)

    # Prevent duplicate handlers if called multiple times
    if logger.handlers:
        return logger

    try:
        file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(file_handler)
    except OSError:
        logger.addHandler(logging.NullHandler())

    if DEBUG_MODE:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger


_logger = _setup_standard_logging()


# =============================================================================
# Timer Context Manager
# =============================================================================

class Timer:
    """
    Context manager for timing code blocks with automatic logging.

    Usage:
        with Timer("Map phase"):
            ...

    Attributes:
        operation_name: Name of the operation being timed
        duration_ms: Duration in milliseconds (available after exit)
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.start_time: float | None = None
        self.duration_ms: float | None = None

    def __enter__(self):
        if self.auto_log:
            debug_log(f"Starting {self.operation_name}...")
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.time() - self.start_time) * 1000
        if self.auto_log:
            debug_timing(self.operation_name, self.duration_ms / 1000)
        return False  # Don't suppress exceptions


# =============================================================================
# Public Logging Functions
# =============================================================================

def debug_log(message: str):
    """
    Log a debug message to the trace file and, in DEBUG_MODE, the logger.

    Args:
        message: The message to log (prefix with [COMPONENT] for clarity)

    Example:
        debug_log("[CHUNKER] Split 14210 chars into 3 chunks")
    """
    _debug_file_logger.write(message)
    if DEBUG_MODE:
        _logger.debug(message)


def info(message: str):
    """Log an informational message."""
    _debug_file_logger.write(f"[INFO] {message}")
    _logger.info(message)


def warning(message: str):
    """Log a warning message."""
    _debug_file_logger.write(f"[WARNING] {message}")
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error message with optional exception traceback.

    Args:
        message: The error message to log
        exc_info: If True, include exception traceback (only in DEBUG_MODE)
    """
    _debug_file_logger.write(f"[ERROR] {message}")
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


def debug_timing(operation: str, elapsed_seconds: float):
    """
    Log operation timing information in human-readable format.

    Args:
        operation: Description of the operation that was timed
        elapsed_seconds: Elapsed time in seconds (float)
    """
    if elapsed_seconds < 1:
        time_str = f"{elapsed_seconds*1000:.0f} ms"
    elif elapsed_seconds < 60:
        time_str = f"{elapsed_seconds:.2f}s"
    else:
        time_str = f"{elapsed_seconds/60:.1f}m"
    debug_log(f"{operation} took {time_str}")


__all__ = [
    'debug_log',
    'debug_timing',
    'info',
    'warning',
    'error',
    'Timer',
    'DEBUG_MODE',
]
