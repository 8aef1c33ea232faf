"""
Error Handler Utility
=====================

This module provides the error taxonomy and centralized error handling for the
profile viewer core: schema mismatches, degenerate or reversed intervals, and
recoverable tile fetch failures.

Schema mismatches are programming errors and are raised immediately. Tile
fetch failures are recoverable: they are logged, recorded in the error
history and announced through the ``error_occurred`` signal so the layout can
show a placeholder instead of crashing.

Author: Prof Viewer Core
Version: 1.0
"""

import logging
import sys
import traceback
from datetime import datetime
from typing import Any, Callable, Optional

from PyQt5.QtCore import QObject, pyqtSignal

# Configure logger
logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ErrorSeverity:
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ProfViewerError(Exception):
    """Base exception for profile viewer errors."""

    def __init__(self, message: str, details: Optional[str] = None,
                 severity: str = ErrorSeverity.ERROR):
        """
        Initialize profile viewer error.

        Args:
            message: Short error message
            details: Technical details for logging
            severity: Error severity level
        """
        super().__init__(message)
        self.message = message
        self.details = details or message
        self.severity = severity


class EntryMismatchError(ProfViewerError):
    """Raised when an EntryID does not match the shape of the EntryInfo tree."""

    def __init__(self, message: str, entry_id: Any = None):
        details = message
        if entry_id is not None:
            details = f"{message}\nEntry: {entry_id}"
        super().__init__(message, details, ErrorSeverity.CRITICAL)
        self.entry_id = entry_id


class InvalidIntervalError(ProfViewerError, ValueError):
    """Raised when an interval is constructed with start > stop."""

    def __init__(self, message: str):
        super().__init__(message, severity=ErrorSeverity.ERROR)


class TileFetchError(ProfViewerError):
    """Exception for tile fetch failures reported by a data source."""

    def __init__(self, message: str, entry_id: Any = None, tile_id: Any = None,
                 original_error: Optional[Exception] = None):
        """
        Initialize tile fetch error.

        Args:
            message: Short error message
            entry_id: Entry whose tile failed
            tile_id: Tile that failed
            original_error: Exception raised by the data source
        """
        details = f"{message}\n"
        if entry_id is not None:
            details += f"Entry: {entry_id}\n"
        if tile_id is not None:
            details += f"Tile: {tile_id}\n"
        if original_error is not None:
            details += f"Original error: {type(original_error).__name__}: {original_error}\n"

        super().__init__(message, details, ErrorSeverity.WARNING)
        self.entry_id = entry_id
        self.tile_id = tile_id
        self.original_error = original_error


class ErrorHandler(QObject):
    """
    Centralized error handler for the viewer core.

    Logs errors at the level matching their severity and keeps a short
    history for diagnostics.

    Signals:
        error_occurred: Emitted when an error is handled (severity, message, details)
    """

    error_occurred = pyqtSignal(str, str, str)  # severity, message, details

    def __init__(self, parent=None, max_stored_errors: int = 10):
        """
        Initialize error handler.

        Args:
            parent: Parent QObject
            max_stored_errors: Number of recent errors kept in history
        """
        super().__init__(parent)
        self._error_count = 0
        self._last_errors = []
        self._max_stored_errors = max_stored_errors

    def handle_error(self, error: Exception, context: str = "") -> str:
        """
        Handle an error with logging and notification.

        Args:
            error: The exception that occurred
            context: Context description (e.g., "fetching slot tile")

        Returns:
            str: Severity the error was handled with
        """
        self._error_count += 1

        if isinstance(error, ProfViewerError):
            message = error.message
            details = error.details
            severity = error.severity
        else:
            message = f"An unexpected error occurred while {context}" if context else "An unexpected error occurred"
            error_traceback = traceback.format_exc()
            details = f"Context: {context}\n{type(error).__name__}: {str(error)}\n{error_traceback}"
            severity = ErrorSeverity.ERROR

        log_message = f"Error in {context}: {details}" if context else f"Error: {details}"

        if severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

        self._store_error(severity, message, details)

        self.error_occurred.emit(severity, message, details)

        return severity

    def _store_error(self, severity: str, message: str, details: str):
        error_record = {
            'timestamp': datetime.now(),
            'severity': severity,
            'message': message,
            'details': details
        }

        self._last_errors.append(error_record)

        # Keep only last N errors
        if len(self._last_errors) > self._max_stored_errors:
            self._last_errors = self._last_errors[-self._max_stored_errors:]

    def get_error_history(self) -> list:
        """
        Get recent error history.

        Returns:
            list: List of error records
        """
        return self._last_errors.copy()

    def get_error_count(self) -> int:
        """
        Get total error count.

        Returns:
            int: Number of errors handled
        """
        return self._error_count

    def clear_error_history(self):
        """Clear error history and reset count."""
        self._last_errors.clear()
        self._error_count = 0

    @staticmethod
    def safe_execute(func: Callable, *args, default_return: Any = None,
                     error_handler: Optional['ErrorHandler'] = None,
                     context: str = "", **kwargs) -> Any:
        """
        Execute a function, returning ``default_return`` if it raises.

        Schema mismatches are never swallowed.

        Args:
            func: Function to execute
            *args: Positional arguments for function
            default_return: Value to return if function fails
            error_handler: ErrorHandler instance to use for handling errors
            context: Context description for error messages
            **kwargs: Keyword arguments for function

        Returns:
            Function return value, or default_return if error occurs
        """
        try:
            return func(*args, **kwargs)
        except EntryMismatchError:
            raise
        except Exception as e:
            if error_handler:
                error_handler.handle_error(e, context)
            else:
                logger.error(f"Error in {context}: {e}")
            return default_return


def setup_logging(log_level: int = logging.INFO, log_file: Optional[str] = None,
                  logger_name: str = 'prof_viewer') -> logging.Logger:
    """
    Configure logging for the viewer package.

    Args:
        log_level: Logging level (e.g., logging.INFO, logging.DEBUG)
        log_file: Optional file to write logs to

    Returns:
        logging.Logger: The configured package logger
    """
    package_logger = logging.getLogger(logger_name)

    # Clear any existing handlers
    package_logger.handlers = []
    package_logger.setLevel(log_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)
        except OSError as e:
            package_logger.error(f"Failed to set up file logging: {str(e)}")

    return package_logger
