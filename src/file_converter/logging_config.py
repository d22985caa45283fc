"""
Logging configuration and error hierarchy for the file converter service.

This module provides:
- Logging setup for the ``converter`` logger namespace (stderr plus optional file)
- The error hierarchy, where every error carries a machine-readable kind and
  the HTTP status and JSON body it is reported with
- Helpers that log the lifecycle of one conversion
"""

import logging
import sys
from typing import Any, Dict, Optional

LOGGER_NAMESPACE = "converter"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ConverterError(Exception):
    """Base error for all converter operations."""

    kind = "converter_error"
    status_code = 500

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message} (Suggestion: {self.suggestion})"
        return self.message

    def to_dict(self) -> Dict[str, str]:
        """Render the error as the JSON body returned to HTTP clients."""
        return {
            "error": self.message,
            "details": f"{type(self).__name__}: {self}",
            "kind": self.kind,
        }


class UserError(ConverterError):
    """Error caused by user input/action."""

    kind = "user_error"


class SystemError(ConverterError):
    """Error caused by system/environment issues."""

    kind = "system_error"

    def __init__(
        self,
        message: str,
        technical_details: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        self.technical_details = technical_details
        super().__init__(message, suggestion)


class NoFileUploadedError(UserError):
    """The request carried no file field."""

    kind = "no_file_uploaded"
    status_code = 400

    def __init__(self, message: str = "No file uploaded", suggestion: Optional[str] = None):
        super().__init__(message, suggestion)

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.message}


class UnsupportedFormatError(UserError):
    """The requested target format is not in the registry."""

    kind = "unsupported_format"


class ConversionFailureError(ConverterError):
    """A converter tool failed, timed out or produced no output."""

    kind = "conversion_failure"


class IOFailureError(SystemError):
    """Reading, writing or removing a file on disk failed."""

    kind = "io_failure"


class DiskSpaceError(IOFailureError):
    """The upload volume is too full to accept another file."""


class DependencyError(SystemError):
    """Error when required dependency is missing."""

    kind = "dependency_missing"


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: int | str = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration for the converter.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level as a number or a name; unknown names mean INFO
        log_file: Optional path to log file
        format_string: Optional custom format string

    Returns:
        Configured logger instance
    """
    formatter = logging.Formatter(format_string or LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(_resolve_level(level))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (e.g., 'server', 'converters.audio')

    Returns:
        Logger instance for the module
    """
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


root_logger = setup_logging()


def log_conversion_start(
    logger: logging.Logger, source_file: str, target_format: str, **details: Any
) -> None:
    """Log the start of a conversion with optional ``key=value`` details."""
    message = f"Starting conversion: {source_file} -> {target_format}"
    if details:
        message += " (" + ", ".join(f"{k}={v}" for k, v in details.items()) + ")"
    logger.info(message)


def log_conversion_complete(
    logger: logging.Logger,
    success: bool,
    duration_seconds: float,
    output_file: Optional[str] = None,
) -> None:
    """Log how a conversion ended and how long it took."""
    if success:
        suffix = f": {output_file}" if output_file else ""
        logger.info(f"Conversion succeeded in {duration_seconds:.2f}s{suffix}")
    else:
        logger.warning(f"Conversion failed after {duration_seconds:.2f}s")


def log_error(logger: logging.Logger, error: Exception, include_traceback: bool = True) -> None:
    """Log an error; technical details and the traceback go to DEBUG.

    Args:
        logger: Logger instance
        error: Exception to log
        include_traceback: Whether to include stack trace
    """
    logger.error(f"{type(error).__name__}: {error}")

    if isinstance(error, SystemError) and error.technical_details:
        logger.debug(f"Technical details: {error.technical_details}")

    if include_traceback and error.__traceback__ is not None:
        logger.debug("Traceback:", exc_info=(type(error), error, error.__traceback__))
