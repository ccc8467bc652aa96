import functools
import logging
import traceback
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def configure_logging(log_file=None, level='INFO'):
    """
    Send application logs to a rotated file and to the console.
    Falls back to console only when the log file can't be opened
    (e.g. running unprivileged outside the host).
    """
    formatter = logging.Formatter(LOG_FORMAT)
    handlers = []

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    file_error = None
    if log_file:
        try:
            file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=7)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as e:
            file_error = e

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if file_error is not None:
        logger.warning(f"Could not open log file {log_file}: {file_error}; logging to console only")


def safe_execute(default_return=None):
    """
    Decorator to wrap functions in a try/except block.
    Logs errors and returns a default value on failure.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {func.__name__}: {str(e)}")
                logger.debug(traceback.format_exc())
                return default_return
        return wrapper
    return decorator


class AppError(Exception):
    """Base custom exception class."""
    pass


class SamplingUnavailable(AppError):
    """An optional metric (e.g. temperature) can't be read on this host."""
    pass


class LoadControlError(AppError):
    """Expected refusal from the load controller, shown to the user as-is."""
    pass


class CapacityExceeded(LoadControlError):
    pass


class SafetyBlocked(LoadControlError):
    pass


class WorkerTerminationFailure(AppError):
    """A worker ignored the graceful stop and had to be force-killed."""
    pass


class CycleFailure(AppError):
    """Unexpected error inside one guard cycle."""
    pass
