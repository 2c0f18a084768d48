"""
Logging utilities for AquaWatch
"""

import functools
import inspect
import logging
import logging.handlers
import os
from datetime import datetime
from typing import List, Optional

from aquawatch.config.settings import LoggingSettings

ROOT_LOGGER_NAME = "aquawatch"


def setup_logging(
    settings: Optional[LoggingSettings] = None,
    extra_handlers: Optional[List[logging.Handler]] = None,
) -> logging.Logger:
    """Configure the package logger with console and rotating file handlers.

    Calling it again replaces the handlers installed by the previous call.
    """
    settings = settings or LoggingSettings()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(settings.level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(settings.format)

    if settings.console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if settings.file_enabled:
        os.makedirs(settings.log_directory, exist_ok=True)
        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        )
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_directory, f"{ROOT_LOGGER_NAME}.log"),
            maxBytes=settings.max_file_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)

        error_file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_directory, f"{ROOT_LOGGER_NAME}_errors.log"),
            maxBytes=settings.max_file_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
        )
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(detailed_formatter)
        logger.addHandler(error_file_handler)

    for handler in extra_handlers or []:
        logger.addHandler(handler)

    return logger


def log_performance(func):
    """Decorator to log how long a function or coroutine takes"""
    perf_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.performance")

    def _report(start_time: datetime, error: Optional[Exception] = None) -> None:
        duration = (datetime.now() - start_time).total_seconds()
        if error is None:
            perf_logger.info(f"{func.__name__} completed in {duration:.3f} seconds")
        else:
            perf_logger.error(f"{func.__name__} failed after {duration:.3f} seconds: {error}")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = datetime.now()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _report(start_time, e)
                raise
            _report(start_time)
            return result
        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = datetime.now()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _report(start_time, e)
            raise
        _report(start_time)
        return result
    return wrapper
