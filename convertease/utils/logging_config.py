"""
Centralized logging configuration for ConvertEase.

This module provides:
- One-time root logger setup shared by the proxy and the orchestrator
- Environment-based level and format selection
- A timing decorator for awaited provider calls
"""

import functools
import logging
import logging.handlers
import os
import sys
import time
from pathlib import Path
from typing import Dict, Optional, Union


class LogLevel:
    """Standard log levels with string representations."""

    @staticmethod
    def from_string(level_str: str) -> int:
        """Convert string log level to integer."""
        level_map = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'WARN': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL,
            'FATAL': logging.CRITICAL,
        }
        return level_map.get(level_str.upper(), logging.INFO)


class LogConfig:
    """Logging settings resolved from the environment."""

    DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    DEV_FORMAT = '%(asctime)s [%(levelname)8s] %(name)s:%(lineno)d - %(message)s'
    JSON_FORMAT = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'

    @staticmethod
    def get_log_level() -> int:
        """Get log level from environment, WARNING under pytest, INFO otherwise."""
        level_str = os.getenv('LOG_LEVEL', os.getenv('LOGLEVEL'))
        if level_str:
            return LogLevel.from_string(level_str)

        if 'pytest' in sys.modules or 'PYTEST_CURRENT_TEST' in os.environ:
            return logging.WARNING

        return logging.INFO

    @staticmethod
    def get_log_format(format_type: Optional[str] = None) -> str:
        format_type = (format_type or os.getenv('LOG_FORMAT', 'standard')).lower()

        if format_type in ('dev', 'development'):
            return LogConfig.DEV_FORMAT
        elif format_type == 'json':
            return LogConfig.JSON_FORMAT
        return LogConfig.DEFAULT_FORMAT

    @staticmethod
    def should_log_to_file() -> bool:
        return os.getenv('LOG_TO_FILE', 'false').lower() in ('true', '1', 'yes')

    @staticmethod
    def get_log_file_path() -> Optional[Path]:
        log_file = os.getenv('LOG_FILE')
        return Path(log_file) if log_file else None


class LoggerFactory:
    """Factory for creating pre-configured loggers."""

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def configure_logging(cls, level: Optional[int] = None,
                          format_str: Optional[str] = None,
                          log_to_file: bool = False,
                          log_file: Optional[Union[str, Path]] = None) -> None:
        """Configure the root logger once."""
        if cls._configured:
            return

        log_level = level or LogConfig.get_log_level()
        formatter = logging.Formatter(format_str or LogConfig.get_log_format())
        log_file_path = Path(log_file) if log_file else LogConfig.get_log_file_path()

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if (log_to_file or LogConfig.should_log_to_file()) and log_file_path:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get or create a logger with the given name."""
        if name not in cls._loggers:
            cls.configure_logging()
            cls._loggers[name] = logging.getLogger(name)
        return cls._loggers[name]


def get_logger(name: str = "convertease") -> logging.Logger:
    """Convenience function to get a logger."""
    return LoggerFactory.get_logger(name)


def log_performance(logger: logging.Logger, level: int = logging.INFO):
    """Decorator to log how long a coroutine took."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.log(level, f"Failed {func.__name__} after {duration:.3f}s: {e}")
                raise
            duration = time.perf_counter() - start_time
            logger.log(level, f"Completed {func.__name__} in {duration:.3f}s")
            return result
        return wrapper
    return decorator
