"""
Logging system for the order event pipeline.

Provides console and rotating file logging, JSON output for log shippers
and timing of dispatch runs.
"""

import os
import sys
import logging
import logging.handlers
import time
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from contextlib import contextmanager

import structlog
from pythonjsonlogger import jsonlogger


ROOT_LOGGER_NAME = "order_pipeline"


class PerformanceLogger:
    """Logger for tracking performance metrics."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def timer(self, operation: str, **kwargs):
        """Context manager for timing operations."""
        start_time = time.perf_counter()

        try:
            yield
        finally:
            duration = time.perf_counter() - start_time

            self.logger.info(
                "Performance metric",
                extra={
                    "operation": operation,
                    "duration_seconds": round(duration, 4),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    **kwargs
                }
            )


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with the fields our log pipeline indexes on."""

    def __init__(self, include_extra: bool = True):
        super().__init__(
            '%(asctime)s %(levelname)s %(name)s %(message)s',
            rename_fields={'levelname': 'level', 'name': 'logger', 'asctime': 'timestamp'},
            json_default=str
        )
        self.include_extra = include_extra

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        if not self.include_extra:
            for key in list(log_record.keys()):
                if key not in ('timestamp', 'level', 'logger', 'message', 'module',
                               'function', 'line', 'exc_info'):
                    del log_record[key]


class MultiLineFormatter(logging.Formatter):
    """Formatter for human-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format record with enhanced readability."""
        formatted = super().format(record)

        extra_info = []

        if hasattr(record, 'duration_seconds'):
            extra_info.append(f"Duration: {record.duration_seconds}s")

        if hasattr(record, 'operation'):
            extra_info.append(f"Operation: {record.operation}")

        if hasattr(record, 'component'):
            extra_info.append(f"Component: {record.component}")

        if extra_info:
            formatted += f" | {' | '.join(extra_info)}"

        return formatted


class LoggerSetup:
    """Main logger setup and configuration."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize logger setup.

        Args:
            config: Configuration dictionary (optional, will use environment if None)
        """
        self.config = config or self._load_config_from_env()
        self.performance_loggers: Dict[str, PerformanceLogger] = {}
        self._setup_complete = False

    def setup_logging(self) -> logging.Logger:
        """
        Setup logging for the pipeline.

        Returns:
            Main application logger
        """
        main_logger = logging.getLogger(ROOT_LOGGER_NAME)

        if self._setup_complete:
            return main_logger

        level = getattr(logging, self.config.get('level', 'INFO').upper())
        main_logger.setLevel(level)
        main_logger.handlers.clear()

        if self.config.get('enable_file_logging', False):
            self._setup_file_logging(main_logger, level)

        if self.config.get('enable_console_logging', True):
            self._setup_console_logging(main_logger)

        if self.config.get('enable_json_logging', False):
            self._setup_structured_logging()

        self.performance_loggers['main'] = PerformanceLogger(main_logger)
        self._setup_complete = True

        main_logger.debug("Logging system initialized", extra={"config": self.config})

        return main_logger

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            name: Logger name

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

        if name not in self.performance_loggers:
            self.performance_loggers[name] = PerformanceLogger(logger)

        return logger

    def get_performance_logger(self, name: str = 'main') -> PerformanceLogger:
        """Get performance logger for a component."""
        if name not in self.performance_loggers:
            self.get_logger(name)

        return self.performance_loggers[name]

    def _setup_file_logging(self, logger: logging.Logger, level: int):
        """Setup rotating file logging."""
        log_file = self.config.get('log_file', 'logs/order_pipeline.log')

        log_dir = os.path.dirname(log_file)
        if log_dir:
            Path(log_dir).mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=self.config.get('max_bytes', 10 * 1024 * 1024),
            backupCount=self.config.get('backup_count', 5),
            encoding='utf-8'
        )

        if self.config.get('enable_json_logging', False):
            formatter = StructuredFormatter(include_extra=self.config.get('include_extra_fields', True))
        else:
            formatter = MultiLineFormatter(
                fmt=self.config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
                datefmt='%Y-%m-%d %H:%M:%S'
            )

        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    def _setup_console_logging(self, logger: logging.Logger):
        """Setup console logging."""
        console_handler = logging.StreamHandler(sys.stdout)

        console_level = self.config.get('console_level', self.config.get('level', 'INFO'))
        console_handler.setLevel(getattr(logging, console_level.upper()))

        if self.config.get('enable_json_logging', False):
            formatter = StructuredFormatter(include_extra=False)
        else:
            formatter = logging.Formatter(
                fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%H:%M:%S'
            )

        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    def _setup_structured_logging(self):
        """Setup structlog for structured logging."""
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _load_config_from_env(self) -> Dict[str, Any]:
        """Load logging configuration from environment variables."""
        return {
            'level': os.getenv('LOG_LEVEL', 'INFO'),
            'format': os.getenv('LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'enable_file_logging': os.getenv('LOG_ENABLE_FILE_LOGGING', 'false').lower() == 'true',
            'log_file': os.getenv('LOG_FILE', 'logs/order_pipeline.log'),
            'max_bytes': int(os.getenv('LOG_MAX_BYTES', str(10 * 1024 * 1024))),
            'backup_count': int(os.getenv('LOG_BACKUP_COUNT', '5')),
            'enable_console_logging': os.getenv('LOG_ENABLE_CONSOLE_LOGGING', 'true').lower() == 'true',
            'console_level': os.getenv('LOG_CONSOLE_LEVEL', 'INFO'),
            'enable_json_logging': os.getenv('LOG_ENABLE_JSON_LOGGING', 'false').lower() == 'true',
            'include_extra_fields': os.getenv('LOG_INCLUDE_EXTRA_FIELDS', 'true').lower() == 'true',
        }

    def configure_third_party_loggers(self):
        """Configure third-party library loggers."""
        logging.getLogger('aiohttp').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

        # Twilio logs every HTTP request at INFO
        logging.getLogger('twilio').setLevel(logging.WARNING)


# Global logger setup instance
_logger_setup: Optional[LoggerSetup] = None


def setup_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Setup application logging.

    Args:
        config: Optional logging configuration

    Returns:
        Main application logger
    """
    global _logger_setup

    if _logger_setup is None:
        _logger_setup = LoggerSetup(config)

    return _logger_setup.setup_logging()


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific component."""
    if _logger_setup is None:
        setup_logging()

    return _logger_setup.get_logger(name)


def get_performance_logger(name: str = 'main') -> PerformanceLogger:
    """Get performance logger."""
    if _logger_setup is None:
        setup_logging()

    return _logger_setup.get_performance_logger(name)


def configure_third_party_loggers():
    """Configure third-party library loggers."""
    if _logger_setup is None:
        setup_logging()

    _logger_setup.configure_third_party_loggers()
