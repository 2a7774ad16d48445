"""
Utility modules for the order event pipeline.
"""

from .logger import (
    setup_logging,
    get_logger,
    get_performance_logger,
    configure_third_party_loggers,
    PerformanceLogger,
    LoggerSetup,
    StructuredFormatter
)

from .error_handler import (
    initialize_error_handler,
    get_error_handler,
    report_error,
    GlobalErrorHandler,
    ErrorSeverity,
    ErrorReport
)

__all__ = [
    # Logger exports
    'setup_logging',
    'get_logger',
    'get_performance_logger',
    'configure_third_party_loggers',
    'PerformanceLogger',
    'LoggerSetup',
    'StructuredFormatter',

    # Error handler exports
    'initialize_error_handler',
    'get_error_handler',
    'report_error',
    'GlobalErrorHandler',
    'ErrorSeverity',
    'ErrorReport'
]
