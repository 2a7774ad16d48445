"""
Configuration module for the order event pipeline.
"""

from .settings import (
    Settings,
    Environment,
    LogLevel,
    DispatchConfig,
    TwilioConfig,
    PushConfig,
    AnalyticsConfig,
    LedgerConfig,
    CircuitBreakerConfig,
    LoggingConfig,
    load_settings,
    get_settings,
    reload_settings
)

__all__ = [
    'Settings',
    'Environment',
    'LogLevel',
    'DispatchConfig',
    'TwilioConfig',
    'PushConfig',
    'AnalyticsConfig',
    'LedgerConfig',
    'CircuitBreakerConfig',
    'LoggingConfig',
    'load_settings',
    'get_settings',
    'reload_settings'
]
