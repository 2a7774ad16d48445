"""
Unit tests for logging setup.
"""

import json
import logging

from order_pipeline.utils.logger import LoggerSetup, PerformanceLogger, StructuredFormatter


def make_record(**extra):
    record = logging.LogRecord(
        name="order_pipeline.dispatch", level=logging.INFO, pathname=__file__, lineno=10,
        msg="Order event dispatched", args=(), exc_info=None, func="process"
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Test JSON log output."""

    def test_renames_standard_fields(self):
        output = json.loads(StructuredFormatter().format(make_record(transaction_id=501)))

        assert output['level'] == "INFO"
        assert output['logger'] == "order_pipeline.dispatch"
        assert output['message'] == "Order event dispatched"
        assert output['function'] == "process"
        assert output['transaction_id'] == 501

    def test_can_drop_extra_fields(self):
        output = json.loads(StructuredFormatter(include_extra=False).format(make_record(transaction_id=501)))

        assert 'transaction_id' not in output
        assert output['message'] == "Order event dispatched"


class TestPerformanceLogger:
    """Test operation timing."""

    def test_timer_logs_duration(self, caplog):
        logger = logging.getLogger("test.performance")
        performance = PerformanceLogger(logger)

        with caplog.at_level(logging.INFO, logger="test.performance"):
            with performance.timer("dispatch_order_events", event_count=3):
                pass

        record = caplog.records[0]
        assert record.operation == "dispatch_order_events"
        assert record.event_count == 3
        assert record.duration_seconds >= 0


class TestLoggerSetup:
    """Test logger configuration."""

    def test_file_logging(self, tmp_path):
        log_file = tmp_path / "logs" / "pipeline.log"
        setup = LoggerSetup({
            'level': 'DEBUG',
            'enable_file_logging': True,
            'log_file': str(log_file),
            'enable_console_logging': False,
        })

        logger = setup.setup_logging()
        try:
            setup.get_logger("dispatch").info("hello from dispatch")
            for handler in logger.handlers:
                handler.flush()

            assert log_file.exists()
            assert "hello from dispatch" in log_file.read_text()
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)

    def test_setup_is_idempotent(self):
        setup = LoggerSetup({'enable_console_logging': True})

        logger = setup.setup_logging()
        handler_count = len(logger.handlers)
        assert setup.setup_logging() is logger
        assert len(logger.handlers) == handler_count

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)

    def test_third_party_loggers_are_quietened(self):
        LoggerSetup({}).configure_third_party_loggers()

        assert logging.getLogger('twilio').level == logging.WARNING
        assert logging.getLogger('aiohttp').level == logging.WARNING
