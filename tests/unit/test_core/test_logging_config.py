"""Unit tests for logging configuration and correlation IDs."""
import json
import logging
import pytest

from tangram_cv.config.settings import Config
from tangram_cv.core.logging_config import (
    CorrelationContext, CorrelationIDFilter, HumanReadableFormatter, LoggingManager,
    StructuredFormatter, configure_logging, get_correlation_id, get_logger, logging_manager,
    set_correlation_id,
)


def _record(message="hello", **extra):
    record = logging.LogRecord("tangram_cv.test", logging.WARNING, __file__, 10, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def manager():
    mgr = LoggingManager()
    package_logger = logging.getLogger("tangram_cv")
    previous_level = package_logger.level
    yield mgr
    mgr.shutdown()
    package_logger.setLevel(previous_level)


class TestCorrelation:

    def test_context_restores_previous_id(self):
        with CorrelationContext("outer"):
            with CorrelationContext("frame-3") as corr_id:
                assert corr_id == "frame-3"
                assert get_correlation_id() == "frame-3"
            assert get_correlation_id() == "outer"
        assert get_correlation_id() is None

    def test_generated_id(self):
        with CorrelationContext() as corr_id:
            assert corr_id
            assert get_correlation_id() == corr_id

    def test_filter_stamps_records(self):
        record = _record()
        with CorrelationContext("frame-9"):
            CorrelationIDFilter().filter(record)
        assert record.correlation_id == "frame-9"

    def test_set_inside_context_is_undone(self):
        with CorrelationContext("frame-1"):
            set_correlation_id("frame-1-retry")
            assert get_correlation_id() == "frame-1-retry"
        assert get_correlation_id() is None


class TestFormatters:

    def test_structured_output(self):
        record = _record("frame done", correlation_id="frame-1", piece_count=3)
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["level"] == "WARNING"
        assert entry["message"] == "frame done"
        assert entry["correlation_id"] == "frame-1"
        assert entry["extra"] == {"piece_count": 3}

    def test_human_readable_includes_correlation(self):
        record = _record("hi", correlation_id="frame-2")
        assert "frame-2 - hi" in HumanReadableFormatter().format(record)
        assert "frame-2" not in HumanReadableFormatter(include_correlation_id=False).format(record)


class TestLoggingManager:

    def test_file_logging(self, manager, temp_dir):
        manager.configure(log_level="DEBUG", log_dir=temp_dir, enable_file_logging=True,
                          enable_console_logging=False, structured_logging=True)
        assert manager.is_configured
        with CorrelationContext("frame-5"):
            logging.getLogger("tangram_cv.services").debug("validated")
        manager.shutdown()

        lines = (temp_dir / "tangram-cv.log").read_text(encoding="utf-8").splitlines()
        entries = [json.loads(line) for line in lines]
        assert any(e["message"] == "validated" and e["correlation_id"] == "frame-5" for e in entries)
        assert not manager.is_configured

    def test_configure_is_idempotent(self, manager):
        manager.configure(enable_console_logging=True)
        manager.configure(enable_console_logging=True)
        handlers = [h for h in logging.getLogger("tangram_cv").handlers if isinstance(h, logging.StreamHandler)]
        assert len(handlers) == 1

    def test_config_driven(self, manager, temp_dir):
        cfg = Config(debug=True, log_dir=str(temp_dir), enable_file_logging=True)
        manager.configure(enable_console_logging=False, **cfg.logging_kwargs())
        assert logging.getLogger("tangram_cv").level == logging.DEBUG
        assert (temp_dir / "tangram-cv.log").exists()

    def test_module_level_helpers_use_global_manager(self, temp_dir):
        package_logger = logging.getLogger("tangram_cv")
        previous_level = package_logger.level
        try:
            configure_logging(log_level="WARNING", log_dir=temp_dir, enable_file_logging=True,
                              enable_console_logging=False)
            assert logging_manager.is_configured
            get_logger("tangram_cv.services.pipeline").warning("listener slow")
        finally:
            logging_manager.shutdown()
            package_logger.setLevel(previous_level)
        assert "listener slow" in (temp_dir / "tangram-cv.log").read_text(encoding="utf-8")
