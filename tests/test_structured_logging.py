"""结构化日志测试."""

import json
import logging
import sys

from services.structured_logging import (
    LOGGER_NAMESPACES,
    EvaluationStage,
    LoggingContext,
    PersonalizationLoggerAdapter,
    StructuredFormatter,
    current_profile_id,
    current_stage,
    setup_structured_logging,
)


def _record(message="hello", **extra):
    record = logging.LogRecord("services.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_context_and_metrics():
    formatter = StructuredFormatter()
    with LoggingContext(profile_id="user2", stage=EvaluationStage.EVALUATE):
        line = formatter.format(_record(variant_key="premium", rule_count=3))

    data = json.loads(line)
    assert data["message"] == "hello"
    assert data["profile_id"] == "user2"
    assert data["stage"] == "evaluate"
    assert data["variant_key"] == "premium"
    assert data["rule_count"] == 3
    assert "rule_id" not in data


def test_context_is_reset_on_exit():
    with LoggingContext(profile_id="user1", stage=EvaluationStage.SAVE_RULES) as ctx:
        assert current_profile_id.get() == "user1"
        assert ctx.duration_ms >= 0
    assert current_profile_id.get() is None
    assert current_stage.get() is None


def test_formatter_records_exceptions():
    formatter = StructuredFormatter()
    try:
        raise OSError("disk full")
    except OSError:
        record = _record("save failed")
        record.exc_info = sys.exc_info()

    data = json.loads(formatter.format(record))
    assert data["error_type"] == "OSError"
    assert data["error_details"] == "disk full"
    assert "Traceback" in data["stack_trace"]


def test_adapter_keeps_extra_fields(caplog):
    adapter = PersonalizationLoggerAdapter(logging.getLogger("services.test_adapter"))
    with caplog.at_level(logging.INFO, logger="services.test_adapter"):
        adapter.log_evaluation("premium", "rule-1", 3, 0.5)

    record = caplog.records[-1]
    assert record.variant_key == "premium"
    assert record.rule_id == "rule-1"
    assert "rule-1" in record.getMessage()


def test_setup_writes_json_lines(tmp_path):
    log_file = tmp_path / "logs" / "personalization.jsonl"
    setup_structured_logging(log_file=str(log_file), log_level="DEBUG", enable_console=False)
    try:
        logging.getLogger("engine.test_setup").debug("written")
        for handler in logging.getLogger("engine").handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").strip().splitlines()
        assert json.loads(lines[-1])["message"] == "written"
    finally:
        setup_structured_logging(enable_console=False)


def test_setup_configures_every_namespace(tmp_path):
    log_file = tmp_path / "app.jsonl"
    setup_structured_logging(log_file=str(log_file), log_level="WARNING", enable_console=False)
    try:
        for name in LOGGER_NAMESPACES:
            namespace_logger = logging.getLogger(name)
            assert namespace_logger.level == logging.WARNING
            assert any(isinstance(h, logging.FileHandler) for h in namespace_logger.handlers)
        assert set(LOGGER_NAMESPACES) == {"engine", "services", "config", "scripts"}
    finally:
        setup_structured_logging(enable_console=False)
