"""Tests for the shared logging setup."""

from loguru import logger

from logging_utils import get_component_logger, setup_service_logger


def test_component_logger_binds_service_name():
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        get_component_logger("print-service", "dispatcher").info("queued")
        logger.info("bare")
    finally:
        logger.remove(handler_id)

    assert [record["extra"]["service"] for record in records] == ["print-service.dispatcher", "-"]


def test_setup_service_logger_writes_log_file(tmp_path):
    """Test that a configured log file receives the service's records."""
    log_file = tmp_path / "print-service.log"

    service_logger = setup_service_logger("print-service", log_level="INFO", log_file=str(log_file))
    try:
        service_logger.debug("hidden")
        service_logger.info("Print server running")
        logger.complete()
    finally:
        setup_service_logger("print-service")

    content = log_file.read_text()
    assert "| INFO     | print-service | " in content
    assert "Print server running" in content
    assert "hidden" not in content
