"""Tests for loguru setup and the prefixing handler."""

from loguru import logger

from pdf_image_adjuster.logger import create_logger, setup_logging


def test_prefixed_messages():
    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    try:
        log = create_logger("batch:all_pages")
        log.info("started")
        log.warning("cancelled")
        create_logger().debug("plain")
    finally:
        logger.remove(sink_id)

    assert messages == ["[batch:all_pages] started", "[batch:all_pages] cancelled", "plain"]


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "adjuster.log"
    setup_logging(console_level="ERROR", log_file=str(log_file))
    try:
        logger.info("hello file")
    finally:
        logger.remove()
        logger.add(lambda m: None)

    assert "hello file" in log_file.read_text(encoding="utf-8")
