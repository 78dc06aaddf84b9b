"""Logger configuration and multi-line calculation records."""

import logging

from RTSecondCheck.utils.logging import LOGGER_NAME, get_logger, log_block, setup_logger


class TestLogging:

    def test_log_block_one_record_per_line(self, caplog):
        caplog.set_level(logging.INFO, logger=LOGGER_NAME)
        log_block(get_logger(), "TPR = 0.8\nScp = 0.97\nTime = 94.599 sec")
        assert [record.getMessage() for record in caplog.records] == [
            "TPR = 0.8", "Scp = 0.97", "Time = 94.599 sec"
        ]

    def test_log_block_respects_level(self, caplog):
        caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
        log_block(get_logger(), "a\nb", level=logging.DEBUG)
        assert caplog.records == []

    def test_setup_replaces_handlers(self, tmp_path):
        first = tmp_path / 'first.log'
        second = tmp_path / 'second.log'
        setup_logger(log_file=str(first))
        logger = setup_logger(log_file=str(second))
        assert len(logger.handlers) == 2
        logger.info("second run")
        for handler in logger.handlers:
            handler.flush()
        assert "second run" in second.read_text()
        assert "second run" not in first.read_text()

    def test_file_appended(self, tmp_path):
        log_file = tmp_path / 'check.log'
        setup_logger(log_file=str(log_file)).info("run one")
        logger = setup_logger(log_file=str(log_file))
        logger.info("run two")
        for handler in logger.handlers:
            handler.flush()
        text = log_file.read_text()
        assert "run one" in text and "run two" in text
