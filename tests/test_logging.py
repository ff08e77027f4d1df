# tests/test_logging.py
import logging

from opendata_gateway.utils.logging import LOGGER_NAME, get_logger, setup_logging


class TestGetLogger:
    """Test logger naming."""

    def test_root_logger(self):
        assert get_logger().name == LOGGER_NAME

    def test_module_name_kept(self):
        assert get_logger("opendata_gateway.fetchers.engine").name == "opendata_gateway.fetchers.engine"

    def test_foreign_name_nested(self):
        assert get_logger("tools").name == "opendata_gateway.tools"


class TestSetupLogging:
    """Test handler installation."""

    def test_console_only(self):
        logger = setup_logging()
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.INFO

    def test_verbose_console(self):
        logger = setup_logging(verbose=True)
        assert logger.handlers[0].level == logging.DEBUG

    def test_file_handler(self, tmp_path):
        log_dir = tmp_path / "logs"
        logger = setup_logging(log_dir)
        assert len(logger.handlers) == 2
        logging.getLogger("opendata_gateway.fetchers.engine").info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in (log_dir / "gateway.log").read_text(encoding="utf-8")
        setup_logging()

    def test_repeat_setup_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_quiets_library_loggers(self):
        setup_logging(quiet=("aiohttp.client",))
        assert logging.getLogger("aiohttp.client").level == logging.WARNING
