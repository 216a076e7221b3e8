import logging
import tempfile
import unittest
from pathlib import Path
from logging.handlers import RotatingFileHandler

from voice_bridge.config.logging_config import LOG_FORMAT, configure_logging


class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        logger = configure_logging("INFO")
        self.assertIsInstance(logger, logging.Logger)
        self.assertEqual(logger.name, "voice_bridge")
        self.assertEqual(logger.level, logging.INFO)
        self.assertFalse(logger.propagate)

        # console handler first, rotating file handler when logs/ is writable
        self.assertGreaterEqual(len(logger.handlers), 1)
        handler = logger.handlers[0]
        self.assertIsInstance(handler, logging.StreamHandler)
        self.assertEqual(handler.formatter._fmt, LOG_FORMAT)
        for extra in logger.handlers[1:]:
            self.assertIsInstance(extra, RotatingFileHandler)

    def test_level_override(self):
        logger = configure_logging("debug")
        self.assertEqual(logger.level, logging.DEBUG)
        configure_logging("INFO")

    def test_reconfigure_does_not_duplicate_handlers(self):
        first = len(configure_logging("INFO").handlers)
        second = len(configure_logging("INFO").handlers)
        self.assertEqual(first, second)

    def test_log_file_location(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "bridge.log"
            logger = configure_logging("INFO", log_file=str(path))
            logger.info("call CA1 started")
            for handler in logger.handlers:
                handler.flush()
            self.assertIn("call CA1 started", path.read_text())
            configure_logging("INFO", log_file="")

    def test_empty_log_file_disables_file_logging(self):
        logger = configure_logging("INFO", log_file="")
        self.assertEqual(len(logger.handlers), 1)
        self.assertNotIsInstance(logger.handlers[0], RotatingFileHandler)


if __name__ == "__main__":
    unittest.main()
