"""
Unit tests for the logging helpers.
"""

import logging
import os
import unittest
from unittest import mock

from s3_resume_upload.log import (
    LOG_LEVEL_ENV,
    PACKAGE_LOGGER,
    configure_logging,
    level_from_env,
    setup_default_logging,
)


class LogTester(unittest.TestCase):
    """Test logging setup."""

    def setUp(self) -> None:
        self.root_handlers = list(logging.root.handlers)
        self.root_level = logging.root.level
        self.package_logger = logging.getLogger(PACKAGE_LOGGER)
        self.package_handlers = list(self.package_logger.handlers)
        self.package_level = self.package_logger.level
        self.botocore_level = logging.getLogger("botocore").level

    def tearDown(self) -> None:
        logging.root.handlers[:] = self.root_handlers
        logging.root.setLevel(self.root_level)
        self.package_logger.handlers[:] = self.package_handlers
        self.package_logger.setLevel(self.package_level)
        logging.getLogger("botocore").setLevel(self.botocore_level)

    def test_level_from_env(self) -> None:
        with mock.patch.dict(os.environ, {LOG_LEVEL_ENV: "debug"}):
            self.assertEqual(level_from_env(), logging.DEBUG)
        with mock.patch.dict(os.environ, {LOG_LEVEL_ENV: "nonsense"}):
            self.assertEqual(level_from_env(logging.WARNING), logging.WARNING)
        with mock.patch.dict(os.environ, {LOG_LEVEL_ENV: ""}):
            self.assertEqual(level_from_env(), logging.INFO)

    def test_default_setup_leaves_root_alone(self) -> None:
        logging.root.handlers[:] = []
        self.package_logger.handlers[:] = []
        setup_default_logging()
        setup_default_logging()
        self.assertEqual(logging.root.handlers, [])
        self.assertEqual(len(self.package_logger.handlers), 1)

    def test_default_setup_defers_to_application_handlers(self) -> None:
        logging.root.handlers[:] = [logging.NullHandler()]
        self.package_logger.handlers[:] = []
        setup_default_logging()
        self.assertEqual(self.package_logger.handlers, [])

    def test_configure_quiets_transport_loggers(self) -> None:
        configure_logging(level=logging.INFO)
        self.assertEqual(logging.getLogger("botocore").level, logging.WARNING)
        self.assertEqual(self.package_logger.level, logging.INFO)
        self.assertEqual(self.package_logger.handlers, [])
        configure_logging(level=logging.DEBUG)
        self.assertEqual(logging.getLogger("botocore").level, logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
