"""Tests for the logging setup helper."""
import logging
import os
import sys
import unittest
from unittest.mock import patch

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dealermaster.config import LOG_FORMAT, configure_logging


class TestConfigureLogging(unittest.TestCase):

    @patch('dealermaster.config.logging.basicConfig')
    def test_default_level(self, mock_basic_config):
        configure_logging()
        mock_basic_config.assert_called_once_with(level=logging.INFO, format=LOG_FORMAT)

    @patch('dealermaster.config.logging.basicConfig')
    def test_explicit_level(self, mock_basic_config):
        configure_logging(logging.DEBUG)
        mock_basic_config.assert_called_once_with(level=logging.DEBUG, format=LOG_FORMAT)


if __name__ == '__main__':
    unittest.main()
