import io
import logging
import os
import unittest
from unittest.mock import patch

from colored_logger import (
    SUCCESS_LEVEL,
    ColoredFormatter,
    get_colored_logger,
    setup_colored_logging,
)


class _TTYStream(io.StringIO):
    def isatty(self):
        return True


class TestColoredLogger(unittest.TestCase):
    """Test cases for the logging helpers."""

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)

    def _record(self, level=logging.INFO):
        return logging.LogRecord(
            "cookbook", level, __file__, 1, "indexed %s", ("Bread",), None
        )

    @patch.dict(os.environ, {}, clear=True)
    def test_formatter_colors_tty_output(self):
        formatter = ColoredFormatter("%(levelname)s %(message)s", stream=_TTYStream())
        output = formatter.format(self._record())

        self.assertTrue(output.startswith(ColoredFormatter.COLORS["INFO"]))
        self.assertIn("INFO indexed Bread", output)

    @patch.dict(os.environ, {"NO_COLOR": "1"}, clear=True)
    def test_no_color_disables_colors(self):
        formatter = ColoredFormatter("%(message)s", stream=_TTYStream())
        self.assertEqual(formatter.format(self._record()), "indexed Bread")

    def test_non_tty_output_is_plain(self):
        formatter = ColoredFormatter("%(message)s", stream=io.StringIO())
        self.assertEqual(formatter.format(self._record()), "indexed Bread")

    def test_setup_accepts_level_names(self):
        setup_colored_logging("debug")
        root = logging.getLogger()

        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(len(root.handlers), 1)

    def test_setup_unknown_level_name_uses_info(self):
        setup_colored_logging("chatty")
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_success_level_is_logged(self):
        logger = get_colored_logger("cookbook.test")
        with self.assertLogs("cookbook.test", level=SUCCESS_LEVEL) as logs:
            logger.success("Loaded %d recipes", 3)
        self.assertEqual(logs.records[0].levelname, "SUCCESS")
        self.assertEqual(logs.records[0].getMessage(), "Loaded 3 recipes")


if __name__ == "__main__":
    unittest.main()
