import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from kurssihaku.config import load_settings


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d, mock.patch.dict(os.environ, {}, clear=True):
            settings = load_settings(Path(d) / "missing.env")

        self.assertIsNone(settings.api_url)
        self.assertIsNone(settings.output_file)
        self.assertTrue(settings.parse_on_boot)
        self.assertIsNone(settings.run_interval_minutes)
        self.assertEqual(settings.request_timeout, 30.0)
        self.assertEqual(settings.max_pages, 500)
        self.assertEqual(settings.detail_workers, 1)
        self.assertEqual(settings.crawl_days, 365)
        self.assertEqual(settings.log_level, "INFO")

    def test_env_file_values(self) -> None:
        with tempfile.TemporaryDirectory() as d, mock.patch.dict(os.environ, {}, clear=True):
            env = Path(d) / ".env"
            env.write_text(
                "API_URL=https://api.example.org/courses\n"
                "PARSE_ON_BOOT=false\n"
                "RUN_INTERVAL_MINUTES=60\n"
                "DETAIL_WORKERS=4\n"
                "LOG_LEVEL=debug\n",
                encoding="utf-8",
            )
            settings = load_settings(env)

        self.assertEqual(settings.api_url, "https://api.example.org/courses")
        self.assertFalse(settings.parse_on_boot)
        self.assertEqual(settings.run_interval_minutes, 60)
        self.assertEqual(settings.detail_workers, 4)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_process_environment_wins_over_env_file(self) -> None:
        with tempfile.TemporaryDirectory() as d, mock.patch.dict(os.environ, {"MAX_PAGES": "20"}, clear=True):
            env = Path(d) / ".env"
            env.write_text("MAX_PAGES=99\n", encoding="utf-8")
            settings = load_settings(env)

        self.assertEqual(settings.max_pages, 20)

    def test_invalid_numbers_fall_back(self) -> None:
        values = {"MAX_PAGES": "lots", "REQUEST_TIMEOUT": "soon", "DETAIL_WORKERS": "0"}
        with tempfile.TemporaryDirectory() as d, mock.patch.dict(os.environ, values, clear=True):
            settings = load_settings(Path(d) / "missing.env")

        self.assertEqual(settings.max_pages, 500)
        self.assertEqual(settings.request_timeout, 30.0)
        self.assertEqual(settings.detail_workers, 1)

    def test_unknown_log_level_falls_back_to_info(self) -> None:
        with tempfile.TemporaryDirectory() as d, mock.patch.dict(os.environ, {"LOG_LEVEL": "verbose"}, clear=True):
            settings = load_settings(Path(d) / "missing.env")

        self.assertEqual(settings.log_level, "INFO")


if __name__ == "__main__":
    unittest.main()
