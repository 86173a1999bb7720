import os
import unittest
from unittest.mock import patch

from service.event_discovery.config import DEFAULT_TICKETMASTER_BASE_URL, load_settings


class TestLoadSettings(unittest.TestCase):
    @patch("service.event_discovery.config.load_dotenv")
    def test_defaults(self, mock_load_dotenv):
        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings()

        mock_load_dotenv.assert_called_once_with()
        self.assertEqual(settings.ticketmaster_api_key, "")
        self.assertEqual(settings.ticketmaster_base_url, DEFAULT_TICKETMASTER_BASE_URL)
        self.assertEqual(settings.ticketmaster_country_code, "GB")
        self.assertEqual(settings.search_debounce_seconds, 0.5)
        self.assertIsNone(settings.firebase_project_id)

    @patch("service.event_discovery.config.load_dotenv")
    def test_environment_overrides(self, mock_load_dotenv):
        env = {
            "TICKETMASTER_API_KEY": "key",
            "TICKETMASTER_BASE_URL": "https://tm.example/v2/",
            "FIREBASE_PROJECT_ID": "qiktix-dev",
            "SEARCH_DEBOUNCE_SECONDS": "0.25",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings()

        self.assertEqual(settings.ticketmaster_api_key, "key")
        self.assertEqual(settings.ticketmaster_base_url, "https://tm.example/v2")
        self.assertEqual(settings.firebase_project_id, "qiktix-dev")
        self.assertEqual(settings.search_debounce_seconds, 0.25)
        self.assertEqual(settings.log_level, "DEBUG")

    @patch("service.event_discovery.config.load_dotenv")
    def test_dotenv_path(self, mock_load_dotenv):
        with patch.dict(os.environ, {"DOTENV_PATH": __file__}, clear=True):
            load_settings()
        mock_load_dotenv.assert_called_once_with(__file__)


if __name__ == "__main__":
    unittest.main()
