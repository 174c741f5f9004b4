import json
import logging
import os
import shutil
import unittest
from unittest.mock import patch

from news_reader import config


class TestConfigLoading(unittest.TestCase):
    def setUp(self):
        self.test_dir = "/tmp/test_news_config"
        self.config_path = os.path.join(self.test_dir, ".config/news/config.json")

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_default_config_is_created(self):
        loaded = config.load_config(self.config_path)

        self.assertTrue(os.path.exists(self.config_path))
        self.assertEqual(loaded, config.DEFAULT_CONFIG)

    def test_existing_config_is_kept(self):
        os.makedirs(os.path.dirname(self.config_path))
        with open(self.config_path, "w") as f:
            json.dump({"source": "newsapi", "page_size": 5}, f)

        loaded = config.load_config(self.config_path)
        self.assertEqual(loaded["page_size"], 5)

    def test_invalid_json_gives_empty_config(self):
        os.makedirs(os.path.dirname(self.config_path))
        with open(self.config_path, "w") as f:
            f.write("{not json")

        self.assertEqual(config.load_config(self.config_path), {})

    def test_save_round_trip(self):
        data = {"source": "newsapi", "sources": {"newsapi": {"api_key": "k"}}}
        config.save_config(data, self.config_path)
        self.assertEqual(config.load_config(self.config_path), data)


class TestConfigValues(unittest.TestCase):
    @patch.dict(os.environ, {config.API_KEY_ENV: "from-env"})
    def test_env_overrides_api_key(self):
        settings = config.source_config(
            {"sources": {"newsapi": {"api_key": "from-file", "country": "gb"}}}, "newsapi"
        )
        self.assertEqual(settings["api_key"], "from-env")
        self.assertEqual(settings["country"], "gb")

    @patch.dict(os.environ, {}, clear=True)
    def test_file_api_key_without_env(self):
        settings = config.source_config({"sources": {"newsapi": {"api_key": "k"}}}, "newsapi")
        self.assertEqual(settings["api_key"], "k")

    def test_missing_source_block(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(config.source_config({}, "newsapi"), {})

    def test_page_size_is_clamped(self):
        self.assertEqual(config.page_size_from_config({}), config.PAGE_SIZE)
        self.assertEqual(config.page_size_from_config({"page_size": 100}), config.MAX_PAGE_SIZE)
        self.assertEqual(config.page_size_from_config({"page_size": 0}), 1)
        self.assertEqual(config.page_size_from_config({"page_size": "ten"}), config.PAGE_SIZE)

    def test_database_path_expands_user(self):
        path = config.database_path_from_config({"database": "~/news.db"})
        self.assertFalse(path.startswith("~"))
        self.assertEqual(config.database_path_from_config({}), config.DATABASE_PATH)


class TestLoggingSetup(unittest.TestCase):
    def tearDown(self):
        logging.getLogger("urllib3").setLevel(logging.NOTSET)

    @patch("news_reader.config.logging.basicConfig")
    def test_debug_log_goes_to_given_dir(self, basic_config):
        path = config.setup_logging(debug=True, log_dir="/tmp/news-logs")

        self.assertTrue(path.startswith("/tmp/news-logs/news_debug_"))
        self.assertEqual(basic_config.call_args.kwargs["filename"], path)
        self.assertEqual(logging.getLogger("urllib3").level, logging.INFO)

    @patch("news_reader.config.logging.basicConfig")
    def test_logging_disabled_without_debug(self, basic_config):
        self.assertIsNone(config.setup_logging(debug=False))
        self.assertEqual(basic_config.call_args.kwargs["level"], logging.CRITICAL)


if __name__ == "__main__":
    unittest.main()
