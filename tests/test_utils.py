import os
import unittest
from unittest import mock

from enkabot.cog import split_refresh_flag
from enkabot.config import load_settings
from enkabot.messages import message
from enkabot.utils import int_from_env, is_valid_uid, normalize_locale

LOCALES = ("en", "zh-CN", "zh-TW", "ja", "pt")


class UidValidationTests(unittest.TestCase):
    def test_accepts_allowed_first_digits_and_lengths(self) -> None:
        for uid in ("1234", "100000001", "2000000001", "500000000", "912345678"):
            self.assertTrue(is_valid_uid(uid), uid)

    def test_rejects_bad_first_digit_length_or_characters(self) -> None:
        for uid in ("312345678", "012345678", "123", "12345678901", "1234abcd", ""):
            self.assertFalse(is_valid_uid(uid), uid)


class LocaleTests(unittest.TestCase):
    def test_normalize_locale(self) -> None:
        self.assertEqual(normalize_locale("zh-CN", LOCALES, "en"), "zh-CN")
        self.assertEqual(normalize_locale("zh_tw", LOCALES, "en"), "zh-TW")
        self.assertEqual(normalize_locale("en-US", LOCALES, "zh-CN"), "en")
        self.assertEqual(normalize_locale("pt-BR", LOCALES, "en"), "pt")
        self.assertEqual(normalize_locale("xx", LOCALES, "en"), "en")
        self.assertEqual(normalize_locale(None, LOCALES, "ja"), "ja")

    def test_message_falls_back_to_english(self) -> None:
        self.assertEqual(message("uid_saved", "ja", uid="100000001"), "Saved your uid (100000001).")
        self.assertEqual(message("uid_saved", "zh-CN", uid="100000001"), "已保存你的 uid(100000001)")
        self.assertEqual(message("no_such_key"), "no_such_key")


class CommandArgumentTests(unittest.TestCase):
    def test_split_refresh_flag(self) -> None:
        self.assertEqual(split_refresh_flag(""), ("", False))
        self.assertEqual(split_refresh_flag("--refresh"), ("", True))
        self.assertEqual(split_refresh_flag("Kamisato Ayaka -r"), ("Kamisato Ayaka", True))
        self.assertEqual(split_refresh_flag("Jean"), ("Jean", False))


class SettingsTests(unittest.TestCase):
    def test_invalid_integer_falls_back(self) -> None:
        with mock.patch.dict(os.environ, {"ENKABOT_CACHE_MAX_AGE": "soon"}):
            self.assertEqual(int_from_env("ENKABOT_CACHE_MAX_AGE", 300000), 300000)

    def test_load_settings_reads_environment(self) -> None:
        env = {
            "ENKABOT_CACHE_MAX_AGE": "120000",
            "ENKABOT_PAGE_BASE_URL": "https://proxy.example/",
            "ENKABOT_CAPTURE_TIMEOUT": "0",
            "ENKABOT_HEADLESS": "false",
        }
        with mock.patch.dict(os.environ, env):
            settings = load_settings()
        self.assertEqual(settings.cache_max_age_ms, 120000)
        self.assertEqual(settings.page_base_url, "https://proxy.example")
        self.assertIsNone(settings.capture_timeout)
        self.assertFalse(settings.headless)
        self.assertEqual(settings.names_file.name, "names.json")


if __name__ == "__main__":
    unittest.main()
