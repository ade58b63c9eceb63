"""
AuthSettings のユニットテスト
"""

import os
import unittest

from pydantic import ValidationError

from authbackend.config.settings import AuthSettings
from authbackend.models import AuthProviderConfig


class TestAuthSettings(unittest.TestCase):
    """グローバル設定のテスト"""

    def setUp(self):
        self.original_env = os.environ.copy()
        for key in list(os.environ.keys()):
            if key.startswith("AUTH_"):
                del os.environ[key]

    def tearDown(self):
        os.environ.clear()
        os.environ.update(self.original_env)

    def test_defaults(self):
        settings = AuthSettings(base_url="https://backend/api/auth")

        self.assertEqual(settings.base_url, "https://backend/api/auth")
        self.assertEqual(settings.http_timeout, 10.0)
        self.assertIsNone(settings.providers_file)

    def test_env_overrides_init(self):
        """環境変数が初期化引数より優先される"""
        os.environ["AUTH_BASE_URL"] = "https://env/api/auth"
        os.environ["AUTH_HTTP_TIMEOUT"] = "2.5"

        settings = AuthSettings(base_url="https://init/api/auth")

        self.assertEqual(settings.base_url, "https://env/api/auth")
        self.assertEqual(settings.http_timeout, 2.5)

    def test_base_url_required(self):
        with self.assertRaises(ValidationError):
            AuthSettings()

    def test_invalid_base_url(self):
        for value in ("", "  ", "ftp://backend"):
            with self.subTest(value=value):
                with self.assertRaises(ValidationError):
                    AuthSettings(base_url=value)

    def test_timeout_must_be_positive(self):
        with self.assertRaises(ValidationError):
            AuthSettings(base_url="https://backend", http_timeout=0)

    def test_to_provider_config(self):
        settings = AuthSettings(base_url="https://backend/api/auth")

        self.assertEqual(
            settings.to_provider_config(), AuthProviderConfig(base_url="https://backend/api/auth")
        )


if __name__ == "__main__":
    unittest.main()
