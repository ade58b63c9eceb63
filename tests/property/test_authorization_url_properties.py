"""
認可URL組み立てのプロパティテスト

呼び出し元のオプションに関係なく access_type=offline と prompt=consent が付く。
"""

import asyncio
import unittest
from urllib.parse import parse_qs, urlparse

from hypothesis import given, settings
from hypothesis import strategies as st

from authbackend.models import ProviderConfig, RequestContext
from authbackend.providers.oauth2 import OAuth2AuthProvider, OAuth2Strategy

option_key = st.one_of(
    st.sampled_from(["scope", "state", "access_type", "prompt", "login_hint", "nonce"]),
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=12),
)
option_value = st.text(
    alphabet=st.characters(whitelist_categories=("L", "N", "P")), min_size=1, max_size=30
)

CONFIG = ProviderConfig(
    client_id="c1",
    client_secret="s1",
    callback_url="https://backend/oauth2/handler/frame",
    authorization_url="https://idp/auth",
    token_url="https://idp/token",
)


class TestAuthorizationUrlProperty(unittest.TestCase):
    """start のプロパティテスト"""

    @given(options=st.dictionaries(option_key, option_value, max_size=6))
    @settings(max_examples=200)
    def test_fixed_params_always_win(self, options):
        """固定パラメータは同名のオプションに上書きされない"""
        provider = OAuth2AuthProvider(OAuth2Strategy(CONFIG))

        redirect = asyncio.run(provider.start(RequestContext(), options))

        query = parse_qs(urlparse(redirect.url).query, keep_blank_values=True)
        self.assertEqual(query["access_type"], ["offline"])
        self.assertEqual(query["prompt"], ["consent"])
        self.assertEqual(query["client_id"], ["c1"])
        self.assertEqual(query["response_type"], ["code"])
        for key, value in options.items():
            if key in ("access_type", "prompt", "client_id", "response_type", "redirect_uri"):
                continue
            self.assertEqual(query[key], [value])


if __name__ == "__main__":
    unittest.main()
