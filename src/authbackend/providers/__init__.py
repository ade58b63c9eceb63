"""認証プロバイダの公開API。"""

from __future__ import annotations

from authbackend.providers.base import OAuthProviderHandlers, OAuthStrategy, TokenIssuer
from authbackend.providers.oauth2 import (
    OAuth2AuthProvider,
    OAuth2Strategy,
    create_oauth2_provider,
    create_oauth2_provider_from_settings,
)

__all__ = [
    "OAuth2AuthProvider",
    "OAuth2Strategy",
    "OAuthProviderHandlers",
    "OAuthStrategy",
    "TokenIssuer",
    "create_oauth2_provider",
    "create_oauth2_provider_from_settings",
]
