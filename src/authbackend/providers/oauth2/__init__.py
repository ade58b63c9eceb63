"""汎用 OAuth 2.0 プロバイダ"""

from authbackend.providers.oauth2.provider import (
    DEFAULT_PROVIDER_ID,
    OAuth2AuthProvider,
    create_oauth2_provider,
    create_oauth2_provider_from_settings,
)
from authbackend.providers.oauth2.strategy import OAuth2Strategy

__all__ = [
    "DEFAULT_PROVIDER_ID",
    "OAuth2AuthProvider",
    "OAuth2Strategy",
    "create_oauth2_provider",
    "create_oauth2_provider_from_settings",
]
