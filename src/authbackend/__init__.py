"""OAuth 2.0 認可コードフローによる認証バックエンドのプロバイダ"""

from authbackend.errors import (
    AuthBackendException,
    CallbackError,
    Cancelled,
    ConfigError,
    ExchangeError,
    IdentityResolutionError,
    ProfileFetchError,
    RefreshError,
)
from authbackend.models import (
    AuthProviderConfig,
    BackstageIdentity,
    HandlerResult,
    OAuthResponse,
    ProfileInfo,
    ProviderConfig,
    ProviderInfo,
    RedirectInfo,
    RequestContext,
)
from authbackend.providers import (
    OAuth2AuthProvider,
    create_oauth2_provider,
    create_oauth2_provider_from_settings,
)

__version__ = "0.1.0"

__all__ = [
    "AuthBackendException",
    "AuthProviderConfig",
    "BackstageIdentity",
    "CallbackError",
    "Cancelled",
    "ConfigError",
    "ExchangeError",
    "HandlerResult",
    "IdentityResolutionError",
    "OAuth2AuthProvider",
    "OAuthResponse",
    "ProfileFetchError",
    "ProfileInfo",
    "ProviderConfig",
    "ProviderInfo",
    "RedirectInfo",
    "RefreshError",
    "RequestContext",
    "create_oauth2_provider",
    "create_oauth2_provider_from_settings",
]
