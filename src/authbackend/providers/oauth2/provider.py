"""汎用 OAuth 2.0 認証プロバイダ（start / handler / refresh）とそのファクトリ。"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

from authbackend.config.reader import ConfigReader
from authbackend.config.settings import AuthSettings
from authbackend.core.cancellation import run_cancellable
from authbackend.errors import (
    create_callback_error,
    create_config_error,
    create_identity_error,
    create_refresh_error,
)
from authbackend.identity import IdentityResolver, make_profile_info, resolve_identity
from authbackend.models import (
    AuthProviderConfig,
    HandlerResult,
    OAuthResponse,
    PrivateInfo,
    ProviderConfig,
    RedirectInfo,
    RequestContext,
)
from authbackend.providers.base import (
    OAuthProviderHandlers,
    OAuthStrategy,
    OptionValue,
    TokenIssuer,
)
from authbackend.providers.oauth2.strategy import (
    DEFAULT_TIMEOUT_SECONDS,
    FIXED_AUTHORIZATION_PARAMS,
    OAuth2Strategy,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_ID = "oauth2"


class OAuth2AuthProvider(OAuthProviderHandlers):
    """OAuth 2.0 認可コードフローを3つの入口で進める。

    状態は持たず、各呼び出しは独立したトランザクションとして扱う。
    """

    def __init__(
        self,
        strategy: OAuthStrategy,
        provider_id: str = DEFAULT_PROVIDER_ID,
        token_issuer: Optional[TokenIssuer] = None,
        identity_resolver: IdentityResolver = resolve_identity,
    ) -> None:
        """OAuth2AuthProviderを初期化する。

        Args:
            strategy: プロトコル呼び出しを担うストラテジ。
            provider_id: ホストがこのプロバイダを識別するID。
            token_issuer: セッショントークンを発行するコラボレータ。
            identity_resolver: ProfileInfo から内部IDを導く関数。
        """

        self._strategy = strategy
        self._provider_id = provider_id
        self._token_issuer = token_issuer
        self._identity_resolver = identity_resolver

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def token_issuer(self) -> Optional[TokenIssuer]:
        return self._token_issuer

    @property
    def disable_refresh(self) -> bool:
        return False

    async def start(
        self, context: RequestContext, options: Mapping[str, OptionValue]
    ) -> RedirectInfo:
        """認可サーバーへのリダイレクト先を返す。通信は行わず context も参照しない。"""
        if not isinstance(options, Mapping):
            raise ValueError(f"options はマッピングである必要があります: {type(options).__name__}")
        provider_options = {**options, **FIXED_AUTHORIZATION_PARAMS}
        redirect = self._strategy.build_authorization_request(provider_options)
        logger.debug(f"[{self._provider_id}] Redirecting to authorization server")
        return redirect

    async def handler(self, context: RequestContext) -> HandlerResult:
        """認可コードを交換し、IDを解決した結果を返す。

        リフレッシュトークンは OAuthResponse とは別に返す。
        プロバイダが発行しなかった場合は None になる。

        Raises:
            CallbackError: コールバックにエラーが含まれる、またはコードが無い場合
            ExchangeError: トークン交換の失敗
            ProfileFetchError: プロフィール取得の失敗
            IdentityResolutionError: email が無い場合
            Cancelled: 通信中に中断された場合
        """

        code = self._extract_code(context)
        exchanged = await run_cancellable(
            self._strategy.exchange_code_for_token(code),
            context.cancel_event,
            context.timeout_seconds,
            step="code exchange",
        )

        grant = exchanged.grant
        response = self._populate_identity(
            OAuthResponse(
                provider_info=grant.to_provider_info(),
                profile=make_profile_info(exchanged.raw_profile, grant.id_token),
            )
        )
        private_info = PrivateInfo(refresh_token=grant.refresh_token)
        if private_info.refresh_token is None:
            logger.warning(
                f"[{self._provider_id}] Token response did not include a refresh_token"
            )

        return HandlerResult(response=response, refresh_token=private_info.refresh_token)

    async def refresh(
        self,
        refresh_token: str,
        scope: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> OAuthResponse:
        """リフレッシュトークンで新しいアクセストークンとIDを得る。

        新しいリフレッシュトークンは返さないため、呼び出し元は元のトークンを保持し続ける。

        Raises:
            RefreshError: リフレッシュトークンが拒否された場合
            ExchangeError: トークンエンドポイントの一時的な失敗
            ProfileFetchError: プロフィール取得の失敗
            IdentityResolutionError: email が無い場合
            Cancelled: 通信中に中断された場合
        """

        if not refresh_token:
            raise create_refresh_error("リフレッシュトークンがありません")

        context = context or RequestContext()
        grant = await run_cancellable(
            self._strategy.exchange_refresh_token(refresh_token, scope),
            context.cancel_event,
            context.timeout_seconds,
            step="refresh token exchange",
        )
        raw_profile = await run_cancellable(
            self._strategy.fetch_profile(grant.access_token, grant.id_token),
            context.cancel_event,
            context.timeout_seconds,
            step="profile fetch",
        )

        return self._populate_identity(
            OAuthResponse(
                provider_info=grant.to_provider_info(),
                profile=make_profile_info(raw_profile, grant.id_token),
            )
        )

    async def issue_token(self, response: OAuthResponse) -> str:
        """解決済みIDからセッショントークンを発行する。

        Raises:
            IdentityResolutionError: response にIDが無い場合
            RuntimeError: token_issuer が設定されていない場合
        """

        if response.backstage_identity is None:
            raise create_identity_error("応答に解決済みのIDがありません")
        if self._token_issuer is None:
            raise RuntimeError(f"{self._provider_id} に token_issuer が設定されていません")
        return await self._token_issuer.issue_token({"sub": response.backstage_identity.id})

    def _extract_code(self, context: RequestContext) -> str:
        query = context.query
        error = query.get("error")
        if error:
            logger.warning(f"[{self._provider_id}] Authorization server returned error={error}")
            raise create_callback_error(
                f"認可サーバーがエラーを返しました: {error}",
                details={
                    "error": error,
                    "error_description": query.get("error_description"),
                },
            )

        code = query.get("code")
        if not isinstance(code, str) or not code:
            raise create_callback_error("コールバックに認可コードがありません")
        return code

    def _populate_identity(self, response: OAuthResponse) -> OAuthResponse:
        identity = self._identity_resolver(response.profile)
        logger.debug(f"[{self._provider_id}] Resolved identity {identity.id}")
        response.backstage_identity = identity
        return response


def create_oauth2_provider(
    provider_id: str,
    global_config: AuthProviderConfig,
    env_config: ConfigReader,
    token_issuer: Optional[TokenIssuer] = None,
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> OAuth2AuthProvider:
    """設定から OAuth2AuthProvider を組み立てる。

    ホストへの登録は行わない。必須の設定値が欠けている場合は起動時に失敗する。

    Args:
        provider_id: プロバイダID（コールバックURLの一部になる）
        global_config: 全プロバイダ共通の設定
        env_config: プロバイダ個別の設定
        token_issuer: セッショントークンを発行するコラボレータ
        timeout_seconds: HTTPタイムアウト
        transport: httpx のトランスポート

    Raises:
        ConfigError: 必須の設定値が無い場合
    """

    if not global_config.base_url:
        raise create_config_error(
            "必須の設定値がありません: baseUrl", details={"key": "baseUrl"}
        )

    config = ProviderConfig(
        client_id=env_config.get_string("clientId"),
        client_secret=env_config.get_string("clientSecret"),
        callback_url=f"{global_config.base_url}/{provider_id}/handler/frame",
        authorization_url=env_config.get_string("authorizationUrl"),
        token_url=env_config.get_string("tokenUrl"),
        profile_url=env_config.get_optional_string("profileUrl"),
        scope_separator=env_config.get_optional_string("scopeSeparator") or " ",
    )
    logger.info(f"Configured OAuth2 provider {provider_id}: {config!r}")

    strategy = OAuth2Strategy(config, timeout_seconds=timeout_seconds, transport=transport)
    return OAuth2AuthProvider(strategy, provider_id=provider_id, token_issuer=token_issuer)


def create_oauth2_provider_from_settings(
    provider_id: str,
    settings: AuthSettings,
    token_issuer: Optional[TokenIssuer] = None,
    *,
    section: Optional[str] = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> OAuth2AuthProvider:
    """AuthSettings から OAuth2AuthProvider を組み立てる。

    プロバイダ個別の設定は providers_file の `providers.<provider_id>` セクションから読む。
    providers_file が無い場合は `AUTH_<PROVIDER_ID>_` で始まる環境変数から読む。

    Raises:
        ConfigError: 設定ファイルが読めない、または必須の設定値が無い場合
    """
    if settings.providers_file is not None:
        env_config = ConfigReader.from_yaml(
            settings.providers_file, section=section or f"providers.{provider_id}"
        )
    else:
        env_config = ConfigReader.from_env(f"AUTH_{provider_id.upper().replace('-', '_')}_")

    return create_oauth2_provider(
        provider_id,
        settings.to_provider_config(),
        env_config,
        token_issuer,
        timeout_seconds=settings.http_timeout,
        transport=transport,
    )
