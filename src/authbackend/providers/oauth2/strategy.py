"""汎用 OAuth 2.0 認可コードフローのワイヤプロトコル実装。"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, urlencode

import httpx

from authbackend.errors import (
    AuthBackendException,
    create_exchange_error,
    create_profile_error,
    create_refresh_error,
)
from authbackend.models import CodeExchangeResult, ProviderConfig, RedirectInfo, TokenGrant
from authbackend.providers.base import OAuthStrategy, OptionValue

logger = logging.getLogger(__name__)

# リフレッシュトークンの発行と毎回の同意画面を強制する
FIXED_AUTHORIZATION_PARAMS = {
    "access_type": "offline",
    "prompt": "consent",
}
PROTOCOL_PARAMS = ("response_type", "redirect_uri", "client_id")
DEFAULT_TIMEOUT_SECONDS = 10.0


class OAuth2Strategy(OAuthStrategy):
    """設定されたエンドポイントに対して OAuth 2.0 の各リクエストを行う。"""

    def __init__(
        self,
        config: ProviderConfig,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """OAuth2Strategyを初期化する。

        Args:
            config: プロバイダ設定。
            timeout_seconds: 各HTTPリクエストのタイムアウト。
            transport: httpx のトランスポート（テストや独自TLS設定用）。
        """

        self._config = config
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def config(self) -> ProviderConfig:
        return self._config

    def build_authorization_request(
        self, extra_params: Mapping[str, OptionValue]
    ) -> RedirectInfo:
        """認可URLを組み立てる（通信は行わない）。

        プロトコル上の必須パラメータと固定パラメータは呼び出し元の同名の値より優先する。
        """

        options = normalize_options(extra_params, self._config.scope_separator)

        params: dict[str, str] = {
            "response_type": "code",
            "redirect_uri": self._config.callback_url,
            "client_id": self._config.client_id,
        }
        if "scope" in options:
            params["scope"] = options["scope"]
        for key, value in options.items():
            if key in PROTOCOL_PARAMS or key in FIXED_AUTHORIZATION_PARAMS or key == "scope":
                continue
            params[key] = value
        params.update(FIXED_AUTHORIZATION_PARAMS)

        separator = "&" if "?" in self._config.authorization_url else "?"
        return RedirectInfo(url=f"{self._config.authorization_url}{separator}{urlencode(params)}")

    async def exchange_code_for_token(self, code: str) -> CodeExchangeResult:
        """認可コードをトークンと交換し、続けてプロフィールを取得する。

        Raises:
            ExchangeError: 通信失敗、非2xx応答、access_token の無い応答
            ProfileFetchError: プロフィール取得の失敗
        """

        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._config.callback_url,
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
        }
        payload = await self._request_token(data, create_error=_exchange_error_for)
        grant = _token_grant_from(payload, create_error=_exchange_error_for)

        raw_profile = await self.fetch_profile(grant.access_token, grant.id_token)
        return CodeExchangeResult(grant=grant, raw_profile=raw_profile)

    async def exchange_refresh_token(
        self, refresh_token: str, scope: Optional[str] = None
    ) -> TokenGrant:
        """リフレッシュトークンで新しいアクセストークンを得る。

        Raises:
            RefreshError: プロバイダがリフレッシュトークンを拒否した場合（4xx）
            ExchangeError: 通信失敗、5xx、不正な応答
        """

        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
        }
        if scope:
            data["scope"] = scope

        payload = await self._request_token(data, create_error=_refresh_error_for)
        return _token_grant_from(payload, create_error=_refresh_error_for)

    async def fetch_profile(
        self, access_token: str, id_token: Optional[str] = None
    ) -> dict[str, Any]:
        """プロフィールエンドポイントを Bearer トークンで呼び出す。

        profile_url が無いプロバイダでは通信せず空の辞書を返し、
        プロフィールは id_token のクレームから作られる。

        Raises:
            ProfileFetchError: 通信失敗、非2xx応答、JSONオブジェクトでない応答
        """

        profile_url = self._config.profile_url
        if not profile_url:
            return {}

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(profile_url, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(f"Profile request failed: {exc.__class__.__name__}")
            raise create_profile_error(
                "プロフィールエンドポイントに接続できませんでした",
                details={"reason": exc.__class__.__name__},
            ) from exc

        if response.is_error:
            logger.error(f"Profile fetch failed: status={response.status_code}")
            raise create_profile_error(
                f"プロフィールの取得に失敗しました (HTTP {response.status_code})",
                details={"status": response.status_code},
            )

        try:
            profile = response.json()
        except ValueError as exc:
            raise create_profile_error(
                "プロフィール応答がJSONではありません",
                details={"status": response.status_code},
            ) from exc

        if not isinstance(profile, dict):
            raise create_profile_error(
                "プロフィール応答がJSONオブジェクトではありません",
                details={"status": response.status_code},
            )
        return profile

    async def _request_token(self, data: dict[str, str], create_error) -> dict[str, Any]:
        grant_type = data["grant_type"]
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self._config.token_url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error(f"Token request ({grant_type}) failed: {exc.__class__.__name__}")
            raise create_exchange_error(
                "トークンエンドポイントに接続できませんでした",
                details={"grant_type": grant_type, "reason": exc.__class__.__name__},
            ) from exc

        payload = _parse_token_body(response)
        if response.is_error:
            error_code = payload.get("error") if payload else None
            logger.error(
                f"Token request ({grant_type}) failed: "
                f"status={response.status_code} error={error_code}"
            )
            raise create_error(
                f"トークンエンドポイントがエラーを返しました (HTTP {response.status_code})",
                {"grant_type": grant_type, "status": response.status_code, "error": error_code},
            )

        if payload is None:
            raise create_exchange_error(
                "トークン応答を解析できませんでした",
                details={"grant_type": grant_type, "status": response.status_code},
            )
        return payload


def normalize_options(
    options: Mapping[str, OptionValue], scope_separator: str = " "
) -> dict[str, str]:
    """呼び出し元のオプションを文字列の辞書にする。

    None の値は無視する。scope のみ文字列のリストも受け付ける。

    Raises:
        ValueError: キーや値が文字列でない場合
    """

    if not isinstance(options, Mapping):
        raise ValueError(f"options はマッピングである必要があります: {type(options).__name__}")

    normalized: dict[str, str] = {}
    for key, value in options.items():
        if not isinstance(key, str):
            raise ValueError(f"オプション名は文字列である必要があります: {key!r}")
        if value is None:
            continue
        if key == "scope" and isinstance(value, (list, tuple)):
            if not all(isinstance(item, str) for item in value):
                raise ValueError("scope のリストは文字列のみを含む必要があります")
            normalized[key] = scope_separator.join(value)
            continue
        if not isinstance(value, str):
            raise ValueError(f"オプション {key} の値は文字列である必要があります")
        normalized[key] = value
    return normalized


def _parse_token_body(response: httpx.Response) -> dict[str, Any] | None:
    """JSON またはフォーム形式のトークン応答を辞書にする"""
    try:
        body = response.json()
    except ValueError:
        content_type = response.headers.get("content-type", "")
        if "application/x-www-form-urlencoded" in content_type or "text/plain" in content_type:
            body = dict(parse_qsl(response.text))
        else:
            return None
    return body if isinstance(body, dict) else None


def _token_grant_from(payload: dict[str, Any], create_error) -> TokenGrant:
    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        error_code = payload.get("error")
        if error_code:
            # 200 応答で error を返すプロバイダがある
            logger.error(f"Token request rejected: error={error_code}")
            raise create_error(
                f"トークンエンドポイントが要求を拒否しました: {error_code}",
                {"error": error_code},
            )
        raise create_exchange_error("トークン応答に access_token がありません")

    refresh_token = payload.get("refresh_token")
    return TokenGrant(
        access_token=access_token,
        refresh_token=refresh_token if isinstance(refresh_token, str) and refresh_token else None,
        params=payload,
    )


def _exchange_error_for(message: str, details: dict[str, Any]) -> AuthBackendException:
    return create_exchange_error(message, details=details)


def _refresh_error_for(message: str, details: dict[str, Any]) -> AuthBackendException:
    # 4xx はトークンの拒否（期限切れ・失効）、それ以外は一時的な失敗として扱う
    status = details.get("status")
    if status is None or 400 <= status < 500:
        return create_refresh_error(message, details=details)
    return create_exchange_error(message, details=details)
