"""
共通データモデル

OAuth2 認可コードフローの1トランザクション内で受け渡されるデータ構造を定義する。
いずれも永続化はされない。
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from authbackend.config.reader import mask_secret


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """プロバイダ1つ分の OAuth2 設定

    Attributes:
        client_id: クライアントID
        client_secret: クライアントシークレット
        callback_url: 認可サーバーからの戻り先URL
        authorization_url: 認可エンドポイント
        token_url: トークンエンドポイント
        profile_url: ユーザー情報エンドポイント（無い場合は id_token のクレームのみ）
        scope_separator: scope をリストで受け取った場合の区切り文字
    """

    client_id: str
    client_secret: str
    callback_url: str
    authorization_url: str
    token_url: str
    profile_url: Optional[str] = None
    scope_separator: str = " "

    def __repr__(self) -> str:
        return (
            f"ProviderConfig(client_id={self.client_id}, "
            f"client_secret={mask_secret(self.client_secret)}, "
            f"callback_url={self.callback_url}, "
            f"authorization_url={self.authorization_url}, "
            f"token_url={self.token_url}, profile_url={self.profile_url})"
        )


@dataclass(frozen=True, slots=True)
class AuthProviderConfig:
    """全プロバイダ共通の設定"""

    base_url: str


@dataclass(slots=True)
class ProviderInfo:
    """プロバイダが発行した資格情報（解釈せずにそのまま渡す）"""

    access_token: str
    scope: Optional[str] = None
    expires_in_seconds: Optional[Any] = None
    id_token: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "accessToken": self.access_token,
            "scope": self.scope,
            "expiresInSeconds": self.expires_in_seconds,
        }
        if self.id_token is not None:
            data["idToken"] = self.id_token
        return data


@dataclass(slots=True)
class ProfileInfo:
    """正規化したプロフィール"""

    email: Optional[str] = None
    display_name: Optional[str] = None
    picture: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "email": self.email,
            "displayName": self.display_name,
            "picture": self.picture,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True, slots=True)
class BackstageIdentity:
    """内部ユーザーID"""

    id: str


@dataclass(slots=True)
class OAuthResponse:
    """handler / refresh の結果

    backstage_identity はID解決が成功した後にのみ設定される。
    リフレッシュトークンは決して含めない。
    """

    provider_info: ProviderInfo
    profile: ProfileInfo
    backstage_identity: Optional[BackstageIdentity] = None

    def to_dict(self) -> dict[str, Any]:
        """ホストがクライアントへ返すためのcamelCase表現"""
        data: dict[str, Any] = {
            "providerInfo": self.provider_info.to_dict(),
            "profile": self.profile.to_dict(),
        }
        if self.backstage_identity is not None:
            data["backstageIdentity"] = {"id": self.backstage_identity.id}
        return data


@dataclass(slots=True)
class PrivateInfo:
    """ブラウザに渡してはならない情報"""

    refresh_token: Optional[str] = None

    def __repr__(self) -> str:
        masked = mask_secret(self.refresh_token) if self.refresh_token else None
        return f"PrivateInfo(refresh_token={masked})"


@dataclass(frozen=True, slots=True)
class RedirectInfo:
    """start の結果。HTTP層がリダイレクトに使う"""

    url: str
    status: Optional[int] = None


@dataclass(frozen=True, slots=True)
class HandlerResult:
    """handler の結果

    refresh_token はプロバイダが発行しなかった場合 None になる。
    """

    response: OAuthResponse
    refresh_token: Optional[str] = None


@dataclass(slots=True)
class TokenGrant:
    """トークンエンドポイントの応答"""

    access_token: str
    refresh_token: Optional[str] = None
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def id_token(self) -> Optional[str]:
        value = self.params.get("id_token")
        return value if isinstance(value, str) else None

    def to_provider_info(self) -> ProviderInfo:
        return ProviderInfo(
            access_token=self.access_token,
            scope=self.params.get("scope"),
            expires_in_seconds=self.params.get("expires_in"),
            id_token=self.id_token,
        )


@dataclass(slots=True)
class CodeExchangeResult:
    """認可コード交換とプロフィール取得の結果"""

    grant: TokenGrant
    raw_profile: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RequestContext:
    """外部HTTP層から渡されるリクエスト情報

    Attributes:
        query: コールバックのクエリパラメータ
        cancel_event: セットされると進行中の通信を中断する
        timeout_seconds: 各通信ステップの待機上限
    """

    query: Mapping[str, str] = field(default_factory=dict)
    cancel_event: Optional[asyncio.Event] = None
    timeout_seconds: Optional[float] = None
