"""認証プロバイダ基盤。

OAuth 系プロバイダが共通で実装すべきインターフェースを定義する。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Protocol, Sequence, Union

from authbackend.models import (
    CodeExchangeResult,
    HandlerResult,
    OAuthResponse,
    RedirectInfo,
    RequestContext,
    TokenGrant,
)

OptionValue = Union[str, Sequence[str]]


class TokenIssuer(Protocol):
    """解決済みIDからセッショントークンを発行する外部コラボレータ"""

    async def issue_token(self, claims: Mapping[str, Any]) -> str:
        ...


class OAuthStrategy(ABC):
    """OAuth2 のワイヤプロトコルをプロバイダファミリーごとに包む。

    インスタンスは構築後に変更されず、複数リクエストから同時に使える。
    """

    @abstractmethod
    def build_authorization_request(
        self, extra_params: Mapping[str, OptionValue]
    ) -> RedirectInfo:
        """認可サーバーへのリダイレクト先を組み立てる。"""

    @abstractmethod
    async def exchange_code_for_token(self, code: str) -> CodeExchangeResult:
        """認可コードをトークンと交換し、プロフィールを取得する。"""

    @abstractmethod
    async def exchange_refresh_token(
        self, refresh_token: str, scope: Optional[str] = None
    ) -> TokenGrant:
        """リフレッシュトークンで新しいアクセストークンを得る。"""

    @abstractmethod
    async def fetch_profile(
        self, access_token: str, id_token: Optional[str] = None
    ) -> dict[str, Any]:
        """アクセストークンでプロフィールを取得する。"""


class OAuthProviderHandlers(ABC):
    """外部ホストが呼び出す3つの入口。"""

    @abstractmethod
    async def start(
        self, context: RequestContext, options: Mapping[str, OptionValue]
    ) -> RedirectInfo:
        """ログインを開始し、リダイレクト先を返す。"""

    @abstractmethod
    async def handler(self, context: RequestContext) -> HandlerResult:
        """認可サーバーからの戻りを処理する。"""

    @abstractmethod
    async def refresh(
        self,
        refresh_token: str,
        scope: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> OAuthResponse:
        """ユーザー操作なしでセッションを更新する。"""
