"""
エラー定義

OAuth2 認証プロバイダで使用されるエラーコードと例外クラス
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """エラーコード

    カテゴリ別にエラーコードを定義:
    - CONFIG_xxx: 設定エラー
    - CALLBACK_xxx: コールバックエラー
    - EXCHANGE_xxx / REFRESH_xxx: トークンエンドポイントエラー
    - PROFILE_xxx: プロフィール取得エラー
    - IDENTITY_xxx: ID解決エラー
    - CANCELLED_xxx: 呼び出し元による中断
    """
    # 設定エラー
    CONFIG_MISSING_VALUE = "CONFIG_001"
    CONFIG_INVALID_VALUE = "CONFIG_002"

    # コールバックエラー
    CALLBACK_INVALID = "CALLBACK_001"

    # トークンエンドポイントエラー
    EXCHANGE_FAILED = "EXCHANGE_001"
    REFRESH_REJECTED = "REFRESH_001"

    # プロフィール取得エラー
    PROFILE_FETCH_FAILED = "PROFILE_001"

    # ID解決エラー
    IDENTITY_UNRESOLVED = "IDENTITY_001"

    # 中断
    CANCELLED = "CANCELLED_001"


@dataclass
class ErrorInfo:
    """エラー情報

    Attributes:
        code: エラーコード文字列
        message: エラーメッセージ
        details: 追加のエラー詳細情報（秘密情報は含めない）
        recoverable: 呼び出し元の再試行で復旧可能かどうか
    """
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    recoverable: bool = False
    log_level: int = logging.ERROR


class AuthBackendException(Exception):
    """認証バックエンド例外の基底クラス

    ErrorInfoをラップする例外クラス
    """

    def __init__(self, error: ErrorInfo):
        """AuthBackendExceptionを初期化

        Args:
            error: ErrorInfoインスタンス
        """
        self.error = error
        self.log_level = error.log_level
        super().__init__(f"[{error.code}] {error.message}")

    @property
    def code(self) -> str:
        return self.error.code


class ConfigError(AuthBackendException):
    """プロバイダ設定の欠落・不正（起動時に致命的）"""


class CallbackError(AuthBackendException):
    """コールバックリクエストに有効な認可コードが無い"""


class ExchangeError(AuthBackendException):
    """トークンエンドポイントとの通信・応答の失敗"""


class RefreshError(AuthBackendException):
    """リフレッシュトークンが拒否された（再ログインが必要）"""


class ProfileFetchError(AuthBackendException):
    """プロフィールエンドポイントの失敗"""


class IdentityResolutionError(AuthBackendException):
    """プロフィールから内部IDを解決できない"""


class Cancelled(AuthBackendException):
    """呼び出し元による通信中の中断・タイムアウト"""


ERROR_CODE_LOG_LEVEL: Dict[ErrorCode, int] = {
    ErrorCode.CONFIG_MISSING_VALUE: logging.CRITICAL,
    ErrorCode.CONFIG_INVALID_VALUE: logging.CRITICAL,
    ErrorCode.CALLBACK_INVALID: logging.WARNING,
    ErrorCode.REFRESH_REJECTED: logging.INFO,
    ErrorCode.CANCELLED: logging.INFO,
}


def create_config_error(
    message: str,
    details: Optional[Dict[str, Any]] = None,
    code: ErrorCode = ErrorCode.CONFIG_MISSING_VALUE,
) -> ConfigError:
    """設定エラーを作成

    Args:
        message: エラーメッセージ
        details: 追加詳細
        code: CONFIG_MISSING_VALUE または CONFIG_INVALID_VALUE

    Returns:
        ConfigError: 設定エラー
    """
    return ConfigError(
        ErrorInfo(
            code=code.value,
            message=message,
            details=details,
            recoverable=False,
            log_level=ERROR_CODE_LOG_LEVEL.get(code, logging.ERROR),
        )
    )


def create_callback_error(
    message: str, details: Optional[Dict[str, Any]] = None
) -> CallbackError:
    """コールバックエラーを作成"""
    return CallbackError(
        ErrorInfo(
            code=ErrorCode.CALLBACK_INVALID.value,
            message=message,
            details=details,
            recoverable=False,
            log_level=ERROR_CODE_LOG_LEVEL[ErrorCode.CALLBACK_INVALID],
        )
    )


def create_exchange_error(
    message: str, details: Optional[Dict[str, Any]] = None
) -> ExchangeError:
    """トークン交換エラーを作成

    Args:
        message: エラーメッセージ
        details: 追加詳細（HTTPステータスなど）

    Returns:
        ExchangeError: 呼び出し元の判断で再試行可能なエラー
    """
    return ExchangeError(
        ErrorInfo(
            code=ErrorCode.EXCHANGE_FAILED.value,
            message=message,
            details=details,
            recoverable=True,
        )
    )


def create_refresh_error(
    message: str, details: Optional[Dict[str, Any]] = None
) -> RefreshError:
    """リフレッシュ拒否エラーを作成

    再試行ではなく再認証を促すため recoverable=False とする。
    """
    return RefreshError(
        ErrorInfo(
            code=ErrorCode.REFRESH_REJECTED.value,
            message=message,
            details=details,
            recoverable=False,
            log_level=ERROR_CODE_LOG_LEVEL[ErrorCode.REFRESH_REJECTED],
        )
    )


def create_profile_error(
    message: str, details: Optional[Dict[str, Any]] = None
) -> ProfileFetchError:
    """プロフィール取得エラーを作成"""
    return ProfileFetchError(
        ErrorInfo(
            code=ErrorCode.PROFILE_FETCH_FAILED.value,
            message=message,
            details=details,
            recoverable=True,
        )
    )


def create_identity_error(
    message: str, details: Optional[Dict[str, Any]] = None
) -> IdentityResolutionError:
    """ID解決エラーを作成"""
    return IdentityResolutionError(
        ErrorInfo(
            code=ErrorCode.IDENTITY_UNRESOLVED.value,
            message=message,
            details=details,
            recoverable=False,
        )
    )


def create_cancelled_error(
    message: str, details: Optional[Dict[str, Any]] = None
) -> Cancelled:
    """中断エラーを作成"""
    return Cancelled(
        ErrorInfo(
            code=ErrorCode.CANCELLED.value,
            message=message,
            details=details,
            recoverable=True,
            log_level=ERROR_CODE_LOG_LEVEL[ErrorCode.CANCELLED],
        )
    )
