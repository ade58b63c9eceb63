"""Pydantic V2 ベースのグローバル設定モデル"""

import logging
from pathlib import Path
from typing import Any, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class AuthSettings(BaseSettings):
    """認証バックエンドの全プロバイダ共通設定"""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        extra="forbid",
    )

    base_url: str = Field(..., description="認証ルートの公開ベースURL")
    http_timeout: float = Field(default=10.0, gt=0)
    providers_file: Optional[Path] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[Any, ...]:
        """設定ソースの優先順位をカスタマイズ（env > dotenv > init）"""
        return (
            env_settings,
            dotenv_settings,
            init_settings,
            file_secret_settings,
        )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """空のベースURLは拒否する"""
        if not value.strip():
            raise ValueError("base_url は空にできません")
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url は http(s) URL である必要があります: {value}")
        return value

    def to_provider_config(self):
        """プロバイダファクトリに渡す AuthProviderConfig を返す"""
        from authbackend.models import AuthProviderConfig

        return AuthProviderConfig(base_url=self.base_url)
