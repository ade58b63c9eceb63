"""
プロバイダ設定の読み込み

YAMLファイルまたは環境変数からプロバイダごとの設定を読み、
必須値の欠落を起動時に ConfigError として検出する。
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional

import yaml

from authbackend.errors import ErrorCode, create_config_error

logger = logging.getLogger(__name__)


def mask_secret(value: str) -> str:
    """鍵やトークンをマスクしてログ出力を避ける"""
    if not value:
        return "***"
    if len(value) <= 4:
        return "*" * len(value)
    return f"***{value[-4:]}"


def _env_key_to_config_key(name: str) -> str:
    """CLIENT_ID -> clientId"""
    head, *rest = name.lower().split("_")
    return head + "".join(part.capitalize() for part in rest)


class ConfigReader:
    """ネストした設定値への読み取り専用ビュー"""

    def __init__(self, data: Optional[Mapping[str, Any]] = None, prefix: str = "") -> None:
        self._data: Dict[str, Any] = dict(data or {})
        self._prefix = prefix

    @classmethod
    def from_yaml(cls, path: Path, section: Optional[str] = None) -> "ConfigReader":
        """YAMLファイルから読み込む

        Args:
            path: YAMLファイルのパス
            section: ドット区切りで指定するサブセクション（例: "auth.providers.oauth2"）

        Raises:
            ConfigError: ファイルが読めない・形式が不正な場合
        """
        try:
            with Path(path).open("r", encoding="utf-8") as file:
                loaded = yaml.safe_load(file) or {}
        except OSError as exc:
            raise create_config_error(
                f"設定ファイルを読み込めません: {path}",
                details={"path": str(path)},
            ) from exc
        except yaml.YAMLError as exc:
            raise create_config_error(
                f"設定ファイルのYAML形式が不正です: {path}",
                details={"path": str(path)},
                code=ErrorCode.CONFIG_INVALID_VALUE,
            ) from exc

        if not isinstance(loaded, dict):
            raise create_config_error(
                f"設定ファイルのトップレベルはマッピングである必要があります: {path}",
                details={"path": str(path)},
                code=ErrorCode.CONFIG_INVALID_VALUE,
            )

        reader = cls(loaded)
        if section:
            for key in section.split("."):
                reader = reader.get_config(key)
        return reader

    @classmethod
    def from_env(
        cls, prefix: str, environ: Optional[Mapping[str, str]] = None
    ) -> "ConfigReader":
        """環境変数から読み込む

        `<prefix>CLIENT_ID` は `clientId` として扱う。
        """
        source = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for name, value in source.items():
            if not name.startswith(prefix):
                continue
            suffix = name[len(prefix):]
            if not suffix or not re.fullmatch(r"[A-Z0-9_]+", suffix):
                continue
            data[_env_key_to_config_key(suffix)] = value
        return cls(data, prefix=prefix)

    def _path(self, key: str) -> str:
        return f"{self._prefix}{key}" if self._prefix else key

    def keys(self) -> Iterator[str]:
        return iter(self._data.keys())

    def has(self, key: str) -> bool:
        return self._data.get(key) is not None

    def get_string(self, key: str) -> str:
        """必須の文字列値を返す

        Raises:
            ConfigError: 値が無い・空・文字列でない場合
        """
        value = self._data.get(key)
        if value is None or value == "":
            raise create_config_error(
                f"必須の設定値がありません: {self._path(key)}",
                details={"key": self._path(key)},
            )
        if not isinstance(value, str):
            raise create_config_error(
                f"設定値は文字列である必要があります: {self._path(key)}",
                details={"key": self._path(key), "type": type(value).__name__},
                code=ErrorCode.CONFIG_INVALID_VALUE,
            )
        return value

    def get_optional_string(self, key: str) -> Optional[str]:
        """任意の文字列値を返す（無い・空の場合は None）"""
        if not self.has(key) or self._data.get(key) == "":
            return None
        return self.get_string(key)

    def get_config(self, key: str) -> "ConfigReader":
        """サブセクションを返す

        Raises:
            ConfigError: セクションが無い・マッピングでない場合
        """
        value = self._data.get(key)
        if not isinstance(value, dict):
            raise create_config_error(
                f"設定セクションがありません: {self._path(key)}",
                details={"key": self._path(key)},
            )
        return ConfigReader(value, prefix=f"{self._path(key)}.")

    def masked_dict(self) -> Dict[str, Any]:
        """文字列値をマスクした安全な辞書"""
        masked: Dict[str, Any] = {}
        for key, value in self._data.items():
            if isinstance(value, str) and "secret" in key.lower():
                masked[key] = mask_secret(value)
            else:
                masked[key] = value
        return masked
