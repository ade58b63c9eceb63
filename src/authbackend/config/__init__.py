"""設定管理 - 設定の読み込みと管理"""

from authbackend.config.reader import ConfigReader, mask_secret
from authbackend.config.settings import AuthSettings

__all__ = [
    "AuthSettings",
    "ConfigReader",
    "mask_secret",
]
