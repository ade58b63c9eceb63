"""プロフィールの正規化と内部IDの解決。

プロバイダごとに形の異なるプロフィールと id_token のクレームから ProfileInfo を作り、
ProfileInfo から内部ユーザーIDを導く。どちらも副作用を持たない。
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

import jwt

from authbackend.errors import create_identity_error
from authbackend.models import BackstageIdentity, ProfileInfo

IdentityResolver = Callable[[ProfileInfo], BackstageIdentity]


def _first_value(entries: Any) -> Optional[str]:
    """`[{"value": ...}]` または `["..."]` 形式の先頭要素を取り出す"""
    if not isinstance(entries, list) or not entries:
        return None
    first = entries[0]
    if isinstance(first, Mapping):
        first = first.get("value")
    return first if isinstance(first, str) else None


def _string_field(raw_profile: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = raw_profile.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def decode_id_token_claims(id_token: str) -> dict[str, Any]:
    """署名を検証せずに id_token のクレームを取り出す。

    署名の検証は id_token を発行したプロバイダとの TLS 通信で担保されている前提。

    Raises:
        IdentityResolutionError: JWT としてデコードできない場合
    """
    try:
        decoded = jwt.decode(
            id_token,
            options={"verify_signature": False, "verify_aud": False},
        )
    except jwt.PyJWTError as exc:
        raise create_identity_error(
            "Failed to parse id_token",
            details={"reason": "invalid id_token", "error": exc.__class__.__name__},
        ) from exc

    if not isinstance(decoded, dict):
        raise create_identity_error(
            "Failed to parse id_token", details={"reason": "invalid id_token"}
        )
    return decoded


def make_profile_info(
    raw_profile: Mapping[str, Any], id_token: Optional[str] = None
) -> ProfileInfo:
    """生のプロフィールと id_token から ProfileInfo を作る。

    プロフィールに email が無いときだけ id_token のクレームで補う。
    email があれば id_token は解釈しない。

    Args:
        raw_profile: プロフィールエンドポイントの応答（形はプロバイダ依存）
        id_token: トークン応答に含まれていた id_token

    Returns:
        ProfileInfo: 取り出せなかった項目は None

    Raises:
        IdentityResolutionError: クレームが必要なのに id_token をデコードできない場合
    """
    email = _string_field(raw_profile, "email") or _first_value(raw_profile.get("emails"))
    display_name = _string_field(raw_profile, "displayName", "name")
    picture = _string_field(raw_profile, "picture", "avatar_url") or _first_value(
        raw_profile.get("photos")
    )

    if not email and id_token:
        claims = decode_id_token_claims(id_token)
        email = _string_field(claims, "email")
        if not picture:
            picture = _string_field(claims, "picture")

    return ProfileInfo(email=email, display_name=display_name, picture=picture)


def resolve_identity(profile: ProfileInfo) -> BackstageIdentity:
    """メールアドレスの@より前を内部IDとする。

    ディレクトリ参照などに置き換える場合も profile -> identity の形は変えない。

    Raises:
        IdentityResolutionError: email が無い・空、または@より前が空の場合
    """
    email = profile.email
    if not email:
        raise create_identity_error("missing email")

    local_part = email.split("@", 1)[0]
    if not local_part:
        raise create_identity_error(
            "email has no local part", details={"domain": email.partition("@")[2]}
        )
    return BackstageIdentity(id=local_part)
