"""访问令牌签发与校验。

两类主体使用互不相容的令牌：
- 用户令牌：`type=user`，可携带 tenant_id / clinic_id / clinic_role 上下文；
- 超级管理员令牌：`type=super_admin` 且 `role=super_admin`，不携带租户上下文。

令牌完全无状态，不依赖服务端会话存储。
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import re
from typing import Any, Literal
from uuid import UUID

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from clinic_api.core.config import get_settings
from clinic_api.errors import TokenExpired, TokenInvalid, TokenMissing

USER_TOKEN_TYPE = "user"
SUPER_ADMIN_TOKEN_TYPE = "super_admin"
SUPER_ADMIN_ROLE = "super_admin"


@dataclass(frozen=True)
class UserClaims:
    """用户令牌声明。"""

    # 用户 ID。
    user_id: UUID
    email: str
    # 用户全局角色标签（admin/doctor/...）。
    role: str
    # 当前选择的租户，缺省时回落到用户档案上的 tenant_id。
    tenant_id: UUID | None = None
    # 当前选择的诊所。
    clinic_id: UUID | None = None
    # 当前诊所主角色名，仅用于展示。
    clinic_role: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    kind: Literal["user"] = field(default="user", init=False)


@dataclass(frozen=True)
class SuperAdminClaims:
    """超级管理员令牌声明。"""

    super_admin_id: UUID
    email: str
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    kind: Literal["super_admin"] = field(default="super_admin", init=False)


TokenClaims = UserClaims | SuperAdminClaims


@dataclass(frozen=True)
class IssuedToken:
    """签发结果。"""

    access_token: str
    expires_at: datetime
    expires_in: int


def _secret() -> str:
    settings = get_settings()
    if not settings.auth_jwt_secret:
        raise RuntimeError("CLINIC_AUTH_JWT_SECRET is not configured")
    return settings.auth_jwt_secret


def _optional_uuid(value: Any) -> UUID | None:
    if value is None or value == "":
        return None
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise TokenInvalid() from exc


def _required_uuid(value: Any) -> UUID:
    parsed = _optional_uuid(value)
    if parsed is None:
        raise TokenInvalid()
    return parsed


def _timestamp(value: Any) -> datetime | None:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


def mint_token(claims: dict[str, Any], ttl_seconds: int) -> IssuedToken:
    """按给定声明与有效期签发令牌，自动补充 iat / exp / iss。"""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=ttl_seconds)
    payload = {
        **{key: value for key, value in claims.items() if value is not None},
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    if settings.auth_jwt_issuer:
        payload["iss"] = settings.auth_jwt_issuer
    token = jwt.encode(payload, _secret(), algorithm=settings.auth_jwt_algorithm)
    return IssuedToken(access_token=token, expires_at=expires_at, expires_in=ttl_seconds)


def mint_user_token(
    user,
    *,
    tenant_id: UUID | None = None,
    clinic_id: UUID | None = None,
    clinic_role: str | None = None,
) -> IssuedToken:
    """签发用户令牌（默认 24 小时）。"""
    settings = get_settings()
    effective_tenant_id = tenant_id or user.tenant_id
    claims: dict[str, Any] = {
        "sub": str(user.id),
        "id": str(user.id),
        "email": user.email,
        "role": user.role,
        "type": USER_TOKEN_TYPE,
        "tenant_id": str(effective_tenant_id) if effective_tenant_id else None,
        "clinic_id": str(clinic_id) if clinic_id else None,
        "clinic_role": clinic_role if clinic_id else None,
    }
    return mint_token(claims, settings.auth_user_token_ttl_seconds)


def mint_super_admin_token(super_admin) -> IssuedToken:
    """签发超级管理员令牌（默认 8 小时）。"""
    settings = get_settings()
    claims = {
        "sub": str(super_admin.id),
        "id": str(super_admin.id),
        "email": super_admin.email,
        "role": SUPER_ADMIN_ROLE,
        "type": SUPER_ADMIN_TOKEN_TYPE,
    }
    return mint_token(claims, settings.auth_super_admin_token_ttl_seconds)


def _decode_jwt(token: str) -> dict[str, Any]:
    """校验签名与有效期并返回原始声明。"""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            key=_secret(),
            algorithms=[settings.auth_jwt_algorithm],
            issuer=settings.auth_jwt_issuer,
            leeway=settings.auth_jwt_leeway_seconds,
            options={"require": ["exp", "iat"]},
        )
    except ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except InvalidTokenError as exc:
        raise TokenInvalid() from exc


def decode_token(token: str) -> TokenClaims:
    """解码令牌并按 type 区分主体类型。"""
    claims = _decode_jwt(token)
    token_type = claims.get("type")
    email = claims.get("email")
    if not isinstance(email, str) or not email:
        raise TokenInvalid()

    subject = claims.get("id") or claims.get("sub")
    issued_at = _timestamp(claims.get("iat"))
    expires_at = _timestamp(claims.get("exp"))

    if token_type == SUPER_ADMIN_TOKEN_TYPE:
        # 超级管理员令牌必须同时满足 type 与 role 两个标记。
        if claims.get("role") != SUPER_ADMIN_ROLE:
            raise TokenInvalid()
        return SuperAdminClaims(
            super_admin_id=_required_uuid(subject),
            email=email,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    if token_type == USER_TOKEN_TYPE:
        role = claims.get("role")
        if not isinstance(role, str) or not role or role == SUPER_ADMIN_ROLE:
            raise TokenInvalid()
        clinic_role = claims.get("clinic_role")
        return UserClaims(
            user_id=_required_uuid(subject),
            email=email,
            role=role,
            tenant_id=_optional_uuid(claims.get("tenant_id")),
            clinic_id=_optional_uuid(claims.get("clinic_id")),
            clinic_role=clinic_role if isinstance(clinic_role, str) else None,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    raise TokenInvalid()


def extract_bearer_token(authorization: str | None) -> str:
    """从 Authorization 头中提取 Bearer token，兼容重复头被逗号拼接的场景。"""
    if not authorization or not authorization.strip():
        raise TokenMissing()
    tokens = [item for item in re.findall(r"Bearer\s+([^,\s]+)", authorization, flags=re.IGNORECASE) if item]
    if not tokens:
        raise TokenMissing()
    return tokens[-1]


def parse_authorization_header(authorization: str | None) -> TokenClaims:
    """解析认证头并返回令牌声明。"""
    return decode_token(extract_bearer_token(authorization))
