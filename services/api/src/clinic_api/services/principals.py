"""认证主体解析。

令牌声明只说明“是谁”，本模块负责回表确认账号仍然存在、未停用、未锁定，
并产出下游统一使用的主体对象。
"""

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.security import SuperAdminClaims, TokenClaims, UserClaims
from clinic_api.errors import AccountDisabled, AccountLocked, PrincipalNotFound
from clinic_api.models.user import SuperAdmin, User
from clinic_api.services.login_guard import is_locked
from clinic_api.utils.clock import as_utc


@dataclass(frozen=True)
class UserPrincipal:
    """租户内用户主体。"""

    id: UUID
    email: str
    # 全局角色标签。
    role: str
    # 用户档案上的默认租户。
    home_tenant_id: UUID | None
    first_name: str = ""
    last_name: str = ""
    kind: Literal["user"] = field(default="user", init=False)

    @property
    def is_super_admin(self) -> bool:
        return False


@dataclass(frozen=True)
class SuperAdminPrincipal:
    """平台超级管理员主体。"""

    id: UUID
    email: str
    first_name: str = ""
    last_name: str = ""
    kind: Literal["super_admin"] = field(default="super_admin", init=False)

    @property
    def role(self) -> str:
        return "super_admin"

    @property
    def is_super_admin(self) -> bool:
        return True


Principal = UserPrincipal | SuperAdminPrincipal


def user_principal(user: User) -> UserPrincipal:
    return UserPrincipal(
        id=user.id,
        email=user.email,
        role=user.role,
        home_tenant_id=user.tenant_id,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def super_admin_principal(super_admin: SuperAdmin) -> SuperAdminPrincipal:
    return SuperAdminPrincipal(
        id=super_admin.id,
        email=super_admin.email,
        first_name=super_admin.first_name,
        last_name=super_admin.last_name,
    )


def resolve_principal(db: Session, claims: TokenClaims) -> Principal:
    """按令牌类型回表加载主体并校验账号状态。"""
    if isinstance(claims, SuperAdminClaims):
        super_admin = db.get(SuperAdmin, claims.super_admin_id)
        if super_admin is None:
            raise PrincipalNotFound()
        if not super_admin.is_active:
            raise AccountDisabled()
        if is_locked(super_admin):
            raise AccountLocked(as_utc(super_admin.locked_until))
        return super_admin_principal(super_admin)

    if isinstance(claims, UserClaims):
        user = db.get(User, claims.user_id)
        if user is None:
            raise PrincipalNotFound()
        if not user.is_active:
            raise AccountDisabled()
        return user_principal(user)

    raise PrincipalNotFound()
