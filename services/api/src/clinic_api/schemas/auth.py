"""登录与账号资料请求结构。"""

from uuid import UUID

from pydantic import BaseModel, Field

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class LoginRequest(BaseModel):
    """邮箱密码登录请求（用户与超级管理员共用）。"""

    email: str = Field(
        min_length=5,
        max_length=256,
        pattern=_EMAIL_PATTERN,
        description="登录邮箱。",
        examples=["admin@clinic.com"],
    )
    password: str = Field(min_length=1, max_length=128, description="登录密码。", examples=["StrongPassw0rd!"])


class ProfileUpdateRequest(BaseModel):
    """超级管理员资料更新请求。"""

    first_name: str | None = Field(default=None, min_length=1, max_length=64, description="名。")
    last_name: str | None = Field(default=None, min_length=1, max_length=64, description="姓。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    avatar: str | None = Field(default=None, max_length=512, description="头像地址。")


class ChangePasswordRequest(BaseModel):
    """修改密码请求。"""

    current_password: str = Field(min_length=1, max_length=128, description="当前密码。")
    new_password: str = Field(min_length=8, max_length=128, description="新密码，至少 8 位。")


class SuperAdminCreateRequest(BaseModel):
    """创建超级管理员请求。"""

    email: str = Field(min_length=5, max_length=256, pattern=_EMAIL_PATTERN, description="登录邮箱。")
    password: str = Field(min_length=8, max_length=128, description="初始密码。")
    first_name: str = Field(min_length=1, max_length=64, description="名。")
    last_name: str = Field(min_length=1, max_length=64, description="姓。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")


class TenantUserCreateRequest(BaseModel):
    """超级管理员为租户创建用户请求。"""

    email: str = Field(min_length=5, max_length=256, pattern=_EMAIL_PATTERN, description="登录邮箱。")
    password: str = Field(min_length=8, max_length=128, description="初始密码。")
    first_name: str = Field(min_length=1, max_length=64, description="名。")
    last_name: str = Field(min_length=1, max_length=64, description="姓。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    tenant_id: UUID = Field(description="所属租户 ID。")
    role: str = Field(
        default="admin",
        pattern=r"^(admin|doctor|nurse|receptionist|accountant|staff)$",
        description="全局角色标签。",
    )
    is_active: bool = Field(default=True, description="是否启用。")


class TenantUserUpdateRequest(BaseModel):
    """超级管理员更新租户用户请求，未提供的字段保持不变。"""

    email: str | None = Field(default=None, min_length=5, max_length=256, pattern=_EMAIL_PATTERN, description="登录邮箱。")
    first_name: str | None = Field(default=None, min_length=1, max_length=64, description="名。")
    last_name: str | None = Field(default=None, min_length=1, max_length=64, description="姓。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    tenant_id: UUID | None = Field(default=None, description="迁移到的租户 ID，必须处于启用状态。")
    role: str | None = Field(
        default=None,
        pattern=r"^(admin|doctor|nurse|receptionist|accountant|staff)$",
        description="全局角色标签。",
    )
    is_active: bool | None = Field(default=None, description="是否启用。")


class ResetPasswordRequest(BaseModel):
    """超级管理员重置用户密码请求。"""

    new_password: str = Field(min_length=8, max_length=128, description="新密码，至少 8 位。")
