"""诊所与成员关系请求结构。"""

from uuid import UUID

from pydantic import BaseModel, Field

_ROLE_PATTERN = r"^(admin|doctor|nurse|receptionist|accountant|staff)$"


class ClinicCreateRequest(BaseModel):
    """创建诊所请求体。"""

    name: str = Field(min_length=2, max_length=128, description="诊所名称。", examples=["Downtown Clinic"])
    code: str = Field(min_length=2, max_length=32, pattern=r"^[A-Za-z0-9_-]+$", description="租户内唯一编码。")
    description: str | None = Field(default=None, max_length=2000, description="诊所简介。")
    address: str | None = Field(default=None, max_length=512, description="地址。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    email: str | None = Field(default=None, max_length=256, description="联系邮箱。")
    tenant_id: UUID | None = Field(default=None, description="所属租户，仅超级管理员可指定。")


class ClinicUserAddRequest(BaseModel):
    """添加诊所成员请求体。"""

    user_id: UUID = Field(description="目标用户 ID。")
    role: str = Field(pattern=_ROLE_PATTERN, description="系统角色名。", examples=["doctor"])
    permissions: list[str] = Field(default_factory=list, description="额外授予的权限点。")


class ClinicUserUpdateRequest(BaseModel):
    """更新诊所成员请求体。"""

    role: str | None = Field(default=None, pattern=_ROLE_PATTERN, description="新的主角色。")
    permission_overrides: dict[str, bool] = Field(
        default_factory=dict,
        description="个人权限覆盖，true 为授予，false 为收回。",
        examples=[{"prescription.write": False}],
    )


class ClinicSelectRequest(BaseModel):
    """选择/切换诊所请求体。"""

    clinic_id: UUID = Field(description="目标诊所 ID。")


class ClinicUpdateRequest(BaseModel):
    """更新诊所请求体，未提供的字段保持不变。"""

    name: str | None = Field(default=None, min_length=2, max_length=128, description="诊所名称。")
    code: str | None = Field(
        default=None, min_length=2, max_length=32, pattern=r"^[A-Za-z0-9_-]+$", description="租户内唯一编码。"
    )
    description: str | None = Field(default=None, max_length=2000, description="诊所简介。")
    address: str | None = Field(default=None, max_length=512, description="地址。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    email: str | None = Field(default=None, max_length=256, description="联系邮箱。")
