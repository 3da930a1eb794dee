"""接口成功响应 `data` 字段结构定义。

说明：
1. 所有业务接口统一返回 `SuccessResponse[data=...]`。
2. 本文件专注于定义各接口在 `data` 中的业务字段。
3. 字段描述会直接用于 Swagger 展示，便于联调时理解含义。
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from clinic_api.schemas.common import BaseSchema


class HealthStatusData(BaseSchema):
    """健康检查返回结构。"""

    status: str = Field(description="健康状态值，常见为 ok 或 ready。")


class AccessTokenData(BaseSchema):
    """访问令牌。"""

    access_token: str = Field(description="访问令牌。")
    token_type: str = Field(default="Bearer", description="令牌类型。")
    expires_in: int = Field(description="有效期（秒）。")
    expires_at: datetime = Field(description="过期时间。")


class UserProfileData(BaseSchema):
    """租户用户资料。"""

    id: UUID = Field(description="用户 ID。")
    email: str = Field(description="登录邮箱。")
    first_name: str = Field(description="名。")
    last_name: str = Field(description="姓。")
    phone: str | None = Field(default=None, description="联系电话。")
    role: str = Field(description="全局角色标签。")
    tenant_id: UUID | None = Field(default=None, description="所属租户。")
    is_active: bool = Field(description="是否启用。")
    last_login_at: datetime | None = Field(default=None, description="最近登录时间。")


class SuperAdminData(BaseSchema):
    """超级管理员资料。"""

    id: UUID = Field(description="超级管理员 ID。")
    email: str = Field(description="登录邮箱。")
    first_name: str = Field(description="名。")
    last_name: str = Field(description="姓。")
    phone: str | None = Field(default=None, description="联系电话。")
    avatar: str | None = Field(default=None, description="头像地址。")
    is_active: bool = Field(description="是否启用。")
    two_factor_enabled: bool = Field(description="是否开启双因素认证。")
    login_attempts: int = Field(default=0, description="连续登录失败次数。")
    locked_until: datetime | None = Field(default=None, description="锁定截止时间，未锁定时为空。")
    last_login_at: datetime | None = Field(default=None, description="最近登录时间。")
    created_at: datetime | None = Field(default=None, description="创建时间。")


class ClinicAccessItem(BaseSchema):
    """当前用户可访问的诊所条目。"""

    clinic_id: UUID = Field(description="诊所 ID。")
    tenant_id: UUID = Field(description="所属租户。")
    name: str = Field(description="诊所名称。")
    code: str = Field(description="诊所编码。")
    role: str | None = Field(default=None, description="用户在该诊所的主角色；尚未建立成员关系时为空。")


class UserLoginData(AccessTokenData):
    """用户登录结果。"""

    user: UserProfileData = Field(description="用户资料。")
    clinics: list[ClinicAccessItem] = Field(default_factory=list, description="可选择的诊所。")


class SuperAdminLoginData(AccessTokenData):
    """超级管理员登录结果。"""

    super_admin: SuperAdminData = Field(description="超级管理员资料。")


class AuthMeData(BaseSchema):
    """当前登录用户上下文。"""

    user: UserProfileData = Field(description="用户资料。")
    tenant_id: UUID | None = Field(default=None, description="当前租户。")
    clinic_id: UUID | None = Field(default=None, description="当前诊所。")
    clinic_role: str | None = Field(default=None, description="当前诊所主角色。")
    permissions: list[str] = Field(default_factory=list, description="当前诊所有效权限。")


class TenantData(BaseSchema):
    """租户详情。"""

    id: UUID = Field(description="租户 ID。")
    name: str = Field(description="租户名称。")
    slug: str = Field(description="租户短标识。")
    email: str = Field(description="联系邮箱。")
    phone: str | None = Field(default=None, description="联系电话。")
    subdomain: str | None = Field(default=None, description="子域名。")
    logo_url: str | None = Field(default=None, description="品牌标识地址。")
    status: str = Field(description="租户状态。")
    created_by: UUID | None = Field(default=None, description="创建人（超级管理员）ID。")
    created_at: datetime | None = Field(default=None, description="创建时间。")
    updated_at: datetime | None = Field(default=None, description="更新时间。")
    deleted_at: datetime | None = Field(default=None, description="软删除时间。")


class TenantStatsData(BaseSchema):
    """租户状态统计。"""

    active: int = Field(description="启用中的租户数。")
    inactive: int = Field(description="停用的租户数。")
    suspended: int = Field(description="已暂停的租户数。")
    pending: int = Field(description="待开通的租户数。")
    total: int = Field(description="未删除租户总数。")
    deleted: int = Field(description="已软删除租户数。")


class AvailabilityData(BaseSchema):
    """唯一键可用性检查结果。"""

    value: str = Field(description="规范化后的检查值。")
    available: bool = Field(description="是否可用。")


class PublicTenantData(BaseSchema):
    """公开租户信息。"""

    id: UUID = Field(description="租户 ID。")
    name: str = Field(description="租户名称。")
    slug: str = Field(description="租户短标识。")
    subdomain: str | None = Field(default=None, description="子域名。")
    logo_url: str | None = Field(default=None, description="品牌标识地址。")
    url: str | None = Field(default=None, description="租户访问地址。")


class ClinicData(BaseSchema):
    """诊所详情。"""

    id: UUID = Field(description="诊所 ID。")
    tenant_id: UUID = Field(description="所属租户。")
    name: str = Field(description="诊所名称。")
    code: str = Field(description="诊所编码。")
    description: str | None = Field(default=None, description="诊所简介。")
    address: str | None = Field(default=None, description="地址。")
    phone: str | None = Field(default=None, description="联系电话。")
    email: str | None = Field(default=None, description="联系邮箱。")
    is_active: bool = Field(description="是否启用。")
    created_at: datetime | None = Field(default=None, description="创建时间。")


class ClinicSelectionData(AccessTokenData):
    """选择诊所后换发的令牌与诊所上下文。"""

    clinic: ClinicData = Field(description="当前诊所。")
    role: str = Field(description="诊所主角色。")
    permissions: list[str] = Field(default_factory=list, description="诊所有效权限。")


class ClearClinicData(AccessTokenData):
    """清除诊所选择后换发的令牌。"""


class CurrentClinicData(BaseSchema):
    """当前诊所上下文。"""

    clinic: ClinicData | None = Field(default=None, description="当前诊所，未选择时为空。")
    role: str | None = Field(default=None, description="诊所主角色。")
    permissions: list[str] = Field(default_factory=list, description="诊所有效权限。")


class ClinicPermissionsData(BaseSchema):
    """当前诊所权限快照。"""

    clinic_id: UUID = Field(description="诊所 ID。")
    role: str = Field(description="主角色。")
    roles: list[str] = Field(default_factory=list, description="全部角色，按分配顺序。")
    permissions: list[str] = Field(default_factory=list, description="有效权限。")


class ClinicMemberData(BaseSchema):
    """诊所成员。"""

    user_id: UUID = Field(description="用户 ID。")
    email: str = Field(description="登录邮箱。")
    first_name: str = Field(description="名。")
    last_name: str = Field(description="姓。")
    role: str = Field(description="主角色。")
    roles: list[str] = Field(default_factory=list, description="全部角色。")
    permissions: list[str] = Field(default_factory=list, description="有效权限。")
    is_active: bool = Field(description="成员关系是否有效。")
    joined_at: datetime | None = Field(default=None, description="加入时间。")


class PatientData(BaseSchema):
    """患者。"""

    id: UUID = Field(description="患者 ID。")
    tenant_id: UUID = Field(description="所属租户。")
    clinic_id: UUID | None = Field(default=None, description="建档诊所。")
    first_name: str = Field(description="名。")
    last_name: str = Field(description="姓。")
    phone: str | None = Field(default=None, description="联系电话。")
    email: str | None = Field(default=None, description="联系邮箱。")
    created_at: datetime | None = Field(default=None, description="创建时间。")


class AppointmentData(BaseSchema):
    """预约。"""

    id: UUID = Field(description="预约 ID。")
    tenant_id: UUID = Field(description="所属租户。")
    clinic_id: UUID | None = Field(default=None, description="所属诊所。")
    patient_id: UUID = Field(description="患者 ID。")
    doctor_id: UUID = Field(description="医生用户 ID。")
    nurse_id: UUID | None = Field(default=None, description="护士用户 ID。")
    scheduled_at: datetime = Field(description="预约时间。")
    status: str = Field(description="预约状态。")
    reason: str | None = Field(default=None, description="就诊原因。")


class PublicTenantValidationData(BaseSchema):
    """子域名校验结果。"""

    subdomain: str = Field(description="规范化后的子域名。")
    valid: bool = Field(description="是否存在对应的启用租户。")
    tenant: PublicTenantData | None = Field(default=None, description="匹配到的租户。")


class TenantUserData(UserProfileData):
    """超级管理员视角的租户用户。"""

    clinic_id: UUID | None = Field(default=None, description="创建时自动加入的诊所。")


class UserStatsData(BaseSchema):
    """用户统计。"""

    total: int = Field(description="用户总数。")
    active: int = Field(description="启用中的用户数。")
    inactive: int = Field(description="停用的用户数。")
    recent: int = Field(description="最近 30 天新建的用户数。")
    by_role: dict[str, int] = Field(default_factory=dict, description="按全局角色标签统计。")
