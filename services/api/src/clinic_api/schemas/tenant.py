"""租户相关请求结构。"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

TenantStatusLiteral = Literal["active", "inactive", "suspended", "pending"]


def _lower_key(value: object) -> object:
    """slug / 子域名先去空白并转小写，再做格式校验。"""
    if isinstance(value, str):
        return value.strip().lower()
    return value


class TenantCreateRequest(BaseModel):
    """创建租户请求体。"""

    name: str = Field(min_length=2, max_length=100, description="租户展示名称。", examples=["Sonrisa Dental"])
    slug: str = Field(
        min_length=2,
        max_length=50,
        pattern=r"^[a-z0-9-]+$",
        description="租户唯一短标识，只允许小写字母、数字和中划线。",
        examples=["sonrisa-dental"],
    )
    email: str = Field(min_length=5, max_length=256, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="联系邮箱。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    subdomain: str | None = Field(
        default=None,
        min_length=2,
        max_length=63,
        pattern=r"^[a-z0-9-]+$",
        description="可选子域名。",
        examples=["sonrisa"],
    )
    logo_url: str | None = Field(default=None, max_length=512, description="品牌标识地址。")
    status: TenantStatusLiteral = Field(default="pending", description="初始状态。")

    @field_validator("slug", "subdomain", mode="before")
    @classmethod
    def normalize_keys(cls, value: object) -> object:
        return _lower_key(value)


class TenantUpdateRequest(BaseModel):
    """更新租户请求体，仅提交需要变更的字段。"""

    name: str | None = Field(default=None, min_length=2, max_length=100, description="新的租户名称。")
    slug: str | None = Field(default=None, min_length=2, max_length=50, pattern=r"^[a-z0-9-]+$", description="新的短标识。")
    email: str | None = Field(
        default=None, min_length=5, max_length=256, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="联系邮箱。"
    )
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    subdomain: str | None = Field(default=None, max_length=63, pattern=r"^[a-z0-9-]*$", description="子域名，空串表示清除。")
    logo_url: str | None = Field(default=None, max_length=512, description="品牌标识地址。")
    status: TenantStatusLiteral | None = Field(default=None, description="租户状态。")

    @field_validator("slug", "subdomain", mode="before")
    @classmethod
    def normalize_keys(cls, value: object) -> object:
        return _lower_key(value)
