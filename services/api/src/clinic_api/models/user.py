"""用户与超级管理员模型。"""

from uuid import UUID

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, LoginGuardMixin, TimestampMixin, UUIDPrimaryKeyMixin
from clinic_api.models.enums import SystemRole


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin, LoginGuardMixin):
    """租户内用户账号。"""

    __tablename__ = "users"

    # 默认租户，令牌未携带 tenant_id 时作为回退上下文（逻辑关联 tenants.id）。
    tenant_id: Mapped[UUID | None] = mapped_column(index=True)
    # 登录邮箱，全局唯一，统一小写存储。
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # PBKDF2 口令哈希。
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    last_name: Mapped[str] = mapped_column(String(64), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    # 全局角色标签，诊所内实际权限以 UserClinic 为准。
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=SystemRole.STAFF)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class SuperAdmin(Base, UUIDPrimaryKeyMixin, TimestampMixin, LoginGuardMixin):
    """平台超级管理员，独立于用户表，不归属任何租户。"""

    __tablename__ = "super_admins"

    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    last_name: Mapped[str] = mapped_column(String(64), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    avatar: Mapped[str | None] = mapped_column(String(512))
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    two_factor_enabled: Mapped[bool] = mapped_column(nullable=False, default=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
