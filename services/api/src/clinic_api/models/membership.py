"""用户诊所成员关系模型。"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserClinic(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """用户与诊所的成员关系，是诊所内角色与权限的载体。"""

    __tablename__ = "user_clinics"
    __table_args__ = (UniqueConstraint("user_id", "clinic_id", name="uk_user_clinics_user_clinic"),)

    # 冗余自诊所的租户 ID，便于租户范围过滤。
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    clinic_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 撤销成员关系只置为 false，不物理删除。
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class UserClinicRole(Base, UUIDPrimaryKeyMixin):
    """成员关系上的角色分配，每个成员关系内同一角色仅出现一次。"""

    __tablename__ = "user_clinic_roles"
    __table_args__ = (UniqueConstraint("user_clinic_id", "role_id", name="uk_user_clinic_roles_membership_role"),)

    user_clinic_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    role_id: Mapped[UUID] = mapped_column(nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    # 分配人（用户或超级管理员 ID）。
    assigned_by: Mapped[UUID | None] = mapped_column()
    # 主角色仅用于展示与令牌声明，不参与权限判定。
    is_primary: Mapped[bool] = mapped_column(nullable=False, default=False)
    # 插入顺序。
    position: Mapped[int] = mapped_column(nullable=False, default=0)


class UserClinicPermissionOverride(Base, UUIDPrimaryKeyMixin):
    """单个用户在单个诊所内的权限覆盖项，优先于角色授权。"""

    __tablename__ = "user_clinic_permission_overrides"
    __table_args__ = (
        UniqueConstraint("user_clinic_id", "permission_name", name="uk_user_clinic_permission_overrides_permission"),
    )

    user_clinic_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    permission_name: Mapped[str] = mapped_column(String(128), nullable=False)
    # true 为强制授予，false 为强制收回。
    granted: Mapped[bool] = mapped_column(nullable=False)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    granted_by: Mapped[UUID | None] = mapped_column()
