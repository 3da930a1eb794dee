"""角色与角色权限模型。"""

from uuid import UUID

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Role(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """角色定义，系统角色全局共享，自定义角色归属单个诊所。"""

    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("clinic_id", "name", name="uk_roles_clinic_name"),)

    name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(256))
    # 系统内置角色不可删除。
    is_system_role: Mapped[bool] = mapped_column(nullable=False, default=False)
    # 自定义角色所属诊所，系统角色为空。
    clinic_id: Mapped[UUID | None] = mapped_column(index=True)


class RolePermission(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """角色到权限点的授权映射。"""

    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission_name", name="uk_role_permissions_role_permission"),)

    role_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    # 权限点名称，例如 patient.read。
    permission_name: Mapped[str] = mapped_column(String(128), nullable=False)
