"""租户模型。"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from clinic_api.models.enums import TenantStatus


class Tenant(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """租户实体，系统最高数据隔离边界。"""

    __tablename__ = "tenants"
    __table_args__ = (
        # slug / subdomain 仅在未删除租户间唯一，软删除后可被复用。
        Index(
            "uk_tenants_slug_live",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index(
            "uk_tenants_subdomain_live",
            "subdomain",
            unique=True,
            postgresql_where=text("deleted_at IS NULL AND subdomain IS NOT NULL"),
            sqlite_where=text("deleted_at IS NULL AND subdomain IS NOT NULL"),
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # URL 友好短标识，仅允许小写字母、数字和中划线。
    slug: Mapped[str] = mapped_column(String(50), nullable=False)
    # 联系邮箱。
    email: Mapped[str] = mapped_column(String(256), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    # 可选子域名，用于公开访问入口。
    subdomain: Mapped[str | None] = mapped_column(String(63))
    logo_url: Mapped[str | None] = mapped_column(String(512))
    # 生命周期状态（active/inactive/suspended/pending）。
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=TenantStatus.PENDING)
    # 创建该租户的超级管理员 ID（逻辑关联 super_admins.id）。
    created_by: Mapped[UUID | None] = mapped_column()
    # 软删除时间，非空即视为已删除。
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
