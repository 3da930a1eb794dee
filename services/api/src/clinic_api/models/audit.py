"""审计日志模型。"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, UUIDPrimaryKeyMixin

# PostgreSQL 使用 JSONB，其余方言（测试用 SQLite）回落为通用 JSON。
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class AuditLog(Base, UUIDPrimaryKeyMixin):
    """特权操作审计日志，仅记录成功完成的请求。"""

    __tablename__ = "audit_logs"

    # 动作标识，例如 tenant.create / clinic.user.add。
    action: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    # 主体类型（user / super_admin）。
    principal_kind: Mapped[str | None] = mapped_column(String(32))
    principal_id: Mapped[UUID | None] = mapped_column()
    principal_email: Mapped[str | None] = mapped_column(String(256))
    # 请求生效的租户上下文，超级管理员全局操作为空。
    tenant_id: Mapped[UUID | None] = mapped_column(index=True)
    method: Mapped[str] = mapped_column(String(16), nullable=False)
    path: Mapped[str] = mapped_column(String(512), nullable=False)
    path_params: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument)
    query_params: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument)
    status_code: Mapped[int] = mapped_column(nullable=False)
    ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
