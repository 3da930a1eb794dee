"""对象映射基础模型与通用混入。"""

from datetime import datetime
from uuid import UUID
from uuid import uuid4

from sqlalchemy import DateTime, MetaData, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """全局对象映射声明基类。"""

    metadata = MetaData(
        naming_convention={
            # 统一约束/索引命名规范（表间为逻辑关联，不建外键）。
            "pk": "pk_%(table_name)s",
            "ix": "ix_%(table_name)s_%(column_0_name)s",
            "uq": "uk_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
        }
    )


class UUIDPrimaryKeyMixin:
    """提供统一 UUID 主键字段。"""

    # 各集合主键互不相同的 UUID，避免用户与超级管理员 ID 碰撞被误用。
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4, comment="主键 ID。")


class TimestampMixin:
    """提供创建时间与更新时间字段。"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间。"
    )
    # 更新时自动刷新。
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="更新时间。",
    )


class LoginGuardMixin:
    """登录失败计数与锁定状态，用户与超级管理员共用。"""

    # 连续失败次数。
    login_attempts: Mapped[int] = mapped_column(nullable=False, default=0, server_default="0")
    # 锁定截止时间，为空或早于当前时间表示未锁定。
    locked_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # 最近一次成功登录时间。
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
