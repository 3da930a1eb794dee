"""诊所模型。"""

from uuid import UUID

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Clinic(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """诊所实体，隶属于唯一租户。"""

    __tablename__ = "clinics"
    __table_args__ = (UniqueConstraint("tenant_id", "code", name="uk_clinics_tenant_code"),)

    # 所属租户 ID，创建后不可变更（逻辑关联 tenants.id）。
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    # 租户内唯一的诊所编码。
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str | None] = mapped_column(String(512))
    phone: Mapped[str | None] = mapped_column(String(32))
    email: Mapped[str | None] = mapped_column(String(256))
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
