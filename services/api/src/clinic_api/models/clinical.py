"""临床业务模型。

仅保留租户/诊所范围与接诊归属字段，完整临床字段由业务模块维护。
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from clinic_api.models.enums import AppointmentStatus


class Patient(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """患者档案。"""

    __tablename__ = "patients"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    clinic_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    last_name: Mapped[str] = mapped_column(String(64), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    email: Mapped[str | None] = mapped_column(String(256))


class Appointment(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """预约记录，关联患者与接诊医生/护士。"""

    __tablename__ = "appointments"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    clinic_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    patient_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    doctor_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    nurse_id: Mapped[UUID | None] = mapped_column(index=True)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=AppointmentStatus.SCHEDULED)
    reason: Mapped[str | None] = mapped_column(Text)


class Prescription(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """处方记录，由医生开具。"""

    __tablename__ = "prescriptions"

    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    clinic_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    patient_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    doctor_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text)
