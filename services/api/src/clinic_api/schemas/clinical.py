"""患者与预约请求结构。"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class PatientCreateRequest(BaseModel):
    """创建患者请求体。"""

    first_name: str = Field(min_length=1, max_length=64, description="名。")
    last_name: str = Field(min_length=1, max_length=64, description="姓。")
    phone: str | None = Field(default=None, max_length=32, description="联系电话。")
    email: str | None = Field(default=None, max_length=256, description="联系邮箱。")


class AppointmentCreateRequest(BaseModel):
    """创建预约请求体。"""

    patient_id: UUID = Field(description="患者 ID。")
    doctor_id: UUID = Field(description="接诊医生用户 ID。")
    nurse_id: UUID | None = Field(default=None, description="协助护士用户 ID。")
    scheduled_at: datetime = Field(description="预约时间。")
    reason: str | None = Field(default=None, max_length=2000, description="就诊原因。")
