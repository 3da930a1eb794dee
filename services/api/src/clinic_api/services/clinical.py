"""患者与预约服务。

读写均先套租户约束，再按主体角色追加记录级范围。
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.errors import ClinicContextMissing, ResourceNotFound, ValidationFailed
from clinic_api.models.clinical import Appointment, Patient
from clinic_api.models.enums import AppointmentStatus
from clinic_api.models.user import User
from clinic_api.services.access_scope import ScopedEntity, apply_record_scope, ensure_record_access, record_scope
from clinic_api.services.context import RequestContext
from clinic_api.services.tenant_scope import apply_tenant_scope, attach_tenant


def _require_clinic(ctx: RequestContext) -> UUID:
    if ctx.clinic_id is None:
        raise ClinicContextMissing()
    return ctx.clinic_id


def create_patient(db: Session, ctx: RequestContext, payload: dict[str, Any]) -> Patient:
    clinic_id = _require_clinic(ctx)
    data = attach_tenant(ctx, payload)
    patient = Patient(
        tenant_id=data["tenant_id"],
        clinic_id=clinic_id,
        first_name=data["first_name"].strip(),
        last_name=data["last_name"].strip(),
        phone=data.get("phone"),
        email=data.get("email"),
    )
    db.add(patient)
    db.flush()
    return patient


def list_patients(db: Session, ctx: RequestContext, *, clinic_id: UUID | None = None) -> list[Patient]:
    """租户内患者列表，医生/护士仅见与本人有关联的患者。"""
    criteria: dict[str, Any] = {"clinic_id": clinic_id} if clinic_id else {}
    stmt = apply_tenant_scope(select(Patient), Patient, ctx, **criteria)
    stmt = apply_record_scope(stmt, Patient, record_scope(ctx, ScopedEntity.PATIENT), ctx)
    return list(db.execute(stmt.order_by(Patient.last_name, Patient.first_name)).scalars().all())


def get_patient(db: Session, ctx: RequestContext, patient_id: UUID) -> Patient:
    patient = db.get(Patient, patient_id)
    if patient is None:
        raise ResourceNotFound("Patient not found.")
    return ensure_record_access(db, ctx, ScopedEntity.PATIENT, patient)


def _tenant_staff(db: Session, tenant_id: UUID, user_id: UUID, field: str) -> User:
    user = db.get(User, user_id)
    if user is None or user.tenant_id != tenant_id or not user.is_active:
        raise ValidationFailed(f"Invalid {field}.", details={"field": field})
    return user


def create_appointment(db: Session, ctx: RequestContext, payload: dict[str, Any]) -> Appointment:
    """创建预约；患者与医护人员必须属于同一租户。"""
    clinic_id = _require_clinic(ctx)
    data = attach_tenant(ctx, payload)
    patient = db.get(Patient, data["patient_id"])
    if patient is None or patient.tenant_id != data["tenant_id"]:
        raise ResourceNotFound("Patient not found.")
    _tenant_staff(db, data["tenant_id"], data["doctor_id"], "doctor_id")
    if data.get("nurse_id") is not None:
        _tenant_staff(db, data["tenant_id"], data["nurse_id"], "nurse_id")

    appointment = Appointment(
        tenant_id=data["tenant_id"],
        clinic_id=clinic_id,
        patient_id=patient.id,
        doctor_id=data["doctor_id"],
        nurse_id=data.get("nurse_id"),
        scheduled_at=data["scheduled_at"],
        status=AppointmentStatus.SCHEDULED,
        reason=data.get("reason"),
    )
    db.add(appointment)
    db.flush()
    return appointment


def list_appointments(
    db: Session,
    ctx: RequestContext,
    *,
    clinic_id: UUID | None = None,
    patient_id: UUID | None = None,
) -> list[Appointment]:
    criteria: dict[str, Any] = {}
    if clinic_id:
        criteria["clinic_id"] = clinic_id
    if patient_id:
        criteria["patient_id"] = patient_id
    stmt = apply_tenant_scope(select(Appointment), Appointment, ctx, **criteria)
    stmt = apply_record_scope(stmt, Appointment, record_scope(ctx, ScopedEntity.APPOINTMENT), ctx)
    return list(db.execute(stmt.order_by(Appointment.scheduled_at)).scalars().all())
