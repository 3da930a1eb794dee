"""按角色收窄的记录级访问范围。

租户约束之外，医生与护士只能看到与自己有接诊关系的记录：
- 医生：预约与处方限定 doctor_id 为本人；患者限定为本人有预约或处方的患者；
- 护士：预约限定 nurse_id 为本人；患者与处方限定为本人有预约的患者；
- 其余角色不额外限制。
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import Select, select, union
from sqlalchemy.orm import Session

from clinic_api.errors import Forbidden
from clinic_api.models.clinical import Appointment, Patient, Prescription
from clinic_api.models.enums import SystemRole
from clinic_api.services.context import RequestContext
from clinic_api.services.tenant_scope import ensure_tenant_access, tenant_scoped_filter


class ScopedEntity(StrEnum):
    """受记录级范围约束的实体。"""

    PATIENT = "patient"
    APPOINTMENT = "appointment"
    PRESCRIPTION = "prescription"


@dataclass(frozen=True)
class Unrestricted:
    """不追加记录级限制。"""


@dataclass(frozen=True)
class OwnedBy:
    """记录自身的 field 必须等于 owner_id。"""

    field: str
    owner_id: UUID


@dataclass(frozen=True)
class LinkedPatients:
    """记录所指患者必须通过 via 中任一实体与 owner_id 建立过关联。"""

    field: str
    owner_id: UUID
    via: tuple[ScopedEntity, ...]


RecordScope = Unrestricted | OwnedBy | LinkedPatients

_LINK_MODELS: dict[ScopedEntity, Any] = {
    ScopedEntity.APPOINTMENT: Appointment,
    ScopedEntity.PRESCRIPTION: Prescription,
}


def record_scope(ctx: RequestContext, entity: ScopedEntity) -> RecordScope:
    """按主体角色返回实体的访问范围描述。"""
    if ctx.is_super_admin:
        return Unrestricted()

    user_id = ctx.principal_id
    role = ctx.role
    if role == SystemRole.DOCTOR:
        if entity == ScopedEntity.PATIENT:
            return LinkedPatients("doctor_id", user_id, via=(ScopedEntity.APPOINTMENT, ScopedEntity.PRESCRIPTION))
        return OwnedBy("doctor_id", user_id)

    if role == SystemRole.NURSE:
        if entity == ScopedEntity.APPOINTMENT:
            return OwnedBy("nurse_id", user_id)
        return LinkedPatients("nurse_id", user_id, via=(ScopedEntity.APPOINTMENT,))

    return Unrestricted()


def _linked_patient_ids(ctx: RequestContext, scope: LinkedPatients):
    """与主体有关联的患者 ID 子查询，关联记录同样受租户约束。"""
    tenant_filter = tenant_scoped_filter(ctx)
    selects = []
    for entity in scope.via:
        link_model = _LINK_MODELS[entity]
        stmt = select(link_model.patient_id).where(getattr(link_model, scope.field) == scope.owner_id)
        if "tenant_id" in tenant_filter:
            stmt = stmt.where(link_model.tenant_id == tenant_filter["tenant_id"])
        selects.append(stmt)
    if len(selects) == 1:
        return selects[0]
    linked = union(*selects).subquery()
    return select(linked.c.patient_id)


def _patient_column(model: Any):
    return model.id if model is Patient else model.patient_id


def apply_record_scope(stmt: Select, model: Any, scope: RecordScope, ctx: RequestContext) -> Select:
    """在查询语句上追加记录级范围条件。"""
    if isinstance(scope, Unrestricted):
        return stmt
    if isinstance(scope, OwnedBy):
        return stmt.where(getattr(model, scope.field) == scope.owner_id)
    if isinstance(scope, LinkedPatients):
        return stmt.where(_patient_column(model).in_(_linked_patient_ids(ctx, scope)))
    raise TypeError(f"unsupported record scope: {scope!r}")


def _is_linked(db: Session, ctx: RequestContext, scope: LinkedPatients, patient_id: UUID) -> bool:
    for entity in scope.via:
        link_model = _LINK_MODELS[entity]
        stmt = (
            select(link_model.id)
            .where(link_model.patient_id == patient_id)
            .where(getattr(link_model, scope.field) == scope.owner_id)
        )
        if ctx.tenant_id is not None:
            stmt = stmt.where(link_model.tenant_id == ctx.tenant_id)
        if db.execute(select(stmt.exists())).scalar():
            return True
    return False


def ensure_record_access(db: Session, ctx: RequestContext, entity: ScopedEntity, record: Any) -> Any:
    """校验单条记录的租户归属与角色范围，不满足时拒绝。"""
    ensure_tenant_access(ctx, record)
    scope = record_scope(ctx, entity)
    if isinstance(scope, Unrestricted):
        return record
    if isinstance(scope, OwnedBy):
        if getattr(record, scope.field, None) != scope.owner_id:
            raise Forbidden("Access denied to this record.")
        return record
    patient_id = record.id if entity == ScopedEntity.PATIENT else record.patient_id
    if not _is_linked(db, ctx, scope, patient_id):
        raise Forbidden("Access denied to this record.")
    return record
