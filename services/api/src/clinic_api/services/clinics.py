"""诊所服务。"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.errors import DuplicateKey, Forbidden, ResourceNotFound, TenantContextMissing
from clinic_api.models.clinic import Clinic
from clinic_api.models.enums import SystemRole, TenantStatus
from clinic_api.models.membership import UserClinic
from clinic_api.models.tenant import Tenant
from clinic_api.models.user import User
from clinic_api.services.context import RequestContext
from clinic_api.services.memberships import assign_role, is_clinic_admin
from clinic_api.services.permissions import get_system_role, load_membership_grants
from clinic_api.services.tenant_scope import apply_tenant_scope, attach_tenant, ensure_tenant_access
from clinic_api.utils.clock import utc_now

GLOBAL_ADMIN_ROLES = frozenset({"super_admin", SystemRole.ADMIN.value})


def get_scoped_clinic(db: Session, ctx: RequestContext, clinic_id: UUID, *, active_only: bool = False) -> Clinic:
    """按 ID 读取诊所并校验租户归属。"""
    clinic = db.get(Clinic, clinic_id)
    if clinic is None or (active_only and not clinic.is_active):
        raise ResourceNotFound("Clinic not found.")
    return ensure_tenant_access(ctx, clinic)


def list_scoped_clinics(db: Session, ctx: RequestContext, *, active_only: bool = True) -> list[Clinic]:
    stmt = select(Clinic)
    criteria: dict[str, Any] = {"is_active": True} if active_only else {}
    stmt = apply_tenant_scope(stmt, Clinic, ctx, **criteria).order_by(Clinic.name)
    return list(db.execute(stmt).scalars().all())


def ensure_clinic_admin(db: Session, ctx: RequestContext, clinic: Clinic) -> None:
    """全局管理员或本诊所管理员方可管理成员。"""
    if ctx.is_super_admin or ctx.role in GLOBAL_ADMIN_ROLES:
        return
    if not is_clinic_admin(db, user_id=ctx.principal_id, clinic_id=clinic.id):
        raise Forbidden("Admin access required.")


def create_clinic(db: Session, ctx: RequestContext, payload: dict[str, Any]) -> Clinic:
    """创建诊所；创建人为用户时自动成为该诊所管理员。"""
    data = attach_tenant(ctx, payload)
    tenant_id = data.get("tenant_id")
    if tenant_id is None:
        raise TenantContextMissing("tenant_id is required to create a clinic.")
    tenant = db.get(Tenant, tenant_id)
    if tenant is None or tenant.deleted_at is not None:
        raise ResourceNotFound("Tenant not found.")
    if tenant.status in {TenantStatus.INACTIVE, TenantStatus.SUSPENDED}:
        raise Forbidden("Tenant is not active.")

    code = data["code"].strip().upper()
    duplicate = db.execute(
        select(Clinic.id).where(Clinic.tenant_id == tenant_id).where(Clinic.code == code)
    ).scalar_one_or_none()
    if duplicate is not None:
        raise DuplicateKey("Clinic with this code already exists.", details={"field": "code"})

    clinic = Clinic(
        tenant_id=tenant_id,
        name=data["name"].strip(),
        code=code,
        description=data.get("description"),
        address=data.get("address"),
        phone=data.get("phone"),
        email=data.get("email"),
        is_active=True,
    )
    db.add(clinic)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateKey("Clinic with this code already exists.") from exc

    if not ctx.is_super_admin:
        admin_role = get_system_role(db, SystemRole.ADMIN.value)
        membership = UserClinic(
            tenant_id=clinic.tenant_id,
            user_id=ctx.principal_id,
            clinic_id=clinic.id,
            is_active=True,
            joined_at=utc_now(),
        )
        db.add(membership)
        db.flush()
        if admin_role is not None:
            assign_role(db, membership, admin_role, assigned_by=ctx.principal_id, is_primary=True)
    return clinic


def update_clinic(db: Session, clinic: Clinic, changes: dict[str, Any]) -> Clinic:
    """更新诊所资料；编码变更时校验租户内唯一。"""
    # name 与 code 不可置空，显式传 null 视为不修改。
    name = changes.pop("name", None)
    code = changes.pop("code", None)
    if code is not None:
        code = code.strip().upper()
        duplicate = db.execute(
            select(Clinic.id)
            .where(Clinic.tenant_id == clinic.tenant_id)
            .where(Clinic.code == code)
            .where(Clinic.id != clinic.id)
        ).scalar_one_or_none()
        if duplicate is not None:
            raise DuplicateKey("Clinic with this code already exists.", details={"field": "code"})
        clinic.code = code
    if name is not None:
        clinic.name = name.strip()
    for field, value in changes.items():
        setattr(clinic, field, value)
    db.flush()
    return clinic


def get_tenant_user(db: Session, ctx: RequestContext, user_id: UUID) -> User:
    """读取用户并校验其归属当前租户；超级管理员未指定租户视图时不受限。"""
    user = db.get(User, user_id)
    if user is None:
        raise ResourceNotFound("User not found.")
    if ctx.is_super_admin and ctx.tenant_id is None:
        return user
    if user.tenant_id is None or user.tenant_id != ctx.tenant_id:
        raise ResourceNotFound("User not found.")
    return user


def accessible_clinics(db: Session, ctx: RequestContext, *, all_tenants: bool = False) -> list[tuple[Clinic, str | None]]:
    """可选择的诊所及用户在其中的主角色。

    用户可见本租户全部启用诊所，成员关系已撤销的诊所除外；超级管理员按租户视图返回，
    all_tenants 为真时忽略租户视图。
    """
    if ctx.is_super_admin:
        stmt = select(Clinic).where(Clinic.is_active.is_(True)).order_by(Clinic.name)
        if not all_tenants:
            stmt = apply_tenant_scope(stmt, Clinic, ctx)
        return [(clinic, None) for clinic in db.execute(stmt).scalars().all()]

    memberships = {
        membership.clinic_id: membership
        for membership in db.execute(select(UserClinic).where(UserClinic.user_id == ctx.principal_id)).scalars().all()
    }
    result: list[tuple[Clinic, str | None]] = []
    for clinic in list_scoped_clinics(db, ctx):
        membership = memberships.get(clinic.id)
        if membership is None:
            result.append((clinic, None))
        elif membership.is_active:
            result.append((clinic, load_membership_grants(db, membership).primary_role_name))
    return result
