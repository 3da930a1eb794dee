"""租户用户账号管理（超级管理员视角）。"""

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from clinic_api.errors import DuplicateKey, ValidationFailed
from clinic_api.models.clinic import Clinic
from clinic_api.models.enums import TenantStatus
from clinic_api.models.membership import UserClinic, UserClinicPermissionOverride, UserClinicRole
from clinic_api.models.user import User
from clinic_api.services.clinics import get_tenant_user
from clinic_api.services.context import RequestContext
from clinic_api.services.credentials import hash_password, normalize_email
from clinic_api.services.login_guard import unlock_account
from clinic_api.services.memberships import attach_user_to_clinic
from clinic_api.services.tenant_scope import apply_tenant_scope
from clinic_api.services.tenants import get_tenant
from clinic_api.utils.clock import utc_now

logger = logging.getLogger("clinic_api.users")


def list_users(
    db: Session,
    ctx: RequestContext,
    *,
    page: int = 1,
    limit: int = 20,
    search: str | None = None,
) -> tuple[list[User], int]:
    """分页查询用户，超级管理员指定租户视图时只返回该租户。"""
    stmt = apply_tenant_scope(select(User), User, ctx)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(User.email.ilike(pattern), User.first_name.ilike(pattern), User.last_name.ilike(pattern)))
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    items = db.execute(stmt.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)).scalars().all()
    return list(items), total


def create_tenant_user(db: Session, *, payload: dict[str, Any], actor_id: UUID) -> tuple[User, Clinic | None]:
    """在启用中的租户下创建用户，并以同名系统角色加入该租户的首个启用诊所。"""
    tenant = get_tenant(db, payload["tenant_id"])
    if tenant.status != TenantStatus.ACTIVE:
        raise ValidationFailed("Tenant is not active.", details={"field": "tenant_id"})

    email = normalize_email(payload["email"])
    if db.execute(select(User.id).where(User.email == email)).scalar_one_or_none() is not None:
        raise DuplicateKey("User with this email already exists.", details={"field": "email"})

    user = User(
        tenant_id=tenant.id,
        email=email,
        password_hash=hash_password(payload["password"]),
        first_name=payload["first_name"].strip(),
        last_name=payload["last_name"].strip(),
        phone=payload.get("phone"),
        role=payload.get("role") or "admin",
        is_active=payload.get("is_active", True),
    )
    db.add(user)
    db.flush()

    clinic = (
        db.execute(
            select(Clinic)
            .where(Clinic.tenant_id == tenant.id)
            .where(Clinic.is_active.is_(True))
            .order_by(Clinic.created_at)
        )
        .scalars()
        .first()
    )
    if clinic is not None:
        attach_user_to_clinic(db, clinic=clinic, user=user, role_name=user.role, assigned_by=actor_id)
    logger.info("tenant user created tenant=%s user=%s clinic=%s", tenant.id, user.id, clinic.id if clinic else None)
    return user, clinic


def toggle_user_status(db: Session, ctx: RequestContext, user_id: UUID) -> User:
    user = get_tenant_user(db, ctx, user_id)
    user.is_active = not user.is_active
    db.flush()
    return user


def update_tenant_user(db: Session, ctx: RequestContext, user_id: UUID, changes: dict[str, Any]) -> User:
    """更新用户资料；迁移租户时撤销其在原租户诊所中的成员关系。"""
    user = get_tenant_user(db, ctx, user_id)

    email = changes.pop("email", None)
    if email is not None:
        email = normalize_email(email)
        duplicate = db.execute(
            select(User.id).where(User.email == email).where(User.id != user.id)
        ).scalar_one_or_none()
        if duplicate is not None:
            raise DuplicateKey("User with this email already exists.", details={"field": "email"})
        user.email = email

    tenant_id = changes.pop("tenant_id", None)
    if tenant_id is not None and tenant_id != user.tenant_id:
        tenant = get_tenant(db, tenant_id)
        if tenant.status != TenantStatus.ACTIVE:
            raise ValidationFailed("Tenant is not active.", details={"field": "tenant_id"})
        db.execute(
            update(UserClinic)
            .where(UserClinic.user_id == user.id)
            .where(UserClinic.tenant_id != tenant.id)
            .values(is_active=False)
        )
        logger.info("user moved tenant user=%s from=%s to=%s", user.id, user.tenant_id, tenant.id)
        user.tenant_id = tenant.id

    for field in ("first_name", "last_name"):
        value = changes.pop(field, None)
        if value is not None:
            setattr(user, field, value.strip())
    for field in ("role", "is_active"):
        value = changes.pop(field, None)
        if value is not None:
            setattr(user, field, value)
    if "phone" in changes:
        user.phone = changes.pop("phone")
    db.flush()
    return user


def delete_tenant_user(db: Session, ctx: RequestContext, user_id: UUID) -> User:
    """物理删除用户及其全部成员关系、角色分配与权限覆盖。"""
    user = get_tenant_user(db, ctx, user_id)
    membership_ids = select(UserClinic.id).where(UserClinic.user_id == user.id)
    db.execute(delete(UserClinicRole).where(UserClinicRole.user_clinic_id.in_(membership_ids)))
    db.execute(
        delete(UserClinicPermissionOverride).where(UserClinicPermissionOverride.user_clinic_id.in_(membership_ids))
    )
    db.execute(delete(UserClinic).where(UserClinic.user_id == user.id))
    db.delete(user)
    db.flush()
    logger.info("tenant user deleted tenant=%s user=%s", user.tenant_id, user.id)
    return user


def reset_user_password(db: Session, ctx: RequestContext, user_id: UUID, new_password: str) -> User:
    """由超级管理员设置新密码，同时解除登录锁定。"""
    user = get_tenant_user(db, ctx, user_id)
    user.password_hash = hash_password(new_password)
    unlock_account(db, user)
    logger.info("user password reset user=%s", user.id)
    return user


def user_stats(db: Session, ctx: RequestContext, *, recent_days: int = 30) -> dict[str, Any]:
    scoped = apply_tenant_scope(select(User.id, User.role, User.is_active, User.created_at), User, ctx).subquery()
    rows = db.execute(
        select(scoped.c.role, scoped.c.is_active, func.count()).group_by(scoped.c.role, scoped.c.is_active)
    ).all()
    by_role: dict[str, int] = {}
    active = inactive = 0
    for role, is_active, count in rows:
        by_role[role] = by_role.get(role, 0) + count
        if is_active:
            active += count
        else:
            inactive += count
    since = utc_now() - timedelta(days=recent_days)
    recent = db.execute(
        select(func.count()).select_from(scoped).where(scoped.c.created_at >= since)
    ).scalar_one()
    return {"total": active + inactive, "active": active, "inactive": inactive, "recent": recent, "by_role": by_role}
