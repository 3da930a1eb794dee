"""诊所成员关系维护。"""

from collections.abc import Iterable
import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from clinic_api.errors import Forbidden, ResourceNotFound, ValidationFailed
from clinic_api.models.clinic import Clinic
from clinic_api.models.enums import SystemRole
from clinic_api.models.membership import UserClinic, UserClinicPermissionOverride, UserClinicRole
from clinic_api.models.role import Role
from clinic_api.models.user import User
from clinic_api.services.permissions import FALLBACK_ROLE_NAME, get_system_role, permission_catalog
from clinic_api.utils.clock import utc_now

logger = logging.getLogger("clinic_api.memberships")

# 诊所管理角色名集合。
CLINIC_ADMIN_ROLE_NAMES = frozenset({SystemRole.ADMIN.value, "super_admin"})


def get_membership(db: Session, *, user_id: UUID, clinic_id: UUID, active_only: bool = True) -> UserClinic | None:
    stmt = select(UserClinic).where(UserClinic.user_id == user_id).where(UserClinic.clinic_id == clinic_id)
    if active_only:
        stmt = stmt.where(UserClinic.is_active.is_(True))
    return db.execute(stmt).scalar_one_or_none()


def membership_role_names(db: Session, user_clinic: UserClinic) -> list[str]:
    """成员关系上的角色名，按分配顺序。"""
    return list(
        db.execute(
            select(Role.name)
            .join(UserClinicRole, UserClinicRole.role_id == Role.id)
            .where(UserClinicRole.user_clinic_id == user_clinic.id)
            .order_by(UserClinicRole.position)
        )
        .scalars()
        .all()
    )


def is_clinic_admin(db: Session, *, user_id: UUID, clinic_id: UUID) -> bool:
    """用户是否为该诊所的有效管理员。"""
    membership = get_membership(db, user_id=user_id, clinic_id=clinic_id)
    if membership is None:
        return False
    return any(name in CLINIC_ADMIN_ROLE_NAMES for name in membership_role_names(db, membership))


def count_clinic_admins(db: Session, clinic_id: UUID) -> int:
    """统计诊所内持有管理角色的有效成员数。"""
    return db.execute(
        select(func.count(func.distinct(UserClinic.id)))
        .join(UserClinicRole, UserClinicRole.user_clinic_id == UserClinic.id)
        .join(Role, Role.id == UserClinicRole.role_id)
        .where(UserClinic.clinic_id == clinic_id)
        .where(UserClinic.is_active.is_(True))
        .where(Role.name.in_(CLINIC_ADMIN_ROLE_NAMES))
    ).scalar_one()


def assign_role(
    db: Session,
    user_clinic: UserClinic,
    role: Role,
    *,
    assigned_by: UUID | None,
    is_primary: bool = False,
) -> UserClinicRole:
    """为成员关系分配角色；同一角色不重复分配，且最多保留一个主角色。"""
    if is_primary:
        db.execute(
            update(UserClinicRole)
            .where(UserClinicRole.user_clinic_id == user_clinic.id)
            .where(UserClinicRole.role_id != role.id)
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )

    assignment = db.execute(
        select(UserClinicRole)
        .where(UserClinicRole.user_clinic_id == user_clinic.id)
        .where(UserClinicRole.role_id == role.id)
    ).scalar_one_or_none()
    if assignment is not None:
        if is_primary:
            assignment.is_primary = True
        db.flush()
        return assignment

    next_position = db.execute(
        select(func.coalesce(func.max(UserClinicRole.position), -1)).where(
            UserClinicRole.user_clinic_id == user_clinic.id
        )
    ).scalar_one()
    assignment = UserClinicRole(
        user_clinic_id=user_clinic.id,
        role_id=role.id,
        assigned_at=utc_now(),
        assigned_by=assigned_by,
        is_primary=is_primary,
        position=next_position + 1,
    )
    db.add(assignment)
    db.flush()
    return assignment


def replace_roles(db: Session, user_clinic: UserClinic, role: Role, *, assigned_by: UUID | None) -> UserClinicRole:
    """以单一主角色替换成员关系上的全部角色。"""
    existing = (
        db.execute(select(UserClinicRole).where(UserClinicRole.user_clinic_id == user_clinic.id)).scalars().all()
    )
    for assignment in existing:
        if assignment.role_id != role.id:
            db.delete(assignment)
    db.flush()
    return assign_role(db, user_clinic, role, assigned_by=assigned_by, is_primary=True)


def set_permission_overrides(
    db: Session,
    user_clinic: UserClinic,
    overrides: dict[str, bool],
    *,
    granted_by: UUID | None,
) -> list[UserClinicPermissionOverride]:
    """写入个人权限覆盖，同一权限点仅保留一条（后写覆盖先写）。"""
    now = utc_now()
    catalog = set(permission_catalog())
    rows: list[UserClinicPermissionOverride] = []
    for permission_name, granted in overrides.items():
        name = permission_name.strip()
        if not name:
            continue
        if name not in catalog:
            raise ValidationFailed(f"Unknown permission: {name}.", details={"permission": name})
        row = db.execute(
            select(UserClinicPermissionOverride)
            .where(UserClinicPermissionOverride.user_clinic_id == user_clinic.id)
            .where(UserClinicPermissionOverride.permission_name == name)
        ).scalar_one_or_none()
        if row is None:
            row = UserClinicPermissionOverride(user_clinic_id=user_clinic.id, permission_name=name)
            db.add(row)
        row.granted = granted
        row.granted_at = now
        row.granted_by = granted_by
        rows.append(row)
    db.flush()
    return rows


def _require_system_role(db: Session, role_name: str) -> Role:
    role = get_system_role(db, role_name.strip().lower())
    if role is None:
        raise ValidationFailed(f"Role '{role_name}' not found.")
    return role


def attach_user_to_clinic(
    db: Session,
    *,
    clinic: Clinic,
    user: User,
    role_name: str,
    permissions: Iterable[str] = (),
    assigned_by: UUID | None,
) -> tuple[UserClinic, bool]:
    """将用户加入诊所，返回 (成员关系, 是否新建)。

    已有效的成员关系视为重复操作；已撤销的成员关系重新激活。
    """
    if user.tenant_id is None or user.tenant_id != clinic.tenant_id:
        raise Forbidden("User belongs to another tenant.")

    role = _require_system_role(db, role_name)
    membership = get_membership(db, user_id=user.id, clinic_id=clinic.id, active_only=False)
    created = membership is None
    if membership is not None and membership.is_active:
        raise ValidationFailed("User is already associated with this clinic.")

    if membership is None:
        membership = UserClinic(
            tenant_id=clinic.tenant_id,
            user_id=user.id,
            clinic_id=clinic.id,
            is_active=True,
            joined_at=utc_now(),
        )
        db.add(membership)
        db.flush()
    else:
        membership.is_active = True
        membership.tenant_id = clinic.tenant_id

    assign_role(db, membership, role, assigned_by=assigned_by, is_primary=True)
    permission_names = [name for name in permissions if name and name.strip()]
    if permission_names:
        set_permission_overrides(
            db,
            membership,
            {name: True for name in permission_names},
            granted_by=assigned_by,
        )
    return membership, created


def update_membership(
    db: Session,
    *,
    clinic: Clinic,
    user_id: UUID,
    role_name: str | None,
    overrides: dict[str, bool] | None,
    actor_id: UUID | None,
) -> UserClinic:
    """更新成员主角色与个人覆盖。"""
    membership = get_membership(db, user_id=user_id, clinic_id=clinic.id)
    if membership is None:
        raise ResourceNotFound("User not found in this clinic.")
    if role_name:
        replace_roles(db, membership, _require_system_role(db, role_name), assigned_by=actor_id)
    if overrides:
        set_permission_overrides(db, membership, overrides, granted_by=actor_id)
    return membership


def deactivate_membership(db: Session, *, clinic: Clinic, user_id: UUID, actor_id: UUID | None) -> UserClinic:
    """撤销成员关系（仅置为无效，保留历史）。

    管理员移除自己时，若其为诊所唯一管理员则拒绝。
    """
    membership = get_membership(db, user_id=user_id, clinic_id=clinic.id)
    if membership is None:
        raise ResourceNotFound("User not found in this clinic.")

    if actor_id is not None and actor_id == user_id and is_clinic_admin(db, user_id=user_id, clinic_id=clinic.id):
        if count_clinic_admins(db, clinic.id) <= 1:
            raise ValidationFailed("Cannot remove yourself as the only admin.")

    membership.is_active = False
    db.flush()
    logger.info("membership deactivated clinic=%s user=%s actor=%s", clinic.id, user_id, actor_id)
    return membership


def provision_membership_for_selection(db: Session, *, clinic: Clinic, user: User) -> UserClinic:
    """首次选择诊所时自动建立成员关系。

    管理员获得 admin 角色，其余用户获得与全局角色同名的系统角色，缺失时回落为 staff。
    已撤销的成员关系不会被自动恢复。
    """
    membership = get_membership(db, user_id=user.id, clinic_id=clinic.id, active_only=False)
    if membership is not None:
        if not membership.is_active:
            raise Forbidden("Your access to this clinic has been revoked.")
        if not membership_role_names(db, membership):
            assign_role(db, membership, _selection_role(db, user), assigned_by=user.id, is_primary=True)
        return membership

    membership = UserClinic(
        tenant_id=clinic.tenant_id,
        user_id=user.id,
        clinic_id=clinic.id,
        is_active=True,
        joined_at=utc_now(),
    )
    db.add(membership)
    db.flush()
    assign_role(db, membership, _selection_role(db, user), assigned_by=user.id, is_primary=True)
    logger.info("membership auto-provisioned clinic=%s user=%s", clinic.id, user.id)
    return membership


def _selection_role(db: Session, user: User) -> Role:
    desired = SystemRole.ADMIN.value if user.role in CLINIC_ADMIN_ROLE_NAMES else (user.role or FALLBACK_ROLE_NAME)
    role = get_system_role(db, desired.lower()) or get_system_role(db, FALLBACK_ROLE_NAME)
    if role is None:
        raise ValidationFailed("System roles are not initialized.")
    return role
