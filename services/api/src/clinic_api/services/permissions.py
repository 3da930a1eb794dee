"""角色与权限解析。

有效权限 = 成员关系上所有角色权限的并集，再逐项应用个人覆盖：
覆盖项 granted=true 强制授予，granted=false 强制收回，优先级高于任何角色授权。
同一权限点出现多条覆盖时，以 granted_at 最新的一条为准，时间相同则收回优先。
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.models.enums import SystemRole
from clinic_api.models.membership import UserClinic, UserClinicPermissionOverride, UserClinicRole
from clinic_api.models.role import Role, RolePermission
from clinic_api.utils.clock import as_utc

FALLBACK_ROLE_NAME = SystemRole.STAFF.value


class Permission(StrEnum):
    """诊所内权限点目录。"""

    CLINIC_READ = "clinic.read"
    CLINIC_MANAGE = "clinic.manage"
    USER_READ = "user.read"
    USER_MANAGE = "user.manage"

    PATIENT_READ = "patient.read"
    PATIENT_WRITE = "patient.write"
    PATIENT_DELETE = "patient.delete"

    APPOINTMENT_READ = "appointment.read"
    APPOINTMENT_WRITE = "appointment.write"

    PRESCRIPTION_READ = "prescription.read"
    PRESCRIPTION_WRITE = "prescription.write"

    ODONTOGRAM_READ = "odontogram.read"
    ODONTOGRAM_WRITE = "odontogram.write"

    INVOICE_READ = "invoice.read"
    INVOICE_WRITE = "invoice.write"
    PAYMENT_WRITE = "payment.write"

    INVENTORY_READ = "inventory.read"
    INVENTORY_WRITE = "inventory.write"

    REPORT_READ = "report.read"
    ANALYTICS_READ = "analytics.read"


_ALL = frozenset(permission.value for permission in Permission)

_DOCTOR = frozenset(
    {
        Permission.CLINIC_READ,
        Permission.PATIENT_READ,
        Permission.PATIENT_WRITE,
        Permission.APPOINTMENT_READ,
        Permission.APPOINTMENT_WRITE,
        Permission.PRESCRIPTION_READ,
        Permission.PRESCRIPTION_WRITE,
        Permission.ODONTOGRAM_READ,
        Permission.ODONTOGRAM_WRITE,
        Permission.INVENTORY_READ,
    }
)
_NURSE = frozenset(
    {
        Permission.CLINIC_READ,
        Permission.PATIENT_READ,
        Permission.APPOINTMENT_READ,
        Permission.APPOINTMENT_WRITE,
        Permission.PRESCRIPTION_READ,
        Permission.ODONTOGRAM_READ,
        Permission.INVENTORY_READ,
        Permission.INVENTORY_WRITE,
    }
)
_RECEPTIONIST = frozenset(
    {
        Permission.CLINIC_READ,
        Permission.PATIENT_READ,
        Permission.PATIENT_WRITE,
        Permission.APPOINTMENT_READ,
        Permission.APPOINTMENT_WRITE,
        Permission.INVOICE_READ,
        Permission.PAYMENT_WRITE,
    }
)
_ACCOUNTANT = frozenset(
    {
        Permission.CLINIC_READ,
        Permission.INVOICE_READ,
        Permission.INVOICE_WRITE,
        Permission.PAYMENT_WRITE,
        Permission.REPORT_READ,
        Permission.ANALYTICS_READ,
    }
)
_STAFF = frozenset(
    {
        Permission.CLINIC_READ,
        Permission.PATIENT_READ,
        Permission.APPOINTMENT_READ,
        Permission.INVENTORY_READ,
    }
)

DEFAULT_ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    SystemRole.ADMIN: _ALL,
    SystemRole.DOCTOR: frozenset(item.value for item in _DOCTOR),
    SystemRole.NURSE: frozenset(item.value for item in _NURSE),
    SystemRole.RECEPTIONIST: frozenset(item.value for item in _RECEPTIONIST),
    SystemRole.ACCOUNTANT: frozenset(item.value for item in _ACCOUNTANT),
    SystemRole.STAFF: frozenset(item.value for item in _STAFF),
}

_SYSTEM_ROLE_DESCRIPTIONS = {
    SystemRole.ADMIN: "Clinic administrator with full access.",
    SystemRole.DOCTOR: "Doctor with access to own patients, appointments and prescriptions.",
    SystemRole.NURSE: "Nurse with access to assigned appointments and patients.",
    SystemRole.RECEPTIONIST: "Front desk: patient registration and scheduling.",
    SystemRole.ACCOUNTANT: "Billing, payments and financial reports.",
    SystemRole.STAFF: "General staff with read-only access.",
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class RoleGrant:
    """成员关系上的一条角色分配及其权限集合。"""

    role_id: UUID
    name: str
    permissions: frozenset[str]
    is_primary: bool = False
    assigned_at: datetime | None = None
    position: int = 0


@dataclass(frozen=True)
class PermissionOverride:
    """个人权限覆盖项。"""

    permission_name: str
    granted: bool
    granted_at: datetime | None = None


@dataclass(frozen=True)
class MembershipGrants:
    """一条成员关系的完整授权快照。"""

    roles: tuple[RoleGrant, ...]
    overrides: tuple[PermissionOverride, ...]

    @property
    def effective_permissions(self) -> frozenset[str]:
        return effective_permissions((role.permissions for role in self.roles), self.overrides)

    @property
    def primary_role_name(self) -> str:
        return primary_role_name(self.roles)

    @property
    def role_names(self) -> list[str]:
        return [role.name for role in sorted(self.roles, key=lambda item: item.position)]


def permission_catalog() -> list[str]:
    """返回权限点目录。"""
    return sorted(_ALL)


def _override_sort_key(override: PermissionOverride) -> tuple[datetime, int]:
    # 时间相同则收回排在后面，从而胜出。
    return (as_utc(override.granted_at) or _EPOCH, 0 if override.granted else 1)


def resolve_overrides(overrides: Iterable[PermissionOverride]) -> dict[str, bool]:
    """将覆盖项收敛为每个权限点一个最终结论。"""
    resolved: dict[str, PermissionOverride] = {}
    for override in overrides:
        current = resolved.get(override.permission_name)
        if current is None or _override_sort_key(override) > _override_sort_key(current):
            resolved[override.permission_name] = override
    return {name: override.granted for name, override in resolved.items()}


def effective_permissions(
    role_permissions: Iterable[Iterable[str]],
    overrides: Iterable[PermissionOverride] = (),
) -> frozenset[str]:
    """计算有效权限集合，与角色及覆盖项的顺序无关。"""
    granted: set[str] = set()
    for permissions in role_permissions:
        granted.update(permissions)
    for name, is_granted in resolve_overrides(overrides).items():
        if is_granted:
            granted.add(name)
        else:
            granted.discard(name)
    return frozenset(granted)


def primary_role(roles: Iterable[RoleGrant]) -> RoleGrant | None:
    """返回主角色；多条标记为主角色时取最早分配的一条。"""
    candidates = [role for role in roles if role.is_primary]
    if not candidates:
        return None
    return min(candidates, key=lambda role: (as_utc(role.assigned_at) or _EPOCH, role.position))


def primary_role_name(roles: Iterable[RoleGrant]) -> str:
    """主角色名，缺省回落为 staff，仅用于展示与令牌声明。"""
    role = primary_role(roles)
    return role.name if role else FALLBACK_ROLE_NAME


def load_membership_grants(db: Session, user_clinic: UserClinic) -> MembershipGrants:
    """从数据库加载成员关系的角色与覆盖项。"""
    assignments = db.execute(
        select(UserClinicRole, Role)
        .join(Role, Role.id == UserClinicRole.role_id)
        .where(UserClinicRole.user_clinic_id == user_clinic.id)
        .order_by(UserClinicRole.position)
    ).all()

    role_ids = [role.id for _, role in assignments]
    permissions_by_role: dict[UUID, set[str]] = {role_id: set() for role_id in role_ids}
    if role_ids:
        rows = db.execute(
            select(RolePermission.role_id, RolePermission.permission_name).where(RolePermission.role_id.in_(role_ids))
        ).all()
        for role_id, permission_name in rows:
            permissions_by_role[role_id].add(permission_name)

    overrides = (
        db.execute(
            select(UserClinicPermissionOverride).where(UserClinicPermissionOverride.user_clinic_id == user_clinic.id)
        )
        .scalars()
        .all()
    )

    return MembershipGrants(
        roles=tuple(
            RoleGrant(
                role_id=role.id,
                name=role.name,
                permissions=frozenset(permissions_by_role.get(role.id, ())),
                is_primary=assignment.is_primary,
                assigned_at=assignment.assigned_at,
                position=assignment.position,
            )
            for assignment, role in assignments
        ),
        overrides=tuple(
            PermissionOverride(
                permission_name=override.permission_name,
                granted=override.granted,
                granted_at=override.granted_at,
            )
            for override in overrides
        ),
    )


def get_effective_permissions(db: Session, user_clinic: UserClinic) -> list[str]:
    return sorted(load_membership_grants(db, user_clinic).effective_permissions)


def get_primary_role_name(db: Session, user_clinic: UserClinic) -> str:
    return load_membership_grants(db, user_clinic).primary_role_name


def has_permission(db: Session, user_clinic: UserClinic, permission: str) -> bool:
    return permission in load_membership_grants(db, user_clinic).effective_permissions


def get_system_role(db: Session, name: str) -> Role | None:
    """按名称查询系统角色。"""
    return (
        db.execute(
            select(Role)
            .where(Role.name == name)
            .where(Role.is_system_role.is_(True))
            .where(Role.clinic_id.is_(None))
        )
        .scalars()
        .first()
    )


def ensure_system_roles(db: Session) -> dict[str, Role]:
    """补齐缺失的系统角色及其默认权限，已存在的角色保持不变。"""
    roles: dict[str, Role] = {}
    for name in SystemRole:
        role = get_system_role(db, name.value)
        if role is None:
            role = Role(name=name.value, description=_SYSTEM_ROLE_DESCRIPTIONS[name], is_system_role=True)
            db.add(role)
            db.flush()
            for permission_name in sorted(DEFAULT_ROLE_PERMISSIONS[name]):
                db.add(RolePermission(role_id=role.id, permission_name=permission_name))
            db.flush()
        roles[name.value] = role
    return roles
