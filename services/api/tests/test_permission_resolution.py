from datetime import datetime, timedelta, timezone
from itertools import permutations
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.errors import ValidationFailed
from clinic_api.models.role import Role, RolePermission
from clinic_api.services.memberships import assign_role, set_permission_overrides
from clinic_api.services.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    FALLBACK_ROLE_NAME,
    PermissionOverride,
    RoleGrant,
    effective_permissions,
    ensure_system_roles,
    get_effective_permissions,
    get_primary_role_name,
    has_permission,
    load_membership_grants,
    permission_catalog,
    primary_role,
    primary_role_name,
)

from factories import add_member, create_clinic, create_tenant, create_user

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _grant(name: str, *, primary: bool = False, assigned_at: datetime | None = None, position: int = 0) -> RoleGrant:
    return RoleGrant(
        role_id=uuid4(),
        name=name,
        permissions=DEFAULT_ROLE_PERMISSIONS[name],
        is_primary=primary,
        assigned_at=assigned_at,
        position=position,
    )


def test_admin_role_holds_full_catalog():
    assert DEFAULT_ROLE_PERMISSIONS["admin"] == frozenset(permission_catalog())


def test_effective_permissions_is_union_of_roles():
    result = effective_permissions([DEFAULT_ROLE_PERMISSIONS["nurse"], DEFAULT_ROLE_PERMISSIONS["accountant"]])
    assert result == DEFAULT_ROLE_PERMISSIONS["nurse"] | DEFAULT_ROLE_PERMISSIONS["accountant"]


def test_effective_permissions_ignores_order():
    roles = [DEFAULT_ROLE_PERMISSIONS[name] for name in ("doctor", "receptionist", "staff")]
    overrides = [
        PermissionOverride("report.read", True, T0),
        PermissionOverride("patient.write", False, T0),
        PermissionOverride("invoice.write", True, T0),
    ]
    expected = effective_permissions(roles, overrides)
    for role_order in permutations(roles):
        for override_order in permutations(overrides):
            assert effective_permissions(role_order, override_order) == expected


def test_deny_override_beats_several_granting_roles():
    roles = [DEFAULT_ROLE_PERMISSIONS["doctor"], DEFAULT_ROLE_PERMISSIONS["receptionist"]]
    assert "patient.write" in effective_permissions(roles)

    result = effective_permissions(roles, [PermissionOverride("patient.write", False, T0)])

    assert "patient.write" not in result


def test_grant_override_adds_permission_outside_roles():
    result = effective_permissions([DEFAULT_ROLE_PERMISSIONS["staff"]], [PermissionOverride("report.read", True, T0)])
    assert "report.read" in result


def test_latest_override_wins_for_duplicates():
    older_deny = PermissionOverride("report.read", False, T0)
    newer_grant = PermissionOverride("report.read", True, T0 + timedelta(minutes=5))
    for order in permutations([older_deny, newer_grant]):
        assert "report.read" in effective_permissions([], order)


def test_duplicate_overrides_with_same_timestamp_deny():
    grant = PermissionOverride("report.read", True, T0)
    deny = PermissionOverride("report.read", False, T0)
    for order in permutations([grant, deny]):
        assert "report.read" not in effective_permissions([DEFAULT_ROLE_PERMISSIONS["accountant"]], order)


def test_primary_role_prefers_earliest_flagged_assignment():
    roles = [
        _grant("nurse", primary=True, assigned_at=T0 + timedelta(days=1), position=1),
        _grant("doctor", primary=True, assigned_at=T0, position=2),
        _grant("staff", position=0),
    ]
    assert primary_role(roles).name == "doctor"
    assert primary_role_name(roles) == "doctor"


def test_primary_role_name_falls_back_to_staff():
    assert primary_role([_grant("doctor")]) is None
    assert primary_role_name([_grant("doctor")]) == FALLBACK_ROLE_NAME == "staff"


def test_ensure_system_roles_is_idempotent(db_session: Session):
    first = ensure_system_roles(db_session)
    second = ensure_system_roles(db_session)

    assert {name: role.id for name, role in first.items()} == {name: role.id for name, role in second.items()}
    doctor_permissions = set(
        db_session.execute(
            select(RolePermission.permission_name).where(RolePermission.role_id == first["doctor"].id)
        ).scalars()
    )
    assert doctor_permissions == set(DEFAULT_ROLE_PERMISSIONS["doctor"])
    system_roles = db_session.execute(select(Role).where(Role.is_system_role.is_(True))).scalars().all()
    assert len(system_roles) == 6


def test_membership_grants_combine_roles_and_overrides(db_session: Session):
    tenant = create_tenant(db_session, slug="perm-tenant")
    clinic = create_clinic(db_session, tenant)
    user = create_user(db_session, tenant, email="multi@clinic.com", role="doctor")
    membership = add_member(db_session, clinic, user, "doctor")
    roles = ensure_system_roles(db_session)
    assign_role(db_session, membership, roles["receptionist"], assigned_by=None)
    set_permission_overrides(db_session, membership, {"patient.write": False, "report.read": True}, granted_by=None)

    grants = load_membership_grants(db_session, membership)

    assert grants.role_names == ["doctor", "receptionist"]
    assert grants.primary_role_name == "doctor"
    assert get_primary_role_name(db_session, membership) == "doctor"
    assert not has_permission(db_session, membership, "patient.write")
    assert has_permission(db_session, membership, "report.read")
    assert has_permission(db_session, membership, "invoice.read")
    assert get_effective_permissions(db_session, membership) == sorted(grants.effective_permissions)


def test_assigning_new_primary_role_demotes_previous(db_session: Session):
    tenant = create_tenant(db_session, slug="primary-tenant")
    clinic = create_clinic(db_session, tenant)
    user = create_user(db_session, tenant, email="promote@clinic.com", role="nurse")
    membership = add_member(db_session, clinic, user, "nurse")
    roles = ensure_system_roles(db_session)

    assign_role(db_session, membership, roles["doctor"], assigned_by=None, is_primary=True)

    grants = load_membership_grants(db_session, membership)
    assert [role.name for role in grants.roles if role.is_primary] == ["doctor"]


def test_overrides_are_upserted_per_permission(db_session: Session):
    tenant = create_tenant(db_session, slug="upsert-tenant")
    clinic = create_clinic(db_session, tenant)
    user = create_user(db_session, tenant, email="upsert@clinic.com")
    membership = add_member(db_session, clinic, user, "staff")

    set_permission_overrides(db_session, membership, {"report.read": True}, granted_by=None)
    set_permission_overrides(db_session, membership, {"report.read": False}, granted_by=None)

    grants = load_membership_grants(db_session, membership)
    assert len(grants.overrides) == 1
    assert "report.read" not in grants.effective_permissions


def test_unknown_override_permission_is_rejected(db_session: Session):
    tenant = create_tenant(db_session, slug="unknown-perm")
    clinic = create_clinic(db_session, tenant)
    user = create_user(db_session, tenant, email="unknown@clinic.com")
    membership = add_member(db_session, clinic, user, "staff")

    with pytest.raises(ValidationFailed):
        set_permission_overrides(db_session, membership, {"rocket.launch": True}, granted_by=None)
