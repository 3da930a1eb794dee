from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.models.enums import TenantStatus
from clinic_api.models.membership import UserClinic, UserClinicRole
from clinic_api.models.user import User

from factories import (
    DEFAULT_PASSWORD,
    add_member,
    create_clinic,
    create_super_admin,
    create_tenant,
    create_user,
    super_admin_headers,
    user_headers,
)


def _error_code(response) -> str:
    return response.json()["error"]["code"]


def test_get_user_honors_tenant_view(api_client: TestClient, db_session: Session):
    tenant_a = create_tenant(db_session, slug="view-a")
    tenant_b = create_tenant(db_session, slug="view-b")
    user = create_user(db_session, tenant_a, email="view@clinic.com")
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()

    found = api_client.get(f"/api/super-admin/users/{user.id}", headers=headers)
    assert found.status_code == 200
    assert found.json()["data"]["email"] == "view@clinic.com"

    other_view = api_client.get(
        f"/api/super-admin/users/{user.id}", headers=headers, params={"tenant_id": str(tenant_b.id)}
    )
    assert other_view.status_code == 404

    missing = api_client.get(f"/api/super-admin/users/{uuid4()}", headers=headers)
    assert missing.status_code == 404


def test_user_admin_routes_reject_user_tokens(api_client: TestClient, db_session: Session):
    tenant = create_tenant(db_session, slug="not-root")
    admin = create_user(db_session, tenant, email="boss@clinic.com", role="admin")
    db_session.commit()

    response = api_client.get("/api/super-admin/users/stats", headers=user_headers(admin))

    assert response.status_code == 401
    assert _error_code(response) == "WRONG_PRINCIPAL_TYPE"


def test_user_stats_counts_by_status_and_role(api_client: TestClient, db_session: Session):
    tenant_a = create_tenant(db_session, slug="stats-a")
    tenant_b = create_tenant(db_session, slug="stats-b")
    create_user(db_session, tenant_a, email="d1@clinic.com", role="doctor")
    create_user(db_session, tenant_a, email="d2@clinic.com", role="doctor", is_active=False)
    create_user(db_session, tenant_a, email="n1@clinic.com", role="nurse")
    create_user(db_session, tenant_b, email="a1@clinic.com", role="admin")
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()

    everything = api_client.get("/api/super-admin/users/stats", headers=headers).json()["data"]
    assert everything["total"] == 4
    assert everything["active"] == 3
    assert everything["inactive"] == 1
    assert everything["recent"] == 4
    assert everything["by_role"] == {"doctor": 2, "nurse": 1, "admin": 1}

    scoped = api_client.get(
        "/api/super-admin/users/stats", headers=headers, params={"tenant_id": str(tenant_b.id)}
    ).json()["data"]
    assert scoped["total"] == 1
    assert scoped["by_role"] == {"admin": 1}


def test_update_user_profile_and_email_conflict(api_client: TestClient, db_session: Session, audit_sink):
    tenant = create_tenant(db_session, slug="upd-user")
    user = create_user(db_session, tenant, email="old@clinic.com")
    create_user(db_session, tenant, email="taken@clinic.com")
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()

    updated = api_client.put(
        f"/api/super-admin/users/{user.id}",
        headers=headers,
        json={"email": "New@Clinic.com", "first_name": " Maria ", "role": "doctor", "phone": "555-0100"},
    )
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["email"] == "new@clinic.com"
    assert data["first_name"] == "Maria"
    assert data["role"] == "doctor"
    assert data["phone"] == "555-0100"
    assert [event.action for event in audit_sink.events] == ["user.update"]

    conflict = api_client.put(f"/api/super-admin/users/{user.id}", headers=headers, json={"email": "taken@clinic.com"})
    assert conflict.status_code == 409
    assert _error_code(conflict) == "DUPLICATE_KEY"
    # 失败的操作不落审计。
    assert len(audit_sink.events) == 1


def test_moving_user_to_another_tenant_revokes_old_access(api_client: TestClient, db_session: Session):
    old_tenant = create_tenant(db_session, slug="move-from")
    new_tenant = create_tenant(db_session, slug="move-to")
    paused = create_tenant(db_session, slug="move-paused", status=TenantStatus.SUSPENDED)
    clinic = create_clinic(db_session, old_tenant)
    user = create_user(db_session, old_tenant, email="mover@clinic.com", role="doctor")
    add_member(db_session, clinic, user, "doctor")
    headers = super_admin_headers(create_super_admin(db_session))
    old_token = user_headers(user)
    db_session.commit()

    rejected = api_client.put(
        f"/api/super-admin/users/{user.id}", headers=headers, json={"tenant_id": str(paused.id)}
    )
    assert rejected.status_code == 400
    assert _error_code(rejected) == "VALIDATION_FAILED"

    moved = api_client.put(
        f"/api/super-admin/users/{user.id}", headers=headers, json={"tenant_id": str(new_tenant.id)}
    )
    assert moved.status_code == 200
    assert moved.json()["data"]["tenant_id"] == str(new_tenant.id)

    db_session.expire_all()
    membership = db_session.execute(select(UserClinic).where(UserClinic.user_id == user.id)).scalar_one()
    assert membership.is_active is False

    # 迁移前签发的令牌仍携带原租户，不能继续使用。
    stale = api_client.get("/api/clinics", headers=old_token)
    assert stale.status_code == 401
    assert _error_code(stale) == "TOKEN_INVALID"


def test_delete_user_removes_memberships(api_client: TestClient, db_session: Session, audit_sink):
    tenant = create_tenant(db_session, slug="del-user")
    clinic = create_clinic(db_session, tenant)
    user = create_user(db_session, tenant, email="gone@clinic.com", role="nurse")
    membership = add_member(db_session, clinic, user, "nurse")
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()
    user_id, membership_id = user.id, membership.id

    deleted = api_client.delete(f"/api/super-admin/users/{user_id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"]["email"] == "gone@clinic.com"
    assert [event.action for event in audit_sink.events] == ["user.delete"]

    db_session.expire_all()
    assert db_session.get(User, user_id) is None
    assert db_session.execute(select(UserClinic).where(UserClinic.user_id == user_id)).first() is None
    assert (
        db_session.execute(select(UserClinicRole).where(UserClinicRole.user_clinic_id == membership_id)).first()
        is None
    )
    assert api_client.get(f"/api/super-admin/users/{user_id}", headers=headers).status_code == 404


def test_reset_password_unlocks_and_never_echoes_secret(api_client: TestClient, db_session: Session, audit_sink):
    tenant = create_tenant(db_session, slug="reset-user")
    user = create_user(db_session, tenant, email="reset@clinic.com")
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()

    for _ in range(5):
        api_client.post("/api/auth/login", json={"email": "reset@clinic.com", "password": "wrong"})
    locked = api_client.post("/api/auth/login", json={"email": "reset@clinic.com", "password": DEFAULT_PASSWORD})
    assert locked.status_code == 423

    too_short = api_client.patch(
        f"/api/super-admin/users/{user.id}/reset-password", headers=headers, json={"new_password": "short"}
    )
    assert too_short.status_code == 400

    reset = api_client.patch(
        f"/api/super-admin/users/{user.id}/reset-password",
        headers=headers,
        json={"new_password": "FreshPassw0rd!"},
    )
    assert reset.status_code == 200
    assert "FreshPassw0rd!" not in reset.text
    assert "password" not in reset.json()["data"]
    assert [event.action for event in audit_sink.events] == ["user.reset_password"]

    old = api_client.post("/api/auth/login", json={"email": "reset@clinic.com", "password": DEFAULT_PASSWORD})
    assert old.status_code == 401
    fresh = api_client.post("/api/auth/login", json={"email": "reset@clinic.com", "password": "FreshPassw0rd!"})
    assert fresh.status_code == 200
