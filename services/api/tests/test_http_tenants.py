from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from factories import create_super_admin, create_tenant, super_admin_headers


def _admin_headers(db_session: Session) -> dict[str, str]:
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()
    return headers


def _tenant_payload(slug: str, **extra) -> dict:
    return {"name": slug.title(), "slug": slug, "email": f"hello@{slug}.com", **extra}


def test_create_list_and_get_tenant(api_client: TestClient, db_session: Session):
    headers = _admin_headers(db_session)

    created = api_client.post(
        "/api/super-admin/tenants",
        headers=headers,
        json=_tenant_payload("smile-dental", subdomain="Smile", status="active"),
    )
    assert created.status_code == 201
    tenant = created.json()["data"]
    assert tenant["slug"] == "smile-dental"
    assert tenant["subdomain"] == "smile"
    assert tenant["status"] == "active"

    listing = api_client.get("/api/super-admin/tenants", headers=headers, params={"status": "active"})
    assert listing.status_code == 200
    body = listing.json()
    assert [item["id"] for item in body["data"]] == [tenant["id"]]
    assert body["meta"]["pagination"]["total"] == 1
    assert body["meta"]["stats"]["active"] == 1

    detail = api_client.get(f"/api/super-admin/tenants/{tenant['id']}", headers=headers)
    assert detail.status_code == 200
    assert detail.json()["data"]["email"] == "hello@smile-dental.com"


def test_duplicate_slug_conflicts_until_soft_deleted(api_client: TestClient, db_session: Session):
    headers = _admin_headers(db_session)
    first = api_client.post("/api/super-admin/tenants", headers=headers, json=_tenant_payload("north-clinic"))
    assert first.status_code == 201

    duplicate = api_client.post("/api/super-admin/tenants", headers=headers, json=_tenant_payload("north-clinic"))
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "DUPLICATE_KEY"
    assert duplicate.json()["error"]["details"]["field"] == "slug"

    deleted = api_client.delete(f"/api/super-admin/tenants/{first.json()['data']['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"]["deleted_at"] is not None

    recreated = api_client.post("/api/super-admin/tenants", headers=headers, json=_tenant_payload("north-clinic"))
    assert recreated.status_code == 201

    restore = api_client.put(f"/api/super-admin/tenants/{first.json()['data']['id']}/restore", headers=headers)
    assert restore.status_code == 409


def test_restore_soft_deleted_tenant(api_client: TestClient, db_session: Session):
    headers = _admin_headers(db_session)
    tenant_id = api_client.post(
        "/api/super-admin/tenants", headers=headers, json=_tenant_payload("east-clinic")
    ).json()["data"]["id"]
    api_client.delete(f"/api/super-admin/tenants/{tenant_id}", headers=headers)

    missing = api_client.get(f"/api/super-admin/tenants/{tenant_id}", headers=headers)
    assert missing.status_code == 404

    restored = api_client.put(f"/api/super-admin/tenants/{tenant_id}/restore", headers=headers)
    assert restored.status_code == 200
    assert restored.json()["data"]["deleted_at"] is None


def test_update_tenant_checks_subdomain_uniqueness(api_client: TestClient, db_session: Session):
    create_tenant(db_session, slug="taken", subdomain="taken")
    headers = _admin_headers(db_session)
    tenant_id = api_client.post(
        "/api/super-admin/tenants", headers=headers, json=_tenant_payload("west-clinic")
    ).json()["data"]["id"]

    conflict = api_client.put(f"/api/super-admin/tenants/{tenant_id}", headers=headers, json={"subdomain": "taken"})
    assert conflict.status_code == 409

    renamed = api_client.put(f"/api/super-admin/tenants/{tenant_id}", headers=headers, json={"name": "West Side"})
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "West Side"


def test_update_tenant_lowercases_keys_before_checks(api_client: TestClient, db_session: Session):
    create_tenant(db_session, slug="upper-taken", subdomain="uppertaken")
    headers = _admin_headers(db_session)
    tenant_id = api_client.post(
        "/api/super-admin/tenants", headers=headers, json=_tenant_payload("east-clinic")
    ).json()["data"]["id"]

    conflict = api_client.put(
        f"/api/super-admin/tenants/{tenant_id}", headers=headers, json={"subdomain": "UpperTaken"}
    )
    assert conflict.status_code == 409

    renamed = api_client.put(
        f"/api/super-admin/tenants/{tenant_id}", headers=headers, json={"slug": "East-Side", "subdomain": "EastSide"}
    )
    assert renamed.status_code == 200
    assert renamed.json()["data"]["slug"] == "east-side"
    assert renamed.json()["data"]["subdomain"] == "eastside"


def test_availability_checks_and_stats(api_client: TestClient, db_session: Session):
    create_tenant(db_session, slug="alpha", subdomain="alpha")
    create_tenant(db_session, slug="beta", status="suspended")
    headers = _admin_headers(db_session)

    slug_taken = api_client.get("/api/super-admin/tenants/check-slug/Alpha", headers=headers)
    assert slug_taken.json()["data"] == {"value": "alpha", "available": False}

    slug_free = api_client.get("/api/super-admin/tenants/check-slug/gamma", headers=headers)
    assert slug_free.json()["data"]["available"] is True

    subdomain = api_client.get("/api/super-admin/tenants/check-subdomain/alpha", headers=headers)
    assert subdomain.json()["data"]["available"] is False

    stats = api_client.get("/api/super-admin/tenants/stats", headers=headers).json()["data"]
    assert stats["active"] == 1
    assert stats["suspended"] == 1
    assert stats["total"] == 2
    assert stats["deleted"] == 0


def test_public_tenant_lookup_only_exposes_active_tenants(api_client: TestClient, db_session: Session):
    create_tenant(db_session, slug="open-clinic", subdomain="open")
    create_tenant(db_session, slug="closed-clinic", subdomain="closed", status="suspended")
    db_session.commit()

    listing = api_client.get("/api/public/tenants")
    assert listing.status_code == 200
    assert [item["slug"] for item in listing.json()["data"]] == ["open-clinic"]
    assert listing.json()["data"][0]["url"] == "https://open.clinic.local"

    found = api_client.get("/api/public/tenants/subdomain/OPEN")
    assert found.status_code == 200
    assert found.json()["data"]["slug"] == "open-clinic"

    hidden = api_client.get("/api/public/tenants/subdomain/closed")
    assert hidden.status_code == 404

    validation = api_client.get("/api/public/tenants/validate/closed").json()["data"]
    assert validation == {"subdomain": "closed", "valid": False, "tenant": None}


def test_tenant_routes_require_super_admin_token(api_client: TestClient):
    response = api_client.get("/api/super-admin/tenants")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_MISSING"
