from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from clinic_api.services.permissions import ensure_system_roles


def test_live_does_not_touch_database(api_client: TestClient):
    response = api_client.get("/api/health/live")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ok"


def test_ready_requires_seeded_role_catalog(api_client: TestClient, db_session: Session):
    unseeded = api_client.get("/api/health/ready")
    assert unseeded.status_code == 500
    assert unseeded.json()["error"]["code"] == "SERVICE_NOT_READY"

    ensure_system_roles(db_session)
    db_session.commit()

    seeded = api_client.get("/api/health/ready")
    assert seeded.status_code == 200
    assert seeded.json()["data"]["status"] == "ready"
