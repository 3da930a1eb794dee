from types import SimpleNamespace

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from clinic_api.services.audit import AuditEvent, AuditRecorder, pending_audit_event

from factories import create_super_admin, super_admin_headers


def _tenant_payload(slug: str) -> dict:
    return {"name": slug.title(), "slug": slug, "email": f"hello@{slug}.com"}


def test_successful_privileged_action_is_audited(api_client: TestClient, db_session: Session, audit_sink):
    super_admin = create_super_admin(db_session)
    db_session.commit()

    response = api_client.post(
        "/api/super-admin/tenants",
        headers={**super_admin_headers(super_admin), "User-Agent": "pytest-agent"},
        json=_tenant_payload("audited"),
    )

    assert response.status_code == 201
    assert len(audit_sink.events) == 1
    event = audit_sink.events[0]
    assert event.action == "tenant.create"
    assert event.method == "POST"
    assert event.path == "/api/super-admin/tenants"
    assert event.principal_kind == "super_admin"
    assert event.principal_id == super_admin.id
    assert event.status_code == 201
    assert event.user_agent == "pytest-agent"


def test_failed_privileged_action_is_not_audited(api_client: TestClient, db_session: Session, audit_sink):
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()
    api_client.post("/api/super-admin/tenants", headers=headers, json=_tenant_payload("twice"))
    audit_sink.events.clear()

    duplicate = api_client.post("/api/super-admin/tenants", headers=headers, json=_tenant_payload("twice"))

    assert duplicate.status_code == 409
    assert audit_sink.events == []


def test_read_only_routes_are_not_audited(api_client: TestClient, db_session: Session, audit_sink):
    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()

    assert api_client.get("/api/super-admin/tenants", headers=headers).status_code == 200
    assert audit_sink.events == []


def test_sink_failure_does_not_break_request(api_client: TestClient, db_session: Session):
    class BrokenSink:
        def write(self, event: AuditEvent) -> None:
            raise RuntimeError("sink down")

    headers = super_admin_headers(create_super_admin(db_session))
    db_session.commit()
    api_client.app.state.audit_recorder = AuditRecorder(BrokenSink())

    response = api_client.post("/api/super-admin/tenants", headers=headers, json=_tenant_payload("broken-sink"))

    assert response.status_code == 201
    assert response.json()["data"]["slug"] == "broken-sink"


def test_recorder_swallows_sink_errors(caplog):
    class BrokenSink:
        def write(self, event: AuditEvent) -> None:
            raise RuntimeError("sink down")

    AuditRecorder(BrokenSink()).record(AuditEvent(action="tenant.delete", method="DELETE", path="/x"))

    assert "audit write failed" in caplog.text


def test_pending_audit_event_only_for_successful_responses():
    event = AuditEvent(action="tenant.update", method="PUT", path="/api/super-admin/tenants/1")
    request = SimpleNamespace(state=SimpleNamespace(audit_event=event))

    assert pending_audit_event(request, 500) is None
    assert pending_audit_event(request, 404) is None
    assert pending_audit_event(request, 200).status_code == 200
    assert pending_audit_event(SimpleNamespace(state=SimpleNamespace()), 200) is None
