from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from factories import (
    add_member,
    create_clinic,
    create_patient,
    create_super_admin,
    create_tenant,
    create_user,
    super_admin_headers,
    user_headers,
)


def _clinic_staff(db_session: Session, slug: str):
    tenant = create_tenant(db_session, slug=slug)
    clinic = create_clinic(db_session, tenant)
    doctor = create_user(db_session, tenant, email=f"doctor@{slug}.com", role="doctor")
    receptionist = create_user(db_session, tenant, email=f"front@{slug}.com", role="receptionist")
    add_member(db_session, clinic, doctor, "doctor")
    add_member(db_session, clinic, receptionist, "receptionist")
    return tenant, clinic, doctor, receptionist


def test_doctor_sees_patient_only_after_appointment(api_client: TestClient, db_session: Session):
    _, clinic, doctor, receptionist = _clinic_staff(db_session, "scope")
    db_session.commit()
    front_desk = user_headers(receptionist, clinic=clinic, clinic_role="receptionist")
    doctor_headers = user_headers(doctor, clinic=clinic, clinic_role="doctor")

    created = api_client.post("/api/patients", headers=front_desk, json={"first_name": "Ana", "last_name": "Lopez"})
    assert created.status_code == 201
    patient_id = created.json()["data"]["id"]

    hidden = api_client.get(f"/api/patients/{patient_id}", headers=doctor_headers)
    assert hidden.status_code == 403
    assert api_client.get("/api/patients", headers=doctor_headers).json()["data"] == []

    booked = api_client.post(
        "/api/appointments",
        headers=front_desk,
        json={"patient_id": patient_id, "doctor_id": str(doctor.id), "scheduled_at": "2026-05-01T09:00:00Z"},
    )
    assert booked.status_code == 201

    visible = api_client.get(f"/api/patients/{patient_id}", headers=doctor_headers)
    assert visible.status_code == 200
    assert [item["id"] for item in api_client.get("/api/patients", headers=doctor_headers).json()["data"]] == [
        patient_id
    ]
    appointments = api_client.get("/api/appointments", headers=doctor_headers).json()["data"]
    assert [item["patient_id"] for item in appointments] == [patient_id]


def test_missing_permission_is_forbidden(api_client: TestClient, db_session: Session):
    tenant = create_tenant(db_session, slug="perm")
    clinic = create_clinic(db_session, tenant)
    staff = create_user(db_session, tenant, email="staff@perm.com")
    add_member(db_session, clinic, staff, "staff")
    db_session.commit()

    response = api_client.post(
        "/api/patients",
        headers=user_headers(staff, clinic=clinic, clinic_role="staff"),
        json={"first_name": "Ana", "last_name": "Lopez"},
    )

    assert response.status_code == 403
    assert response.json()["error"]["details"]["permission"] == "patient.write"


def test_patient_routes_require_selected_clinic(api_client: TestClient, db_session: Session):
    _, _, _, receptionist = _clinic_staff(db_session, "no-clinic")
    db_session.commit()

    response = api_client.get("/api/patients", headers=user_headers(receptionist))

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "CLINIC_CONTEXT_MISSING"


def test_appointment_for_other_tenant_patient_is_not_found(api_client: TestClient, db_session: Session):
    _, clinic, doctor, receptionist = _clinic_staff(db_session, "book-a")
    other_tenant = create_tenant(db_session, slug="book-b")
    foreign_patient = create_patient(db_session, create_clinic(db_session, other_tenant))
    db_session.commit()

    response = api_client.post(
        "/api/appointments",
        headers=user_headers(receptionist, clinic=clinic, clinic_role="receptionist"),
        json={"patient_id": str(foreign_patient.id), "doctor_id": str(doctor.id), "scheduled_at": "2026-05-01T09:00:00Z"},
    )

    assert response.status_code == 404


def test_super_admin_tenant_view_of_patients(api_client: TestClient, db_session: Session):
    tenant_a = create_tenant(db_session, slug="view-a")
    tenant_b = create_tenant(db_session, slug="view-b")
    patient_a = create_patient(db_session, create_clinic(db_session, tenant_a))
    patient_b = create_patient(db_session, create_clinic(db_session, tenant_b), first_name="Ben")
    super_admin = create_super_admin(db_session)
    db_session.commit()
    headers = super_admin_headers(super_admin)

    everything = api_client.get("/api/patients", headers=headers).json()["data"]
    assert {item["id"] for item in everything} == {str(patient_a.id), str(patient_b.id)}

    scoped = api_client.get("/api/patients", headers=headers, params={"tenant_id": str(tenant_b.id)}).json()["data"]
    assert [item["id"] for item in scoped] == [str(patient_b.id)]

    invalid = api_client.get("/api/patients", headers=headers, params={"tenant_id": "not-a-uuid"})
    assert invalid.status_code == 400
