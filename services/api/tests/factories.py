"""测试数据构造辅助。"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.security import mint_super_admin_token, mint_user_token
from clinic_api.models.clinic import Clinic
from clinic_api.models.clinical import Appointment, Patient, Prescription
from clinic_api.models.enums import TenantStatus
from clinic_api.models.membership import UserClinic
from clinic_api.models.tenant import Tenant
from clinic_api.models.user import SuperAdmin, User
from clinic_api.services.credentials import hash_password
from clinic_api.services.memberships import assign_role
from clinic_api.services.permissions import ensure_system_roles

DEFAULT_PASSWORD = "StrongPassw0rd!"


def create_super_admin(db: Session, *, email: str = "root@platform.com", password: str = DEFAULT_PASSWORD) -> SuperAdmin:
    super_admin = SuperAdmin(
        email=email,
        password_hash=hash_password(password),
        first_name="Root",
        last_name="Admin",
        is_active=True,
    )
    db.add(super_admin)
    db.flush()
    return super_admin


def create_tenant(db: Session, *, slug: str, status: str = TenantStatus.ACTIVE, subdomain: str | None = None) -> Tenant:
    tenant = Tenant(
        name=slug.replace("-", " ").title(),
        slug=slug,
        email=f"contact@{slug}.com",
        subdomain=subdomain,
        status=status,
    )
    db.add(tenant)
    db.flush()
    return tenant


def create_clinic(db: Session, tenant: Tenant, *, code: str = "MAIN") -> Clinic:
    clinic = Clinic(tenant_id=tenant.id, name=f"{tenant.name} {code}", code=code, is_active=True)
    db.add(clinic)
    db.flush()
    return clinic


def create_user(
    db: Session,
    tenant: Tenant | None,
    *,
    email: str,
    role: str = "staff",
    password: str = DEFAULT_PASSWORD,
    is_active: bool = True,
) -> User:
    user = User(
        tenant_id=tenant.id if tenant else None,
        email=email,
        password_hash=hash_password(password),
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.flush()
    return user


def add_member(db: Session, clinic: Clinic, user: User, role_name: str) -> UserClinic:
    """以系统角色把用户加入诊所。"""
    roles = ensure_system_roles(db)
    membership = UserClinic(tenant_id=clinic.tenant_id, user_id=user.id, clinic_id=clinic.id, is_active=True)
    db.add(membership)
    db.flush()
    assign_role(db, membership, roles[role_name], assigned_by=None, is_primary=True)
    return membership


def create_patient(db: Session, clinic: Clinic, *, first_name: str = "Ana") -> Patient:
    patient = Patient(tenant_id=clinic.tenant_id, clinic_id=clinic.id, first_name=first_name, last_name="Lopez")
    db.add(patient)
    db.flush()
    return patient


def create_appointment(
    db: Session,
    clinic: Clinic,
    patient: Patient,
    *,
    doctor_id: UUID,
    nurse_id: UUID | None = None,
) -> Appointment:
    appointment = Appointment(
        tenant_id=clinic.tenant_id,
        clinic_id=clinic.id,
        patient_id=patient.id,
        doctor_id=doctor_id,
        nurse_id=nurse_id,
        scheduled_at=datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc),
    )
    db.add(appointment)
    db.flush()
    return appointment


def create_prescription(db: Session, clinic: Clinic, patient: Patient, *, doctor_id: UUID) -> Prescription:
    prescription = Prescription(
        tenant_id=clinic.tenant_id,
        clinic_id=clinic.id,
        patient_id=patient.id,
        doctor_id=doctor_id,
    )
    db.add(prescription)
    db.flush()
    return prescription


def user_headers(user: User, *, clinic: Clinic | None = None, clinic_role: str | None = None) -> dict[str, str]:
    issued = mint_user_token(user, clinic_id=clinic.id if clinic else None, clinic_role=clinic_role)
    return {"Authorization": f"Bearer {issued.access_token}"}


def super_admin_headers(super_admin: SuperAdmin) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_super_admin_token(super_admin).access_token}"}
