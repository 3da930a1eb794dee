"""ORM 模型导出集合。"""

from clinic_api.models.audit import AuditLog
from clinic_api.models.clinic import Clinic
from clinic_api.models.clinical import Appointment, Patient, Prescription
from clinic_api.models.membership import UserClinic, UserClinicPermissionOverride, UserClinicRole
from clinic_api.models.role import Role, RolePermission
from clinic_api.models.tenant import Tenant
from clinic_api.models.user import SuperAdmin, User

__all__ = [
    "Appointment",
    "AuditLog",
    "Clinic",
    "Patient",
    "Prescription",
    "Role",
    "RolePermission",
    "SuperAdmin",
    "Tenant",
    "User",
    "UserClinic",
    "UserClinicPermissionOverride",
    "UserClinicRole",
]
