"""路由模块导出集合。"""

from . import (
    appointments,
    auth,
    clinics,
    health,
    patients,
    public_tenants,
    super_admin_auth,
    super_admin_users,
    tenants,
    user_clinics,
)

__all__ = [
    "appointments",
    "auth",
    "clinics",
    "health",
    "patients",
    "public_tenants",
    "super_admin_auth",
    "super_admin_users",
    "tenants",
    "user_clinics",
]
