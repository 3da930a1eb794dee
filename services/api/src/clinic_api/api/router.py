"""顶层路由注册。"""

from fastapi import APIRouter

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

api_router = APIRouter()

# 固定注册顺序，便于在线接口文档展示和问题定位。
api_router.include_router(health.router)
api_router.include_router(super_admin_auth.router)
api_router.include_router(tenants.router)
api_router.include_router(super_admin_users.router)
api_router.include_router(public_tenants.router)
api_router.include_router(auth.router)
api_router.include_router(user_clinics.router)
api_router.include_router(clinics.router)
api_router.include_router(patients.router)
api_router.include_router(appointments.router)
