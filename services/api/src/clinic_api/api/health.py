"""健康检查接口。"""

from sqlalchemy.orm import Session

from fastapi import APIRouter, Depends, Request, status

from clinic_api.db.session import get_db
from clinic_api.errors import ServiceNotReady
from clinic_api.models.enums import SystemRole
from clinic_api.services.permissions import get_system_role
from clinic_api.utils.response import success
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import HealthStatusData

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/live",
    summary="存活探针",
    description="用于容器编排系统检测服务进程是否存活。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}},
)
def live(request: Request):
    """仅表示进程存活，不校验外部依赖。"""
    return success(request, {"status": "ok"})


@router.get(
    "/ready",
    summary="就绪探针",
    description="数据库可用且系统角色目录已初始化时才视为就绪。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}},
)
def ready(request: Request, db: Session = Depends(get_db)):
    """未初始化系统角色时无法授予任何诊所权限，按未就绪处理。"""
    if get_system_role(db, SystemRole.ADMIN.value) is None:
        raise ServiceNotReady("System role catalog is not seeded.")
    return success(request, {"status": "ready"})
