"""超级管理员用户管理接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from clinic_api.db.session import get_db
from clinic_api.dependencies import audit_action, require_super_admin
from clinic_api.schemas.auth import ResetPasswordRequest, TenantUserCreateRequest, TenantUserUpdateRequest
from clinic_api.schemas.common import ErrorResponse, PaginationMeta, SuccessResponse
from clinic_api.schemas.responses import TenantUserData, UserStatsData
from clinic_api.services import users as user_service
from clinic_api.services.clinics import get_tenant_user
from clinic_api.services.context import RequestContext
from clinic_api.utils.response import success

router = APIRouter(
    prefix="/super-admin/users",
    tags=["super-admin-users"],
    dependencies=[Depends(require_super_admin)],
)


@router.get(
    "",
    summary="用户列表",
    description="跨租户查询用户；携带 ?tenant_id= 时只返回该租户用户。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[TenantUserData]],
    responses={401: {"model": ErrorResponse}},
)
def list_users(
    request: Request,
    page: int = Query(default=1, ge=1, description="页码。"),
    limit: int = Query(default=20, ge=1, le=100, description="每页条数。"),
    search: str | None = Query(default=None, max_length=100, description="按邮箱或姓名模糊搜索。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    items, total = user_service.list_users(db, ctx, page=page, limit=limit, search=search)
    meta = {"pagination": PaginationMeta.build(page=page, limit=limit, total=total).model_dump()}
    return success(request, [TenantUserData.model_validate(item) for item in items], meta)


@router.get(
    "/stats",
    summary="用户统计",
    description="按启用状态与全局角色统计用户；携带 ?tenant_id= 时只统计该租户。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[UserStatsData],
    responses={401: {"model": ErrorResponse}},
)
def user_stats(
    request: Request,
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return success(request, UserStatsData(**user_service.user_stats(db, ctx)))


@router.get(
    "/{user_id}",
    summary="用户详情",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantUserData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_user(
    request: Request,
    user_id: UUID = Path(..., description="用户 ID。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return success(request, TenantUserData.model_validate(get_tenant_user(db, ctx, user_id)))


@router.post(
    "",
    summary="创建租户用户",
    description="租户必须处于启用状态；租户下已有诊所时，用户以同名系统角色加入首个启用诊所。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[TenantUserData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("user.create"))],
)
def create_user(
    payload: TenantUserCreateRequest,
    request: Request,
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """创建用户并按需加入诊所。"""
    user, clinic = user_service.create_tenant_user(db, payload=payload.model_dump(), actor_id=ctx.principal_id)
    db.commit()
    db.refresh(user)
    body = TenantUserData.model_validate(user).model_copy(update={"clinic_id": clinic.id if clinic else None})
    return success(request, body, message="User created successfully.")


@router.patch(
    "/{user_id}/toggle-status",
    summary="切换用户启用状态",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantUserData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("user.toggle_status"))],
)
def toggle_user_status(
    request: Request,
    user_id: UUID = Path(..., description="用户 ID。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """停用后该用户已签发的令牌在回表时被拒绝。"""
    user = user_service.toggle_user_status(db, ctx, user_id)
    db.commit()
    db.refresh(user)
    state = "activated" if user.is_active else "deactivated"
    return success(request, TenantUserData.model_validate(user), message=f"User {state} successfully.")


@router.put(
    "/{user_id}",
    summary="更新用户",
    description="迁移到其他租户时，用户在原租户诊所中的成员关系一并撤销。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantUserData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    dependencies=[Depends(audit_action("user.update"))],
)
def update_user(
    payload: TenantUserUpdateRequest,
    request: Request,
    user_id: UUID = Path(..., description="用户 ID。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    user = user_service.update_tenant_user(db, ctx, user_id, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(user)
    return success(request, TenantUserData.model_validate(user), message="User updated successfully.")


@router.delete(
    "/{user_id}",
    summary="删除用户",
    description="物理删除用户及其诊所成员关系。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantUserData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("user.delete"))],
)
def delete_user(
    request: Request,
    user_id: UUID = Path(..., description="用户 ID。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    user = user_service.delete_tenant_user(db, ctx, user_id)
    # 提交后已删除对象不可再读取属性。
    data = TenantUserData.model_validate(user)
    db.commit()
    return success(request, data, message="User deleted successfully.")


@router.patch(
    "/{user_id}/reset-password",
    summary="重置用户密码",
    description="由超级管理员指定新密码并解除登录锁定；响应不回显密码。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantUserData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("user.reset_password"))],
)
def reset_user_password(
    payload: ResetPasswordRequest,
    request: Request,
    user_id: UUID = Path(..., description="用户 ID。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    user = user_service.reset_user_password(db, ctx, user_id, payload.new_password)
    db.commit()
    db.refresh(user)
    return success(request, TenantUserData.model_validate(user), message="Password reset successfully.")
