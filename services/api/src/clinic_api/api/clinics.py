"""诊所管理与诊所成员管理接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.db.session import get_db
from clinic_api.dependencies import ADMIN_ROLES, audit_action, get_request_context, require_roles
from clinic_api.models.membership import UserClinic
from clinic_api.models.user import User
from clinic_api.schemas.clinic import (
    ClinicCreateRequest,
    ClinicUpdateRequest,
    ClinicUserAddRequest,
    ClinicUserUpdateRequest,
)
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import ClinicData, ClinicMemberData
from clinic_api.services.clinics import (
    create_clinic,
    ensure_clinic_admin,
    get_scoped_clinic,
    get_tenant_user,
    list_scoped_clinics,
    update_clinic,
)
from clinic_api.services.context import RequestContext
from clinic_api.services.memberships import attach_user_to_clinic, deactivate_membership, update_membership
from clinic_api.services.permissions import load_membership_grants
from clinic_api.utils.response import success

router = APIRouter(prefix="/clinics", tags=["clinics"])


def _member_data(db: Session, membership: UserClinic, user: User) -> ClinicMemberData:
    grants = load_membership_grants(db, membership)
    return ClinicMemberData(
        user_id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=grants.primary_role_name,
        roles=grants.role_names,
        permissions=sorted(grants.effective_permissions),
        is_active=membership.is_active,
        joined_at=membership.joined_at,
    )


@router.get(
    "",
    summary="诊所列表",
    description="返回当前租户的诊所；超级管理员未指定租户视图时返回全部诊所。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[ClinicData]],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def list_clinics(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    clinics = list_scoped_clinics(db, ctx, active_only=False)
    return success(request, [ClinicData.model_validate(clinic) for clinic in clinics])


@router.post(
    "",
    summary="创建诊所",
    description="创建人为用户时自动成为该诊所管理员；超级管理员需在请求体中指定 tenant_id。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[ClinicData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    dependencies=[Depends(require_roles(*ADMIN_ROLES)), Depends(audit_action("clinic.create"))],
)
def create(
    payload: ClinicCreateRequest,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """创建诊所与创建人的管理员成员关系，同一事务提交。"""
    clinic = create_clinic(db, ctx, payload.model_dump(exclude_none=True))
    db.commit()
    db.refresh(clinic)
    return success(request, ClinicData.model_validate(clinic), message="Clinic created successfully.")


@router.get(
    "/{clinic_id}",
    summary="诊所详情",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_clinic(
    request: Request,
    clinic_id: UUID = Path(..., description="诊所 ID。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    return success(request, ClinicData.model_validate(get_scoped_clinic(db, ctx, clinic_id)))


@router.put(
    "/{clinic_id}",
    summary="更新诊所",
    description="全局管理员或本诊所管理员可更新诊所资料；编码在租户内唯一。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    dependencies=[Depends(audit_action("clinic.update"))],
)
def update(
    payload: ClinicUpdateRequest,
    request: Request,
    clinic_id: UUID = Path(..., description="诊所 ID。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    clinic = get_scoped_clinic(db, ctx, clinic_id)
    ensure_clinic_admin(db, ctx, clinic)
    update_clinic(db, clinic, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(clinic)
    return success(request, ClinicData.model_validate(clinic), message="Clinic updated successfully.")


@router.put(
    "/{clinic_id}/deactivate",
    summary="停用诊所",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("clinic.deactivate"))],
)
def deactivate(
    request: Request,
    clinic_id: UUID = Path(..., description="诊所 ID。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    clinic = get_scoped_clinic(db, ctx, clinic_id)
    ensure_clinic_admin(db, ctx, clinic)
    clinic.is_active = False
    db.commit()
    db.refresh(clinic)
    return success(request, ClinicData.model_validate(clinic), message="Clinic deactivated successfully.")


@router.get(
    "/{clinic_id}/users",
    summary="诊所成员列表",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[ClinicMemberData]],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def list_clinic_users(
    request: Request,
    clinic_id: UUID = Path(..., description="诊所 ID。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    clinic = get_scoped_clinic(db, ctx, clinic_id)
    ensure_clinic_admin(db, ctx, clinic)
    rows = db.execute(
        select(UserClinic, User)
        .join(User, User.id == UserClinic.user_id)
        .where(UserClinic.clinic_id == clinic.id)
        .where(UserClinic.is_active.is_(True))
        .order_by(User.last_name, User.first_name)
    ).all()
    return success(request, [_member_data(db, membership, user) for membership, user in rows])


@router.post(
    "/{clinic_id}/users",
    summary="添加诊所成员",
    description="同租户用户以指定系统角色加入诊所；已撤销的成员关系重新激活。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[ClinicMemberData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    dependencies=[Depends(audit_action("clinic.user.add"))],
)
def add_clinic_user(
    payload: ClinicUserAddRequest,
    request: Request,
    clinic_id: UUID = Path(..., description="诊所 ID。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    clinic = get_scoped_clinic(db, ctx, clinic_id, active_only=True)
    ensure_clinic_admin(db, ctx, clinic)
    user = get_tenant_user(db, ctx, payload.user_id)
    membership, created = attach_user_to_clinic(
        db,
        clinic=clinic,
        user=user,
        role_name=payload.role,
        permissions=payload.permissions,
        assigned_by=ctx.principal_id,
    )
    data = _member_data(db, membership, user)
    db.commit()
    message = "User added to clinic successfully." if created else "User access to clinic restored."
    return success(request, data, message=message)


@router.put(
    "/{clinic_id}/users/{user_id}",
    summary="更新诊所成员",
    description="替换主角色并写入个人权限覆盖。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicMemberData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    dependencies=[Depends(audit_action("clinic.user.update"))],
)
def update_clinic_user(
    payload: ClinicUserUpdateRequest,
    request: Request,
    clinic_id: UUID = Path(..., description="诊所 ID。"),
    user_id: UUID = Path(..., description="用户 ID。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    clinic = get_scoped_clinic(db, ctx, clinic_id)
    ensure_clinic_admin(db, ctx, clinic)
    user = get_tenant_user(db, ctx, user_id)
    membership = update_membership(
        db,
        clinic=clinic,
        user_id=user.id,
        role_name=payload.role,
        overrides=payload.permission_overrides,
        actor_id=ctx.principal_id,
    )
    data = _member_data(db, membership, user)
    db.commit()
    return success(request, data, message="Clinic user updated successfully.")


@router.delete(
    "/{clinic_id}/users/{user_id}",
    summary="移除诊所成员",
    description="仅撤销成员关系，不删除历史；唯一管理员不能移除自己。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicMemberData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    dependencies=[Depends(audit_action("clinic.user.remove"))],
)
def remove_clinic_user(
    request: Request,
    clinic_id: UUID = Path(..., description="诊所 ID。"),
    user_id: UUID = Path(..., description="用户 ID。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    clinic = get_scoped_clinic(db, ctx, clinic_id)
    ensure_clinic_admin(db, ctx, clinic)
    user = get_tenant_user(db, ctx, user_id)
    membership = deactivate_membership(db, clinic=clinic, user_id=user.id, actor_id=ctx.principal_id)
    data = _member_data(db, membership, user)
    db.commit()
    return success(request, data, message="User removed from clinic successfully.")
