"""用户诊所上下文接口：列出、选择、切换与清除当前诊所。

选择诊所会换发携带 clinic_id / clinic_role 的新令牌，服务端不保存会话状态。
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from clinic_api.core.security import IssuedToken, mint_user_token
from clinic_api.db.session import get_db
from clinic_api.dependencies import get_request_context, require_clinic_context, require_user
from clinic_api.errors import Forbidden, PrincipalNotFound
from clinic_api.models.clinic import Clinic
from clinic_api.models.membership import UserClinic
from clinic_api.models.user import User
from clinic_api.schemas.clinic import ClinicSelectRequest
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import (
    ClearClinicData,
    ClinicAccessItem,
    ClinicData,
    ClinicPermissionsData,
    ClinicSelectionData,
    CurrentClinicData,
)
from clinic_api.services.clinics import accessible_clinics, get_scoped_clinic
from clinic_api.services.context import RequestContext
from clinic_api.services.memberships import get_membership, provision_membership_for_selection
from clinic_api.services.permissions import load_membership_grants
from clinic_api.utils.response import success

router = APIRouter(prefix="/user", tags=["user-clinics"])


def _current_user(db: Session, ctx: RequestContext) -> User:
    user = db.get(User, ctx.principal_id)
    if user is None:
        raise PrincipalNotFound()
    return user


def _token_fields(issued: IssuedToken) -> dict:
    return {"access_token": issued.access_token, "expires_in": issued.expires_in, "expires_at": issued.expires_at}


def _selection_response(db: Session, user: User, clinic: Clinic, membership: UserClinic) -> ClinicSelectionData:
    """按成员关系的主角色换发诊所令牌。"""
    grants = load_membership_grants(db, membership)
    issued = mint_user_token(
        user,
        tenant_id=clinic.tenant_id,
        clinic_id=clinic.id,
        clinic_role=grants.primary_role_name,
    )
    return ClinicSelectionData(
        **_token_fields(issued),
        clinic=ClinicData.model_validate(clinic),
        role=grants.primary_role_name,
        permissions=sorted(grants.effective_permissions),
    )


@router.get(
    "/clinics",
    summary="可选择的诊所",
    description="用户返回本租户可选择的诊所；超级管理员携带 global=true 时返回全部租户的诊所。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[ClinicAccessItem]],
    responses={401: {"model": ErrorResponse}},
)
def list_clinics(
    request: Request,
    global_view: bool = Query(default=False, alias="global", description="超级管理员跨租户查看。"),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    rows = accessible_clinics(db, ctx, all_tenants=global_view and ctx.is_super_admin)
    data = [
        ClinicAccessItem(clinic_id=clinic.id, tenant_id=clinic.tenant_id, name=clinic.name, code=clinic.code, role=role)
        for clinic, role in rows
    ]
    return success(request, data)


@router.post(
    "/select-clinic",
    summary="选择诊所",
    description="首次选择时自动建立成员关系；已被撤销的成员关系不会自动恢复。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicSelectionData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def select_clinic(
    payload: ClinicSelectRequest,
    request: Request,
    ctx: RequestContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    """选择诊所并换发令牌。"""
    clinic = get_scoped_clinic(db, ctx, payload.clinic_id, active_only=True)
    user = _current_user(db, ctx)
    membership = provision_membership_for_selection(db, clinic=clinic, user=user)
    data = _selection_response(db, user, clinic, membership)
    db.commit()
    return success(request, data, message="Clinic selected successfully.")


@router.post(
    "/switch-clinic",
    summary="切换诊所",
    description="仅可切换到已有有效成员关系的诊所。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicSelectionData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def switch_clinic(
    payload: ClinicSelectRequest,
    request: Request,
    ctx: RequestContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    clinic = get_scoped_clinic(db, ctx, payload.clinic_id, active_only=True)
    membership = get_membership(db, user_id=ctx.principal_id, clinic_id=clinic.id)
    if membership is None:
        raise Forbidden("You do not have access to this clinic.")
    data = _selection_response(db, _current_user(db, ctx), clinic, membership)
    return success(request, data, message="Clinic switched successfully.")


@router.post(
    "/clear-clinic",
    summary="清除诊所选择",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClearClinicData],
    responses={401: {"model": ErrorResponse}},
)
def clear_clinic(
    request: Request,
    ctx: RequestContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    """换发不带诊所上下文的令牌。"""
    issued = mint_user_token(_current_user(db, ctx), tenant_id=ctx.tenant_id)
    return success(request, ClearClinicData(**_token_fields(issued)), message="Clinic selection cleared.")


@router.get(
    "/current-clinic",
    summary="当前诊所",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[CurrentClinicData],
    responses={401: {"model": ErrorResponse}},
)
def current_clinic(
    request: Request,
    ctx: RequestContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    """未选择诊所或成员关系已失效时 clinic 为空。"""
    if ctx.clinic_id is None:
        return success(request, CurrentClinicData())
    membership = get_membership(db, user_id=ctx.principal_id, clinic_id=ctx.clinic_id)
    clinic = db.get(Clinic, ctx.clinic_id)
    if membership is None or clinic is None:
        return success(request, CurrentClinicData())
    grants = load_membership_grants(db, membership)
    data = CurrentClinicData(
        clinic=ClinicData.model_validate(clinic),
        role=grants.primary_role_name,
        permissions=sorted(grants.effective_permissions),
    )
    return success(request, data)


@router.get(
    "/clinic-permissions",
    summary="当前诊所权限",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[ClinicPermissionsData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def clinic_permissions(
    request: Request,
    ctx: RequestContext = Depends(require_clinic_context),
    db: Session = Depends(get_db),
):
    membership = get_membership(db, user_id=ctx.principal_id, clinic_id=ctx.clinic_id)
    if membership is None:
        raise Forbidden("You do not have access to this clinic.")
    grants = load_membership_grants(db, membership)
    data = ClinicPermissionsData(
        clinic_id=membership.clinic_id,
        role=grants.primary_role_name,
        roles=grants.role_names,
        permissions=sorted(grants.effective_permissions),
    )
    return success(request, data)
