"""超级管理员认证与账号管理接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.core.security import mint_super_admin_token
from clinic_api.db.session import get_db
from clinic_api.dependencies import audit_action, require_super_admin
from clinic_api.errors import DuplicateKey, PrincipalNotFound, ResourceNotFound, ValidationFailed
from clinic_api.models.user import SuperAdmin
from clinic_api.schemas.auth import ChangePasswordRequest, LoginRequest, ProfileUpdateRequest, SuperAdminCreateRequest
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import SuperAdminData, SuperAdminLoginData
from clinic_api.services.authentication import authenticate_super_admin
from clinic_api.services.context import RequestContext
from clinic_api.services.credentials import hash_password, normalize_email, verify_password
from clinic_api.services.login_guard import unlock_account
from clinic_api.utils.response import success

router = APIRouter(prefix="/super-admin/auth", tags=["super-admin-auth"])


def _current_super_admin(db: Session, ctx: RequestContext) -> SuperAdmin:
    super_admin = db.get(SuperAdmin, ctx.principal_id)
    if super_admin is None:
        raise PrincipalNotFound()
    return super_admin


def _get_super_admin_or_404(db: Session, super_admin_id: UUID) -> SuperAdmin:
    super_admin = db.get(SuperAdmin, super_admin_id)
    if super_admin is None:
        raise ResourceNotFound("Super admin not found.")
    return super_admin


@router.post(
    "/login",
    summary="超级管理员登录",
    description="邮箱密码登录，返回 8 小时有效的超级管理员令牌。连续失败 5 次锁定 2 小时。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SuperAdminLoginData],
    responses={
        401: {"model": ErrorResponse},
        423: {"model": ErrorResponse, "description": "账号已锁定。"},
        429: {"model": ErrorResponse, "description": "失败次数过多，账号被锁定。"},
    },
)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """登录并签发超级管理员令牌。"""
    super_admin = authenticate_super_admin(db, payload.email, payload.password)
    issued = mint_super_admin_token(super_admin)
    data = SuperAdminLoginData(
        access_token=issued.access_token,
        expires_in=issued.expires_in,
        expires_at=issued.expires_at,
        super_admin=SuperAdminData.model_validate(super_admin),
    )
    return success(request, data, message="Login successful.")


@router.get(
    "/profile",
    summary="查询个人资料",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SuperAdminData],
    responses={401: {"model": ErrorResponse}},
)
def get_profile(
    request: Request,
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    return success(request, SuperAdminData.model_validate(_current_super_admin(db, ctx)))


@router.put(
    "/profile",
    summary="更新个人资料",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SuperAdminData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def update_profile(
    payload: ProfileUpdateRequest,
    request: Request,
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """仅更新提交的字段。"""
    super_admin = _current_super_admin(db, ctx)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(super_admin, key, value)
    db.commit()
    db.refresh(super_admin)
    return success(request, SuperAdminData.model_validate(super_admin), message="Profile updated successfully.")


@router.put(
    "/change-password",
    summary="修改密码",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[dict],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    dependencies=[Depends(require_super_admin), Depends(audit_action("super_admin.change_password"))],
)
def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """校验当前密码后更新。"""
    super_admin = _current_super_admin(db, ctx)
    if not verify_password(payload.current_password, super_admin.password_hash):
        raise ValidationFailed("Current password is incorrect.", details={"field": "current_password"})
    if payload.current_password == payload.new_password:
        raise ValidationFailed("New password must differ from the current password.", details={"field": "new_password"})
    super_admin.password_hash = hash_password(payload.new_password)
    db.commit()
    return success(request, {}, message="Password changed successfully.")


@router.get(
    "/super-admins",
    summary="超级管理员列表",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[SuperAdminData]],
    responses={401: {"model": ErrorResponse}},
)
def list_super_admins(
    request: Request,
    _ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    rows = db.execute(select(SuperAdmin).order_by(SuperAdmin.created_at.desc())).scalars().all()
    return success(request, [SuperAdminData.model_validate(row) for row in rows])


@router.post(
    "/super-admins",
    summary="创建超级管理员",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[SuperAdminData],
    responses={401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    dependencies=[Depends(require_super_admin), Depends(audit_action("super_admin.create"))],
)
def create_super_admin(
    payload: SuperAdminCreateRequest,
    request: Request,
    _ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """创建新的超级管理员账号，邮箱全局唯一。"""
    email = normalize_email(payload.email)
    existing = db.execute(select(SuperAdmin.id).where(SuperAdmin.email == email)).scalar_one_or_none()
    if existing is not None:
        raise DuplicateKey("Super admin with this email already exists.", details={"field": "email"})

    super_admin = SuperAdmin(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        phone=payload.phone,
        is_active=True,
    )
    db.add(super_admin)
    db.commit()
    db.refresh(super_admin)
    return success(request, SuperAdminData.model_validate(super_admin), message="Super admin created successfully.")


def _set_active(db: Session, ctx: RequestContext, super_admin_id: UUID, active: bool) -> SuperAdmin:
    super_admin = _get_super_admin_or_404(db, super_admin_id)
    if not active and super_admin.id == ctx.principal_id:
        raise ValidationFailed("Cannot deactivate your own account.")
    super_admin.is_active = active
    db.commit()
    db.refresh(super_admin)
    return super_admin


@router.put(
    "/super-admins/{super_admin_id}/deactivate",
    summary="停用超级管理员",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SuperAdminData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(require_super_admin), Depends(audit_action("super_admin.deactivate"))],
)
def deactivate_super_admin(
    request: Request,
    super_admin_id: UUID = Path(..., description="超级管理员 ID。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """不允许停用自己。"""
    super_admin = _set_active(db, ctx, super_admin_id, False)
    return success(request, SuperAdminData.model_validate(super_admin), message="Super admin deactivated.")


@router.put(
    "/super-admins/{super_admin_id}/activate",
    summary="启用超级管理员",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SuperAdminData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(require_super_admin), Depends(audit_action("super_admin.activate"))],
)
def activate_super_admin(
    request: Request,
    super_admin_id: UUID = Path(..., description="超级管理员 ID。"),
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    super_admin = _set_active(db, ctx, super_admin_id, True)
    return success(request, SuperAdminData.model_validate(super_admin), message="Super admin activated.")


@router.put(
    "/super-admins/{super_admin_id}/unlock",
    summary="解锁超级管理员",
    description="清零登录失败计数并解除锁定。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[SuperAdminData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(require_super_admin), Depends(audit_action("super_admin.unlock"))],
)
def unlock_super_admin(
    request: Request,
    super_admin_id: UUID = Path(..., description="超级管理员 ID。"),
    db: Session = Depends(get_db),
):
    super_admin = unlock_account(db, _get_super_admin_or_404(db, super_admin_id))
    db.commit()
    db.refresh(super_admin)
    return success(request, SuperAdminData.model_validate(super_admin), message="Super admin unlocked.")
