"""用户登录与当前身份接口。"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from clinic_api.core.security import mint_user_token
from clinic_api.db.session import get_db
from clinic_api.dependencies import require_user
from clinic_api.errors import PrincipalNotFound
from clinic_api.models.user import User
from clinic_api.schemas.auth import LoginRequest
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import AuthMeData, ClinicAccessItem, UserLoginData, UserProfileData
from clinic_api.services.authentication import authenticate_user
from clinic_api.services.clinics import accessible_clinics
from clinic_api.services.context import RequestContext
from clinic_api.services.memberships import get_membership
from clinic_api.services.permissions import get_effective_permissions
from clinic_api.services.principals import user_principal
from clinic_api.utils.response import success

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    summary="用户登录",
    description="邮箱密码登录，返回用户令牌及可选择的诊所列表。连续失败 5 次锁定 2 小时。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[UserLoginData],
    responses={
        401: {"model": ErrorResponse},
        423: {"model": ErrorResponse, "description": "账号已锁定。"},
        429: {"model": ErrorResponse, "description": "失败次数过多，账号被锁定。"},
    },
)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """登录并签发不带诊所上下文的用户令牌。"""
    user = authenticate_user(db, payload.email, payload.password)
    issued = mint_user_token(user)
    ctx = RequestContext(principal=user_principal(user), tenant_id=user.tenant_id)
    clinics = [] if user.tenant_id is None else accessible_clinics(db, ctx)
    data = UserLoginData(
        access_token=issued.access_token,
        expires_in=issued.expires_in,
        expires_at=issued.expires_at,
        user=UserProfileData.model_validate(user),
        clinics=[
            ClinicAccessItem(clinic_id=clinic.id, tenant_id=clinic.tenant_id, name=clinic.name, code=clinic.code, role=role)
            for clinic, role in clinics
        ],
    )
    return success(request, data, message="Login successful.")


@router.get(
    "/me",
    summary="当前用户",
    description="返回当前用户资料、租户/诊所上下文及当前诊所的有效权限。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AuthMeData],
    responses={401: {"model": ErrorResponse}},
)
def me(
    request: Request,
    ctx: RequestContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    """查询当前用户上下文。"""
    user = db.get(User, ctx.principal_id)
    if user is None:
        raise PrincipalNotFound()

    permissions: list[str] = []
    if ctx.clinic_id is not None:
        membership = get_membership(db, user_id=user.id, clinic_id=ctx.clinic_id)
        if membership is not None:
            permissions = get_effective_permissions(db, membership)

    data = AuthMeData(
        user=UserProfileData.model_validate(user),
        tenant_id=ctx.tenant_id,
        clinic_id=ctx.clinic_id,
        clinic_role=ctx.clinic_role,
        permissions=permissions,
    )
    return success(request, data)
