"""请求上下文与鉴权依赖。

职责:
1. 解析并校验访问令牌，区分用户与超级管理员两类主体。
2. 回表确认主体存在、有效、未锁定。
3. 确定租户/诊所上下文并生成 RequestContext。
4. 提供按角色、按权限点、按主体类型的路由级准入控制。
"""

from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_api.core.security import SuperAdminClaims, TokenClaims, UserClaims, decode_token, extract_bearer_token
from clinic_api.db.session import get_db
from clinic_api.errors import ClinicContextMissing, Forbidden, TokenInvalid, ValidationFailed, WrongPrincipalType
from clinic_api.models.enums import SystemRole
from clinic_api.services.audit import build_audit_event, mark_audit
from clinic_api.services.context import RequestContext
from clinic_api.services.memberships import get_membership
from clinic_api.services.permissions import load_membership_grants
from clinic_api.services.principals import Principal, resolve_principal

bearer_scheme = HTTPBearer(auto_error=False)

# 角色分组，超级管理员始终放行。
ADMIN_ROLES = (SystemRole.ADMIN,)
DOCTOR_ROLES = (*ADMIN_ROLES, SystemRole.DOCTOR)
MEDICAL_STAFF_ROLES = (*DOCTOR_ROLES, SystemRole.NURSE)
STAFF_ROLES = (*MEDICAL_STAFF_ROLES, SystemRole.RECEPTIONIST, SystemRole.STAFF)
ANALYTICS_ROLES = (SystemRole.ADMIN, SystemRole.ACCOUNTANT)
ALL_ROLES = tuple(SystemRole)

__all__ = [
    "ADMIN_ROLES",
    "ALL_ROLES",
    "ANALYTICS_ROLES",
    "DOCTOR_ROLES",
    "MEDICAL_STAFF_ROLES",
    "RequestContext",
    "STAFF_ROLES",
    "audit_action",
    "get_bearer_token",
    "get_current_principal",
    "get_request_context",
    "get_token_claims",
    "require_clinic_context",
    "require_permission",
    "require_roles",
    "require_super_admin",
    "require_user",
]


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """提取 Bearer 访问令牌，缺失时返回 401。"""
    authorization = None
    if credentials is not None and credentials.credentials:
        authorization = f"{credentials.scheme} {credentials.credentials}"
    return extract_bearer_token(authorization)


def get_token_claims(token: str = Depends(get_bearer_token)) -> TokenClaims:
    """解码当前请求的访问令牌。"""
    return decode_token(token)


def get_current_principal(
    claims: TokenClaims = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> Principal:
    """回表加载认证主体。"""
    return resolve_principal(db, claims)


def _requested_tenant_view(request: Request) -> UUID | None:
    """超级管理员可通过 ?tenant_id= 切换到指定租户视图。"""
    raw = request.query_params.get("tenant_id")
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError as exc:
        raise ValidationFailed("Invalid tenant_id.", details={"field": "tenant_id"}) from exc


def get_request_context(
    request: Request,
    claims: TokenClaims = Depends(get_token_claims),
    principal: Principal = Depends(get_current_principal),
) -> RequestContext:
    """生成请求上下文并挂到 request.state 供下游使用。"""
    if isinstance(claims, UserClaims):
        # 租户以用户档案为准；令牌中的租户与档案不一致（如用户已迁移租户）时拒绝。
        if claims.tenant_id is not None and claims.tenant_id != principal.home_tenant_id:
            raise TokenInvalid("Token tenant does not match user.")
        ctx = RequestContext(
            principal=principal,
            tenant_id=principal.home_tenant_id,
            clinic_id=claims.clinic_id,
            clinic_role=claims.clinic_role,
        )
    else:
        ctx = RequestContext(principal=principal, tenant_id=_requested_tenant_view(request))

    request.state.principal = principal
    request.state.is_super_admin = ctx.is_super_admin
    request.state.request_context = ctx
    return ctx


def _super_admin_claims(claims: TokenClaims = Depends(get_token_claims)) -> SuperAdminClaims:
    if not isinstance(claims, SuperAdminClaims):
        raise WrongPrincipalType("Access denied. Super admin privileges required.")
    return claims


def _user_claims(claims: TokenClaims = Depends(get_token_claims)) -> UserClaims:
    if not isinstance(claims, UserClaims):
        raise WrongPrincipalType("Access denied. User token required.")
    return claims


def require_super_admin(
    _claims: SuperAdminClaims = Depends(_super_admin_claims),
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    """仅允许超级管理员令牌，先判定令牌类型再回表。"""
    return ctx


def require_user(
    _claims: UserClaims = Depends(_user_claims),
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    """仅允许用户令牌。"""
    return ctx


def require_roles(*allowed_roles: str):
    """按全局角色做路由级权限限制，超级管理员直接放行。"""
    allowed = frozenset(str(role) for role in allowed_roles)

    def _dep(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if ctx.is_super_admin:
            return ctx
        if ctx.role not in allowed:
            raise Forbidden("Access denied. Insufficient permissions.")
        return ctx

    return _dep


def require_clinic_context(ctx: RequestContext = Depends(require_user)) -> RequestContext:
    """要求令牌中已选择诊所。"""
    if ctx.clinic_id is None:
        raise ClinicContextMissing()
    return ctx


def require_permission(permission: str):
    """要求当前诊所成员关系的有效权限包含指定权限点，超级管理员直接放行。"""

    def _dep(
        ctx: RequestContext = Depends(get_request_context),
        db: Session = Depends(get_db),
    ) -> RequestContext:
        if ctx.is_super_admin:
            return ctx
        if ctx.clinic_id is None:
            raise ClinicContextMissing()
        membership = get_membership(db, user_id=ctx.principal_id, clinic_id=ctx.clinic_id)
        if membership is None or membership.tenant_id != ctx.tenant_id:
            raise Forbidden("You do not have access to this clinic.")
        if permission not in load_membership_grants(db, membership).effective_permissions:
            raise Forbidden(f"Missing permission: {permission}.", details={"permission": str(permission)})
        return ctx

    return _dep


def audit_action(action: str):
    """声明当前路由需要审计，成功响应后由审计中间件写入。"""

    def _dep(request: Request, ctx: RequestContext = Depends(get_request_context)) -> None:
        mark_audit(request, build_audit_event(request, action=action, ctx=ctx))

    return _dep
