"""公开租户发现接口，无需认证。"""

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.orm import Session

from clinic_api.core.config import get_settings
from clinic_api.db.session import get_db
from clinic_api.errors import ResourceNotFound
from clinic_api.models.tenant import Tenant
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import PublicTenantData, PublicTenantValidationData
from clinic_api.services import tenants as tenant_service
from clinic_api.utils.response import success

router = APIRouter(prefix="/public/tenants", tags=["public-tenants"])


def _public_tenant(tenant: Tenant) -> PublicTenantData:
    """仅暴露品牌展示所需字段。"""
    domain = get_settings().public_tenant_domain
    return PublicTenantData(
        id=tenant.id,
        name=tenant.name,
        slug=tenant.slug,
        subdomain=tenant.subdomain,
        logo_url=tenant.logo_url,
        url=f"https://{tenant.subdomain}.{domain}" if tenant.subdomain and domain else None,
    )


@router.get(
    "",
    summary="公开租户列表",
    description="返回已启用且未删除的租户。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[PublicTenantData]],
    responses={500: {"model": ErrorResponse}},
)
def list_public_tenants(request: Request, db: Session = Depends(get_db)):
    return success(request, [_public_tenant(tenant) for tenant in tenant_service.list_public_tenants(db)])


@router.get(
    "/subdomain/{subdomain}",
    summary="按子域名查询租户",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[PublicTenantData],
    responses={404: {"model": ErrorResponse}},
)
def get_by_subdomain(
    request: Request,
    subdomain: str = Path(..., min_length=1, max_length=63, description="子域名或 slug。"),
    db: Session = Depends(get_db),
):
    tenant = tenant_service.find_public_tenant(db, subdomain)
    if tenant is None:
        raise ResourceNotFound("Tenant not found.")
    return success(request, _public_tenant(tenant))


@router.get(
    "/validate/{subdomain}",
    summary="校验子域名",
    description="登录页据此判断子域名是否对应启用中的租户。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[PublicTenantValidationData],
)
def validate_subdomain(
    request: Request,
    subdomain: str = Path(..., min_length=1, max_length=63, description="子域名。"),
    db: Session = Depends(get_db),
):
    tenant = tenant_service.find_public_tenant(db, subdomain)
    data = PublicTenantValidationData(
        subdomain=subdomain.strip().lower(),
        valid=tenant is not None,
        tenant=_public_tenant(tenant) if tenant else None,
    )
    return success(request, data)
