"""租户管理接口（仅超级管理员）。"""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from clinic_api.db.session import get_db
from clinic_api.dependencies import audit_action, require_super_admin
from clinic_api.schemas.common import ErrorResponse, PaginationMeta, SuccessResponse
from clinic_api.schemas.responses import AvailabilityData, TenantData, TenantStatsData
from clinic_api.schemas.tenant import TenantCreateRequest, TenantStatusLiteral, TenantUpdateRequest
from clinic_api.services import tenants as tenant_service
from clinic_api.services.context import RequestContext
from clinic_api.utils.response import success

router = APIRouter(
    prefix="/super-admin/tenants",
    tags=["tenants"],
    dependencies=[Depends(require_super_admin)],
)


@router.get(
    "",
    summary="租户列表",
    description="分页查询未删除租户，支持关键字搜索、状态过滤与排序；meta 中附带分页与状态统计。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[TenantData]],
    responses={401: {"model": ErrorResponse}},
)
def list_tenants(
    request: Request,
    page: int = Query(default=1, ge=1, description="页码。"),
    limit: int = Query(default=10, ge=1, le=100, description="每页条数。"),
    search: str | None = Query(default=None, max_length=100, description="按名称/slug/邮箱/子域名模糊搜索。"),
    tenant_status: TenantStatusLiteral | None = Query(default=None, alias="status", description="状态过滤。"),
    sort_by: str = Query(default="created_at", description="排序字段。"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", description="排序方向。"),
    db: Session = Depends(get_db),
):
    """分页查询租户。"""
    items, total = tenant_service.list_tenants(
        db,
        page=page,
        limit=limit,
        search=search,
        status=tenant_status,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    meta = {
        "pagination": PaginationMeta.build(page=page, limit=limit, total=total).model_dump(),
        "stats": tenant_service.tenant_stats(db),
    }
    return success(request, [TenantData.model_validate(item) for item in items], meta)


@router.get(
    "/stats",
    summary="租户统计",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantStatsData],
    responses={401: {"model": ErrorResponse}},
)
def stats(request: Request, db: Session = Depends(get_db)):
    return success(request, tenant_service.tenant_stats(db))


@router.get(
    "/check-slug/{slug}",
    summary="检查 slug 是否可用",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AvailabilityData],
    responses={401: {"model": ErrorResponse}},
)
def check_slug(
    request: Request,
    slug: str = Path(..., min_length=1, max_length=100, description="待检查的 slug。"),
    exclude_id: UUID | None = Query(default=None, description="编辑时排除的租户 ID。"),
    db: Session = Depends(get_db),
):
    normalized = tenant_service.normalize_tenant_slug(slug)
    available = tenant_service.is_slug_available(db, normalized, exclude_id=exclude_id)
    return success(request, {"value": normalized, "available": available})


@router.get(
    "/check-subdomain/{subdomain}",
    summary="检查子域名是否可用",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[AvailabilityData],
    responses={401: {"model": ErrorResponse}},
)
def check_subdomain(
    request: Request,
    subdomain: str = Path(..., min_length=1, max_length=63, description="待检查的子域名。"),
    exclude_id: UUID | None = Query(default=None, description="编辑时排除的租户 ID。"),
    db: Session = Depends(get_db),
):
    normalized = tenant_service.normalize_subdomain(subdomain) or ""
    available = bool(normalized) and tenant_service.is_subdomain_available(db, normalized, exclude_id=exclude_id)
    return success(request, {"value": normalized, "available": available})


@router.get(
    "/{tenant_id}",
    summary="租户详情",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def get_tenant(
    request: Request,
    tenant_id: UUID = Path(..., description="租户 ID。"),
    db: Session = Depends(get_db),
):
    return success(request, TenantData.model_validate(tenant_service.get_tenant(db, tenant_id)))


@router.post(
    "",
    summary="创建租户",
    description="slug 与子域名在未删除租户中必须唯一，冲突时返回 409。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[TenantData],
    responses={401: {"model": ErrorResponse}, 409: {"model": ErrorResponse, "description": "slug 或子域名已存在。"}},
    dependencies=[Depends(audit_action("tenant.create"))],
)
def create_tenant(
    payload: TenantCreateRequest,
    request: Request,
    ctx: RequestContext = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    """创建租户。"""
    tenant = tenant_service.create_tenant(db, payload=payload.model_dump(), created_by=ctx.principal_id)
    db.commit()
    db.refresh(tenant)
    return success(request, TenantData.model_validate(tenant), message="Tenant created successfully.")


@router.put(
    "/{tenant_id}",
    summary="更新租户",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("tenant.update"))],
)
def update_tenant(
    payload: TenantUpdateRequest,
    request: Request,
    tenant_id: UUID = Path(..., description="租户 ID。"),
    db: Session = Depends(get_db),
):
    """仅更新提交的字段。"""
    tenant = tenant_service.get_tenant(db, tenant_id)
    tenant = tenant_service.update_tenant(db, tenant, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(tenant)
    return success(request, TenantData.model_validate(tenant), message="Tenant updated successfully.")


@router.delete(
    "/{tenant_id}",
    summary="删除租户",
    description="软删除：记录 deleted_at，slug 与子域名随即释放。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("tenant.delete"))],
)
def delete_tenant(
    request: Request,
    tenant_id: UUID = Path(..., description="租户 ID。"),
    db: Session = Depends(get_db),
):
    tenant = tenant_service.soft_delete_tenant(db, tenant_service.get_tenant(db, tenant_id))
    db.commit()
    db.refresh(tenant)
    return success(request, TenantData.model_validate(tenant), message="Tenant deleted successfully.")


@router.put(
    "/{tenant_id}/restore",
    summary="恢复租户",
    description="恢复软删除租户；期间 slug 或子域名已被占用时返回 409。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[TenantData],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    dependencies=[Depends(audit_action("tenant.restore"))],
)
def restore_tenant(
    request: Request,
    tenant_id: UUID = Path(..., description="租户 ID。"),
    db: Session = Depends(get_db),
):
    tenant = tenant_service.get_tenant(db, tenant_id, include_deleted=True)
    tenant = tenant_service.restore_tenant(db, tenant)
    db.commit()
    db.refresh(tenant)
    return success(request, TenantData.model_validate(tenant), message="Tenant restored successfully.")
