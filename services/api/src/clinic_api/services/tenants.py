"""租户生命周期服务。"""

from __future__ import annotations

import re
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_api.errors import DuplicateKey, ResourceNotFound
from clinic_api.models.enums import TenantStatus
from clinic_api.models.tenant import Tenant
from clinic_api.services.credentials import normalize_email
from clinic_api.utils.clock import utc_now

# 允许排序的字段。
TENANT_SORT_FIELDS = {"name", "slug", "status", "created_at", "updated_at"}


def normalize_tenant_slug(raw: str) -> str:
    """规范化租户 slug。"""
    normalized = re.sub(r"[^a-z0-9-]+", "-", raw.strip().lower())
    normalized = re.sub(r"-{2,}", "-", normalized).strip("-")
    return normalized[:50] or "tenant"


def normalize_subdomain(raw: str | None) -> str | None:
    """子域名统一小写，空串视为未设置。"""
    if raw is None:
        return None
    value = raw.strip().lower()
    return value or None


def _live_tenants():
    return select(Tenant).where(Tenant.deleted_at.is_(None))


def get_tenant(db: Session, tenant_id: UUID, *, include_deleted: bool = False) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if tenant is None or (tenant.deleted_at is not None and not include_deleted):
        raise ResourceNotFound("Tenant not found.")
    return tenant


def is_slug_available(db: Session, slug: str, *, exclude_id: UUID | None = None) -> bool:
    stmt = _live_tenants().where(Tenant.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Tenant.id != exclude_id)
    return db.execute(stmt.limit(1)).scalar_one_or_none() is None


def is_subdomain_available(db: Session, subdomain: str, *, exclude_id: UUID | None = None) -> bool:
    stmt = _live_tenants().where(Tenant.subdomain == subdomain)
    if exclude_id is not None:
        stmt = stmt.where(Tenant.id != exclude_id)
    return db.execute(stmt.limit(1)).scalar_one_or_none() is None


def ensure_unique_tenant_keys(
    db: Session,
    *,
    slug: str | None,
    subdomain: str | None,
    exclude_id: UUID | None = None,
) -> None:
    """slug 与子域名在未删除租户中必须唯一。"""
    if slug is not None and not is_slug_available(db, slug, exclude_id=exclude_id):
        raise DuplicateKey("Tenant with this slug already exists.", details={"field": "slug"})
    if subdomain is not None and not is_subdomain_available(db, subdomain, exclude_id=exclude_id):
        raise DuplicateKey("Tenant with this subdomain already exists.", details={"field": "subdomain"})


def _flush_or_conflict(db: Session) -> None:
    # 并发插入由部分唯一索引兜底。
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateKey("Tenant with this slug or subdomain already exists.") from exc


def create_tenant(db: Session, *, payload: dict[str, Any], created_by: UUID | None) -> Tenant:
    """创建租户。"""
    slug = normalize_tenant_slug(payload["slug"])
    subdomain = normalize_subdomain(payload.get("subdomain"))
    ensure_unique_tenant_keys(db, slug=slug, subdomain=subdomain)

    tenant = Tenant(
        name=payload["name"].strip(),
        slug=slug,
        email=normalize_email(payload["email"]),
        phone=payload.get("phone"),
        subdomain=subdomain,
        logo_url=payload.get("logo_url"),
        status=payload.get("status") or TenantStatus.PENDING,
        created_by=created_by,
    )
    db.add(tenant)
    _flush_or_conflict(db)
    return tenant


def update_tenant(db: Session, tenant: Tenant, changes: dict[str, Any]) -> Tenant:
    """更新租户，变更 slug / 子域名时重新校验唯一性。"""
    if "slug" in changes and changes["slug"] is not None:
        changes["slug"] = normalize_tenant_slug(changes["slug"])
    if "subdomain" in changes:
        changes["subdomain"] = normalize_subdomain(changes["subdomain"])
    if "email" in changes and changes["email"] is not None:
        changes["email"] = normalize_email(changes["email"])

    new_slug = changes.get("slug")
    new_subdomain = changes.get("subdomain")
    ensure_unique_tenant_keys(
        db,
        slug=new_slug if new_slug and new_slug != tenant.slug else None,
        subdomain=new_subdomain if new_subdomain and new_subdomain != tenant.subdomain else None,
        exclude_id=tenant.id,
    )

    for key, value in changes.items():
        if key in {"name", "slug", "email", "status"} and value is None:
            continue
        setattr(tenant, key, value)
    _flush_or_conflict(db)
    return tenant


def soft_delete_tenant(db: Session, tenant: Tenant) -> Tenant:
    tenant.deleted_at = utc_now()
    db.flush()
    return tenant


def restore_tenant(db: Session, tenant: Tenant) -> Tenant:
    """恢复软删除租户；期间 slug / 子域名已被占用时拒绝恢复。"""
    if tenant.deleted_at is None:
        return tenant
    ensure_unique_tenant_keys(db, slug=tenant.slug, subdomain=tenant.subdomain, exclude_id=tenant.id)
    tenant.deleted_at = None
    _flush_or_conflict(db)
    return tenant


def list_tenants(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    status: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> tuple[list[Tenant], int]:
    """分页查询未删除租户。"""
    stmt = _live_tenants()
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Tenant.name.ilike(pattern),
                Tenant.slug.ilike(pattern),
                Tenant.email.ilike(pattern),
                Tenant.subdomain.ilike(pattern),
            )
        )
    if status:
        stmt = stmt.where(Tenant.status == status)

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    column = getattr(Tenant, sort_by if sort_by in TENANT_SORT_FIELDS else "created_at")
    stmt = stmt.order_by(column.asc() if sort_order == "asc" else column.desc())
    items = db.execute(stmt.offset((page - 1) * limit).limit(limit)).scalars().all()
    return list(items), total


def tenant_stats(db: Session) -> dict[str, int]:
    """按状态统计租户数量，另计已删除数量。"""
    rows = db.execute(
        select(Tenant.status, func.count()).where(Tenant.deleted_at.is_(None)).group_by(Tenant.status)
    ).all()
    stats = {status.value: 0 for status in TenantStatus}
    for status, count in rows:
        stats[status] = count
    stats["total"] = sum(stats[status.value] for status in TenantStatus)
    stats["deleted"] = db.execute(
        select(func.count()).select_from(Tenant).where(Tenant.deleted_at.is_not(None))
    ).scalar_one()
    return stats


def list_public_tenants(db: Session) -> list[Tenant]:
    """公开可见租户：已启用且未删除。"""
    stmt = _live_tenants().where(Tenant.status == TenantStatus.ACTIVE).order_by(Tenant.name)
    return list(db.execute(stmt).scalars().all())


def find_public_tenant(db: Session, key: str) -> Tenant | None:
    """按子域名或 slug 查找已启用租户。"""
    normalized = key.strip().lower()
    stmt = (
        _live_tenants()
        .where(Tenant.status == TenantStatus.ACTIVE)
        .where(or_(Tenant.subdomain == normalized, Tenant.slug == normalized))
        .order_by(Tenant.subdomain.is_(None))
    )
    return db.execute(stmt.limit(1)).scalars().first()
