"""租户范围约束。

所有按租户隔离的数据读写都经由本模块拼装过滤条件：
非超级管理员的查询条件中 tenant_id 始终被强制为调用方所属租户，
调用方传入的 tenant_id 会被覆盖而不是合并。
"""

from typing import Any
from uuid import UUID

from sqlalchemy import Select

from clinic_api.errors import Forbidden, TenantContextMissing
from clinic_api.services.context import RequestContext


def tenant_scoped_filter(ctx: RequestContext, **criteria: Any) -> dict[str, Any]:
    """返回带租户约束的过滤条件。

    超级管理员未指定租户视图时原样返回，指定后同样按该租户约束。
    """
    if ctx.is_super_admin and ctx.tenant_id is None:
        return dict(criteria)
    if ctx.tenant_id is None:
        raise TenantContextMissing()
    return {**criteria, "tenant_id": ctx.tenant_id}


def apply_tenant_scope(stmt: Select, model: Any, ctx: RequestContext, **criteria: Any) -> Select:
    """在查询语句上追加租户约束与额外等值条件。"""
    filters = tenant_scoped_filter(ctx, **criteria)
    if filters:
        stmt = stmt.where(*(getattr(model, key) == value for key, value in filters.items()))
    return stmt


def can_access_tenant(ctx: RequestContext, target_tenant_id: UUID | None) -> bool:
    """超级管理员可访问任意租户，其余主体仅可访问自身租户。"""
    if ctx.is_super_admin:
        return True
    if ctx.tenant_id is None or target_tenant_id is None:
        return False
    return ctx.tenant_id == target_tenant_id


def ensure_tenant_access(ctx: RequestContext, record: Any) -> Any:
    """按记录上的 tenant_id 校验访问权，不匹配时拒绝。"""
    if not ctx.is_super_admin and ctx.tenant_id is None:
        raise TenantContextMissing()
    if not can_access_tenant(ctx, getattr(record, "tenant_id", None)):
        raise Forbidden("Access denied to this tenant's resources.")
    return record


def attach_tenant(ctx: RequestContext, payload: dict[str, Any]) -> dict[str, Any]:
    """为创建数据补充 tenant_id。"""
    if ctx.is_super_admin and ctx.tenant_id is None:
        return dict(payload)
    if ctx.tenant_id is None:
        raise TenantContextMissing()
    return {**payload, "tenant_id": ctx.tenant_id}
