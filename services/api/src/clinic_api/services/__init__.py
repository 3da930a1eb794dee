"""服务层能力导出集合。"""

from clinic_api.services.access_scope import (
    LinkedPatients,
    OwnedBy,
    RecordScope,
    ScopedEntity,
    Unrestricted,
    apply_record_scope,
    ensure_record_access,
    record_scope,
)
from clinic_api.services.audit import AuditEvent, AuditRecorder, get_audit_recorder
from clinic_api.services.authentication import authenticate_super_admin, authenticate_user
from clinic_api.services.context import RequestContext
from clinic_api.services.credentials import hash_password, normalize_email, verify_password
from clinic_api.services.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    Permission,
    effective_permissions,
    ensure_system_roles,
    load_membership_grants,
    permission_catalog,
)
from clinic_api.services.principals import Principal, SuperAdminPrincipal, UserPrincipal, resolve_principal
from clinic_api.services.tenant_scope import (
    apply_tenant_scope,
    attach_tenant,
    can_access_tenant,
    ensure_tenant_access,
    tenant_scoped_filter,
)

__all__ = [
    "AuditEvent",
    "AuditRecorder",
    "DEFAULT_ROLE_PERMISSIONS",
    "LinkedPatients",
    "OwnedBy",
    "Permission",
    "Principal",
    "RecordScope",
    "RequestContext",
    "ScopedEntity",
    "SuperAdminPrincipal",
    "Unrestricted",
    "UserPrincipal",
    "apply_record_scope",
    "apply_tenant_scope",
    "attach_tenant",
    "authenticate_super_admin",
    "authenticate_user",
    "can_access_tenant",
    "effective_permissions",
    "ensure_record_access",
    "ensure_system_roles",
    "ensure_tenant_access",
    "get_audit_recorder",
    "hash_password",
    "load_membership_grants",
    "normalize_email",
    "permission_catalog",
    "record_scope",
    "resolve_principal",
    "tenant_scoped_filter",
    "verify_password",
]
