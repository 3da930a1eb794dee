"""请求上下文。"""

from dataclasses import dataclass
from uuid import UUID

from clinic_api.services.principals import Principal


@dataclass(frozen=True)
class RequestContext:
    """请求上下文。

    由认证依赖一次性构建，路由与服务层统一以此为输入，
    避免重复解析主体、租户与诊所关系。
    """

    # 已回表校验的认证主体。
    principal: Principal
    # 生效租户；超级管理员仅在显式指定租户视图时非空。
    tenant_id: UUID | None = None
    # 当前选择的诊所。
    clinic_id: UUID | None = None
    # 当前诊所主角色名（展示用）。
    clinic_role: str | None = None

    @property
    def is_super_admin(self) -> bool:
        return self.principal.is_super_admin

    @property
    def principal_id(self) -> UUID:
        return self.principal.id

    @property
    def role(self) -> str:
        return self.principal.role
