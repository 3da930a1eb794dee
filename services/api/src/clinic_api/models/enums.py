"""领域枚举定义。"""

from enum import StrEnum


class TenantStatus(StrEnum):
    """租户状态。"""

    ACTIVE = "active"  # 正常可用，可访问租户下资源。
    INACTIVE = "inactive"  # 已停用。
    SUSPENDED = "suspended"  # 暂停状态，通常因欠费或违规。
    PENDING = "pending"  # 新建待开通，默认状态。


class SystemRole(StrEnum):
    """系统内置角色，同时作为用户全局角色标签。"""

    ADMIN = "admin"  # 诊所管理员，拥有全部业务权限。
    DOCTOR = "doctor"  # 医生，仅可访问本人接诊范围内的记录。
    NURSE = "nurse"  # 护士，仅可访问本人护理范围内的记录。
    RECEPTIONIST = "receptionist"  # 前台，负责挂号与患者建档。
    ACCOUNTANT = "accountant"  # 财务，负责账单与报表。
    STAFF = "staff"  # 普通员工，只读访问。


class AppointmentStatus(StrEnum):
    """预约状态。"""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
