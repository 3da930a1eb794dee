"""业务异常定义。

所有领域失败都以 HTTPException 子类抛出，detail 统一为 `{code, message, details}`，
由 exceptions.http_exception_handler 转换为标准错误结构。
"""

from datetime import datetime
from typing import Any

from fastapi import HTTPException, status


class ApiError(HTTPException):
    """带错误码的协议异常基类。"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    message: str = "Request failed."

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or type(self).message
        self.details = details or {}
        super().__init__(
            status_code=type(self).status_code,
            detail={"code": self.code, "message": self.message, "details": self.details},
            headers=headers,
        )


class _Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details=details, headers={"WWW-Authenticate": "Bearer"})


class TokenMissing(_Unauthorized):
    """未携带访问令牌。"""

    code = "TOKEN_MISSING"
    message = "Access denied. No token provided."


class TokenInvalid(_Unauthorized):
    """令牌签名错误、格式错误或声明不完整。"""

    code = "TOKEN_INVALID"
    message = "Invalid token."


class TokenExpired(_Unauthorized):
    code = "TOKEN_EXPIRED"
    message = "Token has expired."


class WrongPrincipalType(_Unauthorized):
    """用户令牌访问超级管理员接口，或反之。"""

    code = "WRONG_PRINCIPAL_TYPE"
    message = "Token type is not accepted for this resource."


class PrincipalNotFound(_Unauthorized):
    code = "PRINCIPAL_NOT_FOUND"
    message = "Invalid token. Account not found."


class AccountDisabled(_Unauthorized):
    code = "ACCOUNT_DISABLED"
    message = "Account is deactivated."


class InvalidCredentials(_Unauthorized):
    """登录失败统一提示，不暴露邮箱是否存在。"""

    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials."


class AccountLocked(ApiError):
    status_code = status.HTTP_423_LOCKED
    code = "ACCOUNT_LOCKED"
    message = "Account is temporarily locked due to too many failed login attempts."

    def __init__(self, locked_until: datetime | None, message: str | None = None) -> None:
        self.locked_until = locked_until
        super().__init__(
            message,
            details={"locked_until": locked_until.isoformat() if locked_until else None},
        )


class LoginRateLimited(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "LOGIN_RATE_LIMITED"
    message = "Too many failed login attempts. Please try again later."

    def __init__(self, locked_until: datetime | None, message: str | None = None) -> None:
        self.locked_until = locked_until
        super().__init__(
            message,
            details={"locked_until": locked_until.isoformat() if locked_until else None},
        )


class TenantContextMissing(ApiError):
    code = "TENANT_CONTEXT_MISSING"
    message = "Tenant context is required."


class ClinicContextMissing(ApiError):
    code = "CLINIC_CONTEXT_MISSING"
    message = "Clinic context is required. Please select a clinic first."


class Forbidden(ApiError):
    """角色、租户或记录范围不匹配。"""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "Access denied."


class ResourceNotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Resource not found."


class DuplicateKey(ApiError):
    """slug / 子域名 / 邮箱等唯一键冲突。"""

    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATE_KEY"
    message = "Resource already exists."


class ValidationFailed(ApiError):
    code = "VALIDATION_FAILED"
    message = "Validation failed."


class ServiceNotReady(ApiError):
    """依赖的基础数据尚未初始化。"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "SERVICE_NOT_READY"
    message = "Service is not ready."
