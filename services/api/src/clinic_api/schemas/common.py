"""全局通用结构。

用于定义统一响应包裹结构，便于在线接口文档展示与联调。
"""

from math import ceil
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """基础结构，开启对象映射能力。"""

    model_config = ConfigDict(from_attributes=True)


class PaginationMeta(BaseSchema):
    """分页元信息。"""

    page: int = Field(description="当前页码（从 1 开始）。")
    limit: int = Field(description="每页条数。")
    total: int = Field(description="总记录数。")
    pages: int = Field(description="总页数。")

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "PaginationMeta":
        return cls(page=page, limit=limit, total=total, pages=ceil(total / limit) if total else 0)


class ErrorPayload(BaseSchema):
    """错误主体。"""

    code: str = Field(description="机器可识别错误码。")
    message: str = Field(description="人类可读错误信息。")
    details: dict[str, Any] = Field(default_factory=dict, description="可选扩展错误细节。")


class ErrorResponse(BaseSchema):
    """统一错误响应。"""

    success: bool = Field(default=False, description="恒为 false。")
    message: str = Field(description="错误信息。")
    request_id: str | None = Field(default=None, description="服务端生成的请求追踪 ID。")
    error: ErrorPayload = Field(description="错误主体。")
    errors: list[dict[str, Any]] | None = Field(default=None, description="字段级校验错误。")


T = TypeVar("T")


class SuccessResponse(BaseSchema, Generic[T]):
    """统一成功响应。"""

    success: bool = Field(default=True, description="恒为 true。")
    message: str = Field(description="结果说明。")
    request_id: str | None = Field(default=None, description="服务端生成的请求追踪 ID。")
    data: T = Field(description="业务返回数据主体。")
    meta: dict[str, Any] = Field(default_factory=dict, description="可选扩展元信息。")
