"""审计服务。

路由通过 audit_action 依赖声明“本请求需审计”，审计中间件在业务处理完成且
响应成功（状态码 < 400）后以后台任务写入，写入失败只记录日志，不影响原请求。
"""

from collections.abc import Callable
from dataclasses import asdict, dataclass, field, replace
import logging
from typing import Any, Protocol
from uuid import UUID

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session

from clinic_api.core.config import get_settings
from clinic_api.db.session import SessionLocal
from clinic_api.models.audit import AuditLog
from clinic_api.services.context import RequestContext

logger = logging.getLogger("clinic_api.audit")


@dataclass(frozen=True)
class AuditEvent:
    """一次特权操作的审计事件。"""

    action: str
    method: str
    path: str
    principal_kind: str | None = None
    principal_id: UUID | None = None
    principal_email: str | None = None
    tenant_id: UUID | None = None
    path_params: dict[str, Any] = field(default_factory=dict)
    query_params: dict[str, Any] = field(default_factory=dict)
    ip: str | None = None
    user_agent: str | None = None
    status_code: int | None = None


class AuditSink(Protocol):
    """审计落地接口。"""

    def write(self, event: AuditEvent) -> None: ...


class LoggingAuditSink:
    """写入结构化日志。"""

    def write(self, event: AuditEvent) -> None:
        payload = {key: str(value) if isinstance(value, UUID) else value for key, value in asdict(event).items()}
        logger.info("audit %s", payload)


class DatabaseAuditSink:
    """写入 audit_logs 表，使用独立会话，与业务事务互不影响。"""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def write(self, event: AuditEvent) -> None:
        with self._session_factory() as db:
            db.add(
                AuditLog(
                    action=event.action,
                    principal_kind=event.principal_kind,
                    principal_id=event.principal_id,
                    principal_email=event.principal_email,
                    tenant_id=event.tenant_id,
                    method=event.method,
                    path=event.path,
                    path_params=event.path_params or None,
                    query_params=event.query_params or None,
                    status_code=event.status_code or 0,
                    ip=event.ip,
                    user_agent=event.user_agent,
                )
            )
            db.commit()


class AuditRecorder:
    """尽力而为的审计记录器。"""

    def __init__(self, sink: AuditSink) -> None:
        self.sink = sink

    def record(self, event: AuditEvent) -> None:
        try:
            self.sink.write(event)
        except Exception:
            # 审计丢失不应影响已完成的请求。
            logger.exception("audit write failed action=%s path=%s", event.action, event.path)


def _client_ip(request: Request) -> str | None:
    """从代理头或连接信息中提取客户端 IP。"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def build_audit_event(request: Request, *, action: str, ctx: RequestContext | None) -> AuditEvent:
    """从请求与上下文构造审计事件。"""
    principal = ctx.principal if ctx else None
    return AuditEvent(
        action=action,
        method=request.method.upper(),
        path=request.url.path,
        principal_kind=principal.kind if principal else None,
        principal_id=principal.id if principal else None,
        principal_email=principal.email if principal else None,
        tenant_id=ctx.tenant_id if ctx else None,
        path_params={key: str(value) for key, value in request.path_params.items()},
        query_params=dict(request.query_params),
        ip=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def mark_audit(request: Request, event: AuditEvent) -> None:
    """将审计事件挂到请求状态上，由审计中间件在成功响应后写入。"""
    request.state.audit_event = event


def pending_audit_event(request: Request, status_code: int) -> AuditEvent | None:
    """返回待写入的审计事件；失败响应不审计。"""
    event = getattr(request.state, "audit_event", None)
    if event is None or status_code >= 400:
        return None
    return replace(event, status_code=status_code)


def build_audit_recorder() -> AuditRecorder:
    """按配置选择审计落地方式。"""
    if get_settings().audit_sink == "database":
        return AuditRecorder(DatabaseAuditSink(SessionLocal))
    return AuditRecorder(LoggingAuditSink())


def get_audit_recorder(app: FastAPI) -> AuditRecorder:
    """应用级审计记录器，测试可通过 app.state.audit_recorder 替换。"""
    recorder = getattr(app.state, "audit_recorder", None)
    if recorder is None:
        recorder = build_audit_recorder()
        app.state.audit_recorder = recorder
    return recorder
