"""应用中间件注册。"""

from time import perf_counter
import uuid

from fastapi import FastAPI, Request
from starlette.background import BackgroundTask

from clinic_api.services.audit import get_audit_recorder, pending_audit_event


async def request_id_middleware(request: Request, call_next):
    """注入请求追踪 ID，并通过响应头返回。"""
    request.state.request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_started_at = perf_counter()
    response = await call_next(request)
    response.headers["X-Request-Id"] = request.state.request_id
    elapsed = perf_counter() - request.state.request_started_at
    response.headers["X-Process-Time-Ms"] = str(round(elapsed * 1000, 2))
    return response


async def audit_middleware(request: Request, call_next):
    """业务处理完成后写审计：仅成功响应，响应体发送后以后台任务执行。"""
    response = await call_next(request)
    event = pending_audit_event(request, response.status_code)
    if event is None:
        return response

    recorder = get_audit_recorder(request.app)
    # call_next 返回的流式响应不携带后台任务，可直接挂载。
    response.background = BackgroundTask(recorder.record, event)
    return response


def register_middlewares(app: FastAPI) -> None:
    """集中注册中间件，后注册者位于外层。"""
    app.middleware("http")(audit_middleware)
    app.middleware("http")(request_id_middleware)
