"""FastAPI 应用入口点。"""

import logging

from fastapi import FastAPI

from clinic_api.api.router import api_router
from clinic_api.core.config import Settings, get_settings, validate_security_settings
from clinic_api.exceptions import register_exception_handlers
from clinic_api.middlewares import register_middlewares

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(settings: Settings) -> None:
    """配置根日志，重复调用不会叠加处理器。"""
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
    logging.getLogger("clinic_api").setLevel(settings.log_level.upper())


def create_app(settings: Settings | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用实例，签名密钥缺失或为弱密钥时拒绝启动。"""
    settings = settings or get_settings()
    validate_security_settings(settings)
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        description=(
            "多租户诊所管理平台接口。\n\n"
            "成功响应统一为 `{success, message, request_id, data, meta}`，"
            "失败响应统一为 `{success, message, request_id, error}`。\n"
            "用户令牌与超级管理员令牌互不通用；用户通过选择诊所换发携带诊所上下文的令牌。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务存活与就绪探针。"},
            {"name": "super-admin-auth", "description": "超级管理员登录、资料与账号管理。"},
            {"name": "tenants", "description": "租户生命周期管理（仅超级管理员）。"},
            {"name": "super-admin-users", "description": "跨租户用户管理（仅超级管理员）。"},
            {"name": "public-tenants", "description": "无需认证的租户发现。"},
            {"name": "auth", "description": "用户登录与当前身份。"},
            {"name": "user-clinics", "description": "诊所选择与切换。"},
            {"name": "clinics", "description": "诊所与诊所成员管理。"},
            {"name": "patients", "description": "患者档案。"},
            {"name": "appointments", "description": "预约。"},
        ],
    )

    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
