"""数据库会话管理。"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from clinic_api.core.config import get_settings


def build_engine(database_url: str) -> Engine:
    """按连接地址创建引擎；SQLite 允许跨线程使用（FastAPI 同步路由运行在线程池）。"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, future=True, connect_args={"check_same_thread": False})
    # 开启连接预检查以减少僵尸连接影响。
    return create_engine(database_url, future=True, pool_pre_ping=True)


engine = build_engine(get_settings().database_url)
# 统一会话工厂，路由层通过依赖注入获取短生命周期会话。
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """为每个请求提供独立数据库会话，异常时回滚未提交的写入。"""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
