import os

# 应用在导入时创建引擎并校验签名密钥，必须先于任何 clinic_api 导入设置。
os.environ.setdefault("CLINIC_AUTH_JWT_SECRET", "unit-test-secret-key-at-least-32-bytes")
os.environ.setdefault("CLINIC_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("CLINIC_APP_ENV", "test")
os.environ.setdefault("CLINIC_AUTH_PASSWORD_HASH_ITERATIONS", "1000")

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import clinic_api.models  # noqa: E402,F401
from clinic_api.core.config import get_settings  # noqa: E402
from clinic_api.db.session import get_db  # noqa: E402
from clinic_api.models.base import Base  # noqa: E402
from clinic_api.services.audit import AuditEvent, AuditRecorder  # noqa: E402


class CollectingAuditSink:
    """测试用审计落地，收集写入的事件。"""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def write(self, event: AuditEvent) -> None:
        self.events.append(event)


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    get_settings.cache_clear()
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def audit_sink() -> CollectingAuditSink:
    return CollectingAuditSink()


@pytest.fixture
def api_client(session_factory: sessionmaker, audit_sink: CollectingAuditSink) -> Generator[TestClient, None, None]:
    from clinic_api.main import app

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.audit_recorder = AuditRecorder(audit_sink)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
    app.state.audit_recorder = None
