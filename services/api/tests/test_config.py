import pytest

from clinic_api.core.config import Settings, validate_security_settings
from clinic_api.main import create_app


def test_missing_secret_refuses_to_start():
    with pytest.raises(RuntimeError):
        create_app(Settings(auth_jwt_secret=None))


def test_blank_secret_is_treated_as_missing():
    settings = Settings(auth_jwt_secret="   ")
    assert settings.auth_jwt_secret is None
    with pytest.raises(RuntimeError):
        validate_security_settings(settings)


def test_placeholder_secret_rejected_outside_dev():
    with pytest.raises(RuntimeError):
        validate_security_settings(Settings(auth_jwt_secret="change-me", app_env="production"))


def test_placeholder_secret_allowed_in_dev():
    validate_security_settings(Settings(auth_jwt_secret="change-me", app_env="dev"))


def test_strong_secret_allows_startup():
    app = create_app(Settings(auth_jwt_secret="a-sufficiently-long-random-secret-value", app_env="production"))
    assert app.title == "Clinic Platform API"


def test_audit_sink_is_validated():
    with pytest.raises(ValueError):
        Settings(auth_jwt_secret="x" * 32, audit_sink="kafka")
