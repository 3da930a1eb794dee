from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from clinic_api.errors import AccountLocked, InvalidCredentials, LoginRateLimited
from clinic_api.models.user import SuperAdmin, User
from clinic_api.services.authentication import authenticate_super_admin, authenticate_user
from clinic_api.services.login_guard import is_locked, register_failed_login
from clinic_api.utils.clock import as_utc, utc_now

from factories import DEFAULT_PASSWORD, create_super_admin, create_tenant, create_user


@pytest.fixture
def user(db_session: Session) -> User:
    tenant = create_tenant(db_session, slug="lock-tenant")
    user = create_user(db_session, tenant, email="lock@clinic.com")
    db_session.commit()
    return user


def test_fifth_failure_locks_and_sixth_reports_locked(db_session: Session, user: User):
    for _ in range(4):
        with pytest.raises(InvalidCredentials):
            authenticate_user(db_session, "lock@clinic.com", "wrong")

    before = utc_now()
    with pytest.raises(LoginRateLimited) as rate_limited:
        authenticate_user(db_session, "lock@clinic.com", "wrong")
    locked_until = rate_limited.value.locked_until
    assert locked_until is not None
    assert abs((locked_until - (before + timedelta(hours=2))).total_seconds()) < 60

    # 锁定期内即使口令正确也拒绝。
    with pytest.raises(AccountLocked) as locked:
        authenticate_user(db_session, "lock@clinic.com", DEFAULT_PASSWORD)
    assert locked.value.status_code == 423
    assert locked.value.detail["details"]["locked_until"] is not None

    db_session.refresh(user)
    assert user.login_attempts == 5
    assert is_locked(user)


def test_success_before_limit_resets_counter(db_session: Session, user: User):
    for _ in range(4):
        with pytest.raises(InvalidCredentials):
            authenticate_user(db_session, "lock@clinic.com", "wrong")

    authenticate_user(db_session, "LOCK@clinic.com ", DEFAULT_PASSWORD)
    db_session.refresh(user)
    assert user.login_attempts == 0
    assert user.locked_until is None
    assert user.last_login_at is not None

    # 计数已清零，再失败 4 次仍不会锁定。
    for _ in range(4):
        with pytest.raises(InvalidCredentials):
            authenticate_user(db_session, "lock@clinic.com", "wrong")
    db_session.refresh(user)
    assert not is_locked(user)


def test_failure_after_expired_lock_restarts_count(db_session: Session, user: User):
    user.login_attempts = 5
    user.locked_until = utc_now() - timedelta(minutes=1)
    db_session.commit()

    state = register_failed_login(db_session, user)

    assert state is not None
    assert state.login_attempts == 1
    assert state.locked_until is None
    assert not state.is_locked()


def test_failure_while_locked_keeps_original_deadline(db_session: Session, user: User):
    deadline = utc_now() + timedelta(minutes=30)
    user.login_attempts = 5
    user.locked_until = deadline
    db_session.commit()

    state = register_failed_login(db_session, user)

    assert state.login_attempts == 6
    assert abs((as_utc(state.locked_until) - deadline).total_seconds()) < 1


def test_unknown_and_inactive_accounts_fail_uniformly(db_session: Session, user: User):
    create_user(db_session, None, email="inactive@clinic.com", is_active=False)
    db_session.commit()

    with pytest.raises(InvalidCredentials) as unknown:
        authenticate_user(db_session, "nobody@clinic.com", DEFAULT_PASSWORD)
    with pytest.raises(InvalidCredentials) as inactive:
        authenticate_user(db_session, "inactive@clinic.com", DEFAULT_PASSWORD)
    with pytest.raises(InvalidCredentials) as wrong:
        authenticate_user(db_session, "lock@clinic.com", "wrong")

    assert unknown.value.detail == inactive.value.detail == wrong.value.detail


def test_super_admin_shares_lock_policy(db_session: Session):
    super_admin = create_super_admin(db_session)
    db_session.commit()

    for _ in range(4):
        with pytest.raises(InvalidCredentials):
            authenticate_super_admin(db_session, "root@platform.com", "wrong")
    with pytest.raises(LoginRateLimited):
        authenticate_super_admin(db_session, "root@platform.com", "wrong")
    with pytest.raises(AccountLocked):
        authenticate_super_admin(db_session, "root@platform.com", DEFAULT_PASSWORD)

    locked = db_session.get(SuperAdmin, super_admin.id)
    db_session.refresh(locked)
    assert is_locked(locked)
