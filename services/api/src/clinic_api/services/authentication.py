"""账号密码登录服务。"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.errors import AccountLocked, InvalidCredentials, LoginRateLimited
from clinic_api.models.user import SuperAdmin, User
from clinic_api.services.credentials import normalize_email, verify_password
from clinic_api.services.login_guard import (
    GuardedAccount,
    is_locked,
    register_failed_login,
    register_successful_login,
)
from clinic_api.utils.clock import as_utc

logger = logging.getLogger("clinic_api.auth")


def _check_credentials(db: Session, account: GuardedAccount | None, password: str, *, email: str) -> GuardedAccount:
    """校验口令并维护失败计数。

    不存在与已停用账号统一返回 InvalidCredentials，避免暴露邮箱是否注册。
    """
    if account is None or not account.is_active:
        logger.info("login rejected: unknown or inactive account email=%s", email)
        raise InvalidCredentials()

    if is_locked(account):
        logger.info("login rejected: account locked account=%s", account.id)
        raise AccountLocked(as_utc(account.locked_until))

    if not verify_password(password, account.password_hash):
        account_id = account.id
        state = register_failed_login(db, account)
        logger.info(
            "login rejected: wrong password account=%s attempts=%s",
            account_id,
            state.login_attempts if state else None,
        )
        if state is not None and state.is_locked():
            raise LoginRateLimited(state.locked_until)
        raise InvalidCredentials()

    register_successful_login(db, account)
    return account


def authenticate_super_admin(db: Session, email: str, password: str) -> SuperAdmin:
    """超级管理员登录校验。"""
    normalized = normalize_email(email)
    super_admin = db.execute(select(SuperAdmin).where(SuperAdmin.email == normalized)).scalar_one_or_none()
    return _check_credentials(db, super_admin, password, email=normalized)


def authenticate_user(db: Session, email: str, password: str) -> User:
    """租户用户登录校验，与超级管理员共用锁定策略。"""
    normalized = normalize_email(email)
    user = db.execute(select(User).where(User.email == normalized)).scalar_one_or_none()
    return _check_credentials(db, user, password, email=normalized)
