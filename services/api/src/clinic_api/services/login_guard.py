"""登录失败计数与账号锁定策略。

用户与超级管理员共用同一套规则：
1. 失败一次累加计数；累计达到上限且当前未锁定时，锁定一段时间；
2. 上一次锁定已过期后再次失败，计数重置为 1 并清除锁定；
3. 登录成功清零计数、清除锁定并记录登录时间。

计数更新使用单条条件 UPDATE 完成，多进程并发下不丢失累加。
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging

from sqlalchemy import DateTime, and_, case, literal, null, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.core.config import get_settings
from clinic_api.models.user import SuperAdmin, User
from clinic_api.utils.clock import as_utc, utc_now

logger = logging.getLogger("clinic_api.auth")

GuardedAccount = User | SuperAdmin


@dataclass(frozen=True)
class LoginAttemptState:
    """一次失败登录登记后的账号状态。"""

    login_attempts: int
    locked_until: datetime | None

    def is_locked(self, now: datetime | None = None) -> bool:
        locked_until = as_utc(self.locked_until)
        return locked_until is not None and locked_until > (now or utc_now())


def is_locked(account: GuardedAccount, now: datetime | None = None) -> bool:
    """锁定截止时间晚于当前时间即视为锁定。"""
    locked_until = as_utc(account.locked_until)
    return locked_until is not None and locked_until > (now or utc_now())


def register_failed_login(
    db: Session,
    account: GuardedAccount,
    now: datetime | None = None,
) -> LoginAttemptState | None:
    """登记一次失败登录并返回最新状态；写入失败时记录日志并返回 None。"""
    settings = get_settings()
    model = type(account)
    account_id = account.id
    now = now or utc_now()
    lock_until = now + timedelta(seconds=settings.auth_lock_duration_seconds)

    lock_expired = and_(model.locked_until.is_not(None), model.locked_until <= now)
    reached_limit = model.login_attempts + 1 >= settings.auth_max_login_attempts

    stmt = (
        update(model)
        .where(model.id == account_id)
        .values(
            login_attempts=case((lock_expired, 1), else_=model.login_attempts + 1),
            locked_until=case(
                (lock_expired, null()),
                (and_(reached_limit, model.locked_until.is_(None)), literal(lock_until, DateTime(timezone=True))),
                else_=model.locked_until,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    try:
        db.execute(stmt)
        db.commit()
        row = db.execute(
            select(model.login_attempts, model.locked_until).where(model.id == account_id)
        ).one()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to register login failure account=%s kind=%s", account_id, model.__tablename__)
        return None

    state = LoginAttemptState(login_attempts=row.login_attempts, locked_until=as_utc(row.locked_until))
    if state.is_locked(now):
        logger.warning(
            "account locked account=%s kind=%s attempts=%s locked_until=%s",
            account_id,
            model.__tablename__,
            state.login_attempts,
            state.locked_until.isoformat() if state.locked_until else None,
        )
    return state


def register_successful_login(db: Session, account: GuardedAccount, now: datetime | None = None) -> None:
    """登录成功后清零计数并清除锁定；写入失败不影响登录结果。"""
    model = type(account)
    account_id = account.id
    stmt = (
        update(model)
        .where(model.id == account_id)
        .values(login_attempts=0, locked_until=None, last_login_at=now or utc_now())
        .execution_options(synchronize_session=False)
    )
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to reset login attempts account=%s kind=%s", account_id, model.__tablename__)


def unlock_account(db: Session, account: GuardedAccount) -> GuardedAccount:
    """管理员手动解锁：清零计数并清除锁定，由调用方提交事务。"""
    account.login_attempts = 0
    account.locked_until = None
    db.flush()
    logger.info("account unlocked account=%s kind=%s", account.id, type(account).__tablename__)
    return account
