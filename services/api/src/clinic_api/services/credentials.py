"""口令哈希与校验。"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets

from clinic_api.core.config import get_settings

_ALGORITHM = "pbkdf2_sha256"


def normalize_email(email: str) -> str:
    """邮箱统一去空白并转小写。"""
    return email.strip().lower()


def hash_password(password: str) -> str:
    """使用 PBKDF2-SHA256 生成口令哈希，格式 `算法$迭代次数$盐$摘要`。"""
    iterations = get_settings().auth_password_hash_iterations
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    salt_b64 = base64.b64encode(salt).decode("ascii")
    digest_b64 = base64.b64encode(digest).decode("ascii")
    return f"{_ALGORITHM}${iterations}${salt_b64}${digest_b64}"


def verify_password(password: str, password_hash: str | None) -> bool:
    """校验口令是否匹配，哈希格式异常一律视为不匹配。"""
    if not password_hash:
        return False
    try:
        algorithm, iterations_text, salt_b64, expected_digest_b64 = password_hash.split("$", 3)
        if algorithm != _ALGORITHM:
            return False
        iterations = int(iterations_text)
        salt = base64.b64decode(salt_b64.encode("ascii"))
        expected_digest = base64.b64decode(expected_digest_b64.encode("ascii"))
    except (ValueError, TypeError, binascii.Error):
        return False

    actual_digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(actual_digest, expected_digest)
