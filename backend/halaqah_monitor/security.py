# backend/halaqah_monitor/security.py
import logging
from typing import Optional

from passlib.hash import bcrypt

from .config import settings

logger = logging.getLogger(__name__)

_hasher = bcrypt.using(rounds=settings.BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def is_password_hash(stored: Optional[str]) -> bool:
    return bool(stored) and bcrypt.identify(stored)


def verify_password(password: str, stored: Optional[str]) -> bool:
    """Check a login attempt. Rows still holding plaintext never match."""
    if not is_password_hash(stored):
        return False
    return bcrypt.verify(password or "", stored)
