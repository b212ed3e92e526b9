# src/auth/auth_service.py

import logging
from functools import lru_cache
from typing import Dict, Optional

from passlib.context import CryptContext

from src.common.config import settings
from src.auth.schemas import StaffPrincipal

logger = logging.getLogger(__name__)

# Initialize the password context (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify that the provided password matches the hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


@lru_cache(maxsize=1)
def load_staff_accounts() -> Dict[str, str]:
    """Username -> bcrypt hash, built once from settings.

    The primary account uses STAFF_PASSWORD_HASH when set, otherwise the plain
    STAFF_PASSWORD is hashed at startup. STAFF_ACCOUNTS adds "user:hash" pairs.
    """
    accounts: Dict[str, str] = {}
    if settings.STAFF_USERNAME:
        accounts[settings.STAFF_USERNAME] = settings.STAFF_PASSWORD_HASH or hash_password(settings.STAFF_PASSWORD)

    for entry in settings.STAFF_ACCOUNTS:
        username, sep, password_hash = entry.partition(":")
        if not sep or not username or not password_hash:
            logger.warning("Ignoring malformed STAFF_ACCOUNTS entry for %r", username or entry[:8])
            continue
        accounts[username.strip()] = password_hash.strip()
    return accounts


def authenticate_staff(username: str, password: str) -> Optional[StaffPrincipal]:
    """Return the staff principal for valid credentials, ``None`` otherwise."""
    password_hash = load_staff_accounts().get(username)
    if password_hash is None:
        # Keep timing similar for unknown usernames
        pwd_context.dummy_verify()
        return None
    if not verify_password(password, password_hash):
        return None
    return StaffPrincipal(username=username)
