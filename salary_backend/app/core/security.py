"""
Password hashing utilities.
"""

from typing import Optional
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Check a password against its hash.

    Subjects registered through a salary submission have no password
    and can never authenticate.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)
