# league_portal/core/crypto.py
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from league_portal.core.config import settings

_fernet = Fernet(settings.ENCRYPTION_KEY)


def encrypt_token(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return _fernet.encrypt(value.encode()).decode()


def decrypt_token(value: Optional[str]) -> Optional[str]:
    """
    Returns None for a missing value or one sealed under a different key
    (e.g. after ENCRYPTION_KEY was rotated); callers treat that as "no session".
    """
    if value is None:
        return None
    try:
        return _fernet.decrypt(value.encode()).decode()
    except InvalidToken:
        return None
