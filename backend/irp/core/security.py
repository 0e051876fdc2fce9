from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, ExpiredSignatureError, jwt

from irp.core.config import settings
from irp.core.exceptions import InvalidCredentialError, ExpiredCredentialError


def create_access_token(account_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Mint a bearer token bound to an account.

    The token carries only the account id and its validity window. Role and
    permissions are always read from the live account record.
    """
    issued_at = datetime.utcnow()

    if expires_delta:
        expire = issued_at + expires_delta
    else:
        expire = issued_at + timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)

    to_encode = {
        "sub": str(account_id),
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises ExpiredCredentialError for a correctly signed token past its
    window, InvalidCredentialError for anything else.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise ExpiredCredentialError()
    except JWTError:
        raise InvalidCredentialError()
