"""
JWT helpers. Tokens are issued by the external auth service; this backend
verifies them and signs its own only for internal tooling and tests.
"""
from datetime import datetime, timedelta
from typing import Optional, Union
from jose import JWTError, jwt
from fleetledger.core.config import settings


def create_access_token(
    user_id: Union[int, str],
    tenant_id: int,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign a token carrying the acting user and tenant."""
    expire = datetime.utcnow() + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    claims = {"user_id": str(user_id), "tenant_id": tenant_id, "exp": expire}
    if name:
        claims["sub"] = name
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Verified claims of a token, or None when it is invalid or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
