"""
Shared API dependencies.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from fleetledger.core.security import decode_access_token
from fleetledger.schemas.common import CurrentUser

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Decode the bearer token into the acting user and tenant."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = decode_access_token(credentials.credentials)
    if not payload or payload.get("user_id") is None or payload.get("tenant_id") is None:
        raise credentials_exception

    try:
        return CurrentUser(
            user_id=str(payload["user_id"]),
            name=payload.get("sub"),
            tenant_id=int(payload["tenant_id"]),
        )
    except (TypeError, ValueError):
        raise credentials_exception
