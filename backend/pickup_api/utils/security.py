import uuid, datetime as dt
import jwt
from typing import Any, Dict

from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError

from pickup_api.config import Settings, get_settings
from pickup_api.schemas.auth import Caller

JWT_ALG = "HS256"
JWT_AUDIENCE = "pickup-dispatch"

def create_access_token(secret: str, claims: Dict[str, Any], ttl_min: int = 60, jti: str | None = None) -> tuple[str, str]:
    """Returns (token, jti)."""
    jti = jti or str(uuid.uuid4())
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "jti": jti,
        "iat": int(now.timestamp()),
        "exp": int((now + dt.timedelta(minutes=ttl_min)).timestamp()),
        "iss": JWT_AUDIENCE,
        "aud": JWT_AUDIENCE,
        **claims,
    }
    token = jwt.encode(payload, secret, algorithm=JWT_ALG)
    return token, jti

def decode_token(secret: str, token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token, secret, algorithms=[JWT_ALG],
            audience=JWT_AUDIENCE, issuer=JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

_security = HTTPBearer(auto_error=False)

def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    settings: Settings = Depends(get_settings),
) -> Caller:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    claims = decode_token(settings.jwt_secret, credentials.credentials)

    sub = claims.get("sub")
    role = str(claims.get("role") or "").upper()
    if not sub or not role:
        raise HTTPException(status_code=401, detail="Invalid session")
    try:
        return Caller(caller_id=str(sub), role=role, organization_id=claims.get("organization_id"))
    except ValidationError:
        raise HTTPException(status_code=401, detail="Unknown role")

def require_roles(caller: Caller, *roles: str) -> None:
    if caller.role not in roles:
        raise HTTPException(status_code=403, detail="Access denied")
