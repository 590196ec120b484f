from datetime import datetime, timedelta, timezone
from typing import Annotated

import bcrypt
import hashlib
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel, ValidationError

from coinmatrix.core.config import settings
from coinmatrix.core.exceptions.errors import AuthError

bearer_scheme = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    id: int
    username: str


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    # bcrypt only looks at the first 72 bytes
    if len(password_bytes) > 72:
        password_bytes = hashlib.sha256(password_bytes).hexdigest().encode("utf-8")
    return password_bytes


def get_password_hash(password: str) -> str:
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(
        _password_bytes(plain_password), hashed_password.encode("utf-8")
    )


def create_access_token(identity: Identity, expires_delta: timedelta | None = None):
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": identity.username,
        "id": identity.id,
        "username": identity.username,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def authenticate(credential: str | None) -> Identity:
    """Resolve a bearer token to the identity it was issued for.

    A missing token is 401, a bad or expired one is 403.
    """
    if not credential:
        raise AuthError("No token provided.", status_code=401)
    try:
        payload = jwt.decode(
            credential, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        return Identity(id=payload["id"], username=payload["username"])
    except (InvalidTokenError, KeyError, ValidationError):
        raise AuthError("Token is not valid.", status_code=403)


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Identity:
    return authenticate(credentials.credentials if credentials else None)


CurrentUser = Annotated[Identity, Depends(get_current_user)]
