from datetime import timedelta
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from . import models
from .config import Settings
from .database import get_db
from .errors import ExhibitsError

# purpose: resolve the acting user from a bearer token issued by the campus login service
# status: active

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticationError(ExhibitsError):
    status = 401
    message = "Could not validate credentials"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def create_access_token(data: dict[str, Any], settings: Settings, expires_delta: timedelta | None = None) -> str:
    to_encode = dict(data)
    expire = models.utcnow() + (expires_delta or timedelta(minutes=settings.token_ttl_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.token_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.token_algorithm])
    except JWTError as exc:
        raise AuthenticationError() from exc


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> models.User:
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    payload = decode_access_token(credentials.credentials, settings)
    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise AuthenticationError() from exc
    user = db.get(models.User, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError()
    return user
