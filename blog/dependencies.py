# blog/dependencies.py
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from blog.database import get_db
from blog.exceptions import Forbidden, Unauthorized
from blog.models.user import User
from blog.services.auth import ACCESS, decode_token

# Security scheme; missing headers are reported by us as 401
bearer = HTTPBearer(description="JWT access token", auto_error=False)


def _user_from_token(token: str, db: Session) -> User:
    payload = decode_token(token, ACCESS)
    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user or not user.is_active:
        raise Unauthorized("User not found or inactive")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise Unauthorized("Missing bearer token")
    return _user_from_token(credentials.credentials, db)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db),
):
    """The caller for public routes; None when no token is sent, 401 when a bad one is."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)


def require_roles(*roles):
    def dep(user: User = Depends(get_current_user)) -> User:
        if not user.has_role(*roles):
            raise Forbidden(f"Requires one of the roles: {', '.join(roles)}")
        return user
    return dep
