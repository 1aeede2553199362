import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy.orm import Session

from blog.config import (
    BCRYPT_ROUNDS,
    JWT_ALGORITHM,
    JWT_EXPIRES_MINUTES,
    JWT_REFRESH_EXPIRES_DAYS,
    JWT_REFRESH_SECRET,
    JWT_SECRET,
)
from blog.exceptions import Unauthorized
from blog.models.user import User
from blog.serializers import serialize_user
from blog.services.users import (
    get_user_by_email,
    set_refresh_token_hash,
    touch_last_login,
    verify_password,
)

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def _claims(user: User) -> dict:
    return {
        "sub": str(user.id),
        "email": user.email,
        "username": user.username,
        "roles": list(user.roles or []),
    }


def _sign(claims: dict, token_type: str, secret: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
        # Two tokens issued in the same second must still differ
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def create_access_token(user: User) -> str:
    return _sign(_claims(user), ACCESS, JWT_SECRET, timedelta(minutes=JWT_EXPIRES_MINUTES))


def create_refresh_token(user: User) -> str:
    return _sign(_claims(user), REFRESH, JWT_REFRESH_SECRET, timedelta(days=JWT_REFRESH_EXPIRES_DAYS))


def decode_token(token: str, token_type: str = ACCESS) -> dict:
    """Verify signature, expiry and token type. Raises Unauthorized."""
    secret = JWT_SECRET if token_type == ACCESS else JWT_REFRESH_SECRET
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.PyJWTError:
        raise Unauthorized("Invalid token")

    if payload.get("type") != token_type or not str(payload.get("sub", "")).isdigit():
        raise Unauthorized("Invalid token")
    return payload


def _digest(token: str) -> bytes:
    # bcrypt only reads 72 bytes, a JWT is much longer
    return hashlib.sha256(token.encode("utf-8")).hexdigest().encode("ascii")


def hash_refresh_token(token: str) -> str:
    return bcrypt.hashpw(_digest(token), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def refresh_token_matches(token: str, token_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_digest(token), token_hash.encode("utf-8"))
    except ValueError:
        return False


def validate_credentials(db: Session, email: str, password: str):
    """Return the user when the credentials are valid, otherwise None."""
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def issue_session(db: Session, user: User) -> dict:
    """
    Sign an access/refresh token pair for the user.

    Only the hash of the refresh token is stored, and it replaces any
    previous one, so logging in again invalidates older refresh tokens.
    """
    access_token = create_access_token(user)
    refresh_token = create_refresh_token(user)

    set_refresh_token_hash(db, user.id, hash_refresh_token(refresh_token))
    touch_last_login(db, user.id)
    db.refresh(user)

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user": serialize_user(user),
    }


def login(db: Session, email: str, password: str) -> dict:
    user = validate_credentials(db, email, password)
    if user is None:
        logger.info("Failed login for %s", email)
        raise Unauthorized("Invalid credentials")

    logger.info("User %s logged in", user.id)
    return issue_session(db, user)


def refresh(db: Session, raw_refresh_token: str) -> dict:
    """Exchange a valid refresh token for a new access token. The refresh token is not rotated."""
    try:
        payload = decode_token(raw_refresh_token, REFRESH)
    except Unauthorized:
        raise Unauthorized("Invalid refresh token")

    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if not user or not user.is_active or not user.refresh_token_hash:
        raise Unauthorized("Invalid refresh token")

    if not refresh_token_matches(raw_refresh_token, user.refresh_token_hash):
        logger.warning("Stale refresh token presented for user %s", user.id)
        raise Unauthorized("Invalid refresh token")

    return {"access_token": create_access_token(user), "token_type": "bearer"}


def end_session(db: Session, user_id: int) -> dict:
    set_refresh_token_hash(db, user_id, None)
    logger.info("User %s logged out", user_id)
    return {"message": "Logged out successfully"}
