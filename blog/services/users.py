import logging
from datetime import datetime, timezone

import bcrypt
from sqlalchemy import or_
from sqlalchemy.orm import Session

from blog.config import BCRYPT_ROUNDS
from blog.exceptions import Conflict, Forbidden, NotFound
from blog.models.user import User

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or over-long password
        return False


def create_user(db: Session, email: str, username: str, password: str, **profile) -> User:
    """Create a user with the default role. Raises Conflict on duplicate email or username."""
    email = email.strip().lower()
    username = username.strip()

    existing = db.query(User).filter(or_(User.email == email, User.username == username)).first()
    if existing:
        if existing.email == email:
            raise Conflict("Email already exists")
        raise Conflict("Username already exists")

    user = User(
        email=email,
        username=username,
        password_hash=hash_password(password),
        first_name=profile.get("first_name"),
        last_name=profile.get("last_name"),
        bio=profile.get("bio"),
        avatar=profile.get("avatar"),
        roles=["user"],
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound(f"User with ID {user_id} not found")
    return user


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_username(db: Session, username: str):
    return db.query(User).filter(User.username == username).first()


def list_users(db: Session):
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def update_user(db: Session, user_id: int, changes: dict, actor: User) -> User:
    """
    Apply a partial update.
    Users may edit their own profile; roles and the active flag are admin-only.
    """
    # username, roles and is_active cannot be cleared
    changes = {k: v for k, v in changes.items() if v is not None or k not in ("username", "roles", "is_active")}

    is_admin = actor.has_role("admin")
    if actor.id != user_id and not is_admin:
        raise Forbidden("You can only update your own profile")

    if not is_admin and ("roles" in changes or "is_active" in changes):
        raise Forbidden("Only admins can change roles or account status")

    user = get_user(db, user_id)

    username = changes.get("username")
    if username and username != user.username:
        taken = db.query(User).filter(User.username == username, User.id != user_id).first()
        if taken:
            raise Conflict("Username already exists")

    for field in ("username", "first_name", "last_name", "bio", "avatar", "is_active"):
        if field in changes:
            setattr(user, field, changes[field])
    if "roles" in changes:
        user.roles = list(dict.fromkeys(changes["roles"]))

    db.commit()
    db.refresh(user)
    return user


def update_avatar(db: Session, user: User, url: str) -> User:
    user.avatar = url
    db.commit()
    db.refresh(user)
    return user


def deactivate_user(db: Session, user_id: int, actor: User) -> User:
    """
    Soft-delete the account.
    The row is kept so the email and username stay reserved; profile data
    and the refresh token are wiped.
    """
    if actor.id != user_id and not actor.has_role("admin"):
        raise Forbidden("You can only delete your own account")

    user = get_user(db, user_id)
    user.is_active = False
    user.bio = None
    user.avatar = None
    user.refresh_token_hash = None

    db.commit()
    db.refresh(user)

    logger.info("Deactivated user %s (by %s)", user.id, actor.id)
    return user


def set_refresh_token_hash(db: Session, user_id: int, token_hash):
    db.query(User).filter(User.id == user_id).update(
        {User.refresh_token_hash: token_hash}, synchronize_session=False
    )
    db.commit()


def touch_last_login(db: Session, user_id: int):
    db.query(User).filter(User.id == user_id).update(
        {User.last_login: datetime.now(timezone.utc)}, synchronize_session=False
    )
    db.commit()
