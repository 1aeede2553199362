import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blog.exceptions import BadRequest, Conflict, NotFound
from blog.models.like import Like, TARGET_COMMENT, TARGET_POST
from blog.models.user import User
from blog.services import comments as comment_service
from blog.services import posts as post_service

logger = logging.getLogger(__name__)


def _validate_target(db: Session, target_id: int, target_type: str, user: User):
    # Targets on a draft only exist for the draft's author
    try:
        if target_type == TARGET_POST:
            post_service.get_post(db, target_id, user)
        elif target_type == TARGET_COMMENT:
            comment = comment_service.get_comment(db, target_id)
            post_service.get_post(db, comment.post_id, user)
        else:
            raise BadRequest("Invalid target type")
    except NotFound:
        raise NotFound(f"{target_type} not found")


def _find_like(db: Session, user_id: int, target_id: int, target_type: str):
    return db.query(Like).filter(
        Like.user_id == user_id,
        Like.target_id == target_id,
        Like.target_type == target_type,
    ).first()


def _adjust_counter(db: Session, target_id: int, target_type: str, delta: int):
    if target_type == TARGET_POST:
        if delta > 0:
            post_service.increment_likes(db, target_id)
        else:
            post_service.decrement_likes(db, target_id)
    else:
        if delta > 0:
            comment_service.increment_likes(db, target_id)
        else:
            comment_service.decrement_likes(db, target_id)


def toggle_like(db: Session, target_id: int, target_type: str, user: User) -> dict:
    """
    Like the target if the user has not liked it yet, otherwise unlike it.

    Check, write, counter update and recount are separate statements; a
    concurrent duplicate insert hits the unique constraint and is reported
    as a Conflict.
    """
    _validate_target(db, target_id, target_type, user)

    existing = _find_like(db, user.id, target_id, target_type)

    if existing:
        db.delete(existing)
        db.commit()
        _adjust_counter(db, target_id, target_type, -1)
        liked = False
    else:
        db.add(Like(user_id=user.id, target_id=target_id, target_type=target_type))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning("Duplicate like by user %s on %s %s", user.id, target_type, target_id)
            raise Conflict("Target already liked")
        _adjust_counter(db, target_id, target_type, 1)
        liked = True

    return {"liked": liked, "likes_count": get_likes_count(db, target_id, target_type)}


def get_user_likes(db: Session, user_id: int, target_type=None):
    query = db.query(Like).filter(Like.user_id == user_id)
    if target_type:
        query = query.filter(Like.target_type == target_type)
    return query.order_by(Like.created_at.desc(), Like.id.desc()).all()


def get_target_likes(db: Session, target_id: int, target_type: str):
    return (
        db.query(Like)
        .filter(Like.target_id == target_id, Like.target_type == target_type)
        .order_by(Like.created_at.desc(), Like.id.desc())
        .all()
    )


def get_likes_count(db: Session, target_id: int, target_type: str) -> int:
    return db.query(Like).filter(Like.target_id == target_id, Like.target_type == target_type).count()


def check_user_liked(db: Session, user_id: int, target_id: int, target_type: str) -> bool:
    return _find_like(db, user_id, target_id, target_type) is not None


def check_multiple_user_liked(db: Session, user_id: int, target_ids, target_type: str) -> dict:
    """Map every requested id to whether the user liked it, in a single query."""
    liked = {target_id: False for target_id in target_ids}
    if not liked:
        return liked

    rows = db.query(Like.target_id).filter(
        Like.user_id == user_id,
        Like.target_type == target_type,
        Like.target_id.in_(list(liked)),
    )
    for row in rows:
        liked[row.target_id] = True
    return liked
