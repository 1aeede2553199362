import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from blog.config import COMMENT_THREAD_MAX_DEPTH
from blog.exceptions import BadRequest, Forbidden, NotFound
from blog.models.comment import Comment, comment_mentions, APPROVED
from blog.models.like import Like, TARGET_COMMENT
from blog.models.user import User
from blog.serializers import serialize_comment
from blog.services.pagination import paginate
from blog.services.posts import decrement_comments, get_post, increment_comments

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Comment.created_at,
    "likes_count": Comment.likes_count,
}


def create_comment(
    db: Session,
    content: str,
    post_id: int,
    author: User,
    parent_comment_id=None,
    mentions=None,
) -> Comment:
    """
    Create a top-level comment or a reply.

    A reply is linked into its parent's replies and must belong to the same
    post. The post's comments_count grows by one whatever the nesting depth.
    """
    # Drafts only take comments from their author
    get_post(db, post_id, author)

    parent = None
    if parent_comment_id is not None:
        parent = db.query(Comment).filter(Comment.id == parent_comment_id).first()
        if not parent:
            raise NotFound("Parent comment not found")
        if parent.post_id != post_id:
            raise BadRequest("Parent comment does not belong to this post")

    mentioned = []
    if mentions:
        wanted = set(mentions)
        mentioned = db.query(User).filter(User.id.in_(wanted)).all()
        if len(mentioned) != len(wanted):
            raise BadRequest("Mentioned user not found")

    comment = Comment(
        content=content,
        post_id=post_id,
        author_id=author.id,
        status=APPROVED,
        likes_count=0,
        is_edited=False,
    )
    comment.mentions = mentioned
    if parent is not None:
        parent.replies.append(comment)

    db.add(comment)
    db.commit()

    increment_comments(db, post_id)
    db.refresh(comment)

    logger.info("Comment %s created on post %s by user %s", comment.id, post_id, author.id)
    return comment


def get_comment(db: Session, comment_id: int) -> Comment:
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise NotFound(f"Comment with ID {comment_id} not found")
    return comment


def comment_view(comment: Comment, approved_replies_only: bool = False) -> dict:
    """Serialize a comment with its direct replies populated one level deep."""
    replies = [
        serialize_comment(reply)
        for reply in comment.replies
        if not approved_replies_only or reply.status == APPROVED
    ]
    return serialize_comment(comment, replies=replies)


def list_comments(
    db: Session,
    post=None,
    author=None,
    parent_comment=None,
    status: str = APPROVED,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "created_at",
    sort_order: str = "desc",
):
    query = db.query(Comment).filter(Comment.status == status)

    if post:
        query = query.filter(Comment.post_id == post)

    if author:
        query = query.filter(Comment.author_id == author)

    # Top-level comments unless a parent is asked for
    if parent_comment is not None:
        query = query.filter(Comment.parent_comment_id == parent_comment)
    else:
        query = query.filter(Comment.parent_comment_id.is_(None))

    column = SORT_FIELDS.get(sort_by, Comment.created_at)
    if sort_order == "asc":
        order_by = (column.asc(), Comment.id.asc())
    else:
        order_by = (column.desc(), Comment.id.desc())

    comments, pagination = paginate(query, page, limit, order_by)
    return [comment_view(c, approved_replies_only=True) for c in comments], pagination


def list_post_comments(db: Session, post_id: int, viewer=None, **query):
    get_post(db, post_id, viewer)
    query["post"] = post_id
    return list_comments(db, **query)


def _expand(comment: Comment, depth: int, max_depth: int) -> dict:
    if depth >= max_depth:
        return serialize_comment(comment)
    return serialize_comment(
        comment,
        replies=[_expand(reply, depth + 1, max_depth) for reply in comment.replies],
    )


def get_thread(db: Session, comment_id: int, max_depth: int = COMMENT_THREAD_MAX_DEPTH) -> dict:
    """
    A comment with its whole reply tree expanded into nested objects.
    Expansion stops after max_depth levels; deeper replies are listed by id.
    """
    comment = get_comment(db, comment_id)
    return _expand(comment, 0, max_depth)


def update_comment(db: Session, comment_id: int, changes: dict, user_id, is_admin: bool = False) -> Comment:
    comment = get_comment(db, comment_id)

    if not is_admin and comment.author_id != user_id:
        raise Forbidden("You can only edit your own comments")

    if changes.get("content") is not None:
        comment.content = changes["content"]
        if not is_admin:
            comment.is_edited = True
            comment.edited_at = datetime.now(timezone.utc)

    if changes.get("status") is not None:
        comment.status = changes["status"]

    db.commit()
    db.refresh(comment)
    return comment


def moderate_comment(db: Session, comment_id: int, status: str) -> Comment:
    # Role checks happen in the route dependency
    comment = update_comment(db, comment_id, {"status": status}, None, is_admin=True)
    logger.info("Comment %s moderated to %s", comment_id, status)
    return comment


def _subtree_ids(db: Session, root_id: int):
    """Ids of the comment and all its descendants, each listed before its own replies."""
    order = []
    stack = [root_id]
    while stack:
        current = stack.pop()
        order.append(current)
        children = (
            db.query(Comment.id)
            .filter(Comment.parent_comment_id == current)
            .order_by(Comment.id.desc())
            .all()
        )
        stack.extend(row.id for row in children)
    return order


def remove_comment(db: Session, comment_id: int, user_id, is_admin: bool = False):
    """
    Delete a comment and every descendant reply, deepest first.

    The post's comments_count is decremented once, for the requested
    comment only, whatever the size of the removed subtree.
    """
    comment = get_comment(db, comment_id)

    if not is_admin and comment.author_id != user_id:
        raise Forbidden("You can only delete your own comments")

    post_id = comment.post_id

    if comment.parent is not None:
        comment.parent.replies.remove(comment)
        db.commit()

    subtree = _subtree_ids(db, comment_id)
    for current in reversed(subtree):
        db.execute(comment_mentions.delete().where(comment_mentions.c.comment_id == current))
        db.query(Like).filter(Like.target_type == TARGET_COMMENT, Like.target_id == current).delete(
            synchronize_session=False
        )
        db.query(Comment).filter(Comment.id == current).delete(synchronize_session=False)
    db.commit()

    decrement_comments(db, post_id)
    logger.info("Comment %s deleted with %d replies", comment_id, len(subtree) - 1)


def _bump_likes(db: Session, comment_id: int, delta: int):
    db.query(Comment).filter(Comment.id == comment_id).update(
        {Comment.likes_count: Comment.likes_count + delta}, synchronize_session=False
    )
    db.commit()


def increment_likes(db: Session, comment_id: int):
    _bump_likes(db, comment_id, 1)


def decrement_likes(db: Session, comment_id: int):
    _bump_likes(db, comment_id, -1)
