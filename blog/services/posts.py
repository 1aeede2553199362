import logging
import re
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from blog.exceptions import Conflict, Forbidden, NotFound
from blog.models.comment import Comment, comment_mentions
from blog.models.like import Like, TARGET_COMMENT, TARGET_POST
from blog.models.post import Post, PostTag, DRAFT, PUBLISHED
from blog.models.user import User
from blog.services.pagination import paginate

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "published_at": Post.published_at,
    "created_at": Post.created_at,
    "updated_at": Post.updated_at,
    "title": Post.title,
    "likes_count": Post.likes_count,
    "comments_count": Post.comments_count,
}

EDITABLE_FIELDS = ("title", "content", "excerpt", "status", "featured_image")


def slugify(text: str) -> str:
    """Lowercase, keep [a-z0-9-], whitespace runs become a single hyphen."""
    slug = text.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip("-")


def _slug_taken(db: Session, slug: str) -> bool:
    return db.query(Post.id).filter(Post.slug == slug).first() is not None


def _unique_slug(db: Session, base: str) -> str:
    slug = base
    suffix = 2
    while _slug_taken(db, slug):
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def text_filter(search: str):
    """Case-insensitive match on title, content, excerpt or tag name."""
    term = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{term}%"
    return or_(
        Post.title.ilike(pattern, escape="\\"),
        Post.content.ilike(pattern, escape="\\"),
        Post.excerpt.ilike(pattern, escape="\\"),
        Post.tag_rows.any(PostTag.name.ilike(pattern, escape="\\")),
    )


def create_post(db: Session, data: dict, author: User) -> Post:
    title = data["title"].strip()

    requested = data.get("slug")
    if requested:
        slug = slugify(requested) or slugify(title) or "post"
        if _slug_taken(db, slug):
            raise Conflict("A post with this slug already exists")
    else:
        slug = _unique_slug(db, slugify(title) or "post")

    status = data.get("status") or DRAFT
    post = Post(
        title=title,
        slug=slug,
        content=data["content"],
        excerpt=data.get("excerpt"),
        status=status,
        author_id=author.id,
        featured_image=data.get("featured_image"),
        likes_count=0,
        comments_count=0,
    )
    post.tags = data.get("tags") or []
    if status == PUBLISHED:
        post.published_at = datetime.now(timezone.utc)

    db.add(post)
    db.commit()
    db.refresh(post)

    logger.info("Post %s created by user %s", post.id, author.id)
    return post


def find_post(db: Session, post_id: int) -> Post:
    """Fetch a post regardless of status or raise NotFound."""
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise NotFound(f"Post with ID {post_id} not found")
    return post


def _visible(post: Post, viewer) -> bool:
    return post.status == PUBLISHED or (viewer is not None and viewer.id == post.author_id)


def get_post(db: Session, post_id: int, viewer=None) -> Post:
    post = find_post(db, post_id)
    if not _visible(post, viewer):
        raise NotFound(f"Post with ID {post_id} not found")
    return post


def get_post_by_slug(db: Session, slug: str, viewer=None) -> Post:
    post = db.query(Post).filter(Post.slug == slug).first()
    if not post or not _visible(post, viewer):
        raise NotFound(f"Post with slug {slug} not found")
    return post


def list_posts(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status=None,
    author=None,
    tag=None,
    search=None,
    sort_by: str = "published_at",
    sort_order: str = "desc",
    viewer=None,
):
    query = db.query(Post)

    if status:
        query = query.filter(Post.status == status)

    if author:
        query = query.filter(Post.author_id == author)

    # Drafts are only listed for their own author
    if viewer is None or author != viewer.id:
        query = query.filter(Post.status == PUBLISHED)

    if tag:
        query = query.filter(Post.tag_rows.any(PostTag.name == tag))

    if search:
        query = query.filter(text_filter(search))

    column = SORT_FIELDS.get(sort_by, Post.published_at)
    if sort_order == "asc":
        order_by = (column.asc(), Post.id.asc())
    else:
        order_by = (column.desc(), Post.id.desc())

    return paginate(query, page, limit, order_by)


def list_published_posts(db: Session, **query):
    query["status"] = PUBLISHED
    return list_posts(db, **query)


def list_posts_by_author(db: Session, author_id: int, **query):
    query["author"] = author_id
    return list_posts(db, **query)


def get_related_posts(db: Session, post_id: int, limit: int = 5):
    """Published posts sharing at least one tag with the given post."""
    post = find_post(db, post_id)
    if not post.tags:
        return []

    return (
        db.query(Post)
        .filter(
            Post.id != post_id,
            Post.status == PUBLISHED,
            Post.tag_rows.any(PostTag.name.in_(post.tags)),
        )
        .order_by(Post.published_at.desc(), Post.id.desc())
        .limit(limit)
        .all()
    )


def update_post(db: Session, post_id: int, changes: dict, user: User) -> Post:
    post = find_post(db, post_id)

    if post.author_id != user.id:
        raise Forbidden("You can only edit your own posts")

    for field in EDITABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(post, field, changes[field])

    if "tags" in changes and changes["tags"] is not None:
        post.tags = changes["tags"]

    # The slug is fixed once set
    if not post.slug:
        post.slug = _unique_slug(db, slugify(post.title) or "post")

    # published_at is stamped exactly once
    if post.status == PUBLISHED and post.published_at is None:
        post.published_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(post)
    return post


def remove_post(db: Session, post_id: int, user: User):
    """Delete a post with its comments and every like pointing at either."""
    post = find_post(db, post_id)

    if post.author_id != user.id:
        raise Forbidden("You can only delete your own posts")

    comment_ids = [row.id for row in db.query(Comment.id).filter(Comment.post_id == post_id)]

    db.query(Like).filter(Like.target_type == TARGET_POST, Like.target_id == post_id).delete(
        synchronize_session=False
    )
    if comment_ids:
        db.query(Like).filter(
            Like.target_type == TARGET_COMMENT, Like.target_id.in_(comment_ids)
        ).delete(synchronize_session=False)
        db.execute(comment_mentions.delete().where(comment_mentions.c.comment_id.in_(comment_ids)))
        db.query(Comment).filter(Comment.id.in_(comment_ids)).delete(synchronize_session=False)

    db.delete(post)
    db.commit()

    logger.info("Post %s deleted by user %s (%d comments removed)", post_id, user.id, len(comment_ids))


# Counter entry points, called by the comment and like services only


def _bump(db: Session, post_id: int, column, delta: int):
    db.query(Post).filter(Post.id == post_id).update(
        {column: column + delta}, synchronize_session=False
    )
    db.commit()


def increment_likes(db: Session, post_id: int):
    _bump(db, post_id, Post.likes_count, 1)


def decrement_likes(db: Session, post_id: int):
    _bump(db, post_id, Post.likes_count, -1)


def increment_comments(db: Session, post_id: int):
    _bump(db, post_id, Post.comments_count, 1)


def decrement_comments(db: Session, post_id: int):
    _bump(db, post_id, Post.comments_count, -1)
