"""Convert ORM rows into JSON-serializable dicts."""


def _iso(value):
    return value.isoformat() if value else None


def serialize_author(user):
    """Shallow author summary used when populating posts, comments and likes"""
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "avatar": user.avatar,
    }


def serialize_user(user):
    """Full user view, never exposes password or refresh token hashes"""
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "bio": user.bio,
        "avatar": user.avatar,
        "is_active": user.is_active,
        "roles": list(user.roles or []),
        "last_login": _iso(user.last_login),
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


def serialize_post(post, with_bio=False):
    author = serialize_author(post.author)
    if author is not None and with_bio:
        author["bio"] = post.author.bio
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "excerpt": post.excerpt,
        "status": post.status,
        "author": author,
        "tags": post.tags,
        "featured_image": post.featured_image,
        "likes_count": post.likes_count,
        "comments_count": post.comments_count,
        "published_at": _iso(post.published_at),
        "created_at": _iso(post.created_at),
        "updated_at": _iso(post.updated_at),
    }


def serialize_comment(comment, replies=None):
    """
    Serialize a comment.

    `replies` is the already-serialized list to embed; when omitted the
    replies are returned as a list of ids.
    """
    if replies is None:
        replies = [reply.id for reply in comment.replies]
    return {
        "id": comment.id,
        "content": comment.content,
        "author": serialize_author(comment.author),
        "post_id": comment.post_id,
        "parent_comment_id": comment.parent_comment_id,
        "replies": replies,
        "status": comment.status,
        "likes_count": comment.likes_count,
        "is_edited": comment.is_edited,
        "edited_at": _iso(comment.edited_at),
        "mentions": [user.id for user in comment.mentions],
        "created_at": _iso(comment.created_at),
        "updated_at": _iso(comment.updated_at),
    }


def serialize_like(like, with_user=False):
    data = {
        "id": like.id,
        "user_id": like.user_id,
        "target_id": like.target_id,
        "target_type": like.target_type,
        "created_at": _iso(like.created_at),
    }
    if with_user:
        data["user"] = serialize_author(like.user)
    return data


def pagination_meta(total, page, limit):
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit if limit else 0,
    }
