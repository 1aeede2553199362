from sqlalchemy.orm import Session

from blog.models.post import Post, PostTag, PUBLISHED
from blog.services.pagination import paginate
from blog.services.posts import text_filter


def search_posts(db: Session, query=None, author=None, tags=None, page: int = 1, limit: int = 10):
    """Search published posts by text, author and any of the given tags."""
    q = db.query(Post).filter(Post.status == PUBLISHED)

    if query:
        q = q.filter(text_filter(query))

    if author:
        q = q.filter(Post.author_id == author)

    if tags:
        q = q.filter(Post.tag_rows.any(PostTag.name.in_(tags)))

    return paginate(q, page, limit, (Post.published_at.desc(), Post.id.desc()))
