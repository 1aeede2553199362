from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from blog.database import get_db
from blog.serializers import serialize_post
from blog.services.search import search_posts
from blog.api.posts import PostPage

router = APIRouter(prefix="/api/search", tags=["search"])


def _split_tags(tags):
    # Accept ?tags=a&tags=b as well as ?tags=a,b
    if not tags:
        return None
    names = [name.strip() for value in tags for name in value.split(",")]
    return [name for name in names if name] or None


@router.get("", response_model=PostPage)
def search(
    query: Optional[str] = None,
    author: Optional[int] = None,
    tags: Optional[List[str]] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Search published posts by text, author and tags"""
    posts, pagination = search_posts(db, query, author, _split_tags(tags), page, limit)
    return {"posts": [serialize_post(p) for p in posts], "pagination": pagination}
