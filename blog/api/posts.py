from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from blog.database import get_db
from blog.dependencies import get_current_user, get_optional_user
from blog.models.user import User
from blog.serializers import serialize_post
from blog.services import posts as post_service
from blog.api.users import AuthorSummary, MessageResponse

router = APIRouter(prefix="/api/posts", tags=["posts"])

PostStatus = Literal["draft", "published"]
PostSortField = Literal["published_at", "created_at", "updated_at", "title", "likes_count", "comments_count"]


class PostCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    content: str = Field(..., min_length=10)
    excerpt: Optional[str] = Field(None, max_length=500)
    status: Optional[PostStatus] = None
    tags: List[str] = []
    featured_image: Optional[str] = None


class PostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    content: Optional[str] = Field(None, min_length=10)
    excerpt: Optional[str] = Field(None, max_length=500)
    status: Optional[PostStatus] = None
    tags: Optional[List[str]] = None
    featured_image: Optional[str] = None


class PostResponse(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    status: PostStatus
    author: Optional[AuthorSummary] = None
    tags: List[str] = []
    featured_image: Optional[str] = None
    likes_count: int
    comments_count: int
    published_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class PostPage(BaseModel):
    posts: List[PostResponse]
    pagination: Pagination


def post_query(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[PostStatus] = None,
    author: Optional[int] = None,
    tag: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: PostSortField = "published_at",
    sort_order: Literal["asc", "desc"] = "desc",
):
    return {
        "page": page,
        "limit": limit,
        "status": status,
        "author": author,
        "tag": tag,
        "search": search,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }


def _page(result):
    posts, pagination = result
    return {"posts": [serialize_post(p) for p in posts], "pagination": pagination}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
def create_post(
    post: PostCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new post; the caller becomes its author"""
    created = post_service.create_post(db, post.model_dump(), user)
    return serialize_post(created)


@router.get("", response_model=PostPage)
def get_posts(
    query: dict = Depends(post_query),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Get posts with pagination and filters"""
    return _page(post_service.list_posts(db, viewer=viewer, **query))


@router.get("/published", response_model=PostPage)
def get_published_posts(query: dict = Depends(post_query), db: Session = Depends(get_db)):
    return _page(post_service.list_published_posts(db, **query))


@router.get("/slug/{slug}", response_model=PostResponse)
def get_post_by_slug(
    slug: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Get a single post by slug"""
    post = post_service.get_post_by_slug(db, slug, viewer)
    return serialize_post(post, with_bio=True)


@router.get("/author/{author_id}", response_model=PostPage)
def get_posts_by_author(
    author_id: int,
    query: dict = Depends(post_query),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query.pop("author")
    return _page(post_service.list_posts_by_author(db, author_id, viewer=user, **query))


@router.get("/{post_id}", response_model=PostResponse)
def get_post(
    post_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    post = post_service.get_post(db, post_id, viewer)
    return serialize_post(post, with_bio=True)


@router.get("/{post_id}/related", response_model=List[PostResponse])
def get_related_posts(
    post_id: int,
    limit: int = Query(5, ge=1, le=20),
    db: Session = Depends(get_db),
):
    """Get published posts sharing a tag with this one"""
    return [serialize_post(p) for p in post_service.get_related_posts(db, post_id, limit)]


@router.patch("/{post_id}", response_model=PostResponse)
def update_post(
    post_id: int,
    changes: PostUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = post_service.update_post(db, post_id, changes.model_dump(exclude_unset=True), user)
    return serialize_post(updated)


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post_service.remove_post(db, post_id, user)
    return {"message": "Post deleted successfully"}
