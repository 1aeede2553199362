from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Union

from blog.database import get_db
from blog.dependencies import get_current_user, get_optional_user, require_roles
from blog.models.user import User
from blog.services import comments as comment_service
from blog.api.posts import Pagination
from blog.api.users import AuthorSummary, MessageResponse

router = APIRouter(prefix="/api/comments", tags=["comments"])

CommentStatus = Literal["pending", "approved", "rejected", "spam"]


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    post_id: int
    parent_comment_id: Optional[int] = None
    mentions: List[int] = []


class CommentUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, max_length=2000)
    status: Optional[CommentStatus] = None


class ModerateRequest(BaseModel):
    status: CommentStatus


class CommentResponse(BaseModel):
    id: int
    content: str
    author: Optional[AuthorSummary] = None
    post_id: int
    parent_comment_id: Optional[int] = None
    # Expanded replies, or reply ids past the expansion depth
    replies: List[Union[int, "CommentResponse"]] = []
    status: CommentStatus
    likes_count: int
    is_edited: bool
    edited_at: Optional[str] = None
    mentions: List[int] = []
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


CommentResponse.model_rebuild()


class CommentPage(BaseModel):
    comments: List[CommentResponse]
    pagination: Pagination


def comment_query(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    post: Optional[int] = None,
    author: Optional[int] = None,
    parent_comment: Optional[int] = None,
    status: CommentStatus = "approved",
    sort_by: Literal["created_at", "likes_count"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
):
    return {
        "page": page,
        "limit": limit,
        "post": post,
        "author": author,
        "parent_comment": parent_comment,
        "status": status,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CommentResponse)
def create_comment(
    comment: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a comment on a post, or a reply when parent_comment_id is set"""
    created = comment_service.create_comment(
        db,
        content=comment.content,
        post_id=comment.post_id,
        author=user,
        parent_comment_id=comment.parent_comment_id,
        mentions=comment.mentions,
    )
    return comment_service.comment_view(created)


@router.get("", response_model=CommentPage)
def get_comments(query: dict = Depends(comment_query), db: Session = Depends(get_db)):
    comments, pagination = comment_service.list_comments(db, **query)
    return {"comments": comments, "pagination": pagination}


@router.get("/post/{post_id}", response_model=CommentPage)
def get_post_comments(
    post_id: int,
    query: dict = Depends(comment_query),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Get the top-level comments of a post with their approved replies"""
    query.pop("post")
    comments, pagination = comment_service.list_post_comments(db, post_id, viewer=viewer, **query)
    return {"comments": comments, "pagination": pagination}


@router.get("/{comment_id}", response_model=CommentResponse)
def get_comment(comment_id: int, db: Session = Depends(get_db)):
    return comment_service.comment_view(comment_service.get_comment(db, comment_id))


@router.get("/{comment_id}/thread", response_model=CommentResponse)
def get_comment_thread(comment_id: int, db: Session = Depends(get_db)):
    """Get a comment with all nested replies"""
    return comment_service.get_thread(db, comment_id)


@router.patch("/{comment_id}", response_model=CommentResponse)
def update_comment(
    comment_id: int,
    changes: CommentUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = comment_service.update_comment(
        db,
        comment_id,
        changes.model_dump(exclude_unset=True),
        user.id,
        is_admin=user.has_role("admin"),
    )
    return comment_service.comment_view(updated)


@router.patch("/{comment_id}/moderate", response_model=CommentResponse)
def moderate_comment(
    comment_id: int,
    data: ModerateRequest,
    user: User = Depends(require_roles("admin", "moderator")),
    db: Session = Depends(get_db),
):
    """Change a comment's status - admin or moderator only"""
    moderated = comment_service.moderate_comment(db, comment_id, data.status)
    return comment_service.comment_view(moderated)


@router.delete("/{comment_id}", response_model=MessageResponse)
def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a comment and its replies - author or admin"""
    comment_service.remove_comment(db, comment_id, user.id, is_admin=user.has_role("admin"))
    return {"message": "Comment deleted successfully"}
