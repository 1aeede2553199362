from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Dict, List, Literal, Optional

from blog.database import get_db
from blog.dependencies import get_current_user
from blog.models.user import User
from blog.serializers import serialize_like
from blog.services import likes as like_service
from blog.api.users import AuthorSummary

router = APIRouter(prefix="/api/likes", tags=["likes"])

TargetType = Literal["post", "comment"]


class ToggleLikeRequest(BaseModel):
    target_id: int
    target_type: TargetType


class ToggleLikeResponse(BaseModel):
    liked: bool
    likes_count: int


class LikeResponse(BaseModel):
    id: int
    user_id: int
    target_id: int
    target_type: TargetType
    created_at: Optional[str] = None
    user: Optional[AuthorSummary] = None


class LikesCountResponse(BaseModel):
    target_id: int
    target_type: TargetType
    likes_count: int


class LikedResponse(BaseModel):
    target_id: int
    target_type: TargetType
    liked: bool


class LikedBatchResponse(BaseModel):
    liked: Dict[int, bool]


@router.post("/toggle", response_model=ToggleLikeResponse)
def toggle_like(
    request: ToggleLikeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Toggle like status for a post or comment"""
    return like_service.toggle_like(db, request.target_id, request.target_type, user)


@router.get("/user", response_model=List[LikeResponse])
def get_user_likes(
    target_type: Optional[TargetType] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get all likes by the current user"""
    return [serialize_like(like) for like in like_service.get_user_likes(db, user.id, target_type)]


@router.get("/target/{target_id}", response_model=List[LikeResponse])
def get_target_likes(
    target_id: int,
    target_type: TargetType = Query(...),
    db: Session = Depends(get_db),
):
    """Get all users who liked a target"""
    likes = like_service.get_target_likes(db, target_id, target_type)
    return [serialize_like(like, with_user=True) for like in likes]


@router.get("/count/{target_id}", response_model=LikesCountResponse)
def get_likes_count(
    target_id: int,
    target_type: TargetType = Query(...),
    db: Session = Depends(get_db),
):
    return {
        "target_id": target_id,
        "target_type": target_type,
        "likes_count": like_service.get_likes_count(db, target_id, target_type),
    }


@router.get("/check", response_model=LikedBatchResponse)
def check_multiple_liked(
    target_ids: List[int] = Query(...),
    target_type: TargetType = Query(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Check which of several targets the current user liked"""
    return {"liked": like_service.check_multiple_user_liked(db, user.id, target_ids, target_type)}


@router.get("/check/{target_id}", response_model=LikedResponse)
def check_user_liked(
    target_id: int,
    target_type: TargetType = Query(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Check if the current user liked a target"""
    return {
        "target_id": target_id,
        "target_type": target_type,
        "liked": like_service.check_user_liked(db, user.id, target_id, target_type),
    }
