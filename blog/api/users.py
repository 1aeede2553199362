from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from typing import List, Literal, Optional

from blog.database import get_db
from blog.dependencies import get_current_user, require_roles
from blog.exceptions import Forbidden
from blog.models.user import User
from blog.serializers import serialize_author, serialize_user
from blog.services import users as user_service
from blog.services.uploads import upload_image

router = APIRouter(prefix="/api/users", tags=["users"])


class AuthorSummary(BaseModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None


class PublicProfile(AuthorSummary):
    created_at: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    roles: List[str]
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_-]+$")
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = None
    roles: Optional[List[Literal["user", "admin", "moderator"]]] = Field(None, min_length=1)
    is_active: Optional[bool] = None


@router.get("", response_model=List[UserResponse])
def get_users(user: User = Depends(require_roles("admin")), db: Session = Depends(get_db)):
    return [serialize_user(u) for u in user_service.list_users(db)]


@router.get("/{user_id}", response_model=PublicProfile)
def get_user(user_id: int, db: Session = Depends(get_db)):
    """Public profile of a user"""
    user = user_service.get_user(db, user_id)
    profile = serialize_author(user)
    profile["bio"] = user.bio
    profile["created_at"] = user.created_at.isoformat() if user.created_at else None
    return profile


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    changes: UserUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = user_service.update_user(db, user_id, changes.model_dump(exclude_unset=True), user)
    return serialize_user(updated)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Deactivate an account.
    The row stays so the email and username remain reserved.
    """
    user_service.deactivate_user(db, user_id, user)
    return {"message": "User deleted successfully"}


@router.patch("/{user_id}/avatar", response_model=UserResponse)
def update_avatar(
    user_id: int,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user.id != user_id:
        raise Forbidden("You can only change your own avatar")

    uploaded = upload_image(file)
    updated = user_service.update_avatar(db, user, uploaded["url"])
    return serialize_user(updated)
