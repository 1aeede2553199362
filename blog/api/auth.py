import re

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional

from blog.database import get_db
from blog.dependencies import get_current_user
from blog.models.user import User
from blog.serializers import serialize_user
from blog.services import auth as auth_service
from blog.services.users import create_user
from blog.api.users import MessageResponse, UserResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])

PASSWORD_RULES = (
    (r"[a-z]", "a lowercase letter"),
    (r"[A-Z]", "an uppercase letter"),
    (r"\d", "a digit"),
    (r"[@$!%*?&]", "a special character (@$!%*?&)"),
)


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_-]+$")
    password: str = Field(..., min_length=8, max_length=72)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)

    @field_validator("password")
    @classmethod
    def strong_password(cls, value):
        # bcrypt reads at most 72 bytes, not characters
        if len(value.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        missing = [name for pattern, name in PASSWORD_RULES if not re.search(pattern, value)]
        if missing:
            raise ValueError("Password must contain " + ", ".join(missing))
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str


class SessionResponse(AccessTokenResponse):
    refresh_token: str
    user: UserResponse


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=SessionResponse)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and log it in straight away"""
    user = create_user(
        db,
        email=data.email,
        username=data.username,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    return auth_service.issue_session(db, user)


@router.post("/login", response_model=SessionResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    return auth_service.login(db, data.email, data.password)


@router.post("/refresh", response_model=AccessTokenResponse)
def refresh(data: RefreshRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new access token"""
    return auth_service.refresh(db, data.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return auth_service.end_session(db, user.id)


@router.get("/profile", response_model=UserResponse)
def get_profile(user: User = Depends(get_current_user)):
    return serialize_user(user)
