from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from blog.database import Base

ROLES = ("user", "admin", "moderator")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    username = Column(String(30), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    first_name = Column(String(50))
    last_name = Column(String(50))
    bio = Column(Text)
    avatar = Column(String(500))

    roles = Column(JSON, nullable=False, default=lambda: ["user"])
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True))
    # Hash of the single refresh token currently allowed for this user
    refresh_token_hash = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def has_role(self, *roles):
        return any(role in (self.roles or []) for role in roles)
