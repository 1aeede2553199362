from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from blog.database import Base

TARGET_POST = "post"
TARGET_COMMENT = "comment"
TARGET_TYPES = (TARGET_POST, TARGET_COMMENT)


class Like(Base):
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Polymorphic reference, resolved by target_type
    target_id = Column(Integer, nullable=False)
    target_type = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    # Ensure each user can only like a target once
    __table_args__ = (
        UniqueConstraint('user_id', 'target_id', 'target_type', name='uq_like_user_target'),
        Index('ix_likes_target', 'target_id', 'target_type'),
    )
