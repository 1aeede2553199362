from sqlalchemy import Column, Integer, Text, String, DateTime, ForeignKey, Boolean, Table
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, backref
from blog.database import Base

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"
SPAM = "spam"
COMMENT_STATUSES = (PENDING, APPROVED, REJECTED, SPAM)

comment_mentions = Table(
    "comment_mentions",
    Base.metadata,
    Column("comment_id", Integer, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    parent_comment_id = Column(Integer, ForeignKey("comments.id"), nullable=True, index=True)
    status = Column(String(16), nullable=False, default=APPROVED, index=True)
    likes_count = Column(Integer, nullable=False, default=0)
    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    author = relationship("User")
    post = relationship("Post")
    replies = relationship(
        "Comment",
        order_by="Comment.id",
        backref=backref("parent", remote_side=[id]),
        passive_deletes="all",
    )
    mentions = relationship("User", secondary=comment_mentions)
