from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from blog.database import Base

DRAFT = "draft"
PUBLISHED = "published"
POST_STATUSES = (DRAFT, PUBLISHED)


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(String(500))
    status = Column(String(16), nullable=False, default=DRAFT, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    featured_image = Column(String(500))

    # Denormalized, moved only through the post service counter helpers
    likes_count = Column(Integer, nullable=False, default=0)
    comments_count = Column(Integer, nullable=False, default=0)

    published_at = Column(DateTime(timezone=True), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    author = relationship("User")
    tag_rows = relationship(
        "PostTag",
        cascade="all, delete-orphan",
        order_by="PostTag.id",
        lazy="selectin",
    )

    @property
    def tags(self):
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, names):
        existing = {row.name: row for row in self.tag_rows}
        rows = []
        for name in names or []:
            name = name.strip()
            if not name or any(row.name == name for row in rows):
                continue
            # Keep existing rows so the (post_id, name) constraint never sees a duplicate insert
            rows.append(existing.get(name) or PostTag(name=name))
        self.tag_rows = rows


class PostTag(Base):
    __tablename__ = "post_tags"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False, index=True)

    __table_args__ = (UniqueConstraint('post_id', 'name', name='uq_post_tag'),)
