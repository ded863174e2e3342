from __future__ import annotations

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship

from .base import Base
from ..utils.clock import utcnow


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    price = Column(Integer, nullable=True)            # $; null = "договорная"
    location = Column(String(200), nullable=True)
    contact_info = Column(String(500), nullable=True)
    images = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, default=True, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    pinned_at = Column(DateTime, nullable=True)

    willing_to_travel = Column(Boolean, default=False, nullable=False)
    willing_to_ship = Column(Boolean, default=False, nullable=False)
    willing_to_trade = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    bumped_at = Column(DateTime, nullable=True)

    author = relationship("User")
    category = relationship("Category")
    replies = relationship(
        "Reply",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Reply.created_at",
    )

    __table_args__ = (
        Index("ix_posts_listing_order", "is_pinned", "bumped_at", "created_at"),
    )

    def to_dict(self, with_author: bool = False) -> dict:
        def _dt(x):
            return x.isoformat() if x else None

        out = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "author_id": self.author_id,
            "category_id": self.category_id,
            "price": self.price,
            "location": self.location,
            "contact_info": self.contact_info,
            "images": list(self.images or []),
            "is_active": self.is_active,
            "views": self.views,
            "is_pinned": self.is_pinned,
            "pinned_at": _dt(self.pinned_at),
            "willing_to_travel": self.willing_to_travel,
            "willing_to_ship": self.willing_to_ship,
            "willing_to_trade": self.willing_to_trade,
            "created_at": _dt(self.created_at),
            "updated_at": _dt(self.updated_at),
            "bumped_at": _dt(self.bumped_at),
        }
        if with_author:
            out["author"] = self.author.to_dict() if self.author else None
        return out


class Reply(Base):
    __tablename__ = "replies"

    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    author = relationship("User")
    post = relationship("Post", back_populates="replies")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "author_id": self.author_id,
            "post_id": self.post_id,
            "author": self.author.to_dict() if self.author else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
