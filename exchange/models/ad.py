import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from .base import Base
from ..utils.clock import utcnow


class AdPosition(str, enum.Enum):
    HEADER = "header"
    SIDEBAR = "sidebar"
    FOOTER = "footer"
    IN_FEED = "in-feed"


class AdSize(str, enum.Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Advertisement(Base):
    __tablename__ = "advertisements"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    image_url = Column(String(1000), nullable=True)
    target_url = Column(String(1000), nullable=False)
    sponsor = Column(String(200), nullable=False)
    sponsor_email = Column(String(254), nullable=False)
    position = Column(Enum(AdPosition), nullable=False, index=True)
    size = Column(Enum(AdSize), default=AdSize.MEDIUM, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    impressions = Column(Integer, default=0, nullable=False)
    clicks = Column(Integer, default=0, nullable=False)

    start_date = Column(DateTime, default=utcnow, nullable=False)
    end_date = Column(DateTime, nullable=True)
    monthly_rate = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        def _dt(x):
            return x.isoformat() if x else None

        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "target_url": self.target_url,
            "sponsor": self.sponsor,
            "sponsor_email": self.sponsor_email,
            "position": self.position.value,
            "size": self.size.value if self.size else None,
            "is_active": self.is_active,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "start_date": _dt(self.start_date),
            "end_date": _dt(self.end_date),
            "monthly_rate": self.monthly_rate,
        }


class FeaturedListing(Base):
    __tablename__ = "featured_listings"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    sponsor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    featured_until = Column(DateTime, nullable=False)
    daily_rate = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    post = relationship("Post")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "post_id": self.post_id,
            "sponsor_id": self.sponsor_id,
            "featured_until": self.featured_until.isoformat(),
            "daily_rate": self.daily_rate,
            "is_active": self.is_active,
            "post": self.post.to_dict() if self.post else None,
        }
