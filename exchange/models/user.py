import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Date, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship

from .base import Base
from ..utils.clock import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)
    hashed_password = Column(String(200), nullable=False)
    date_of_birth = Column(Date, nullable=True)

    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    location = Column(String(200), nullable=True)
    bio = Column(Text, nullable=True)
    profile_picture = Column(String(1000), nullable=True)

    # Роли и модерация
    is_verified = Column(Boolean, default=False, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_moderator = Column(Boolean, default=False, nullable=False)
    is_suspended = Column(Boolean, default=False, nullable=False)

    # Блокирующие флаги при входе
    require_password_reset = Column(Boolean, default=False, nullable=False)
    require_username_change = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    password_history = relationship(
        "PasswordHistory",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="PasswordHistory.id.desc()",
    )
    preferences = relationship("UserPreferences", uselist=False, cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        name = " ".join(filter(None, [self.first_name, self.last_name]))
        return name or self.username

    def to_dict(self, private: bool = False) -> dict:
        out = {
            "id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "location": self.location,
            "bio": self.bio,
            "profile_picture": self.profile_picture,
            "is_verified": self.is_verified,
            "is_admin": self.is_admin,
            "is_moderator": self.is_moderator,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if private:
            out.update({
                "email": self.email,
                "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
                "is_suspended": self.is_suspended,
                "require_password_reset": self.require_password_reset,
                "require_username_change": self.require_username_change,
                "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            })
        return out


class PasswordHistory(Base):
    __tablename__ = "password_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    password_hash = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="password_history")

    __table_args__ = (Index("ix_password_history_user", "user_id", "id"),)


class ProfileVisibility(str, enum.Enum):
    PUBLIC = "public"
    REGISTERED = "registered"
    PRIVATE = "private"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    email_notifications = Column(Boolean, default=True, nullable=False)
    message_notifications = Column(Boolean, default=True, nullable=False)
    marketing_emails = Column(Boolean, default=False, nullable=False)
    profile_visibility = Column(Enum(ProfileVisibility), default=ProfileVisibility.PUBLIC, nullable=False)
    show_email = Column(Boolean, default=False, nullable=False)
    show_location = Column(Boolean, default=True, nullable=False)
    theme = Column(Enum(Theme), default=Theme.SYSTEM, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "email_notifications": self.email_notifications,
            "message_notifications": self.message_notifications,
            "marketing_emails": self.marketing_emails,
            "profile_visibility": self.profile_visibility.value if self.profile_visibility else None,
            "show_email": self.show_email,
            "show_location": self.show_location,
            "theme": self.theme.value if self.theme else None,
        }
