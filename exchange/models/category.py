import enum

from sqlalchemy import Column, Integer, String, Text, Enum

from .base import Base


class PostType(str, enum.Enum):
    WTS = "wts"               # продаю
    WTB = "wtb"               # куплю
    WTT = "wtt"               # меняю
    DISCUSSION = "discussion"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    type = Column(Enum(PostType), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(100), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "type": self.type.value if hasattr(self.type, "value") else self.type,
            "description": self.description,
            "icon": self.icon,
        }
