from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Index

from .base import Base
from ..utils.clock import utcnow


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True)
    participant1_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    participant2_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    last_message_at = Column(DateTime, default=utcnow, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def other_participant(self, user_id: int) -> int:
        return self.participant2_id if self.participant1_id == user_id else self.participant1_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "participant1_id": self.participant1_id,
            "participant2_id": self.participant2_id,
            "post_id": self.post_id,
            "last_message_at": self.last_message_at.isoformat() if self.last_message_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (Index("ix_messages_conversation_read", "conversation_id", "is_read"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "sender_id": self.sender_id,
            "content": self.content,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
