# exchange/services/messaging.py
from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy import select, func, or_, and_, update, delete
from sqlalchemy.orm import Session

from ..models.messaging import Conversation, Message
from ..models.post import Post
from ..models.user import User
from ..errors import NotFoundError
from ..utils.clock import utcnow
from ..utils.text import text_field


def _involves(user_id: int):
    return or_(Conversation.participant1_id == user_id, Conversation.participant2_id == user_id)


def get_conversation(db: Session, conversation_id: int, user_id: int) -> Conversation:
    c = db.execute(
        select(Conversation).where(Conversation.id == conversation_id, _involves(user_id))
    ).scalar_one_or_none()
    if not c:
        raise NotFoundError("Conversation not found")
    return c


def list_conversations(db: Session, user: User) -> List[Dict[str, Any]]:
    convs = db.execute(
        select(Conversation).where(_involves(user.id)).order_by(Conversation.last_message_at.desc())
    ).scalars().all()

    out = []
    for c in convs:
        other_id = c.other_participant(user.id)
        other = db.get(User, other_id)
        last = db.execute(
            select(Message).where(Message.conversation_id == c.id)
            .order_by(Message.created_at.desc(), Message.id.desc()).limit(1)
        ).scalar_one_or_none()
        unread = db.execute(
            select(func.count(Message.id)).where(
                Message.conversation_id == c.id,
                Message.is_read.is_(False),
                Message.sender_id == other_id,
            )
        ).scalar_one()
        item = c.to_dict()
        item["other_user"] = other.to_dict() if other else None
        item["last_message"] = last.to_dict() if last else None
        item["unread_count"] = unread
        out.append(item)
    return out


def start_conversation(db: Session, user: User, payload: Dict[str, Any]) -> Conversation:
    """Одна переписка на пару участников: повторный вызов вернёт существующую."""
    try:
        other_id = int(payload.get("participant_id"))
    except (TypeError, ValueError):
        raise ValueError("Recipient is required")
    if other_id == user.id:
        raise ValueError("You cannot message yourself")
    other = db.get(User, other_id)
    if not other:
        raise NotFoundError("User not found")

    post_id = payload.get("post_id")
    if post_id is not None and not db.get(Post, post_id):
        raise NotFoundError("Post not found")

    existing = db.execute(
        select(Conversation).where(or_(
            and_(Conversation.participant1_id == user.id, Conversation.participant2_id == other_id),
            and_(Conversation.participant1_id == other_id, Conversation.participant2_id == user.id),
        ))
    ).scalar_one_or_none()
    if existing:
        return existing

    now = utcnow()
    c = Conversation(
        participant1_id=user.id,
        participant2_id=other_id,
        post_id=post_id,
        created_at=now,
        last_message_at=now,
    )
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def list_messages(db: Session, conversation_id: int, user: User) -> List[Message]:
    get_conversation(db, conversation_id, user.id)
    return db.execute(
        select(Message).where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at, Message.id)
    ).scalars().all()


def send_message(db: Session, conversation_id: int, sender: User, payload: Dict[str, Any]) -> Message:
    c = get_conversation(db, conversation_id, sender.id)
    content = text_field(payload.get("content"), "Message content")
    if not content:
        raise ValueError("Message content is required")

    now = utcnow()
    m = Message(conversation_id=c.id, sender_id=sender.id, content=content, created_at=now)
    db.add(m)
    c.last_message_at = now
    db.commit()
    db.refresh(m)
    return m


def mark_read(db: Session, conversation_id: int, user: User) -> int:
    get_conversation(db, conversation_id, user.id)
    res = db.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.is_read.is_(False),
            Message.sender_id != user.id,
        )
        .values(is_read=True)
    )
    db.commit()
    return res.rowcount or 0


def delete_conversations(db: Session, conversation_ids: List[int], user: User) -> int:
    ids = sorted({int(x) for x in conversation_ids or []})
    if not ids:
        raise ValueError("No conversations selected")
    owned = db.execute(
        select(Conversation.id).where(Conversation.id.in_(ids), _involves(user.id))
    ).scalars().all()
    if len(owned) != len(ids):
        raise PermissionError("Cannot delete conversations that don't belong to user")

    db.execute(delete(Message).where(Message.conversation_id.in_(ids)))
    db.execute(delete(Conversation).where(Conversation.id.in_(ids)))
    db.commit()
    return len(ids)


def unread_count(db: Session, user: User) -> int:
    conv_ids = select(Conversation.id).where(_involves(user.id))
    return db.execute(
        select(func.count(Message.id)).where(
            Message.conversation_id.in_(conv_ids),
            Message.is_read.is_(False),
            Message.sender_id != user.id,
        )
    ).scalar_one()
