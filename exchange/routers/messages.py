# exchange/routers/messages.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..models.user import User
from ..services import messaging

router = APIRouter(tags=["messages"])


@router.get("/api/conversations")
def list_conversations(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return messaging.list_conversations(db, user)


@router.post("/api/conversations", status_code=status.HTTP_201_CREATED)
def start_conversation(payload: dict, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return messaging.start_conversation(db, user, payload).to_dict()


@router.post("/api/conversations/delete")
def delete_conversations(payload: dict, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    deleted = messaging.delete_conversations(db, payload.get("conversation_ids") or [], user)
    return {"message": "Conversations deleted", "deleted": deleted}


@router.get("/api/conversations/{conversation_id}/messages")
def list_messages(conversation_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [m.to_dict() for m in messaging.list_messages(db, conversation_id, user)]


@router.post("/api/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
def send_message(
    conversation_id: int,
    payload: dict,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return messaging.send_message(db, conversation_id, user, payload).to_dict()


@router.post("/api/conversations/{conversation_id}/mark-read")
def mark_read(conversation_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"marked": messaging.mark_read(db, conversation_id, user)}


@router.get("/api/messages/unread-count")
def unread_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"count": messaging.unread_count(db, user)}
