# exchange/routers/profile.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user, get_gate_user, finish_gate
from ..models.user import User
from ..services import users as users_svc
from ..services import posts as posts_svc

router = APIRouter(tags=["profile"])


@router.get("/api/user/profile")
def my_profile(user: User = Depends(get_current_user)):
    return user.to_dict(private=True)


@router.put("/api/user/profile")
def update_my_profile(payload: dict, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return users_svc.update_profile(db, user, payload).to_dict(private=True)


@router.get("/api/user/preferences")
def my_preferences(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return users_svc.get_preferences(db, user).to_dict()


@router.put("/api/user/preferences")
def update_my_preferences(payload: dict, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return users_svc.update_preferences(db, user, payload).to_dict()


@router.put("/api/profile/change-username")
def change_username(
    payload: dict,
    request: Request,
    user: User = Depends(get_gate_user),
    db: Session = Depends(get_db),
):
    user = users_svc.change_username(db, user, payload.get("new_username"))
    remaining = finish_gate(request, user)
    out = {"message": "Username changed successfully", "user": user.to_dict(private=True)}
    if remaining:
        out[remaining] = True
    return out


@router.get("/api/users/{user_id}")
def public_profile(user_id: int, db: Session = Depends(get_db)):
    return users_svc.get_user(db, user_id).to_dict()


@router.get("/api/posts/user/{user_id}")
def posts_by_user(user_id: int, db: Session = Depends(get_db)):
    users_svc.get_user(db, user_id)
    return [p.to_dict() for p in posts_svc.list_by_user(db, user_id)]
