# exchange/routers/posts.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..admin.security import Capability, has_capability
from ..models.user import User
from ..services import posts as posts_svc
from ..services import users as users_svc
from ..services.posts import BumpRejection

router = APIRouter(tags=["posts"])

_BUMP_STATUS = {
    BumpRejection.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    BumpRejection.NOT_OWNER: status.HTTP_403_FORBIDDEN,
    BumpRejection.COOLDOWN: status.HTTP_429_TOO_MANY_REQUESTS,
}


# ---------- Лента ----------
@router.get("/api/posts")
def api_posts(db: Session = Depends(get_db), limit: int = Query(200, ge=1, le=500)):
    return [p.to_dict(with_author=True) for p in posts_svc.list_posts(db, limit=limit)]


@router.get("/api/posts/category/{category_id}")
def api_posts_by_category(category_id: int, db: Session = Depends(get_db)):
    return [p.to_dict(with_author=True) for p in posts_svc.list_by_category(db, category_id)]


@router.get("/api/search")
def api_search(q: str = Query("", max_length=200), db: Session = Depends(get_db)):
    q = q.strip()
    if not q:
        return {"posts": [], "users": []}
    return {
        "posts": [p.to_dict(with_author=True) for p in posts_svc.search_posts(db, q)],
        "users": [u.to_dict() for u in users_svc.search_users(db, q)],
    }


@router.get("/api/stats")
def api_stats(db: Session = Depends(get_db)):
    return posts_svc.site_stats(db)


# ---------- Объявление ----------
@router.post("/api/posts", status_code=status.HTTP_201_CREATED)
def api_create_post(payload: dict, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return posts_svc.create_post(db, user, payload).to_dict()


@router.get("/api/posts/{post_id}")
def api_get_post(post_id: int, db: Session = Depends(get_db)):
    p = posts_svc.get_post(db, post_id)
    posts_svc.increment_views(db, post_id)
    db.refresh(p)
    out = p.to_dict(with_author=True)
    out["category"] = p.category.to_dict() if p.category else None
    return out


@router.put("/api/posts/{post_id}")
def api_update_post(
    post_id: int,
    payload: dict,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return posts_svc.update_post_content(db, post_id, user, payload).to_dict()


@router.delete("/api/posts/{post_id}")
def api_delete_post(post_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    p = posts_svc.get_post(db, post_id)
    if not has_capability(user, Capability.DELETE_POST, owner_id=p.author_id):
        raise HTTPException(status_code=403, detail="You can only delete your own posts")
    posts_svc.delete_post(db, post_id)
    return {"message": "Post deleted", "id": post_id}


@router.post("/api/posts/{post_id}/bump")
def api_bump_post(post_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    res = posts_svc.bump_post(db, post_id, user.id)
    if not res.ok:
        raise HTTPException(status_code=_BUMP_STATUS[res.rejection], detail=res.message)
    return {"message": res.message, "post": res.post.to_dict()}


# ---------- Ответы ----------
@router.get("/api/posts/{post_id}/replies")
def api_replies(post_id: int, db: Session = Depends(get_db)):
    return [r.to_dict() for r in posts_svc.list_replies(db, post_id)]


@router.post("/api/posts/{post_id}/replies", status_code=status.HTTP_201_CREATED)
def api_create_reply(
    post_id: int,
    payload: dict,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return posts_svc.create_reply(db, post_id, user, payload).to_dict()
