# exchange/services/posts.py
from __future__ import annotations

import datetime as dt
import enum
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, or_, update
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..models.category import Category
from ..models.post import Post, Reply
from ..models.user import User
from ..errors import NotFoundError
from ..utils.clock import utcnow
from ..utils.text import text_field, like_pattern

log = logging.getLogger(__name__)

# Порядок ленты: закреплённые сверху, затем по bumped_at (NULL в конце), затем по created_at
LISTING_ORDER = (
    Post.is_pinned.desc(),
    Post.bumped_at.desc().nulls_last(),
    Post.created_at.desc(),
    Post.id.desc(),
)

_EDITABLE_FIELDS = (
    "title", "content", "category_id", "price", "location", "contact_info",
    "images", "willing_to_travel", "willing_to_ship", "willing_to_trade",
)


def _parse_price(raw: Any) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        price = int(raw)
    except (TypeError, ValueError):
        raise ValueError("Price must be a whole number")
    if price < 0:
        raise ValueError("Price must be positive")
    return price


def _parse_images(raw: Any) -> List[str]:
    if raw in (None, ""):
        return []
    if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
        raise ValueError("Images must be a list of URLs")
    if len(raw) > settings.MAX_POST_IMAGES:
        raise ValueError(f"Maximum {settings.MAX_POST_IMAGES} images allowed")
    return raw


def _require_category(db: Session, category_id: Any) -> int:
    try:
        cid = int(category_id)
    except (TypeError, ValueError):
        raise ValueError("Category is required")
    if not db.get(Category, cid):
        raise ValueError("Category not found")
    return cid


def _apply_fields(db: Session, post: Post, payload: Dict[str, Any]) -> None:
    if "title" in payload:
        title = text_field(payload.get("title"), "Title")
        if not title:
            raise ValueError("Title is required")
        post.title = title
    if "content" in payload:
        content = text_field(payload.get("content"), "Content")
        if not content:
            raise ValueError("Content is required")
        post.content = content
    if "category_id" in payload:
        post.category_id = _require_category(db, payload.get("category_id"))
    if "price" in payload:
        post.price = _parse_price(payload.get("price"))
    for name in ("location", "contact_info"):
        if name in payload:
            setattr(post, name, text_field(payload.get(name), name.replace("_", " ").capitalize()) or None)
    if "images" in payload:
        post.images = _parse_images(payload.get("images"))
    for name in ("willing_to_travel", "willing_to_ship", "willing_to_trade"):
        if name in payload:
            setattr(post, name, bool(payload.get(name)))


# ---- Чтение ----

def get_post(db: Session, post_id: int) -> Post:
    p = db.get(Post, post_id)
    if not p:
        raise NotFoundError("Post not found")
    return p


def list_posts(db: Session, limit: int = 200, include_inactive: bool = False) -> List[Post]:
    q = select(Post).options(selectinload(Post.author))
    if not include_inactive:
        q = q.where(Post.is_active.is_(True))
    return db.execute(q.order_by(*LISTING_ORDER).limit(limit)).scalars().all()


def list_by_category(db: Session, category_id: int, limit: int = 200) -> List[Post]:
    return db.execute(
        select(Post).options(selectinload(Post.author))
        .where(Post.category_id == category_id, Post.is_active.is_(True))
        .order_by(*LISTING_ORDER).limit(limit)
    ).scalars().all()


def list_by_user(db: Session, user_id: int) -> List[Post]:
    return db.execute(
        select(Post).where(Post.author_id == user_id).order_by(*LISTING_ORDER)
    ).scalars().all()


def search_posts(db: Session, query: str, limit: int = 100) -> List[Post]:
    term = like_pattern(query or "")
    return db.execute(
        select(Post).options(selectinload(Post.author))
        .where(
            Post.is_active.is_(True),
            or_(
                func.lower(Post.title).like(term, escape="\\"),
                func.lower(Post.content).like(term, escape="\\"),
                func.lower(Post.location).like(term, escape="\\"),
            ),
        )
        .order_by(Post.bumped_at.desc().nulls_last(), Post.created_at.desc())
        .limit(limit)
    ).scalars().all()


def increment_views(db: Session, post_id: int) -> None:
    db.execute(update(Post).where(Post.id == post_id).values(views=Post.views + 1))
    db.commit()


def site_stats(db: Session, now: dt.datetime | None = None) -> Dict[str, int]:
    now = now or utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "total_members": db.execute(select(func.count(User.id))).scalar_one(),
        "active_listings": db.execute(
            select(func.count(Post.id)).where(Post.is_active.is_(True))
        ).scalar_one(),
        "posts_today": db.execute(
            select(func.count(Post.id)).where(Post.created_at >= start_of_day)
        ).scalar_one(),
    }


def category_post_counts(db: Session) -> List[Dict[str, int]]:
    rows = db.execute(
        select(Post.category_id, func.count(Post.id))
        .where(Post.is_active.is_(True))
        .group_by(Post.category_id)
    ).all()
    return [{"category_id": cid, "post_count": n} for cid, n in rows]


# ---- Запись (владелец) ----

def create_post(db: Session, author: User, payload: Dict[str, Any], now: dt.datetime | None = None) -> Post:
    now = now or utcnow()
    if not text_field(payload.get("title"), "Title"):
        raise ValueError("Title is required")
    if not text_field(payload.get("content"), "Content"):
        raise ValueError("Content is required")
    if "category_id" not in payload:
        raise ValueError("Category is required")

    p = Post(author_id=author.id, images=[], created_at=now, updated_at=now, bumped_at=now)
    _apply_fields(db, p, payload)
    db.add(p)
    db.commit()
    db.refresh(p)
    log.info("post %s created by user_id=%s", p.id, author.id)
    return p


def update_post_content(db: Session, post_id: int, editor: User, payload: Dict[str, Any]) -> Post:
    p = get_post(db, post_id)
    if p.author_id != editor.id:
        raise PermissionError("You can only edit your own posts")
    fields = {k: v for k, v in payload.items() if k in _EDITABLE_FIELDS}
    _apply_fields(db, p, fields)
    db.commit()
    db.refresh(p)
    return p


def delete_post(db: Session, post_id: int) -> None:
    p = get_post(db, post_id)
    db.delete(p)
    db.commit()
    log.info("post %s deleted", post_id)


# ---- Bump ----

class BumpRejection(str, enum.Enum):
    NOT_FOUND = "not_found"
    NOT_OWNER = "not_owner"
    COOLDOWN = "cooldown"


@dataclass
class BumpResult:
    ok: bool
    message: str
    post: Optional[Post] = None
    rejection: Optional[BumpRejection] = None
    hours_remaining: int = 0


def bump_post(db: Session, post_id: int, requester_id: int, now: dt.datetime | None = None) -> BumpResult:
    """
    Поднять объявление в ленте. Только автор, не чаще раза в BUMP_COOLDOWN_HOURS.
    Отказ возвращается результатом, а не исключением.
    """
    now = now or utcnow()
    p = db.get(Post, post_id)
    if not p:
        return BumpResult(False, "Post not found", rejection=BumpRejection.NOT_FOUND)
    if p.author_id != requester_id:
        return BumpResult(False, "You can only bump your own posts", post=p,
                          rejection=BumpRejection.NOT_OWNER)

    cooldown = dt.timedelta(hours=settings.BUMP_COOLDOWN_HOURS)
    if p.bumped_at is not None:
        elapsed = now - p.bumped_at
        if elapsed < cooldown:
            hours = math.ceil((cooldown - elapsed).total_seconds() / 3600)
            return BumpResult(
                False,
                f"You can bump this post again later: {hours} hour(s) remaining",
                post=p,
                rejection=BumpRejection.COOLDOWN,
                hours_remaining=hours,
            )

    p.bumped_at = now
    db.commit()
    db.refresh(p)
    log.info("post %s bumped by user_id=%s", p.id, requester_id)
    return BumpResult(True, "Post bumped successfully", post=p)


# ---- Модерация ----

def _set_pin(p: Post, pinned: bool, now: dt.datetime) -> None:
    p.is_pinned = pinned
    p.pinned_at = now if pinned else None


def pin_post(db: Session, post_id: int, now: dt.datetime | None = None) -> Post:
    p = get_post(db, post_id)
    _set_pin(p, True, now or utcnow())
    db.commit(); db.refresh(p)
    return p


def unpin_post(db: Session, post_id: int) -> Post:
    p = get_post(db, post_id)
    _set_pin(p, False, utcnow())
    db.commit(); db.refresh(p)
    return p


def toggle_pin(db: Session, post_id: int, now: dt.datetime | None = None) -> Post:
    p = get_post(db, post_id)
    _set_pin(p, not p.is_pinned, now or utcnow())
    db.commit(); db.refresh(p)
    log.info("post %s pinned=%s", p.id, p.is_pinned)
    return p


def set_active(db: Session, post_id: int, active: bool) -> Post:
    p = get_post(db, post_id)
    p.is_active = active
    db.commit(); db.refresh(p)
    log.info("post %s active=%s", p.id, active)
    return p


# ---- Ответы ----

def list_replies(db: Session, post_id: int) -> List[Reply]:
    get_post(db, post_id)
    return db.execute(
        select(Reply).options(selectinload(Reply.author))
        .where(Reply.post_id == post_id)
        .order_by(Reply.created_at, Reply.id)
    ).scalars().all()


def create_reply(db: Session, post_id: int, author: User, payload: Dict[str, Any]) -> Reply:
    p = get_post(db, post_id)
    if not p.is_active:
        raise ValueError("This post is no longer active")
    content = text_field(payload.get("content"), "Reply content")
    if not content:
        raise ValueError("Reply content is required")
    r = Reply(post_id=p.id, author_id=author.id, content=content)
    db.add(r)
    db.commit()
    db.refresh(r)
    return r
