# exchange/services/ads.py
from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List

from sqlalchemy import select, update, or_
from sqlalchemy.orm import Session, selectinload

from ..models.ad import Advertisement, AdPosition, AdSize, FeaturedListing
from ..models.post import Post
from ..models.user import User
from ..errors import NotFoundError
from ..utils.clock import utcnow
from ..utils.text import text_field

log = logging.getLogger(__name__)

_REQUIRED = ("title", "description", "target_url", "sponsor", "sponsor_email", "position")


def _parse_dt(raw: Any, label: str) -> dt.datetime | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, dt.datetime):
        return raw
    try:
        return dt.datetime.fromisoformat(str(raw)).replace(tzinfo=None)
    except ValueError:
        raise ValueError(f"Invalid {label}")


def _parse_int(raw: Any, label: str) -> int | None:
    if raw in (None, ""):
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a whole number")
    if value < 0:
        raise ValueError(f"{label} must be positive")
    return value


def _apply(ad: Advertisement, payload: Dict[str, Any]) -> None:
    for name in ("title", "description", "target_url", "sponsor", "sponsor_email"):
        if name in payload:
            label = name.replace("_", " ").capitalize()
            value = text_field(payload.get(name), label)
            if not value:
                raise ValueError(f"{label} is required")
            setattr(ad, name, value)
    if "image_url" in payload:
        ad.image_url = text_field(payload.get("image_url"), "Image url") or None
    try:
        if "position" in payload:
            ad.position = AdPosition(payload["position"])
        if "size" in payload:
            ad.size = AdSize(payload["size"] or AdSize.MEDIUM.value)
    except ValueError:
        raise ValueError("Invalid ad position or size")
    if "is_active" in payload:
        ad.is_active = bool(payload["is_active"])
    if "start_date" in payload:
        ad.start_date = _parse_dt(payload["start_date"], "start date") or utcnow()
    if "end_date" in payload:
        ad.end_date = _parse_dt(payload["end_date"], "end date")
    if "monthly_rate" in payload:
        ad.monthly_rate = _parse_int(payload["monthly_rate"], "Monthly rate")


def list_active(db: Session, position: str | None = None, now: dt.datetime | None = None) -> List[Advertisement]:
    """Активные объявления в окне [start_date, end_date)."""
    now = now or utcnow()
    q = select(Advertisement).where(
        Advertisement.is_active.is_(True),
        Advertisement.start_date <= now,
        or_(Advertisement.end_date.is_(None), Advertisement.end_date > now),
    )
    if position:
        try:
            q = q.where(Advertisement.position == AdPosition(position))
        except ValueError:
            raise ValueError("Invalid ad position")
    return db.execute(q.order_by(Advertisement.id)).scalars().all()


def list_all(db: Session) -> List[Advertisement]:
    return db.execute(select(Advertisement).order_by(Advertisement.id.desc())).scalars().all()


def get_ad(db: Session, ad_id: int) -> Advertisement:
    ad = db.get(Advertisement, ad_id)
    if not ad:
        raise NotFoundError("Advertisement not found")
    return ad


def create_ad(db: Session, payload: Dict[str, Any]) -> Advertisement:
    missing = [k for k in _REQUIRED if not payload.get(k)]
    if missing:
        raise ValueError(f"{missing[0].replace('_', ' ').capitalize()} is required")
    ad = Advertisement(size=AdSize.MEDIUM, start_date=utcnow())
    _apply(ad, payload)
    db.add(ad)
    db.commit()
    db.refresh(ad)
    log.info("advertisement %s created for sponsor %s", ad.id, ad.sponsor)
    return ad


def update_ad(db: Session, ad_id: int, payload: Dict[str, Any]) -> Advertisement:
    ad = get_ad(db, ad_id)
    _apply(ad, payload)
    db.commit()
    db.refresh(ad)
    return ad


def delete_ad(db: Session, ad_id: int) -> None:
    db.delete(get_ad(db, ad_id))
    db.commit()


def record_impression(db: Session, ad_id: int) -> None:
    get_ad(db, ad_id)
    db.execute(update(Advertisement).where(Advertisement.id == ad_id)
               .values(impressions=Advertisement.impressions + 1))
    db.commit()


def record_click(db: Session, ad_id: int) -> str:
    ad = get_ad(db, ad_id)
    db.execute(update(Advertisement).where(Advertisement.id == ad_id)
               .values(clicks=Advertisement.clicks + 1))
    db.commit()
    return ad.target_url


# ---- Featured ----

def create_featured(db: Session, payload: Dict[str, Any]) -> FeaturedListing:
    try:
        post_id = int(payload.get("post_id"))
        sponsor_id = int(payload.get("sponsor_id"))
    except (TypeError, ValueError):
        raise ValueError("Post and sponsor are required")
    if not db.get(Post, post_id):
        raise NotFoundError("Post not found")
    if not db.get(User, sponsor_id):
        raise NotFoundError("User not found")
    until = _parse_dt(payload.get("featured_until"), "featured until date")
    if until is None:
        raise ValueError("Featured until date is required")
    rate = _parse_int(payload.get("daily_rate"), "Daily rate")
    if rate is None:
        raise ValueError("Daily rate is required")

    f = FeaturedListing(post_id=post_id, sponsor_id=sponsor_id, featured_until=until, daily_rate=rate)
    db.add(f)
    db.commit()
    db.refresh(f)
    return f


def list_featured(db: Session, active_only: bool = True, now: dt.datetime | None = None) -> List[FeaturedListing]:
    q = select(FeaturedListing).options(selectinload(FeaturedListing.post)).where(
        FeaturedListing.is_active.is_(True)
    )
    if active_only:
        q = q.where(FeaturedListing.featured_until > (now or utcnow()))
    return db.execute(q.order_by(FeaturedListing.featured_until)).scalars().all()
