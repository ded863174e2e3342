from __future__ import annotations

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models.category import Category, PostType

log = logging.getLogger(__name__)

_GOODS = [
    # (slug-суффикс, название, что-то про товар, иконка)
    ("handguns", "Handguns", "handguns", "fas fa-handgun"),
    ("long-guns", "Long Guns", "rifles and shotguns", "fas fa-gun"),
    ("antique", "Antique Firearms", "antique firearms", "fas fa-history"),
    ("ammo", "Ammunition", "ammunition", "fas fa-circle"),
    ("parts", "Parts & Accessories", "parts and accessories", "fas fa-cog"),
]

_DESCRIPTIONS = {
    PostType.WTS: "{} for sale",
    PostType.WTB: "Looking for {}",
    PostType.WTT: "Want to trade {}",
}

_DISCUSSION = [
    ("general", "General Discussion", "General discussions", "fas fa-comments"),
    ("ca-laws", "CA Gun Laws", "California gun law discussions", "fas fa-gavel"),
    ("reviews", "Reviews & Recommendations", "Product reviews and recommendations", "fas fa-star"),
    ("training", "Training & Safety", "Training and safety discussions", "fas fa-shield-alt"),
    ("off-topic", "Off Topic", "Off topic discussions", "fas fa-chat"),
]


def default_categories() -> List[Category]:
    out = []
    for kind, template in _DESCRIPTIONS.items():
        for suffix, name, what, icon in _GOODS:
            desc = template.format(what)
            out.append(Category(
                name=name, slug=f"{kind.value}-{suffix}", type=kind,
                description=desc[0].upper() + desc[1:], icon=icon,
            ))
    for slug, name, desc, icon in _DISCUSSION:
        out.append(Category(name=name, slug=slug, type=PostType.DISCUSSION, description=desc, icon=icon))
    return out


def seed_categories(db: Session) -> int:
    """Создаёт недостающие категории по slug. Возвращает число добавленных."""
    existing = set(db.execute(select(Category.slug)).scalars().all())
    added = 0
    for c in default_categories():
        if c.slug not in existing:
            db.add(c)
            added += 1
    db.commit()
    if added:
        log.info("seeded %s categories", added)
    return added


def list_categories(db: Session) -> List[Category]:
    return db.execute(select(Category).order_by(Category.id)).scalars().all()


def get_by_slug(db: Session, slug: str) -> Category:
    c = db.execute(select(Category).where(Category.slug == slug)).scalar_one_or_none()
    if not c:
        raise NotFoundError("Category not found")
    return c
