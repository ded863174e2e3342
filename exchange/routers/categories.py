from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..services import categories as categories_svc
from ..services import posts as posts_svc

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
def list_categories(db: Session = Depends(get_db)):
    return [c.to_dict() for c in categories_svc.list_categories(db)]


# до /{slug}, иначе "post-counts" уйдёт в slug
@router.get("/post-counts")
def post_counts(db: Session = Depends(get_db)):
    return posts_svc.category_post_counts(db)


@router.get("/{slug}")
def get_category(slug: str, db: Session = Depends(get_db)):
    return categories_svc.get_by_slug(db, slug).to_dict()
