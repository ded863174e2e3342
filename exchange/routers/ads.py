# exchange/routers/ads.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..admin.security import Capability, require
from ..models.user import User
from ..services import ads as ads_svc

router = APIRouter(tags=["ads"])


# ---------- Публичное ----------
@router.get("/api/advertisements")
def list_ads(position: str | None = Query(None), db: Session = Depends(get_db)):
    return [a.to_dict() for a in ads_svc.list_active(db, position)]


@router.post("/api/advertisements/{ad_id}/impression")
def ad_impression(ad_id: int, db: Session = Depends(get_db)):
    ads_svc.record_impression(db, ad_id)
    return {"ok": True}


@router.post("/api/advertisements/{ad_id}/click")
def ad_click(ad_id: int, db: Session = Depends(get_db)):
    return {"ok": True, "target_url": ads_svc.record_click(db, ad_id)}


@router.get("/api/featured-listings")
def featured(db: Session = Depends(get_db)):
    return [f.to_dict() for f in ads_svc.list_featured(db)]


# ---------- Админ ----------
@router.get("/api/admin/advertisements")
def admin_list_ads(_: User = Depends(require(Capability.MANAGE_ADS)), db: Session = Depends(get_db)):
    return [a.to_dict() for a in ads_svc.list_all(db)]


@router.post("/api/advertisements", status_code=status.HTTP_201_CREATED)
def create_ad(payload: dict, _: User = Depends(require(Capability.MANAGE_ADS)), db: Session = Depends(get_db)):
    return ads_svc.create_ad(db, payload).to_dict()


@router.put("/api/advertisements/{ad_id}")
def update_ad(
    ad_id: int,
    payload: dict,
    _: User = Depends(require(Capability.MANAGE_ADS)),
    db: Session = Depends(get_db),
):
    return ads_svc.update_ad(db, ad_id, payload).to_dict()


@router.delete("/api/advertisements/{ad_id}")
def delete_ad(ad_id: int, _: User = Depends(require(Capability.MANAGE_ADS)), db: Session = Depends(get_db)):
    ads_svc.delete_ad(db, ad_id)
    return {"message": "Advertisement deleted", "id": ad_id}


@router.post("/api/featured-listings", status_code=status.HTTP_201_CREATED)
def create_featured(payload: dict, _: User = Depends(require(Capability.MANAGE_ADS)), db: Session = Depends(get_db)):
    return ads_svc.create_featured(db, payload).to_dict()
