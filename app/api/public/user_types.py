from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.user_types import get_public_type_fields, list_active_user_types

router = APIRouter()


@router.get("")
def list_user_types(db: Session = Depends(get_db)):
    rows = list_active_user_types(db)
    return {"user_types": rows, "count": len(rows)}


@router.get("/{user_type_id}/fields")
def get_user_type_fields(user_type_id: str, db: Session = Depends(get_db)):
    return get_public_type_fields(db, user_type_id)
