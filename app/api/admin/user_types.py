from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import require_role
from app.db.session import get_db
from app.schemas.admin import UserTypeDelete, UserTypeStatus, UserTypeUpsert
from app.services import user_types as service

router = APIRouter()


def _field_set(payload: UserTypeUpsert) -> list[dict]:
    return [item.model_dump() for item in payload.fields]


@router.get("")
def list_user_types(
    status: str = Query(default="all"),
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    return service.list_user_types(db, status=status, search=search)


@router.get("/{user_type_id}")
def get_user_type(user_type_id: str, db: Session = Depends(get_db), admin=Depends(require_role("ADMIN"))):
    return service.get_user_type(db, user_type_id)


@router.get("/{user_type_id}/delete-info")
def get_delete_info(user_type_id: str, db: Session = Depends(get_db), admin=Depends(require_role("ADMIN"))):
    return service.get_deletion_impact(db, user_type_id)


@router.post("", status_code=201)
def create_user_type(payload: UserTypeUpsert, db: Session = Depends(get_db), admin=Depends(require_role("ADMIN"))):
    return service.create_user_type(db, name=payload.name, fields=_field_set(payload))


@router.put("/{user_type_id}")
def update_user_type(
    user_type_id: str,
    payload: UserTypeUpsert,
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    return service.update_user_type(db, user_type_id, name=payload.name, fields=_field_set(payload))


@router.put("/{user_type_id}/status")
def set_user_type_status(
    user_type_id: str,
    payload: UserTypeStatus,
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    return service.set_user_type_active(db, user_type_id, active=payload.is_active)


@router.delete("/{user_type_id}")
def delete_user_type(
    user_type_id: str,
    payload: Optional[UserTypeDelete] = Body(default=None),
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    confirmed = bool(payload and payload.confirmed)
    return service.delete_user_type(db, user_type_id, confirmed=confirmed)
