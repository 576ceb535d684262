from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import require_role
from app.db.session import get_db
from app.schemas.admin import FieldUpsert
from app.services import field_catalog

router = APIRouter()


@router.get("")
def list_fields(
    search: Optional[str] = Query(default=None),
    kind: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    return field_catalog.list_fields(db, search=search, kind=kind)


@router.get("/{field_id}")
def get_field(field_id: str, db: Session = Depends(get_db), admin=Depends(require_role("ADMIN"))):
    return field_catalog.get_field(db, field_id)


@router.post("", status_code=201)
def create_field(payload: FieldUpsert, db: Session = Depends(get_db), admin=Depends(require_role("ADMIN"))):
    return field_catalog.create_field(
        db,
        name=payload.name,
        label=payload.label,
        kind=payload.kind,
        options=payload.options,
    )


@router.put("/{field_id}")
def update_field(
    field_id: str,
    payload: FieldUpsert,
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    return field_catalog.update_field(
        db,
        field_id,
        name=payload.name,
        label=payload.label,
        kind=payload.kind,
        options=payload.options,
    )


@router.delete("/{field_id}")
def delete_field(
    field_id: str,
    force: bool = Query(default=False),
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    return field_catalog.delete_field(db, field_id, force=force)
