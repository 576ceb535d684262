from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.field_definition import FIELD_KINDS, FieldDefinition
from app.models.user_type import UserType
from app.models.user_type_field import UserTypeField
from app.services.errors import DuplicateName, InUse, InvalidKind, InvalidOptions, NotFound

_LOG = logging.getLogger("app.field_catalog")

KIND_ALIASES = {
    "tel": "phone",
    "textarea": "multiline-text",
    "multiline_text": "multiline-text",
    "select": "dropdown",
}


def normalize_kind(raw: str | None) -> str:
    value = str(raw or "").strip().lower()
    value = KIND_ALIASES.get(value, value)
    if value not in FIELD_KINDS:
        raise InvalidKind(
            f'Unknown field kind "{raw}". Must be one of: ' + ", ".join(FIELD_KINDS),
            allowed=list(FIELD_KINDS),
        )
    return value


def _normalize_options(kind: str, options: list[str] | None) -> list[str] | None:
    if kind != "dropdown":
        return None
    cleaned = [str(item).strip() for item in (options or []) if str(item or "").strip()]
    if not cleaned:
        raise InvalidOptions("Dropdown fields require at least one option")
    return cleaned


def field_uuid_or_404(raw: Any) -> uuid.UUID:
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        raise NotFound("Field not found", field_id=str(raw))


def get_field_or_404(db: Session, field_id: Any) -> FieldDefinition:
    row = db.get(FieldDefinition, field_uuid_or_404(field_id))
    if row is None:
        raise NotFound("Field not found", field_id=str(field_id))
    return row


def field_row(row: FieldDefinition) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "name": row.name,
        "label": row.label,
        "kind": row.kind,
        "options": list(row.options) if row.options is not None else None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def field_usage(db: Session, field_id: uuid.UUID) -> list[dict[str, Any]]:
    rows = (
        db.query(UserTypeField, UserType)
        .join(UserType, UserType.id == UserTypeField.user_type_id)
        .filter(UserTypeField.field_id == field_id)
        .order_by(UserType.name.asc())
        .all()
    )
    return [
        {
            "user_type_id": str(user_type.id),
            "type_name": user_type.name,
            "is_active": user_type.is_active,
            "required": bool(link.required),
            "sort_order": int(link.sort_order),
        }
        for link, user_type in rows
    ]


def _ensure_name_free(db: Session, name: str, *, exclude_id: uuid.UUID | None = None) -> None:
    query = db.query(FieldDefinition.id).filter(FieldDefinition.name == name)
    if exclude_id is not None:
        query = query.filter(FieldDefinition.id != exclude_id)
    if query.first() is not None:
        raise DuplicateName(f'Field name "{name}" already exists', field="name")


def list_fields(db: Session, *, search: str | None = None, kind: str | None = None) -> dict[str, Any]:
    query = db.query(FieldDefinition)
    term = str(search or "").strip()
    if term:
        pattern = f"%{term.lower()}%"
        query = query.filter(
            func.lower(FieldDefinition.name).like(pattern) | func.lower(FieldDefinition.label).like(pattern)
        )
    if kind and kind != "all":
        query = query.filter(FieldDefinition.kind == normalize_kind(kind))
    rows = query.order_by(FieldDefinition.name.asc()).all()

    out = []
    for row in rows:
        item = field_row(row)
        usage = field_usage(db, row.id)
        item["usage"] = {
            "total_user_types": len(usage),
            "active_user_types": sum(1 for u in usage if u["is_active"]),
            "user_types": usage,
        }
        out.append(item)

    breakdown = {
        str(field_kind): int(count)
        for field_kind, count in db.query(FieldDefinition.kind, func.count(FieldDefinition.id))
        .group_by(FieldDefinition.kind)
        .all()
    }
    return {"fields": out, "total": len(out), "kind_breakdown": breakdown}


def get_field(db: Session, field_id: Any) -> dict[str, Any]:
    row = get_field_or_404(db, field_id)
    usage = field_usage(db, row.id)
    return {
        "field": field_row(row),
        "usage": {
            "total_user_types": len(usage),
            "active_user_types": sum(1 for u in usage if u["is_active"]),
            "inactive_user_types": sum(1 for u in usage if not u["is_active"]),
            "required_in": sum(1 for u in usage if u["required"]),
            "optional_in": sum(1 for u in usage if not u["required"]),
            "user_types": usage,
        },
    }


def create_field(
    db: Session,
    *,
    name: str,
    label: str,
    kind: str,
    options: list[str] | None = None,
) -> dict[str, Any]:
    normalized_kind = normalize_kind(kind)
    normalized_options = _normalize_options(normalized_kind, options)
    clean_name = str(name or "").strip()
    _ensure_name_free(db, clean_name)

    row = FieldDefinition(
        name=clean_name,
        label=str(label or "").strip(),
        kind=normalized_kind,
        options=normalized_options,
    )
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateName(f'Field name "{clean_name}" already exists', field="name") from exc
    _LOG.info("field_created id=%s name=%s kind=%s", row.id, row.name, row.kind)
    return field_row(row)


def update_field(
    db: Session,
    field_id: Any,
    *,
    name: str,
    label: str,
    kind: str,
    options: list[str] | None = None,
) -> dict[str, Any]:
    row = get_field_or_404(db, field_id)
    normalized_kind = normalize_kind(kind)
    normalized_options = _normalize_options(normalized_kind, options)
    clean_name = str(name or "").strip()
    _ensure_name_free(db, clean_name, exclude_id=row.id)

    if clean_name != row.name:
        used_by = sorted({u["type_name"] for u in field_usage(db, row.id)})
        if used_by:
            # Stored payloads are keyed by field name.
            raise InUse(
                f'Field "{row.name}" is used by user types and cannot be renamed',
                used_by=used_by,
            )

    row.name = clean_name
    row.label = str(label or "").strip()
    row.kind = normalized_kind
    row.options = normalized_options
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateName(f'Field name "{clean_name}" already exists', field="name") from exc
    _LOG.info("field_updated id=%s name=%s kind=%s", row.id, row.name, row.kind)
    return field_row(row)


def _link_count(db: Session, user_type_id: str) -> int:
    return int(
        db.query(func.count(UserTypeField.field_id))
        .filter(UserTypeField.user_type_id == uuid.UUID(user_type_id))
        .scalar()
        or 0
    )


def delete_field(db: Session, field_id: Any, *, force: bool = False) -> dict[str, Any]:
    row = get_field_or_404(db, field_id)
    used_by = sorted({u["type_name"] for u in field_usage(db, row.id)})
    if used_by and not force:
        raise InUse(
            f'Field "{row.name}" is used by {len(used_by)} user type(s)',
            used_by=used_by,
        )

    # A user type must keep at least one field, even on a forced delete.
    would_be_empty = sorted(
        {u["type_name"] for u in field_usage(db, row.id) if _link_count(db, u["user_type_id"]) <= 1}
    )
    if would_be_empty:
        raise InUse(
            f'Field "{row.name}" is the only field of {len(would_be_empty)} user type(s)',
            used_by=used_by,
            would_be_empty=would_be_empty,
        )

    deleted_id = str(row.id)
    deleted_name = row.name
    removed_links = 0
    try:
        removed_links = (
            db.query(UserTypeField)
            .filter(UserTypeField.field_id == row.id)
            .delete(synchronize_session=False)
        )
        db.delete(row)
        db.commit()
    except Exception:
        db.rollback()
        raise
    _LOG.info(
        "field_deleted id=%s name=%s force=%s removed_links=%s",
        deleted_id,
        deleted_name,
        bool(force),
        removed_links,
    )
    return {
        "id": deleted_id,
        "name": deleted_name,
        "deleted": True,
        "removed_from": used_by,
    }
