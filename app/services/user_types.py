from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.common import as_utc
from app.models.field_definition import FieldDefinition
from app.models.request import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED, Request
from app.models.user_type import STATE_ACTIVE, STATE_DELETED, STATE_INACTIVE, UserType
from app.models.user_type_field import UserTypeField
from app.services.errors import (
    ConfirmationRequired,
    DuplicateField,
    DuplicateName,
    DuplicateOrder,
    EmptyFieldSet,
    LastActiveType,
    TypeInactive,
    TypeNotFound,
    UnknownField,
)

_LOG = logging.getLogger("app.user_types")

DELETED_TYPE_PLACEHOLDER = "Deleted Type"


def _iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value is not None else None


def _uuid_or_none(raw: Any) -> uuid.UUID | None:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        return None


def get_user_type_or_404(db: Session, user_type_id: Any, *, include_deleted: bool = False) -> UserType:
    type_uuid = _uuid_or_none(user_type_id)
    row = db.get(UserType, type_uuid) if type_uuid is not None else None
    if row is None or (row.is_deleted and not include_deleted):
        raise TypeNotFound("User type not found", user_type_id=str(user_type_id))
    return row


def ordered_type_fields(db: Session, user_type_id: uuid.UUID) -> list[UserTypeField]:
    return (
        db.query(UserTypeField)
        .filter(UserTypeField.user_type_id == user_type_id)
        .order_by(UserTypeField.sort_order.asc())
        .all()
    )


def type_field_row(link: UserTypeField) -> dict[str, Any]:
    field = link.field
    return {
        "field_id": str(field.id),
        "name": field.name,
        "label": field.label,
        "kind": field.kind,
        "options": list(field.options) if field.options is not None else None,
        "required": bool(link.required),
        "sort_order": int(link.sort_order),
    }


def user_type_row(row: UserType) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "name": row.name,
        "state": row.state,
        "is_active": row.is_active,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    }


def type_name_for_display(db: Session, user_type_id: Any) -> str:
    type_uuid = _uuid_or_none(user_type_id)
    row = db.get(UserType, type_uuid) if type_uuid is not None else None
    if row is None or not str(row.name or "").strip():
        return DELETED_TYPE_PLACEHOLDER
    return row.name


def _normalize_name(raw: str | None) -> tuple[str, str]:
    name = str(raw or "").strip()
    return name, name.lower()


def _ensure_name_free(db: Session, name_key: str, *, exclude_id: uuid.UUID | None = None) -> None:
    # Deleted and inactive types keep their names reserved.
    query = db.query(UserType.id).filter(UserType.name_key == name_key)
    if exclude_id is not None:
        query = query.filter(UserType.id != exclude_id)
    if query.first() is not None:
        raise DuplicateName("User type name already exists", field="name")


def _validated_field_set(db: Session, fields: Iterable[dict[str, Any]] | None) -> list[tuple[uuid.UUID, bool, int]]:
    items = list(fields or [])
    if not items:
        raise EmptyFieldSet("At least one field must be selected", field="fields")

    orders = [int(item["sort_order"]) for item in items]
    if len(orders) != len(set(orders)):
        duplicates = sorted({order for order in orders if orders.count(order) > 1})
        raise DuplicateOrder("Field orders must be unique positive numbers", orders=duplicates)
    if any(order <= 0 for order in orders):
        raise DuplicateOrder("Field orders must be unique positive numbers", orders=[o for o in orders if o <= 0])

    parsed: list[tuple[uuid.UUID, bool, int]] = []
    unknown: list[str] = []
    for item in items:
        field_uuid = _uuid_or_none(item.get("field_id"))
        if field_uuid is None:
            unknown.append(str(item.get("field_id")))
            continue
        parsed.append((field_uuid, bool(item.get("required", False)), int(item["sort_order"])))

    field_ids = [field_id for field_id, _, _ in parsed]
    if len(field_ids) != len(set(field_ids)):
        raise DuplicateField("A field can only be selected once per user type", field="fields")

    if field_ids:
        existing = {
            field_id
            for (field_id,) in db.query(FieldDefinition.id).filter(FieldDefinition.id.in_(field_ids)).all()
        }
        unknown.extend(str(field_id) for field_id in field_ids if field_id not in existing)
    if unknown:
        raise UnknownField("One or more selected fields do not exist", field_ids=unknown)
    return parsed


def _replace_field_set(db: Session, user_type_id: uuid.UUID, field_set: list[tuple[uuid.UUID, bool, int]]) -> None:
    db.query(UserTypeField).filter(UserTypeField.user_type_id == user_type_id).delete(synchronize_session=False)
    # Deletes must reach the database before inserts reuse the same sort_order values.
    db.flush()
    for field_id, required, sort_order in field_set:
        db.add(
            UserTypeField(
                user_type_id=user_type_id,
                field_id=field_id,
                required=required,
                sort_order=sort_order,
            )
        )


def _other_active_count(db: Session, user_type_id: uuid.UUID) -> int:
    return int(
        db.query(func.count(UserType.id))
        .filter(UserType.state == STATE_ACTIVE, UserType.id != user_type_id)
        .scalar()
        or 0
    )


def change_user_type_state(db: Session, row: UserType, target_state: str) -> None:
    """Move a user type to ``target_state``.

    Every activation, deactivation and deletion goes through here so the
    "at least one active type" rule is checked in exactly one place.
    """
    if target_state not in {STATE_ACTIVE, STATE_INACTIVE, STATE_DELETED}:
        raise ValueError(f"Unknown user type state: {target_state}")
    if row.state == STATE_ACTIVE and target_state != STATE_ACTIVE:
        if _other_active_count(db, row.id) == 0:
            raise LastActiveType(
                "System requires at least one active user type",
                reason="system_requires_minimum_one_type",
                current_active_types=1,
            )
    row.state = target_state


def create_user_type(db: Session, *, name: str, fields: Iterable[dict[str, Any]]) -> dict[str, Any]:
    clean_name, name_key = _normalize_name(name)
    _ensure_name_free(db, name_key)
    field_set = _validated_field_set(db, fields)

    row = UserType(name=clean_name, name_key=name_key, state=STATE_ACTIVE)
    try:
        db.add(row)
        db.flush()
        _replace_field_set(db, row.id, field_set)
        db.commit()
        db.refresh(row)
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateName("User type name already exists", field="name") from exc
    except Exception:
        db.rollback()
        raise

    _LOG.info(
        "user_type_created id=%s name=%s fields=%s required=%s",
        row.id,
        row.name,
        len(field_set),
        sum(1 for _, required, _ in field_set if required),
    )
    return {**user_type_row(row), "fields_count": len(field_set)}


def update_user_type(
    db: Session,
    user_type_id: Any,
    *,
    name: str,
    fields: Iterable[dict[str, Any]],
) -> dict[str, Any]:
    row = get_user_type_or_404(db, user_type_id)
    clean_name, name_key = _normalize_name(name)
    _ensure_name_free(db, name_key, exclude_id=row.id)
    field_set = _validated_field_set(db, fields)

    old_name = row.name
    old_field_ids = {link.field_id for link in ordered_type_fields(db, row.id)}
    new_field_ids = {field_id for field_id, _, _ in field_set}

    try:
        row.name = clean_name
        row.name_key = name_key
        db.add(row)
        _replace_field_set(db, row.id, field_set)
        db.commit()
        db.refresh(row)
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateName("User type name already exists", field="name") from exc
    except Exception:
        db.rollback()
        raise

    changes = {
        "name_changed": old_name != clean_name,
        "fields_added": len(new_field_ids - old_field_ids),
        "fields_removed": len(old_field_ids - new_field_ids),
    }
    _LOG.info("user_type_updated id=%s old_name=%s new_name=%s changes=%s", row.id, old_name, row.name, changes)
    return {**user_type_row(row), "fields_count": len(field_set), "changes": changes}


def set_user_type_active(db: Session, user_type_id: Any, *, active: bool) -> dict[str, Any]:
    row = get_user_type_or_404(db, user_type_id)
    old_state = row.state
    try:
        change_user_type_state(db, row, STATE_ACTIVE if active else STATE_INACTIVE)
        db.add(row)
        db.commit()
        db.refresh(row)
    except Exception:
        db.rollback()
        raise
    _LOG.info("user_type_state_changed id=%s name=%s from=%s to=%s", row.id, row.name, old_state, row.state)
    return user_type_row(row)


def _request_count(db: Session, user_type_id: uuid.UUID, *criteria) -> int:
    return int(
        db.query(func.count(Request.id)).filter(Request.user_type_id == user_type_id, *criteria).scalar() or 0
    )


def delete_user_type(db: Session, user_type_id: Any, *, confirmed: bool) -> dict[str, Any]:
    row = get_user_type_or_404(db, user_type_id)
    if not confirmed:
        raise ConfirmationRequired(
            "Deletion must be confirmed",
            hint="Please confirm the deletion by setting confirmed: true",
        )

    affected_requests = _request_count(db, row.id)
    try:
        change_user_type_state(db, row, STATE_DELETED)
        db.query(UserTypeField).filter(UserTypeField.user_type_id == row.id).delete(synchronize_session=False)
        db.add(row)
        db.commit()
        db.refresh(row)
    except Exception:
        db.rollback()
        raise

    _LOG.info(
        "user_type_deleted id=%s name=%s affected_requests=%s deletion_type=soft_delete",
        row.id,
        row.name,
        affected_requests,
    )
    return {
        "user_type_id": str(row.id),
        "name": row.name,
        "deletion_type": "soft_delete",
        "affected_requests": affected_requests,
        "deleted_at": _iso(row.updated_at),
    }


def get_deletion_impact(db: Session, user_type_id: Any) -> dict[str, Any]:
    row = get_user_type_or_404(db, user_type_id, include_deleted=True)
    since = datetime.now(timezone.utc) - timedelta(hours=24)
    total = _request_count(db, row.id)
    pending = _request_count(db, row.id, Request.status == STATUS_PENDING)
    recent = _request_count(db, row.id, Request.created_at >= since)
    last_request_at = db.query(func.max(Request.created_at)).filter(Request.user_type_id == row.id).scalar()
    is_last_active = row.is_active and _other_active_count(db, row.id) == 0
    return {
        "user_type": user_type_row(row),
        "usage_statistics": {
            "total_requests": total,
            "active_requests": pending,
            "recent_requests_24h": recent,
            "last_request_date": _iso(last_request_at),
        },
        "safety_check": {
            "is_last_user_type": is_last_active,
            "has_recent_activity": recent > 0,
        },
    }


def _status_breakdown(db: Session, user_type_id: uuid.UUID) -> dict[str, int]:
    counts = {STATUS_PENDING: 0, STATUS_APPROVED: 0, STATUS_REJECTED: 0}
    rows = (
        db.query(Request.status, func.count(Request.id))
        .filter(Request.user_type_id == user_type_id)
        .group_by(Request.status)
        .all()
    )
    for status, count in rows:
        counts[str(status)] = int(count or 0)
    return counts


def list_user_types(db: Session, *, status: str = "all", search: str | None = None) -> dict[str, Any]:
    query = db.query(UserType)
    normalized_status = str(status or "all").strip().lower()
    if normalized_status == "active":
        query = query.filter(UserType.state == STATE_ACTIVE)
    elif normalized_status == "inactive":
        query = query.filter(UserType.state == STATE_INACTIVE)
    elif normalized_status == "deleted":
        query = query.filter(UserType.state == STATE_DELETED)
    else:
        query = query.filter(UserType.state != STATE_DELETED)
    term = str(search or "").strip().lower()
    if term:
        query = query.filter(UserType.name_key.like(f"%{term}%"))

    rows = query.order_by(UserType.name_key.asc()).all()
    out = []
    for row in rows:
        links = ordered_type_fields(db, row.id)
        breakdown = _status_breakdown(db, row.id)
        last_used = db.query(func.max(Request.created_at)).filter(Request.user_type_id == row.id).scalar()
        out.append(
            {
                **user_type_row(row),
                "fields_count": len(links),
                "fields": [type_field_row(link) for link in links],
                "usage_stats": {
                    "total_requests": sum(breakdown.values()),
                    "active_requests": breakdown[STATUS_PENDING],
                    "completed_requests": breakdown[STATUS_APPROVED],
                    "rejected_requests": breakdown[STATUS_REJECTED],
                    "last_used": _iso(last_used),
                },
            }
        )

    active_count = int(db.query(func.count(UserType.id)).filter(UserType.state == STATE_ACTIVE).scalar() or 0)
    inactive_count = int(db.query(func.count(UserType.id)).filter(UserType.state == STATE_INACTIVE).scalar() or 0)
    return {
        "user_types": out,
        "total": len(out),
        "active_count": active_count,
        "inactive_count": inactive_count,
    }


def get_user_type(db: Session, user_type_id: Any) -> dict[str, Any]:
    row = get_user_type_or_404(db, user_type_id, include_deleted=True)
    now = datetime.now(timezone.utc)
    breakdown = _status_breakdown(db, row.id)
    recent_rows = (
        db.query(Request)
        .filter(Request.user_type_id == row.id)
        .order_by(Request.created_at.desc())
        .limit(5)
        .all()
    )
    return {
        "user_type": user_type_row(row),
        "fields": [type_field_row(link) for link in ordered_type_fields(db, row.id)],
        "usage_analytics": {
            "total_requests": sum(breakdown.values()),
            "status_breakdown": breakdown,
            "recent_activity": [
                {"request_id": str(r.id), "status": r.status, "created_at": _iso(r.created_at)}
                for r in recent_rows
            ],
            "usage_trend": {
                "this_week": _request_count(db, row.id, Request.created_at >= now - timedelta(days=7)),
                "this_month": _request_count(db, row.id, Request.created_at >= now - timedelta(days=30)),
            },
        },
    }


def list_active_user_types(db: Session) -> list[dict[str, Any]]:
    rows = db.query(UserType).filter(UserType.state == STATE_ACTIVE).order_by(UserType.name_key.asc()).all()
    return [{"id": str(row.id), "name": row.name} for row in rows]


def active_user_type_or_error(db: Session, user_type_id: Any) -> UserType:
    row = get_user_type_or_404(db, user_type_id)
    if not row.is_active:
        raise TypeInactive(
            "This user type is currently not accepting requests",
            user_type_id=str(row.id),
        )
    return row


def get_public_type_fields(db: Session, user_type_id: Any) -> dict[str, Any]:
    row = active_user_type_or_error(db, user_type_id)
    fields = [type_field_row(link) for link in ordered_type_fields(db, row.id)]
    return {
        "user_type": {"id": str(row.id), "name": row.name},
        "fields": fields,
        "count": len(fields),
    }
