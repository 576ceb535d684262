from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Mapping

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.models.common import as_utc, utcnow
from app.models.request import (
    REQUEST_STATUSES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    TERMINAL_STATUSES,
    Request,
)
from app.models.user_type import UserType
from app.services.errors import AlreadyProcessed, DomainError, NotFound, ValidationFailed
from app.services.request_validation import SchemaFieldSpec, validate_payload
from app.services.user_types import (
    DELETED_TYPE_PLACEHOLDER,
    active_user_type_or_error,
    ordered_type_fields,
    type_name_for_display,
)

_LOG = logging.getLogger("app.requests")

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def _iso(value) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value is not None else None


def _request_uuid_or_404(raw: Any) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError):
        raise NotFound("Request not found", request_id=str(raw))


def get_request_or_404(db: Session, request_id: Any) -> Request:
    row = db.get(Request, _request_uuid_or_404(request_id))
    if row is None:
        raise NotFound("Request not found", request_id=str(request_id))
    return row


def request_row(row: Request, *, type_name: str) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "user_type_id": str(row.user_type_id),
        "type_name": type_name,
        "payload": dict(row.payload or {}),
        "status": row.status,
        "admin_notes": row.admin_notes,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
        "processed_at": _iso(row.processed_at),
    }


def submit_request(db: Session, *, user_type_id: Any, payload: Mapping[str, Any] | None) -> dict[str, Any]:
    user_type = active_user_type_or_error(db, user_type_id)
    links = ordered_type_fields(db, user_type.id)
    specs = [SchemaFieldSpec.from_link(link) for link in links]
    data = dict(payload or {})

    errors = validate_payload(specs, data)
    if errors:
        _LOG.info("request_rejected user_type_id=%s errors=%s", user_type.id, sorted(errors))
        raise ValidationFailed(errors)

    # Stored as submitted; undeclared keys are kept but never validated.
    row = Request(user_type_id=user_type.id, payload=data, status=STATUS_PENDING)
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except Exception:
        db.rollback()
        raise

    _LOG.info("request_submitted id=%s user_type_id=%s keys=%s", row.id, user_type.id, len(data))
    return {
        "request_id": str(row.id),
        "user_type_id": str(user_type.id),
        "type_name": user_type.name,
        "status": row.status,
        "created_at": _iso(row.created_at),
    }


def _notification_fields(db: Session, user_type_id: uuid.UUID) -> list[dict[str, Any]]:
    return [
        {"name": link.field.name, "label": link.field.label, "kind": link.field.kind}
        for link in ordered_type_fields(db, user_type_id)
    ]


def transition_request(
    db: Session,
    request_id: Any,
    *,
    status: str,
    notes: str | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Move a pending request to a terminal status.

    Returns the updated request row and the notification message to hand to
    the delivery queue. Only one caller can win: the update is conditional on
    the row still being pending.
    """
    target = str(status or "").strip().lower()
    if target not in TERMINAL_STATUSES:
        raise DomainError(
            "Status must be one of: " + ", ".join(TERMINAL_STATUSES),
            field="status",
        )
    request_uuid = _request_uuid_or_404(request_id)
    clean_notes = str(notes).strip() if notes is not None else None
    now = utcnow()

    try:
        result = db.execute(
            update(Request)
            .where(Request.id == request_uuid, Request.status == STATUS_PENDING)
            .values(status=target, admin_notes=clean_notes or None, processed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            current = db.get(Request, request_uuid)
            if current is None:
                raise NotFound("Request not found", request_id=str(request_id))
            raise AlreadyProcessed(current_status=current.status, processed_at=_iso(current.processed_at))
        db.commit()
    except DomainError:
        raise
    except Exception:
        db.rollback()
        raise

    row = db.get(Request, request_uuid)
    db.refresh(row)
    type_name = type_name_for_display(db, row.user_type_id)
    _LOG.info("request_transitioned id=%s status=%s type=%s", row.id, row.status, type_name)

    message = {
        "request_id": str(row.id),
        "type_name": type_name,
        "status": row.status,
        "notes": row.admin_notes,
        "payload": dict(row.payload or {}),
        "fields": _notification_fields(db, row.user_type_id),
    }
    return request_row(row, type_name=type_name), message


def _type_names(db: Session, type_ids: set[uuid.UUID]) -> dict[uuid.UUID, str]:
    if not type_ids:
        return {}
    rows = db.query(UserType.id, UserType.name).filter(UserType.id.in_(type_ids)).all()
    return {type_id: name for type_id, name in rows if str(name or "").strip()}


def request_stats(db: Session) -> dict[str, int]:
    counts = {STATUS_PENDING: 0, STATUS_APPROVED: 0, STATUS_REJECTED: 0}
    for status, count in db.query(Request.status, func.count(Request.id)).group_by(Request.status).all():
        counts[str(status)] = int(count or 0)
    return {**counts, "total": sum(counts.values())}


def list_requests(
    db: Session,
    *,
    status: str | None = None,
    user_type_id: Any = None,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> dict[str, Any]:
    query = db.query(Request)
    normalized_status = str(status or "").strip().lower()
    if normalized_status and normalized_status != "all":
        if normalized_status not in REQUEST_STATUSES:
            raise DomainError(
                "Status filter must be one of: all, " + ", ".join(REQUEST_STATUSES),
                field="status",
            )
        query = query.filter(Request.status == normalized_status)
    if user_type_id:
        try:
            type_uuid = uuid.UUID(str(user_type_id))
        except (TypeError, ValueError):
            raise DomainError("Invalid user type id", field="user_type_id")
        query = query.filter(Request.user_type_id == type_uuid)

    page = max(int(page or 1), 1)
    per_page = min(max(int(per_page or DEFAULT_PER_PAGE), 1), MAX_PER_PAGE)
    total = int(query.count())
    rows = (
        query.order_by(Request.created_at.desc(), Request.id.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    names = _type_names(db, {row.user_type_id for row in rows})
    return {
        "requests": [
            request_row(row, type_name=names.get(row.user_type_id, DELETED_TYPE_PLACEHOLDER)) for row in rows
        ],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "pages": int(math.ceil(total / per_page)) if total else 0,
        },
        "stats": request_stats(db),
    }


def get_request(db: Session, request_id: Any) -> dict[str, Any]:
    row = get_request_or_404(db, request_id)
    type_name = type_name_for_display(db, row.user_type_id)
    payload = dict(row.payload or {})

    field_details = []
    seen: set[str] = set()
    for link in ordered_type_fields(db, row.user_type_id):
        field = link.field
        seen.add(field.name)
        field_details.append(
            {
                "name": field.name,
                "label": field.label,
                "kind": field.kind,
                "required": bool(link.required),
                "sort_order": int(link.sort_order),
                "value": payload.get(field.name),
            }
        )
    # Undeclared keys and fields removed from the schema keep their raw name.
    extra_values = {key: value for key, value in payload.items() if key not in seen}
    return {
        "request": request_row(row, type_name=type_name),
        "field_details": field_details,
        "extra_values": extra_values,
    }
