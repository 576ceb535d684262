from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import require_role
from app.db.session import get_db
from app.schemas.admin import RequestStatusChange
from app.services.request_lifecycle import get_request, list_requests, transition_request
from app.workers.tasks.notifications import publish_status_notification

router = APIRouter()


@router.get("")
def list_requests_endpoint(
    status: Optional[str] = Query(default=None),
    user_type_id: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    return list_requests(db, status=status, user_type_id=user_type_id, page=page, per_page=per_page)


@router.get("/{request_id}")
def get_request_endpoint(request_id: str, db: Session = Depends(get_db), admin=Depends(require_role("ADMIN"))):
    return get_request(db, request_id)


@router.put("/{request_id}/status")
def change_request_status(
    request_id: str,
    payload: RequestStatusChange,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin=Depends(require_role("ADMIN")),
):
    row, message = transition_request(db, request_id, status=payload.status, notes=payload.admin_notes)
    background_tasks.add_task(publish_status_notification, message)
    return {"request": row, "notification_queued": True}
