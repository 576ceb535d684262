from __future__ import annotations

from fastapi import APIRouter, Depends, Request as FastapiRequest
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.public import PublicRequestCreate, PublicRequestCreated
from app.services.rate_limit import enforce_public_submit_limit
from app.services.request_lifecycle import submit_request

router = APIRouter()


def _client_ip(http_request: FastapiRequest) -> str | None:
    forwarded = str(http_request.headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if http_request.client and http_request.client.host:
        return str(http_request.client.host)
    return None


@router.post("", status_code=201, response_model=PublicRequestCreated)
def create_request(payload: PublicRequestCreate, http_request: FastapiRequest, db: Session = Depends(get_db)):
    enforce_public_submit_limit(_client_ip(http_request))
    return submit_request(db, user_type_id=payload.user_type_id, payload=payload.data)
