from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.deps import require_role
from app.services.email_service import email_provider_health
from app.services.whatsapp_service import whatsapp_provider_health

router = APIRouter()


@router.get("/email-provider-health")
def get_email_provider_health(admin: dict = Depends(require_role("ADMIN"))):
    _ = admin
    return email_provider_health()


@router.get("/whatsapp-provider-health")
def get_whatsapp_provider_health(admin: dict = Depends(require_role("ADMIN"))):
    _ = admin
    return whatsapp_provider_health()
