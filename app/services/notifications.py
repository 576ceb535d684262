from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from app.services.contact_extraction import extract_contact_info
from app.services.email_service import EmailDeliveryError, send_status_email
from app.services.whatsapp_service import WhatsAppDeliveryError, build_status_message, send_whatsapp

_LOG = logging.getLogger("app.notifications")


def _deliver_email(*, email: str, request_id: str, type_name: str, status: str, notes: str | None) -> dict[str, Any]:
    try:
        result = send_status_email(
            email=email,
            request_id=request_id,
            type_name=type_name,
            status=status,
            notes=notes,
        )
    except EmailDeliveryError as exc:
        _LOG.error("status_email_failed request_id=%s error=%s", request_id, exc)
        return {"attempted": True, "sent": False, "error": str(exc)}
    _LOG.info("status_email_sent request_id=%s provider=%s", request_id, result.get("provider"))
    return {"attempted": True, "sent": bool(result.get("sent")), "provider": result.get("provider")}


def _deliver_whatsapp(*, phone: str, request_id: str, type_name: str, status: str, notes: str | None) -> dict[str, Any]:
    message = build_status_message(request_id=request_id, type_name=type_name, status=status, notes=notes)
    try:
        result = send_whatsapp(phone, message)
    except WhatsAppDeliveryError as exc:
        _LOG.error("status_whatsapp_failed request_id=%s error=%s", request_id, exc)
        return {"attempted": True, "sent": False, "error": str(exc)}
    _LOG.info("status_whatsapp_sent request_id=%s provider=%s", request_id, result.get("provider"))
    return {"attempted": True, "sent": bool(result.get("sent")), "provider": result.get("provider")}


def notify_request_status_change(
    *,
    request_id: str,
    type_name: str,
    status: str,
    notes: str | None,
    payload: Mapping[str, Any] | None,
    fields: Iterable[Mapping[str, Any]] | None = None,
) -> dict[str, Any]:
    """Tell the submitter about a decision on their request.

    Channels are independent: a failing e-mail never prevents the WhatsApp
    message and vice versa. Nothing here raises on delivery problems.
    """
    contact = extract_contact_info(payload, fields)
    summary: dict[str, Any] = {
        "request_id": request_id,
        "status": status,
        "email": {"attempted": False, "sent": False},
        "whatsapp": {"attempted": False, "sent": False},
    }

    if contact["email"]:
        summary["email"] = _deliver_email(
            email=contact["email"],
            request_id=request_id,
            type_name=type_name,
            status=status,
            notes=notes,
        )
    if contact["phone"]:
        summary["whatsapp"] = _deliver_whatsapp(
            phone=contact["phone"],
            request_id=request_id,
            type_name=type_name,
            status=status,
            notes=notes,
        )
    if not contact["email"] and not contact["phone"]:
        _LOG.warning("status_notification_skipped request_id=%s reason=no_contact_info", request_id)
    return summary
