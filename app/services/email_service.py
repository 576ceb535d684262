from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Any
import httpx

from app.core.config import settings
from app.models.request import STATUS_APPROVED, STATUS_REJECTED


class EmailDeliveryError(Exception):
    pass


logger = logging.getLogger("app.email")

_STATUS_LABELS = {
    STATUS_APPROVED: "approved",
    STATUS_REJECTED: "rejected",
}


def _normalize_email(value: str | None) -> str:
    return str(value or "").strip().lower()


def status_label(status: str) -> str:
    return _STATUS_LABELS.get(str(status or "").strip().lower(), str(status or "updated"))


def _notes_block(notes: str | None) -> str:
    text = str(notes or "").strip()
    return f"\n\nNotes from the administrator:\n{text}" if text else ""


def build_status_subject(*, request_id: str, status: str) -> str:
    template = str(settings.STATUS_EMAIL_SUBJECT_TEMPLATE or "").strip() or "Request #{request_id} update"
    try:
        return template.format(request_id=request_id, status_label=status_label(status))
    except (KeyError, IndexError, ValueError):
        return f"Request #{request_id} update"


def build_status_body(*, request_id: str, type_name: str, status: str, notes: str | None) -> str:
    template = str(settings.STATUS_EMAIL_TEMPLATE or "").strip()
    values = {
        "request_id": request_id,
        "type_name": type_name,
        "status_label": status_label(status),
        "notes_block": _notes_block(notes),
    }
    if template:
        try:
            return template.format(**values)
        except (KeyError, IndexError, ValueError):
            logger.warning("status_email_template_invalid; using default body")
    return "Your request #{request_id} ({type_name}) has been {status_label}.{notes_block}".format(**values)


def _mock_send(*, email: str, subject: str, body: str) -> dict[str, Any]:
    logger.warning("[EMAIL MOCK] to=%s subject=%s body=%s", email, subject, body.replace("\n", " | "))
    return {
        "provider": "mock_email",
        "status": "accepted",
        "message": "Email provider response mocked",
        "sent": False,
        "mocked": True,
    }


def _send_smtp(*, email: str, subject: str, body: str) -> dict[str, Any]:
    host = str(settings.SMTP_HOST or "").strip()
    port = int(settings.SMTP_PORT or 0)
    username = str(settings.SMTP_USER or "").strip()
    password = str(settings.SMTP_PASSWORD or "").strip()
    sender = str(settings.SMTP_FROM or "").strip()
    use_tls = bool(settings.SMTP_USE_TLS)
    use_ssl = bool(settings.SMTP_USE_SSL)

    if not host or not port or not sender:
        raise EmailDeliveryError("SMTP_HOST/SMTP_PORT/SMTP_FROM are not configured")
    if use_tls and use_ssl:
        raise EmailDeliveryError("SMTP_USE_TLS and SMTP_USE_SSL cannot both be enabled")

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        if use_ssl:
            smtp = smtplib.SMTP_SSL(host=host, port=port, timeout=15)
        else:
            smtp = smtplib.SMTP(host=host, port=port, timeout=15)
        with smtp as client:
            client.ehlo()
            if use_tls:
                client.starttls()
                client.ehlo()
            if username:
                client.login(username, password)
            client.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(f"SMTP delivery failed: {exc}") from exc

    return {
        "provider": "smtp",
        "status": "accepted",
        "message": "Email sent",
        "sent": True,
    }


def _send_via_email_service(*, email: str, subject: str, body: str) -> dict[str, Any]:
    base_url = str(settings.EMAIL_SERVICE_URL or "").strip().rstrip("/")
    token = str(settings.INTERNAL_SERVICE_TOKEN or "").strip()
    if not base_url:
        raise EmailDeliveryError("EMAIL_SERVICE_URL is not configured")
    if not token:
        raise EmailDeliveryError("INTERNAL_SERVICE_TOKEN is not configured")
    try:
        with httpx.Client(timeout=15.0) as client:
            response = client.post(
                f"{base_url}/internal/send-email",
                headers={"X-Internal-Token": token, "Content-Type": "application/json"},
                json={"email": email, "subject": subject, "body": body},
            )
    except httpx.HTTPError as exc:
        raise EmailDeliveryError(f"email-service unreachable: {exc}") from exc
    payload: dict[str, Any] = {}
    try:
        decoded = response.json() if response.content else {}
    except ValueError:
        decoded = {}
    if isinstance(decoded, dict):
        payload = decoded
    if response.status_code >= 400:
        detail = str(payload.get("detail") or payload.get("error") or response.text or response.status_code)
        raise EmailDeliveryError(f"email-service error: {detail}")
    return {
        "provider": "email-service",
        "status": "accepted",
        "message": "Email sent via email-service",
        "sent": True,
        "response": payload,
    }


def send_status_email(
    *,
    email: str,
    request_id: str,
    type_name: str,
    status: str,
    notes: str | None = None,
) -> dict[str, Any]:
    normalized_email = _normalize_email(email)
    if not normalized_email:
        raise EmailDeliveryError("Invalid email")

    subject = build_status_subject(request_id=request_id, status=status)
    body = build_status_body(request_id=request_id, type_name=type_name, status=status, notes=notes)

    provider = str(settings.EMAIL_PROVIDER or "dummy").strip().lower()
    if provider in {"", "dummy", "mock", "console"}:
        return _mock_send(email=normalized_email, subject=subject, body=body)
    if provider in {"service", "email_service"}:
        return _send_via_email_service(email=normalized_email, subject=subject, body=body)
    if provider == "smtp":
        return _send_smtp(email=normalized_email, subject=subject, body=body)

    raise EmailDeliveryError(f"Unknown EMAIL_PROVIDER: {provider}")


def email_provider_health() -> dict[str, Any]:
    provider = str(settings.EMAIL_PROVIDER or "dummy").strip().lower()
    if provider in {"", "dummy", "mock", "console"}:
        return {"provider": "dummy", "status": "ok", "mode": "mock", "can_send": True, "issues": []}

    if provider in {"service", "email_service"}:
        issues: list[str] = []
        if not str(settings.EMAIL_SERVICE_URL or "").strip():
            issues.append("EMAIL_SERVICE_URL is not configured")
        if not str(settings.INTERNAL_SERVICE_TOKEN or "").strip():
            issues.append("INTERNAL_SERVICE_TOKEN is not configured")
        return {
            "provider": "email-service",
            "status": "ok" if not issues else "degraded",
            "mode": "service",
            "can_send": not issues,
            "issues": issues,
        }

    if provider == "smtp":
        issues = []
        if not str(settings.SMTP_HOST or "").strip():
            issues.append("SMTP_HOST is not configured")
        if not str(settings.SMTP_FROM or "").strip():
            issues.append("SMTP_FROM is not configured")
        return {
            "provider": "smtp",
            "status": "ok" if not issues else "degraded",
            "mode": "real",
            "can_send": not issues,
            "issues": issues,
        }

    return {
        "provider": provider,
        "status": "error",
        "mode": "unknown",
        "can_send": False,
        "issues": [f"Unknown EMAIL_PROVIDER: {provider}"],
    }
