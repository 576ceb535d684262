from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from app.core.config import settings

logger = logging.getLogger("app.whatsapp")

_PHONE_STRIP_RE = re.compile(r"[\s\-()]")


class WhatsAppDeliveryError(Exception):
    pass


def normalize_phone(phone: str | None) -> str | None:
    """Bring a locally typed number into ``+<country><number>`` form.

    ``00`` prefixes become ``+``. Local mobile numbers (``05xxxxxxxx`` or
    ``5xxxxxxxx``) get the default country code.
    """
    cleaned = _PHONE_STRIP_RE.sub("", str(phone or ""))
    if not cleaned:
        return None
    country = str(settings.WHATSAPP_DEFAULT_COUNTRY_CODE or "").strip().lstrip("+")

    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    if country and cleaned.startswith("05") and len(cleaned) == 10:
        cleaned = f"+{country}{cleaned[1:]}"
    if country and cleaned.startswith("5") and len(cleaned) == 9:
        cleaned = f"+{country}{cleaned}"
    if not cleaned.startswith("+"):
        cleaned = "+" + cleaned
    return cleaned


def build_status_message(*, request_id: str, type_name: str, status: str, notes: str | None = None) -> str:
    state = "approved" if str(status).lower() == "approved" else "rejected"
    lines = [
        "*Request update*",
        "",
        f"Request: #{request_id}",
        f"Type: {type_name}",
        f"Status: {state}",
    ]
    text = str(notes or "").strip()
    if text:
        lines += ["", "Notes from the administrator:", text]
    lines += ["", "_This is an automated message._"]
    return "\n".join(lines)


def _mock_send(*, phone: str, message: str) -> dict[str, Any]:
    logger.warning("[WHATSAPP MOCK] phone=%s message=%s", phone, message.replace("\n", " | "))
    return {"provider": "mock_whatsapp", "status": "accepted", "sent": False, "mocked": True}


def _send_http(*, phone: str, message: str) -> dict[str, Any]:
    base_url = str(settings.WHATSAPP_API_URL or "").strip().rstrip("/")
    api_key = str(settings.WHATSAPP_API_KEY or "").strip()
    if not base_url:
        raise WhatsAppDeliveryError("WHATSAPP_API_URL is not configured")
    if not api_key:
        raise WhatsAppDeliveryError("WHATSAPP_API_KEY is not configured")

    try:
        with httpx.Client(timeout=float(settings.WHATSAPP_TIMEOUT_SECONDS)) as client:
            response = client.post(
                f"{base_url}/messages/send",
                headers={"X-API-Key": api_key, "Content-Type": "application/json"},
                json={"phone": phone, "message": message},
            )
    except httpx.HTTPError as exc:
        raise WhatsAppDeliveryError(f"WhatsApp API unreachable: {exc}") from exc

    payload: dict[str, Any] = {}
    try:
        decoded = response.json() if response.content else {}
    except ValueError:
        decoded = {}
    if isinstance(decoded, dict):
        payload = decoded
    if response.status_code >= 400:
        detail = str(payload.get("message") or payload.get("error") or response.text or response.status_code)
        raise WhatsAppDeliveryError(f"WhatsApp API error: HTTP {response.status_code}: {detail}")

    logger.info(
        "whatsapp_sent phone=%s response_id=%s",
        phone,
        payload.get("id") or payload.get("messageId") or "-",
    )
    return {"provider": "http", "status": "accepted", "sent": True, "response": payload}


def send_whatsapp(phone: str, message: str) -> dict[str, Any]:
    normalized = normalize_phone(phone)
    if not normalized:
        raise WhatsAppDeliveryError("Invalid phone number")

    provider = str(settings.WHATSAPP_PROVIDER or "dummy").strip().lower()
    if provider in {"", "dummy", "mock", "console"}:
        return _mock_send(phone=normalized, message=message)
    if provider == "http":
        return _send_http(phone=normalized, message=message)

    raise WhatsAppDeliveryError(f"Unknown WHATSAPP_PROVIDER: {provider}")


def whatsapp_provider_health() -> dict[str, Any]:
    provider = str(settings.WHATSAPP_PROVIDER or "dummy").strip().lower()
    if provider in {"", "dummy", "mock", "console"}:
        return {"provider": "dummy", "status": "ok", "mode": "mock", "can_send": True, "issues": []}

    if provider == "http":
        issues: list[str] = []
        if not str(settings.WHATSAPP_API_URL or "").strip():
            issues.append("WHATSAPP_API_URL is not configured")
        if not str(settings.WHATSAPP_API_KEY or "").strip():
            issues.append("WHATSAPP_API_KEY is not configured")
        return {
            "provider": "http",
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
        "issues": [f"Unknown WHATSAPP_PROVIDER: {provider}"],
    }
