"""Best-effort lookup of an e-mail address and a phone number in a request payload.

Payload keys differ per user type, so three strategies are tried in order for
each channel: the field kinds of the user type, key-name hints, and finally
sniffing values that look like an address or a number. Ambiguous payloads may
yield ``None``; callers treat a missing contact as "skip this channel".
"""
from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

EMAIL_VALUE_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_VALUE_RE = re.compile(r"^\+?[0-9\s\-()]{9,15}$")

EMAIL_KEY_HINTS = ("email", "e_mail", "بريد")
PHONE_KEY_HINTS = ("phone", "tel", "mobile", "whatsapp", "هاتف", "جوال")


def _scalar_text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        text = str(value).strip()
        return text or None
    return None


def _field_attr(field: Any, name: str) -> Any:
    if isinstance(field, Mapping):
        return field.get(name)
    return getattr(field, name, None)


def extract_contact_info(
    payload: Mapping[str, Any] | None,
    fields: Iterable[Any] | None = None,
) -> dict[str, str | None]:
    email: str | None = None
    phone: str | None = None
    if not isinstance(payload, Mapping):
        return {"email": None, "phone": None}

    for field in fields or ():
        name = _field_attr(field, "name")
        kind = str(_field_attr(field, "kind") or "").strip().lower()
        value = _scalar_text(payload.get(name)) if name else None
        if value is None:
            continue
        if kind == "email" and email is None:
            email = value
        elif kind in {"phone", "tel"} and phone is None:
            phone = value
        if email is not None and phone is not None:
            return {"email": email, "phone": phone}

    for key, raw in payload.items():
        value = _scalar_text(raw)
        if value is None:
            continue
        key_lower = str(key).lower()
        # Hints match substrings ("tel" in "hotel"); the value has to match as well.
        if email is None and any(hint in key_lower for hint in EMAIL_KEY_HINTS) and EMAIL_VALUE_RE.match(value):
            email = value
        elif phone is None and any(hint in key_lower for hint in PHONE_KEY_HINTS) and PHONE_VALUE_RE.match(value):
            phone = value

    if email is None or phone is None:
        for raw in payload.values():
            if not isinstance(raw, str):
                continue
            value = raw.strip()
            if email is None and EMAIL_VALUE_RE.match(value):
                email = value
            elif phone is None and PHONE_VALUE_RE.match(value):
                phone = value

    return {"email": email, "phone": phone}
