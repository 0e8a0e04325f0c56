from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

from tracker.core.dom import FormField, FormSnapshot

NAME_KEYS = ("name", "fname", "fullname")
PHONE_KEYS = ("phone", "mobile", "modal_my_mobile2", "modal_dg_mobile", "mobileconcat")
EMAIL_KEYS = ("email", "mail")

CHAT_NAME_KEYS = ("first_name", "fname", "name")
CHAT_PHONE_KEYS = ("mobile", "phone")

# optional +, then at least 10 digits allowing interior spaces/hyphens
_PHONE_RE = re.compile(r"(\+?\d[\d\s-]{8,}\d)")
_INDIAN_MOBILE_RE = re.compile(r"(\+?91[\s-]?)?[6-9]\d{9}")

_NAME_FIELD_RE = re.compile(r"name|fname|full.?name", re.I)
_PHONE_FIELD_RE = re.compile(r"phone|mobile|tel", re.I)


def _first(data: Mapping[str, Any], keys) -> Optional[str]:
    for k in keys:
        v = data.get(k)
        if v is None:
            continue
        v = str(v)
        if v:
            return v
    return None


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    """
    "+91 98765 43210" -> "+919876543210".
    Anything that does not look like a phone number is returned unchanged.
    """
    if not raw:
        return raw
    m = _PHONE_RE.search(str(raw))
    if not m:
        return raw
    return re.sub(r"[^\d+]", "", m.group(1))


def extract_contact_fields(form: FormSnapshot) -> Dict[str, Optional[str]]:
    data = form.values()

    name = _first(data, NAME_KEYS)
    phone = _first(data, PHONE_KEYS)
    email = _first(data, EMAIL_KEYS)

    if not phone:
        phone = _first_field_value(form, lambda f: any(t in f.name for t in ("phone", "mobile", "tel")))
    if not phone:
        phone = _first_field_value(form, lambda f: f.type == "tel")
    phone = normalize_phone(phone)

    if not email:
        email = _first_field_value(form, lambda f: "email" in f.name or f.type == "email")

    return {"name": name, "phone": phone, "email": email}


def _first_field_value(form: FormSnapshot, pred) -> Optional[str]:
    # first matching element, then its value (querySelector semantics)
    for f in form.fields:
        if pred(f):
            return f.value or None
    return None


def extract_chat(data: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    return {
        "name": _first(data, CHAT_NAME_KEYS),
        "phone": normalize_phone(_first(data, CHAT_PHONE_KEYS)),
        "email": _first(data, ("email",)),
    }


def find_phone_in_text(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    m = _INDIAN_MOBILE_RE.search(text)
    return m.group(0) if m else None


def field_contact_kind(f: FormField) -> Optional[str]:
    """Which visitor-profile slot a blurred field fills, if any."""
    if not f.value:
        return None
    if _NAME_FIELD_RE.search(f.name):
        return "name"
    if _PHONE_FIELD_RE.search(f.name):
        return "phone"
    if f.name == "email":
        return "email"
    return None
