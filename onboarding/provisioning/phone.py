from __future__ import annotations

import re

_STRIP_RE = re.compile(r"[\s\-()]")
_DIGITS_RE = re.compile(r"^[0-9]{7,}$")


def normalize_phone_to_canonical(phone: str, *, default_country_code: str = "52") -> str:
    """
    Normalize a raw phone number to `+<country><digits>`.

    The result is computed once per registration and reused for every
    availability check and write, so stored values match what was checked.
    """
    cleaned = _STRIP_RE.sub("", phone or "")

    if cleaned.startswith("+"):
        return cleaned

    # Country code typed without "+"
    if cleaned.startswith(default_country_code) and len(cleaned) >= 10 + len(default_country_code):
        return f"+{cleaned}"

    if _DIGITS_RE.match(cleaned):
        return f"+{default_country_code}{cleaned}"

    return f"+{cleaned}"
