from __future__ import annotations

from typing import Any

from flask import Request


def body_value(req: Request, key: str) -> Any:
    """Read a field from a form-encoded body, falling back to a JSON object body."""
    if key in req.form:
        return req.form.get(key)
    if req.is_json:
        data = req.get_json(silent=True)
        if isinstance(data, dict):
            return data.get(key)
    return None


def clean_email(raw: Any) -> str | None:
    """Strip whitespace; blank or non-string values count as missing."""
    if not isinstance(raw, str):
        return None
    email = raw.strip()
    return email or None
