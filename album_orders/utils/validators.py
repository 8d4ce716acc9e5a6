import re

_PHONE_ALLOWED = re.compile(r"[^0-9+\-() .]")
_KEY_ALLOWED = re.compile(r"[^a-z0-9_\-]")


def sanitize_phone(v: str) -> str:
    # Garde chiffres, +, -, (, ), espace et point
    return _PHONE_ALLOWED.sub("", v or "").strip()


def sanitize_key(v: str) -> str:
    """Identifiant opaque (cart token, id d'adresse): minuscules, [a-z0-9_-] uniquement."""
    return _KEY_ALLOWED.sub("", (v or "").strip().lower())
