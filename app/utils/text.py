# app/utils/text.py
import re


def slugify(value: str, fallback: str = "project") -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip()).strip("-")
    return slug or fallback


def clean_text(value: str | None) -> str | None:
    """Strips whitespace; empty strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None
