import re
import unicodedata


def generate_slug(title: str) -> str:
    """
    Build a URL friendly slug from a title
    - strips accents
    - keeps letters, digits and dashes
    - lower case
    """
    if not title:
        return ""

    normalized = unicodedata.normalize("NFD", title)
    no_accents = "".join(c for c in normalized if unicodedata.category(c) != "Mn")
    text = no_accents.lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")

    return text


def safe_filename(title: str, extension: str) -> str:
    """File name for Content-Disposition headers (ASCII only, no quotes)."""
    slug = generate_slug(title) or "document"
    return f"{slug[:80]}.{extension.lstrip('.')}"
