"""Locale-neutral text normalization for search fields."""

import unicodedata


def remove_diacritics(text: str) -> str:
    """Decompose to NFD and drop combining marks ("Gyvūnai" -> "Gyvunai")."""
    decomposed = unicodedata.normalize("NFD", text or "")
    return "".join(ch for ch in decomposed if not unicodedata.category(ch).startswith("M"))
