from __future__ import annotations

import unicodedata


def normalize(name: str) -> str:
    normalized = unicodedata.normalize("NFKC", name).strip().lower()
    return "".join(normalized.split())


def normalize_city(city: str) -> str:
    """Key used to compare city names ("北京市" and "北京 " match "北京")."""

    key = normalize(city)
    if len(key) > 2 and key.endswith("市"):
        key = key[:-1]
    return key
