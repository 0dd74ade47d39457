"""Collapses legal-entity variants of an employer name ("Acme Inc." / "ACME") to one key."""
from __future__ import annotations

import re
from typing import NamedTuple, Optional

from profile_canon.services.canonical.record_filter import is_placeholder_company

_PUNCT_RE = re.compile(r"[,.]")
_LEGAL_WORDS_RE = re.compile(
    r"\b(inc|llc|corp|co|ltd|limited|company|financial|services|solutions|group|holdings|technologies|systems)\b"
)
_WS_RE = re.compile(r"\s+")


class NormalizedCompany(NamedTuple):
    normalized_key: str
    display_name: str


def normalize_company(raw: Optional[str]) -> Optional[NormalizedCompany]:
    """
    Returns None for blank or placeholder names.

    Examples:
        normalize_company("Acme Inc.") -> ("acme", "Acme Inc.")
        normalize_company("ACME")      -> ("acme", "ACME")
    """
    if not raw:
        return None

    trimmed = raw.strip()
    if not trimmed or is_placeholder_company(trimmed):
        return None

    key = _PUNCT_RE.sub(" ", trimmed.lower())
    key = _LEGAL_WORDS_RE.sub("", key)
    key = _WS_RE.sub(" ", key).strip()

    # Names made only of legal words ("Holdings Inc") keep their own text as key
    if not key:
        key = _WS_RE.sub(" ", _PUNCT_RE.sub(" ", trimmed.lower())).strip()

    return NormalizedCompany(normalized_key=key, display_name=trimmed)
