"""
Actor identity helpers.

Actors are client sessions identified by a stable client-generated id, a
display name and a loose role string. This module owns every normalization
rule applied to those values so permission checks and mention matching
agree on one definition:

    normalize_actor_role("Senior Manager")   -> "manager"
    normalize_name_key("Alex Johnson")       -> "alex.johnson"
    viewer_name_keys("Alex Johnson")         -> ["alex.johnson", "alex", "alexjohnson"]
    extract_mention_keys("hi @Alex.Johnson") -> ["alex.johnson"]
"""

from __future__ import annotations

import re

ACTOR_ROLES = ("auditor", "manager", "partner")

ELEVATED_ROLES = {"manager", "partner"}

# Substring match order matters: "partner" wins over "manager" wins over "auditor".
_ROLE_MATCH_ORDER = ("partner", "manager", "auditor")

_MENTION_RE = re.compile(r"@([A-Za-z0-9._-]{1,50})")
_NON_KEY_CHARS_RE = re.compile(r"[^a-z0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_actor_role(role) -> str | None:
    """Map a loose role string onto one of ACTOR_ROLES.

    Lower-cases, strips everything that is not a letter, then matches by
    substring. Returns None for unrecognised roles; callers decide the
    fallback (stage advance treats None as "auditor", elevated operations
    reject it).
    """
    compact = re.sub(r"[^a-z]", "", str(role or "").strip().lower())
    for candidate in _ROLE_MATCH_ORDER:
        if candidate in compact:
            return candidate
    return None


def is_elevated_role(role) -> bool:
    return normalize_actor_role(role) in ELEVATED_ROLES


def normalize_name_key(name) -> str:
    """Lower-case *name* and join its ``[a-z0-9]+`` runs with ".".

    Leading and trailing separators are dropped, so "  Alex  Johnson! "
    becomes "alex.johnson" and "@@" becomes "".
    """
    lowered = str(name or "").strip().lower()
    return _NON_KEY_CHARS_RE.sub(".", lowered).strip(".")


def viewer_name_keys(name) -> list[str]:
    """Every key under which *name* may have been mentioned.

    Full key, first token, and the separator-free form, deduplicated in that
    order. Empty for blank names.
    """
    key = normalize_name_key(name)
    if not key:
        return []
    candidates = [key, key.split(".")[0], key.replace(".", "")]
    return list(dict.fromkeys(c for c in candidates if c))


def extract_mention_keys(text, *, exclude: str | None = None) -> list[str]:
    """Normalized, deduplicated @mention keys in first-seen order.

    A mention whose key equals ``normalize_name_key(exclude)`` is dropped
    (no self-notification).
    """
    excluded = normalize_name_key(exclude) if exclude else ""
    keys = []
    for handle in _MENTION_RE.findall(str(text or "")):
        key = normalize_name_key(handle)
        if key and key != excluded and key not in keys:
            keys.append(key)
    return keys


def summarize_text(text, limit: int = 180) -> str:
    """Collapse whitespace and truncate to *limit* characters with "..."."""
    normalized = _WHITESPACE_RE.sub(" ", str(text or "")).strip()
    if not normalized:
        return "(empty)"
    if len(normalized) <= limit:
        return normalized
    return f"{normalized[:limit - 1]}..."
