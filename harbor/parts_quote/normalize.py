"""
Identifier normalization - comparison keys for the catalog matcher.

Each key function is total (never raises) and idempotent. Keys get
progressively looser; the matcher tries them strictest first.
"""

import re

_WHITESPACE = re.compile(r"\s+")

# Separators that show up interchangeably in drawing numbers typed or
# OCR'd from Chinese and Japanese documents.
SEPARATOR_CHARS = "-－·.．・_"
CANONICAL_SEPARATOR = "-"
_SEPARATORS = re.compile("[" + re.escape(SEPARATOR_CHARS) + "]")


def _as_text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def exact_key(value) -> str:
    """Trimmed, case preserved."""
    return _as_text(value).strip()


def case_insensitive_key(value) -> str:
    """Trimmed and lower-cased."""
    return _as_text(value).lower().strip()


def no_space_key(value) -> str:
    """All whitespace removed, case preserved."""
    return _WHITESPACE.sub("", _as_text(value))


def fuzzy_key(value) -> str:
    """
    Lower-cased, whitespace removed, separators collapsed.

    Examples:
        "135．01－003A" -> "135-01-003a"
        "FB_SC 115"     -> "fb-sc115"
    """
    text = _WHITESPACE.sub("", _as_text(value).lower())
    return _SEPARATORS.sub(CANONICAL_SEPARATOR, text)
