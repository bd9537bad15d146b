"""Text normalization utilities for Persian poetry search.

Two concerns live here:

1. **Search normalization** -- ``normalize_search_text`` folds the many ways
   the same Persian word can be typed into one comparable form.  It is
   applied to every searchable column when rows are written to the Local
   Store and to every query before it is matched, so "علی" typed with an
   Arabic yeh still finds "علی" stored with a Persian yeh.

2. **LIKE escaping** -- ``escape_like`` neutralizes ``%``/``_`` in user
   input so a query is always matched as a literal substring.
"""

import re
import unicodedata

# Arabic harakat (fathatan .. sukun, maddah, hamza above/below, etc.) plus
# the superscript alef.  Poems in the archive are inconsistently vocalized.
_DIACRITICS_RE = re.compile(r"[\u064B-\u065F\u0670]")

_TATWEEL = "\u0640"
_ZWNJ = "\u200c"

# Arabic code points that Persian keyboards render identically.
_CHAR_FOLDS = str.maketrans(
    {
        "\u064a": "\u06cc",  # ARABIC YEH -> FARSI YEH
        "\u0649": "\u06cc",  # ALEF MAKSURA -> FARSI YEH
        "\u0643": "\u06a9",  # ARABIC KAF -> KEHEH
        _TATWEEL: None,
        _ZWNJ: " ",
    }
)

_WHITESPACE_RE = re.compile(r"\s+")

LIKE_ESCAPE_CHAR = "\\"


def normalize_search_text(text: str | None) -> str:
    """Fold *text* into the canonical form used for substring search.

    Steps, in order: NFKC (presentation forms to base letters), strip
    diacritics, fold Arabic yeh/kaf to Persian, drop tatweel, ZWNJ to space,
    casefold (for Latin transliterations), collapse whitespace.

    Args:
        text: Raw text; ``None`` is treated as empty.

    Returns:
        The normalized string (possibly empty).
    """
    if not text:
        return ""

    normalized = unicodedata.normalize("NFKC", text)
    normalized = _DIACRITICS_RE.sub("", normalized)
    normalized = normalized.translate(_CHAR_FOLDS)
    normalized = normalized.casefold()
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    return normalized.strip()


def escape_like(value: str) -> str:
    """Escape SQL ``LIKE`` wildcards so *value* matches literally.

    Must be used together with ``ESCAPE '\\'`` in the SQL statement.
    """
    return (
        value.replace(LIKE_ESCAPE_CHAR, LIKE_ESCAPE_CHAR * 2)
        .replace("%", f"{LIKE_ESCAPE_CHAR}%")
        .replace("_", f"{LIKE_ESCAPE_CHAR}_")
    )


def like_pattern(query: str) -> str:
    """Build a ``%...%`` substring pattern from a raw user query."""
    return f"%{escape_like(normalize_search_text(query))}%"
