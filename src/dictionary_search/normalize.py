"""Case and accent folding used for matching and ordering lemmas."""

from __future__ import annotations

import unicodedata

# Combining tilde; kept on "n" so that "ñ" collates as its own letter
_TILDE = "\u0303"
# Appended to "n" to place "ñ" after every "n..." and before "o"
_ENYE_MARK = "\U0010ffff"
# Prefixed to spaces, punctuation and symbols so they sort before digits
# and letters
_SYMBOL_MARK = "\x01"


def normalize(text: str | None) -> str:
    """Lower-case *text* and strip diacritical marks.

    Decomposes to NFD and drops every code point with a non-zero
    combining class. Surrounding whitespace is trimmed, so blank input
    yields ``""``. ``normalize(normalize(s)) == normalize(s)``.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(
        c for c in decomposed if not unicodedata.combining(c)
    ).strip()


def collation_key(text: str | None) -> str:
    """Sort key comparing lemmas at base strength for Spanish.

    Case and accent differences are ties, except that ``ñ`` is a letter
    of its own sorting right after ``n``. Whitespace, punctuation and
    symbols sort before digits, and digits before letters.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.strip().lower())
    out: list[str] = []
    for c in decomposed:
        if unicodedata.combining(c):
            if c == _TILDE and out and out[-1] == "n":
                out.append(_ENYE_MARK)
            continue
        out.append(c if c.isalnum() else _SYMBOL_MARK + c)
    return "".join(out)


def compare_lemmas(a: str | None, b: str | None) -> int:
    """Three-way comparison of two lemmas by :func:`collation_key`."""
    ka, kb = collation_key(a), collation_key(b)
    return (ka > kb) - (ka < kb)


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so *text* matches literally (``ESCAPE '\\'``)."""
    return (
        text.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


def first_letter(text: str | None) -> str:
    """Index letter of a lemma: its first alphanumeric character, folded.

    ``ñ`` is kept as a letter of its own.
    """
    if not text:
        return ""
    lowered = unicodedata.normalize("NFC", text.strip().lower())
    for c in lowered:
        if c.isalnum():
            return c if c == "ñ" else normalize(c)
    return normalize(lowered[:1])
