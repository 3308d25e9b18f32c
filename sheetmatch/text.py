"""
Text normalisation shared by every scoring routine.

``normalize_text`` folds accents, case and punctuation so that
``"Período"``, ``"PERIODO"`` and ``"periodo:"`` compare equal.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, List

_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]")
_SPACES_RE = re.compile(r"\s+")
_KEY_SEPARATOR_RE = re.compile(r"[^a-zA-Z0-9]+")


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_text(value: Any) -> str:
    """Accent-strip, lowercase, turn every non-alphanumeric char into a space, collapse spaces."""
    if value is None:
        return ""
    text = strip_accents(str(value)).lower()
    text = _NON_ALNUM_RE.sub(" ", text)
    return _SPACES_RE.sub(" ", text).strip()


def tokenize(value: Any, min_length: int = 2) -> List[str]:
    """Whitespace tokens of the normalised text, dropping tokens shorter than *min_length*."""
    return [tok for tok in normalize_text(value).split(" ") if len(tok) >= min_length]


def normalize_field_key(label: Any) -> str:
    """
    Derive a snake_case field key from a column label.

    ``"Avance Físico Acum. %"`` -> ``"avance_fisico_acum"``; keys that would start
    with a digit get a ``c_`` prefix. Returns ``""`` for labels with no usable chars.
    """
    if label is None:
        return ""
    key = _KEY_SEPARATOR_RE.sub("_", strip_accents(str(label))).strip("_").lower()
    if not key:
        return ""
    return f"c_{key}" if key[0].isdigit() else key


def field_key_as_text(field_key: str) -> str:
    """Normalised text form of a field key (underscores read as spaces)."""
    return normalize_text((field_key or "").replace("_", " "))
