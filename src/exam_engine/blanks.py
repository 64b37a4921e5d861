"""Blank layout for FILL_IN_BLANK and DND_GAP prompts.

Blanks are addressed by stable string keys assigned left to right, top to
bottom. FILL_IN_BLANK blanks are numbered "0".."n-1" across every line of the
prompt. DND_GAP blanks are keyed by sentence: "3" when sentence 3 holds a single
blank, "3-0", "3-1", ... when it holds several.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .qtypes import QType, coerce_qtype

FILL_MARKER = re.compile(r"\[input\]", re.IGNORECASE)
GAP_MARKER = re.compile(r"_{3,}")
_POSITION = re.compile(r"\d+", re.ASCII)


def is_position(key: Any) -> bool:
    """True for plain ASCII digit keys ("0", "12"); int() accepts these."""
    return isinstance(key, str) and _POSITION.fullmatch(key) is not None


def split_sentences(text: str) -> list[str]:
    text = text or ""
    if "\n" in text:
        parts = text.split("\n")
    elif "1." in text and "2." in text:
        parts = re.split(r"(?=\d+\.\s)", text)
    else:
        parts = re.split(r"(?<=\.)\s+(?=[A-Z])", text)
    return [part for part in parts if part.strip()]


def fill_in_blank_count(text: str) -> int:
    return sum(len(FILL_MARKER.findall(line)) for line in (text or "").split("\n"))


def dnd_blank_keys(text: str) -> list[str]:
    keys: list[str] = []
    for s_idx, sentence in enumerate(split_sentences(text)):
        count = len(GAP_MARKER.findall(sentence))
        if count == 1:
            keys.append(str(s_idx))
        elif count > 1:
            keys.extend(f"{s_idx}-{p_idx}" for p_idx in range(count))
    return keys


def _positional(count: int | None) -> list[str]:
    return [str(i) for i in range(count or 0)]


def blank_keys(qtype: Any, options: Mapping | None, count: int | None = None) -> list[str]:
    """Ordered blank keys for a question.

    ``options`` may carry an explicit ``blankKeys`` list or the prompt text
    (``textWithBlanks`` / ``text``) to derive them from. When the derived layout
    disagrees with ``count`` (the number of blanks in the answer key) the keys
    fall back to plain positions.
    """
    qt = coerce_qtype(qtype)
    options = options if isinstance(options, Mapping) else {}
    explicit = options.get("blankKeys")
    if isinstance(explicit, (list, tuple)) and explicit and all(isinstance(k, str) for k in explicit):
        if count is None or len(explicit) == count:
            return list(explicit)

    if qt == QType.FILL_IN_BLANK:
        text = options.get("text")
        if count is None and isinstance(text, str):
            count = fill_in_blank_count(text)
        return _positional(count)

    if qt == QType.DND_GAP:
        text = options.get("textWithBlanks") or options.get("text")
        keys = dnd_blank_keys(text) if isinstance(text, str) else []
        if keys and (count is None or len(keys) == count):
            return keys
        return _positional(count)

    raise ValueError(f"{qt.value} has no blanks")


def document_order(key: str) -> tuple:
    parts = []
    for piece in str(key).split("-"):
        parts.append((0, int(piece)) if is_position(piece) else (1, piece))
    return tuple(parts)


def ordered_keys(mapping: Mapping) -> list[str]:
    return sorted((str(k) for k in mapping), key=document_order)
