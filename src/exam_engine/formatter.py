"""Review text for student answers and answer keys.

Both columns of the review table go through ``format_answer``: an answer key
is first projected onto the StudentAnswer shape (``key_as_answer``) so the
"correct answer" and "student answer" cells render identically.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable

from .blanks import blank_keys, is_position, ordered_keys
from .choices import choice_label, option_list
from .errors import InvalidAnswerKey, MissingAnswerKey
from .normalize import normalize
from .qtypes import (
    QType,
    coerce_answer_key,
    coerce_qtype,
    ensure_exhaustive,
    is_unanswered,
)

logger = logging.getLogger(__name__)

NO_ANSWER = "No answer"
NO_RECORDING = "No recording"
EMPTY_BLANK = "(empty)"
ORDER_SEPARATOR = " → "
ALTERNATIVES_SEPARATOR = " / "


def _blank_text(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return EMPTY_BLANK


def _fmt_bool(value: bool, options: Mapping) -> str:
    return "True" if value else "False"


def _fmt_tf_ng(value: str, options: Mapping) -> str:
    return value.replace("_", " ").title()


def _fmt_index(value: int, options: Mapping) -> str:
    return choice_label(option_list(options), value)


def _fmt_indices(value: list[int], options: Mapping) -> str:
    choices = option_list(options)
    return ", ".join(choice_label(choices, idx) for idx in value)


def _fmt_order(value: list[int], options: Mapping) -> str:
    tokens = option_list(options, "tokens")
    return ORDER_SEPARATOR.join(
        tokens[idx] if idx < len(tokens) else str(idx) for idx in value
    )


def _fmt_fill_in_blank(value: dict[str, str], options: Mapping) -> str:
    # Layout blanks first, then any stored key the layout does not know about.
    keys = blank_keys(QType.FILL_IN_BLANK, options)
    keys += [k for k in ordered_keys(value) if k not in keys]
    return ", ".join(f"{_blank_label(k)}. {_blank_text(value.get(k))}" for k in keys)


def _blank_label(key: str) -> str:
    return str(int(key) + 1) if is_position(key) else key


def _fmt_dnd(value: dict[str, str], options: Mapping) -> str:
    keys = blank_keys(QType.DND_GAP, options)
    keys += [k for k in ordered_keys(value) if k not in keys]
    return " | ".join(_blank_text(value.get(k)) for k in keys)


def _fmt_text(value: str, options: Mapping) -> str:
    return value.strip()


def _fmt_recording(value: dict, options: Mapping) -> str:
    # The review UI renders its own audio player for recordings.
    return ""


_FORMATTERS: dict[QType, Callable[[Any, Mapping], str]] = {
    QType.TF: _fmt_bool,
    QType.TF_NG: _fmt_tf_ng,
    QType.MCQ_SINGLE: _fmt_index,
    QType.SELECT: _fmt_index,
    QType.INLINE_SELECT: _fmt_index,
    QType.MCQ_MULTI: _fmt_indices,
    QType.ORDER_SENTENCE: _fmt_order,
    QType.DND_GAP: _fmt_dnd,
    QType.FILL_IN_BLANK: _fmt_fill_in_blank,
    QType.SHORT_TEXT: _fmt_text,
    QType.GAP: _fmt_text,
    QType.ESSAY: _fmt_text,
    QType.SPEAKING_RECORDING: _fmt_recording,
}
ensure_exhaustive(_FORMATTERS, "format_answer")


def format_answer(qtype: Any, answer: Any, options: Mapping | None = None) -> str:
    qt = coerce_qtype(qtype)
    options = options if isinstance(options, Mapping) else {}
    value = normalize(qt, answer, options)
    if is_unanswered(qt, value):
        return NO_RECORDING if qt == QType.SPEAKING_RECORDING else NO_ANSWER
    return _FORMATTERS[qt](value, options)


def _alternatives(values: tuple[str, ...]) -> str:
    return ALTERNATIVES_SEPARATOR.join(v for v in values if v.strip())


_PROJECTIONS: dict[QType, Callable[[Any, Mapping], Any] | None] = {
    QType.TF: lambda key, options: key.value,
    QType.TF_NG: lambda key, options: key.value,
    QType.MCQ_SINGLE: lambda key, options: key.index,
    QType.SELECT: lambda key, options: key.index,
    QType.INLINE_SELECT: lambda key, options: key.index,
    QType.MCQ_MULTI: lambda key, options: list(key.indices),
    QType.ORDER_SENTENCE: lambda key, options: list(key.order),
    QType.DND_GAP: lambda key, options: dict(
        zip(blank_keys(QType.DND_GAP, options, len(key.blanks)), key.blanks)
    ),
    QType.FILL_IN_BLANK: lambda key, options: {
        str(i): _alternatives(alts) for i, alts in enumerate(key.answers)
    },
    QType.SHORT_TEXT: lambda key, options: _alternatives(key.answers),
    QType.GAP: lambda key, options: _alternatives(key.answers),
    QType.ESSAY: None,
    QType.SPEAKING_RECORDING: None,
}
ensure_exhaustive(_PROJECTIONS, "key_as_answer")


def key_as_answer(qtype: Any, answer_key: Any, options: Mapping | None = None) -> Any:
    """Project an answer key onto the StudentAnswer shape of its type."""
    qt = coerce_qtype(qtype)
    options = options if isinstance(options, Mapping) else {}
    project = _PROJECTIONS[qt]
    if project is None:
        return None
    return project(coerce_answer_key(qt, answer_key), options)


def format_key(qtype: Any, answer_key: Any, options: Mapping | None = None, *, question_id: str | None = None) -> str:
    qt = coerce_qtype(qtype)
    try:
        projected = key_as_answer(qt, answer_key, options)
    except (InvalidAnswerKey, MissingAnswerKey) as exc:
        logger.warning("format_key_invalid qtype=%s question_id=%s error=%s", qt.value, question_id, exc)
        return NO_ANSWER
    return format_answer(qt, projected, options)
