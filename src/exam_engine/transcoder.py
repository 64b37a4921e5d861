"""Form values for correcting a stored answer, and back.

``from_editable(q, to_editable(q, x)) == normalize(q, x)`` holds for every
question type: the editor never loses more than normalization does.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable

from .blanks import is_position
from .choices import option_list, resolve_choice
from .formatter import format_answer
from .grader import GradeResult, grade_question
from .normalize import normalize
from .qtypes import INDEX_TYPES, QType, coerce_qtype, ensure_exhaustive

if TYPE_CHECKING:
    from .exam import Question

logger = logging.getLogger(__name__)

NO_SELECTION = None


def _as_is(qt: QType) -> Callable[[Any, Mapping], Any]:
    def _edit(stored: Any, options: Mapping) -> Any:
        return normalize(qt, stored, options)
    return _edit


def _as_mapping(qt: QType) -> Callable[[Any, Mapping], dict[str, str]]:
    def _edit(stored: Any, options: Mapping) -> dict[str, str]:
        if qt == QType.FILL_IN_BLANK and not isinstance(stored, Mapping):
            if stored is not None:
                logger.warning("to_editable_coerced qtype=%s stored_type=%s", qt.value, type(stored).__name__)
            return {}
        return dict(normalize(qt, stored, options))
    return _edit


def _as_text(qt: QType) -> Callable[[Any, Mapping], str]:
    def _edit(stored: Any, options: Mapping) -> str:
        value = normalize(qt, stored, options)
        return value if isinstance(value, str) else ""
    return _edit


def _as_recording(stored: Any, options: Mapping) -> dict[str, Any]:
    value = normalize(QType.SPEAKING_RECORDING, stored, options) or {}
    return {"audioUrl": value.get("audioUrl", ""), "durationSec": value.get("durationSec")}


_TO_EDITABLE: dict[QType, Callable[[Any, Mapping], Any]] = {
    QType.TF: _as_is(QType.TF),
    QType.TF_NG: _as_is(QType.TF_NG),
    QType.MCQ_SINGLE: _as_is(QType.MCQ_SINGLE),
    QType.SELECT: _as_is(QType.SELECT),
    QType.INLINE_SELECT: _as_is(QType.INLINE_SELECT),
    QType.MCQ_MULTI: _as_is(QType.MCQ_MULTI),
    QType.ORDER_SENTENCE: _as_is(QType.ORDER_SENTENCE),
    QType.DND_GAP: _as_mapping(QType.DND_GAP),
    QType.FILL_IN_BLANK: _as_mapping(QType.FILL_IN_BLANK),
    QType.SHORT_TEXT: _as_text(QType.SHORT_TEXT),
    QType.GAP: _as_text(QType.GAP),
    QType.ESSAY: _as_text(QType.ESSAY),
    QType.SPEAKING_RECORDING: _as_recording,
}
ensure_exhaustive(_TO_EDITABLE, "to_editable")


def to_editable(qtype: Any, stored_answer: Any, options: Mapping | None = None) -> Any:
    """Form control value for a stored answer.

    Single-choice answers that were stored as choice text are resolved back to
    their index; anything unresolvable becomes ``NO_SELECTION``. Blank
    questions always edit as a mapping, even when the stored value is not one.
    """
    qt = coerce_qtype(qtype)
    options = options if isinstance(options, Mapping) else {}
    return _TO_EDITABLE[qt](stored_answer, options)


def _select_value(value: Any, choices: list[str]) -> Any:
    # <select> controls post strings; a digit string is an index unless it is itself a choice.
    if isinstance(value, str) and is_position(value.strip()) and resolve_choice(value, choices) is None:
        return int(value.strip())
    if value == "":
        return NO_SELECTION
    return value


def from_editable(qtype: Any, form_value: Any, options: Mapping | None = None) -> Any:
    qt = coerce_qtype(qtype)
    options = options if isinstance(options, Mapping) else {}
    if qt in INDEX_TYPES:
        form_value = _select_value(form_value, option_list(options))
    elif qt == QType.MCQ_MULTI and isinstance(form_value, (list, tuple)):
        choices = option_list(options)
        form_value = [_select_value(v, choices) for v in form_value if v != ""]
    return normalize(qt, form_value, options)


@dataclass(frozen=True)
class EditSession:
    """A pending correction of one question's answer."""

    question: Question
    stored: Any
    value: Any

    def update(self, value: Any) -> EditSession:
        return replace(self, value=value)

    @property
    def answer(self) -> Any:
        return from_editable(self.question.qtype, self.value, self.question.grading_options())

    @property
    def changed(self) -> bool:
        original = normalize(self.question.qtype, self.stored, self.question.grading_options())
        return self.answer != original

    @property
    def preview(self) -> str:
        return format_answer(self.question.qtype, self.answer, self.question.grading_options())

    def commit(self) -> tuple[Any, GradeResult]:
        answer = self.answer
        return answer, grade_question(self.question, answer)


def open_edit(question: Question, stored_answer: Any) -> EditSession:
    value = to_editable(question.qtype, stored_answer, question.grading_options())
    return EditSession(question=question, stored=stored_answer, value=value)
