from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from .blanks import blank_keys
from .normalize import blank_cmp_text, cmp_text, normalize
from .qtypes import (
    MANUAL_TYPES,
    AnswerKey,
    QType,
    coerce_answer_key,
    coerce_qtype,
    ensure_exhaustive,
    is_unanswered,
)

if TYPE_CHECKING:
    from .exam import Question

CORRECT = "correct"
WRONG = "wrong"
PENDING = "pending"


@dataclass(frozen=True)
class GradeResult:
    verdict: str            # correct | wrong | pending
    score: float
    max_score: float
    blanks: tuple[bool, ...] | None = None  # per-blank marks for blank types
    manual: bool = False

    @property
    def is_correct(self) -> bool | None:
        if self.verdict == PENDING:
            return None
        return self.verdict == CORRECT

    @property
    def is_pending(self) -> bool:
        return self.verdict == PENDING


def _all_or_nothing(ok: bool, max_score: float) -> GradeResult:
    if ok:
        return GradeResult(CORRECT, max_score, max_score)
    return GradeResult(WRONG, 0, max_score)


def _grade_equal(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    return _all_or_nothing(student == key.value, max_score)


def _grade_tf_ng(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    return _all_or_nothing(student.upper() == key.value.upper(), max_score)


def _grade_index(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    return _all_or_nothing(student == key.index, max_score)


def _grade_indices(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    return _all_or_nothing(sorted(set(student)) == list(key.indices), max_score)


def _grade_order(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    return _all_or_nothing(list(student) == list(key.order), max_score)


def _grade_any_of(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    user_cmp = cmp_text(student)
    targets = {cmp_text(a) for a in key.answers if cmp_text(a)}
    return _all_or_nothing(bool(user_cmp) and user_cmp in targets, max_score)


def _grade_dnd(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    keys = blank_keys(QType.DND_GAP, options, len(key.blanks))
    marks = []
    for blank_key, expected in zip(keys, key.blanks):
        user_cmp = cmp_text(student.get(blank_key))
        marks.append(bool(user_cmp) and user_cmp == cmp_text(expected))
    ok = bool(marks) and all(marks)
    result = _all_or_nothing(ok, max_score)
    return GradeResult(result.verdict, result.score, result.max_score, blanks=tuple(marks))


def _grade_fill_in_blank(student: Any, key: AnswerKey, options: Mapping, max_score: float) -> GradeResult:
    # One point per blank regardless of the question's maxScore.
    marks = []
    for i, accepted in enumerate(key.answers):
        user_cmp = blank_cmp_text(student.get(str(i)), case_sensitive=key.case_sensitive)
        targets = {blank_cmp_text(a, case_sensitive=key.case_sensitive) for a in accepted}
        marks.append(bool(user_cmp) and user_cmp in targets)
    score = sum(marks)
    verdict = CORRECT if marks and all(marks) else WRONG
    return GradeResult(verdict, score, len(marks), blanks=tuple(marks))


_GRADERS: dict[QType, Callable[[Any, AnswerKey, Mapping, float], GradeResult] | None] = {
    QType.TF: _grade_equal,
    QType.TF_NG: _grade_tf_ng,
    QType.MCQ_SINGLE: _grade_index,
    QType.SELECT: _grade_index,
    QType.INLINE_SELECT: _grade_index,
    QType.MCQ_MULTI: _grade_indices,
    QType.ORDER_SENTENCE: _grade_order,
    QType.DND_GAP: _grade_dnd,
    QType.FILL_IN_BLANK: _grade_fill_in_blank,
    QType.SHORT_TEXT: _grade_any_of,
    QType.GAP: _grade_any_of,
    QType.ESSAY: None,
    QType.SPEAKING_RECORDING: None,
}
ensure_exhaustive(_GRADERS, "grade")


def _grade_manual(manual_score: float | None, max_score: float) -> GradeResult:
    if manual_score is None:
        return GradeResult(PENDING, 0, max_score)
    verdict = CORRECT if manual_score >= max_score else WRONG
    return GradeResult(verdict, manual_score, max_score, manual=True)


def _unanswered_result(qt: QType, key: AnswerKey, max_score: float) -> GradeResult:
    if qt == QType.FILL_IN_BLANK:
        return GradeResult(WRONG, 0, key.blank_count, blanks=(False,) * key.blank_count)
    if qt == QType.DND_GAP:
        return GradeResult(WRONG, 0, max_score, blanks=(False,) * len(key.blanks))
    return GradeResult(WRONG, 0, max_score)


def grade(
    qtype: Any,
    student_answer: Any,
    answer_key: Any,
    options: Mapping | None = None,
    *,
    max_score: float = 1,
    manual_score: float | None = None,
    question_id: str | None = None,
) -> GradeResult:
    """Grade one answer against its key.

    ``answer_key`` may be the stored mapping or an already parsed key. Unknown
    question types and missing or malformed keys raise ``ConfigurationError``;
    student input never does. ESSAY and SPEAKING_RECORDING stay ``pending``
    until a manual score is given.
    """
    qt = coerce_qtype(qtype)
    options = options if isinstance(options, Mapping) else {}
    if qt in MANUAL_TYPES:
        return _grade_manual(manual_score, max_score)

    key = coerce_answer_key(qt, answer_key, question_id=question_id)

    student = normalize(qt, student_answer, options)
    if is_unanswered(qt, student):
        return _unanswered_result(qt, key, max_score)
    return _GRADERS[qt](student, key, options, max_score)


def grade_question(question: Question, raw_answer: Any, manual_score: float | None = None) -> GradeResult:
    return grade(
        question.qtype,
        raw_answer,
        question.answer_key,
        question.grading_options(),
        max_score=question.max_score,
        manual_score=manual_score,
        question_id=question.id,
    )
