from __future__ import annotations

from dataclasses import dataclass

from .aggregate import LISTENING_PARTS, LISTENING_QUESTIONS_PER_PART
from .blanks import blank_keys, fill_in_blank_count
from .choices import option_list
from .errors import ConfigurationError
from .exam import Exam, Question
from .normalize import cmp_text
from .qtypes import (
    INDEX_TYPES,
    DndKey,
    FillInBlankKey,
    IndexKey,
    IndicesKey,
    OrderKey,
    QType,
    coerce_qtype,
    parse_answer_key,
)


@dataclass(frozen=True)
class ValidationIssue:
    severity: str  # "error" | "warning"
    message: str
    section_id: str | None = None
    question_id: str | None = None


def _check_question(q: Question, section_id: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    def add(severity: str, message: str) -> None:
        issues.append(ValidationIssue(severity, message, section_id, q.id))

    try:
        qt = coerce_qtype(q.qtype)
        key = parse_answer_key(qt, q.answer_key, question_id=q.id)
    except ConfigurationError as exc:
        add("error", str(exc))
        return issues

    options = q.grading_options()
    choices = option_list(options)
    if qt in INDEX_TYPES and isinstance(key, IndexKey):
        if not choices:
            add("error", "choices required for single-choice question")
        elif key.index >= len(choices):
            add("error", "answerKey.index outside choices")
    if qt == QType.MCQ_MULTI and isinstance(key, IndicesKey):
        raw_indices = q.answer_key.get("indices") or []
        if len(set(raw_indices)) != len(raw_indices):
            add("warning", "answerKey.indices has duplicates")
        if not key.indices:
            add("warning", "answerKey.indices is empty; the question can never be answered correctly")
        if any(i >= len(choices) for i in key.indices):
            add("error", "answerKey.indices entry outside choices")
    if qt == QType.ORDER_SENTENCE and isinstance(key, OrderKey):
        tokens = option_list(options, "tokens")
        if not key.order:
            add("warning", "answerKey.order is empty")
        elif sorted(key.order) != list(range(len(tokens))):
            add("error", "answerKey.order is not a permutation of the tokens")
    if qt == QType.FILL_IN_BLANK and isinstance(key, FillInBlankKey):
        markers = fill_in_blank_count(options.get("text") or "")
        if markers and markers != key.blank_count:
            add("error", f"answerKey has {key.blank_count} blanks but the prompt has {markers}")
        if q.max_score != key.blank_count:
            add("warning", f"maxScore {q.max_score} differs from blank count {key.blank_count}")
    if qt == QType.DND_GAP and isinstance(key, DndKey):
        if not key.blanks:
            add("warning", "answerKey.blanks is empty")
        layout = blank_keys(qt, options)
        if layout and len(layout) != len(key.blanks):
            add("error", f"answerKey has {len(key.blanks)} blanks but the prompt has {len(layout)}")
        bank = {cmp_text(w) for w in option_list(options, "bank")}
        if bank:
            for word in key.blanks:
                if cmp_text(word) not in bank:
                    add("error", f"answerKey.blanks entry {word!r} not in word bank")
    return issues


def validate_exam(exam: Exam) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    for section in exam.sections:
        questions = section.all_questions()
        if section.type == "LISTENING" and exam.category == "IELTS":
            expected = LISTENING_PARTS * LISTENING_QUESTIONS_PER_PART
            if len(questions) != expected:
                issues.append(
                    ValidationIssue(
                        "warning",
                        f"IELTS listening should have {expected} questions (found {len(questions)})",
                        section.id,
                    )
                )
        for q in questions:
            if q.id in seen:
                issues.append(ValidationIssue("error", "duplicate question id", section.id, q.id))
            seen.add(q.id)
            issues.extend(_check_question(q, section.id))
    return issues
