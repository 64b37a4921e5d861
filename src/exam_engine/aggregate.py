from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from .errors import ConfigurationError
from .exam import Attempt, Exam, Question, Section
from .grader import GradeResult, grade_question

logger = logging.getLogger(__name__)

LISTENING_PARTS = 4
LISTENING_QUESTIONS_PER_PART = 10
# IELTS Reading: passage number -> last question number (1-based) in it.
READING_PASSAGE_ENDS = {1: 13, 2: 26, 3: 40}


@dataclass(frozen=True)
class BandMap:
    section: str
    min_raw: int
    max_raw: int
    band: float
    exam_type: str = "IELTS"


def band_for(raw: float, section: str, band_maps: Iterable[BandMap], exam_type: str = "IELTS") -> float | None:
    for row in band_maps:
        if row.section == section and row.exam_type == exam_type and row.min_raw <= raw <= row.max_raw:
            return row.band
    return None


def percentage(correct: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up, not banker's rounding.
    return int(math.floor(correct * 100 / total + 0.5))


@dataclass(frozen=True)
class QuestionOutcome:
    question_id: str
    number: int             # 1-based position inside its section
    part: int | None
    result: GradeResult | None
    error: str | None = None

    @property
    def correct(self) -> bool:
        return self.result is not None and self.result.is_correct is True

    @property
    def pending(self) -> bool:
        return self.result is not None and self.result.is_pending


@dataclass(frozen=True)
class SectionSummary:
    section_id: str
    section_type: str
    title: str
    correct: int
    total: int
    pending: int
    percentage: int
    raw_score: float
    max_score: float
    listening_parts: dict[str, int] | None = None
    reading_passages: dict[str, int] | None = None
    band: float | None = None


@dataclass(frozen=True)
class AttemptSummary:
    total_correct: int
    total_questions: int
    total_percentage: int
    pending: int
    per_section: list[SectionSummary] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    def section(self, section_id: str) -> SectionSummary | None:
        for s in self.per_section:
            if s.section_id == section_id:
                return s
        return None


def _listening_part(number: int, per_part: int) -> int:
    return min(LISTENING_PARTS, (number - 1) // per_part + 1)


def _reading_passage(number: int) -> int:
    for passage, last in READING_PASSAGE_ENDS.items():
        if number <= last:
            return passage
    return max(READING_PASSAGE_ENDS)


def grade_section(section: Section, attempt: Attempt, *, part_size: int = LISTENING_QUESTIONS_PER_PART) -> list[QuestionOutcome]:
    parts = section.part_of()
    outcomes: list[QuestionOutcome] = []
    for number, q in enumerate(section.all_questions(), start=1):
        part = parts.get(q.id)
        if part is None and section.type == "LISTENING":
            part = _listening_part(number, part_size)
        outcomes.append(_grade_one(q, attempt, number, part))
    return outcomes


def _grade_one(q: Question, attempt: Attempt, number: int, part: int | None) -> QuestionOutcome:
    try:
        result = grade_question(q, attempt.answers.get(q.id), attempt.manual_scores.get(q.id))
    except ConfigurationError as exc:
        logger.error("grade_config_error attempt_id=%s question_id=%s error=%s", attempt.id, q.id, exc)
        return QuestionOutcome(q.id, number, part, None, error=str(exc))
    return QuestionOutcome(q.id, number, part, result)


def summarize_section(
    exam: Exam,
    section: Section,
    outcomes: list[QuestionOutcome],
    *,
    band_maps: Iterable[BandMap] | None = None,
) -> SectionSummary:
    correct = sum(1 for o in outcomes if o.correct)
    total = len(outcomes)
    raw_score = sum(o.result.score for o in outcomes if o.result is not None)
    max_score = sum(o.result.max_score for o in outcomes if o.result is not None)

    listening_parts = None
    if section.type == "LISTENING":
        listening_parts = {f"s{i}": 0 for i in range(1, LISTENING_PARTS + 1)}
        for o in outcomes:
            if o.correct and o.part is not None and 1 <= o.part <= LISTENING_PARTS:
                listening_parts[f"s{o.part}"] += 1

    reading_passages = None
    if section.type == "READING" and exam.category == "IELTS":
        reading_passages = {f"p{i}": 0 for i in READING_PASSAGE_ENDS}
        for o in outcomes:
            if o.correct:
                reading_passages[f"p{_reading_passage(o.number)}"] += 1

    band = None
    if band_maps:
        band = band_for(correct, section.type, band_maps, exam.category)

    return SectionSummary(
        section_id=section.id,
        section_type=section.type,
        title=section.title,
        correct=correct,
        total=total,
        pending=sum(1 for o in outcomes if o.pending),
        percentage=percentage(correct, total),
        raw_score=raw_score,
        max_score=max_score,
        listening_parts=listening_parts,
        reading_passages=reading_passages,
        band=band,
    )


def summarize_attempt(
    exam: Exam,
    attempt: Attempt,
    *,
    band_maps: Iterable[BandMap] | None = None,
    part_size: int = LISTENING_QUESTIONS_PER_PART,
) -> AttemptSummary:
    """Grade every question of ``attempt`` and aggregate from scratch.

    Always recomputed in full; a summary is never patched after a correction.
    ESSAY and SPEAKING_RECORDING questions count towards ``total_questions``
    while pending but never towards ``total_correct``. A question whose
    definition is broken is reported in ``errors`` and counted as not correct.
    """
    band_maps = list(band_maps or [])
    per_section: list[SectionSummary] = []
    errors: dict[str, str] = {}
    for section in exam.sections:
        outcomes = grade_section(section, attempt, part_size=part_size)
        errors.update({o.question_id: o.error for o in outcomes if o.error})
        per_section.append(summarize_section(exam, section, outcomes, band_maps=band_maps))

    total_correct = sum(s.correct for s in per_section)
    total_questions = sum(s.total for s in per_section)
    return AttemptSummary(
        total_correct=total_correct,
        total_questions=total_questions,
        total_percentage=percentage(total_correct, total_questions),
        pending=sum(s.pending for s in per_section),
        per_section=per_section,
        errors=errors,
    )
