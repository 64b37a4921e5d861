from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator

from .blanks import fill_in_blank_count
from .errors import UnknownQuestion

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc


class AttemptStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"


@dataclass(frozen=True)
class Question:
    id: str
    qtype: str              # validated lazily so one bad question cannot sink the exam
    prompt: Mapping = field(default_factory=dict)
    options: Mapping = field(default_factory=dict)
    answer_key: Any = None
    max_score: float = 1
    order: int = 0

    def grading_options(self) -> dict:
        """Options plus the prompt fields the engine reads (blank text, tokens)."""
        merged = dict(self.options) if isinstance(self.options, Mapping) else {}
        prompt = self.prompt if isinstance(self.prompt, Mapping) else {}
        for name in ("text", "textWithBlanks", "tokens"):
            if name in prompt and name not in merged:
                merged[name] = prompt[name]
        return merged


@dataclass(frozen=True)
class Section:
    id: str
    type: str               # READING | LISTENING | WRITING | SPEAKING | GRAMMAR | VOCABULARY
    title: str = ""
    order: int = 0
    questions: tuple[Question, ...] = ()
    parts: tuple[Section, ...] = ()

    def all_questions(self) -> list[Question]:
        # Global numbering: own questions first, then each part in part order.
        out = list(self.questions)
        for part in self.parts:
            out.extend(part.all_questions())
        return out

    def part_of(self) -> dict[str, int]:
        """Question id -> 1-based part number, for sections split into parts."""
        out: dict[str, int] = {}
        for number, part in enumerate(self.parts, start=1):
            for q in part.all_questions():
                out[q.id] = number
        return out


@dataclass(frozen=True)
class Exam:
    id: str
    title: str = ""
    category: str = "GENERAL_ENGLISH"
    sections: tuple[Section, ...] = ()

    def iter_questions(self) -> Iterator[tuple[Section, Question]]:
        for section in self.sections:
            for q in section.all_questions():
                yield section, q

    def find_question(self, question_id: str) -> tuple[Section, Question]:
        for section, q in self.iter_questions():
            if q.id == question_id:
                return section, q
        raise UnknownQuestion(f"question {question_id!r} is not part of exam {self.id!r}")


@dataclass(frozen=True)
class Attempt:
    id: str
    exam_id: str
    answers: Mapping[str, Any] = field(default_factory=dict)
    manual_scores: Mapping[str, float] = field(default_factory=dict)
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    submitted_at: dt.datetime | None = None

    def with_answer(self, question_id: str, answer: Any) -> Attempt:
        answers = dict(self.answers)
        answers[question_id] = answer
        return replace(self, answers=answers)

    def submit(self, at: dt.datetime | None = None) -> Attempt:
        return replace(self, status=AttemptStatus.SUBMITTED, submitted_at=at or dt.datetime.now(tz=UTC))


def _sort_by_order(items: list[dict]) -> list[dict]:
    return sorted(
        (x for x in items if isinstance(x, Mapping)),
        key=lambda x: x.get("order") if isinstance(x.get("order"), int) else 0,
    )


def question_from_dict(data: Mapping, *, position: int = 0) -> Question:
    prompt = data.get("prompt")
    if isinstance(prompt, str):
        prompt = {"text": prompt}
    prompt = prompt if isinstance(prompt, Mapping) else {}
    qtype = str(data.get("qtype") or "").strip().upper()
    max_score = data.get("maxScore")
    if not isinstance(max_score, (int, float)) or isinstance(max_score, bool) or max_score <= 0:
        max_score = 1
        if qtype == "FILL_IN_BLANK":
            max_score = fill_in_blank_count(prompt.get("text") or "") or 1
    order = data.get("order")
    return Question(
        id=str(data.get("id")),
        qtype=qtype,
        prompt=prompt,
        options=data.get("options") if isinstance(data.get("options"), Mapping) else {},
        answer_key=data.get("answerKey"),
        max_score=max_score,
        order=order if isinstance(order, int) else position,
    )


def section_from_dict(data: Mapping, *, position: int = 0) -> Section:
    questions = _sort_by_order(list(data.get("questions") or []))
    parts = _sort_by_order(list(data.get("subsections") or data.get("parts") or []))
    order = data.get("order")
    return Section(
        id=str(data.get("id") or f"section-{position}"),
        type=str(data.get("type") or "").strip().upper(),
        title=str(data.get("title") or ""),
        order=order if isinstance(order, int) else position,
        questions=tuple(question_from_dict(q, position=i) for i, q in enumerate(questions)),
        parts=tuple(section_from_dict(p, position=i) for i, p in enumerate(parts)),
    )


def exam_from_dict(data: Mapping) -> Exam:
    sections = _sort_by_order(list(data.get("sections") or []))
    return Exam(
        id=str(data.get("id") or ""),
        title=str(data.get("title") or ""),
        category=str(data.get("category") or "GENERAL_ENGLISH").strip().upper(),
        sections=tuple(section_from_dict(s, position=i) for i, s in enumerate(sections)),
    )


def attempt_from_dict(data: Mapping) -> Attempt:
    attempt_id = str(data.get("id") or "")
    raw_status = str(data.get("status") or AttemptStatus.IN_PROGRESS.value).strip().upper()
    try:
        status = AttemptStatus(raw_status)
    except ValueError:
        logger.warning("attempt_unknown_status attempt_id=%s status=%r", attempt_id, raw_status)
        status = AttemptStatus.IN_PROGRESS
    submitted_at = data.get("submittedAt")
    if isinstance(submitted_at, str) and submitted_at:
        try:
            submitted_at = dt.datetime.fromisoformat(submitted_at.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("attempt_bad_submitted_at attempt_id=%s value=%r", attempt_id, submitted_at)
            submitted_at = None
    elif not isinstance(submitted_at, dt.datetime):
        submitted_at = None
    answers = data.get("answers")
    manual_scores = data.get("manualScores")
    return Attempt(
        id=attempt_id,
        exam_id=str(data.get("examId") or ""),
        answers=dict(answers) if isinstance(answers, Mapping) else {},
        manual_scores={
            str(k): v
            for k, v in (manual_scores.items() if isinstance(manual_scores, Mapping) else [])
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        },
        status=status,
        submitted_at=submitted_at,
    )
