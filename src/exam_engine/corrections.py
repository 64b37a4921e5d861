from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import weakref
from collections.abc import Mapping
from typing import Any, Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .aggregate import LISTENING_QUESTIONS_PER_PART, AttemptSummary, BandMap, summarize_attempt
from .errors import AttemptStateError, ConfigurationError, UnknownAttempt
from .exam import Attempt, AttemptStatus, Exam
from .models import AnswerCorrection, AttemptRecord, utcnow
from .transcoder import from_editable

logger = logging.getLogger(__name__)


def apply_correction(
    exam: Exam,
    attempt: Attempt,
    question_id: str,
    form_value: Any,
    *,
    band_maps: Iterable[BandMap] | None = None,
    part_size: int = LISTENING_QUESTIONS_PER_PART,
) -> tuple[Attempt, AttemptSummary]:
    """Replace one question's answer and re-aggregate the whole attempt.

    Only the targeted answer changes. The summary is recomputed from scratch.
    """
    if attempt.status == AttemptStatus.IN_PROGRESS:
        raise AttemptStateError(f"attempt {attempt.id!r} has not been submitted")
    _, question = exam.find_question(question_id)
    answer = from_editable(question.qtype, form_value, question.grading_options())
    corrected = attempt.with_answer(question_id, answer)
    logger.info(
        "answer_corrected attempt_id=%s question_id=%s qtype=%s",
        attempt.id,
        question_id,
        question.qtype,
    )
    return corrected, summarize_attempt(exam, corrected, band_maps=band_maps, part_size=part_size)


def summary_to_json(summary: AttemptSummary) -> str:
    return json.dumps(dataclasses.asdict(summary), ensure_ascii=False)


class CorrectionService:
    """Serializes corrections and summary reads per attempt.

    Each attempt gets its own ``asyncio.Lock``; different attempts never wait
    on each other.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        exams: Mapping[str, Exam],
        *,
        band_maps: Iterable[BandMap] | None = None,
        part_size: int = LISTENING_QUESTIONS_PER_PART,
    ):
        self._sessionmaker = sessionmaker
        self._exams = exams
        self._band_maps = list(band_maps or [])
        self._part_size = part_size
        # An entry lives only while some task holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock(self, attempt_id: str) -> asyncio.Lock:
        lock = self._locks.get(attempt_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[attempt_id] = lock
        return lock

    def _exam(self, exam_id: str) -> Exam:
        exam = self._exams.get(exam_id)
        if exam is None:
            raise ConfigurationError(f"exam {exam_id!r} is not loaded")
        return exam

    async def _record(self, s: AsyncSession, attempt_id: str) -> AttemptRecord:
        record = await s.get(AttemptRecord, attempt_id)
        if record is None:
            raise UnknownAttempt(f"attempt {attempt_id!r} not found")
        return record

    async def save(self, attempt: Attempt) -> None:
        """Store a new attempt or update status, manual scores and submit time.

        Once an attempt has left IN_PROGRESS its answers change only through
        ``apply``; a stale snapshot passed here never overwrites corrections,
        and the correction ``revision`` is kept.
        """
        async with self._lock(attempt.id):
            async with self._sessionmaker() as s:
                record = await s.get(AttemptRecord, attempt.id)
                if record is None:
                    s.add(AttemptRecord.from_attempt(attempt))
                    await s.commit()
                    return
                answers_json = json.dumps(dict(attempt.answers), ensure_ascii=False)
                if record.status == AttemptStatus.IN_PROGRESS.value:
                    record.answers_json = answers_json
                elif answers_json != record.answers_json:
                    logger.warning(
                        "save_kept_stored_answers attempt_id=%s revision=%s status=%s",
                        attempt.id,
                        record.revision,
                        record.status,
                    )
                record.status = attempt.status.value
                record.manual_scores_json = json.dumps(dict(attempt.manual_scores))
                record.submitted_at = attempt.submitted_at
                record.summary_json = None  # stale until the next summary()
                record.updated_at = utcnow()
                await s.commit()

    async def apply(self, attempt_id: str, question_id: str, form_value: Any) -> AttemptSummary:
        async with self._lock(attempt_id):
            async with self._sessionmaker() as s:
                record = await self._record(s, attempt_id)
                attempt = record.to_attempt()
                previous = attempt.answers.get(question_id)
                corrected, summary = apply_correction(
                    self._exam(record.exam_id),
                    attempt,
                    question_id,
                    form_value,
                    band_maps=self._band_maps,
                    part_size=self._part_size,
                )
                record.answers_json = json.dumps(dict(corrected.answers), ensure_ascii=False)
                record.summary_json = summary_to_json(summary)
                record.revision = (record.revision or 0) + 1
                record.updated_at = utcnow()
                s.add(
                    AnswerCorrection(
                        attempt_id=attempt_id,
                        question_id=question_id,
                        previous_json=json.dumps(previous, ensure_ascii=False),
                        answer_json=json.dumps(corrected.answers.get(question_id), ensure_ascii=False),
                        revision=record.revision,
                    )
                )
                await s.commit()
        return summary

    async def summary(self, attempt_id: str) -> AttemptSummary:
        async with self._lock(attempt_id):
            async with self._sessionmaker() as s:
                record = await self._record(s, attempt_id)
                attempt = record.to_attempt()
                summary = summarize_attempt(
                    self._exam(record.exam_id),
                    attempt,
                    band_maps=self._band_maps,
                    part_size=self._part_size,
                )
                record.summary_json = summary_to_json(summary)
                await s.commit()
        return summary
