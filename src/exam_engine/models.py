from __future__ import annotations
import datetime as dt
import json
from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base
from .exam import Attempt, AttemptStatus

UTC = dt.timezone.utc
def utcnow() -> dt.datetime:
    return dt.datetime.now(tz=UTC)

class AttemptRecord(Base):
    __tablename__ = "attempts"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    exam_id: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(16), default=AttemptStatus.IN_PROGRESS.value)  # IN_PROGRESS | SUBMITTED | GRADED
    answers_json: Mapped[str] = mapped_column(Text, default="{}")          # question id -> StudentAnswer
    manual_scores_json: Mapped[str] = mapped_column(Text, default="{}")    # question id -> score (essay/speaking)
    summary_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # last AttemptSummary, recomputed in full
    revision: Mapped[int] = mapped_column(Integer, default=0)              # bumped by every correction
    submitted_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_attempt(self) -> Attempt:
        return Attempt(
            id=self.id,
            exam_id=self.exam_id,
            answers=json.loads(self.answers_json or "{}"),
            manual_scores=json.loads(self.manual_scores_json or "{}"),
            status=AttemptStatus(self.status),
            submitted_at=self.submitted_at,
        )

    @classmethod
    def from_attempt(cls, attempt: Attempt) -> AttemptRecord:
        return cls(
            id=attempt.id,
            exam_id=attempt.exam_id,
            status=attempt.status.value,
            answers_json=json.dumps(dict(attempt.answers), ensure_ascii=False),
            manual_scores_json=json.dumps(dict(attempt.manual_scores)),
            submitted_at=attempt.submitted_at,
            revision=0,
            updated_at=utcnow(),
        )

class AnswerCorrection(Base):
    __tablename__ = "answer_corrections"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    attempt_id: Mapped[str] = mapped_column(String(64), ForeignKey("attempts.id"))
    question_id: Mapped[str] = mapped_column(String(64))
    previous_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    answer_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    __table_args__ = (Index("ix_corrections_attempt_question", "attempt_id", "question_id"),)
