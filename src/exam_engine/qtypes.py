from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import InvalidAnswerKey, MissingAnswerKey, UnknownQuestionType


class QType(str, Enum):
    MCQ_SINGLE = "MCQ_SINGLE"
    MCQ_MULTI = "MCQ_MULTI"
    TF = "TF"
    TF_NG = "TF_NG"
    SELECT = "SELECT"
    INLINE_SELECT = "INLINE_SELECT"
    ORDER_SENTENCE = "ORDER_SENTENCE"
    DND_GAP = "DND_GAP"
    SHORT_TEXT = "SHORT_TEXT"
    GAP = "GAP"  # legacy any-of text gap, graded like SHORT_TEXT
    ESSAY = "ESSAY"
    FILL_IN_BLANK = "FILL_IN_BLANK"
    SPEAKING_RECORDING = "SPEAKING_RECORDING"


INDEX_TYPES = frozenset({QType.MCQ_SINGLE, QType.SELECT, QType.INLINE_SELECT})
TEXT_KEY_TYPES = frozenset({QType.SHORT_TEXT, QType.GAP})
BLANK_TYPES = frozenset({QType.DND_GAP, QType.FILL_IN_BLANK})
MANUAL_TYPES = frozenset({QType.ESSAY, QType.SPEAKING_RECORDING})

TF_NG_VALUES = ("TRUE", "FALSE", "NOT_GIVEN")


def coerce_qtype(value: Any) -> QType:
    if isinstance(value, QType):
        return value
    try:
        return QType(str(value).strip().upper())
    except ValueError:
        raise UnknownQuestionType(f"unknown question type: {value!r}") from None


def is_auto_graded(qtype: Any) -> bool:
    return coerce_qtype(qtype) not in MANUAL_TYPES


def ensure_exhaustive(table: Mapping, name: str) -> None:
    """Fail at import time when a dispatch table misses a question type."""
    missing = [qt.value for qt in QType if qt not in table]
    if missing:
        raise RuntimeError(f"{name} does not handle question types: {', '.join(missing)}")


# Answer keys: one variant per qtype family.

@dataclass(frozen=True)
class BoolKey:
    value: bool


@dataclass(frozen=True)
class TFNGKey:
    value: str


@dataclass(frozen=True)
class IndexKey:
    index: int


@dataclass(frozen=True)
class IndicesKey:
    indices: tuple[int, ...]


@dataclass(frozen=True)
class OrderKey:
    order: tuple[int, ...]


@dataclass(frozen=True)
class DndKey:
    blanks: tuple[str, ...]


@dataclass(frozen=True)
class AnyOfKey:
    answers: tuple[str, ...]


@dataclass(frozen=True)
class FillInBlankKey:
    answers: tuple[tuple[str, ...], ...]  # accepted alternatives per blank
    case_sensitive: bool = False

    @property
    def blank_count(self) -> int:
        return len(self.answers)


AnswerKey = Union[BoolKey, TFNGKey, IndexKey, IndicesKey, OrderKey, DndKey, AnyOfKey, FillInBlankKey]


def is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _key_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _index_list(raw: Any, field: str, question_id: str | None) -> list[int]:
    if not isinstance(raw, (list, tuple)) or not all(is_index(x) for x in raw):
        raise InvalidAnswerKey(f"answerKey.{field} must be a list of non-negative integers", question_id=question_id)
    return list(raw)


def _text_list(raw: Any, field: str, question_id: str | None) -> tuple[str, ...]:
    if not isinstance(raw, (list, tuple)):
        raise InvalidAnswerKey(f"answerKey.{field} must be a list of strings", question_id=question_id)
    out = []
    for entry in raw:
        text = _key_text(entry)
        if text is None:
            raise InvalidAnswerKey(f"answerKey.{field} must be a list of strings", question_id=question_id)
        out.append(text)
    return tuple(out)


def _fill_in_blank_entry(entry: Any, question_id: str | None) -> tuple[str, ...]:
    if isinstance(entry, (list, tuple)):
        alternatives = _text_list(entry, "answers[]", question_id)
        if not alternatives:
            raise InvalidAnswerKey("answerKey.answers entry has no accepted alternatives", question_id=question_id)
        return alternatives
    text = _key_text(entry)
    if text is None:
        raise InvalidAnswerKey("answerKey.answers entry must be a string or list of strings", question_id=question_id)
    return (text,)


def parse_answer_key(qtype: Any, raw: Any, *, question_id: str | None = None) -> AnswerKey | None:
    qt = coerce_qtype(qtype)
    if qt in MANUAL_TYPES:
        return None
    if raw is None:
        raise MissingAnswerKey(f"{qt.value} question has no answerKey", question_id=question_id)
    if not isinstance(raw, Mapping):
        raise InvalidAnswerKey(f"{qt.value} answerKey must be an object", question_id=question_id)

    if qt == QType.TF:
        value = raw.get("value")
        if not isinstance(value, bool):
            raise InvalidAnswerKey("answerKey.value must be a boolean", question_id=question_id)
        return BoolKey(value)
    if qt == QType.TF_NG:
        value = str(raw.get("value") or "").strip().upper().replace(" ", "_")
        if value not in TF_NG_VALUES:
            raise InvalidAnswerKey("answerKey.value must be TRUE, FALSE or NOT_GIVEN", question_id=question_id)
        return TFNGKey(value)
    if qt in INDEX_TYPES:
        index = raw.get("index")
        if not is_index(index):
            raise InvalidAnswerKey("answerKey.index must be a non-negative integer", question_id=question_id)
        return IndexKey(index)
    if qt == QType.MCQ_MULTI:
        return IndicesKey(tuple(sorted(set(_index_list(raw.get("indices"), "indices", question_id)))))
    if qt == QType.ORDER_SENTENCE:
        return OrderKey(tuple(_index_list(raw.get("order"), "order", question_id)))
    if qt == QType.DND_GAP:
        return DndKey(_text_list(raw.get("blanks"), "blanks", question_id))
    if qt in TEXT_KEY_TYPES:
        return AnyOfKey(_text_list(raw.get("answers"), "answers", question_id))
    if qt == QType.FILL_IN_BLANK:
        entries = raw.get("answers")
        if entries is None:
            entries = raw.get("blanks")  # early authoring default
        if not isinstance(entries, (list, tuple)):
            raise InvalidAnswerKey("answerKey.answers must be a list", question_id=question_id)
        case_sensitive = raw.get("caseSensitive", False)
        if not isinstance(case_sensitive, bool):
            raise InvalidAnswerKey("answerKey.caseSensitive must be a boolean", question_id=question_id)
        return FillInBlankKey(
            tuple(_fill_in_blank_entry(e, question_id) for e in entries),
            case_sensitive=case_sensitive,
        )
    raise UnknownQuestionType(f"unknown question type: {qt!r}")


def unanswered(qtype: Any) -> Any:
    qt = coerce_qtype(qtype)
    if qt in (QType.MCQ_MULTI, QType.ORDER_SENTENCE):
        return []
    if qt in BLANK_TYPES:
        return {}
    return None


def is_unanswered(qtype: Any, answer: Any) -> bool:
    qt = coerce_qtype(qtype)
    if answer is None:
        return True
    if qt in (QType.MCQ_MULTI, QType.ORDER_SENTENCE):
        return not answer
    if qt in BLANK_TYPES:
        return not any(isinstance(v, str) and v.strip() for v in answer.values())
    if qt in TEXT_KEY_TYPES or qt == QType.ESSAY:
        return not answer.strip()
    return False


_KEY_CLASSES: dict[QType, type | None] = {
    QType.TF: BoolKey,
    QType.TF_NG: TFNGKey,
    QType.MCQ_SINGLE: IndexKey,
    QType.SELECT: IndexKey,
    QType.INLINE_SELECT: IndexKey,
    QType.MCQ_MULTI: IndicesKey,
    QType.ORDER_SENTENCE: OrderKey,
    QType.DND_GAP: DndKey,
    QType.FILL_IN_BLANK: FillInBlankKey,
    QType.SHORT_TEXT: AnyOfKey,
    QType.GAP: AnyOfKey,
    QType.ESSAY: None,
    QType.SPEAKING_RECORDING: None,
}
ensure_exhaustive(_KEY_CLASSES, "answer key registry")


def coerce_answer_key(qtype: Any, key: Any, *, question_id: str | None = None) -> AnswerKey | None:
    """Parsed key for ``qtype`` from either the stored mapping or a parsed key."""
    qt = coerce_qtype(qtype)
    expected = _KEY_CLASSES[qt]
    if expected is not None and isinstance(key, expected):
        return key
    if expected is not None and key is not None and not isinstance(key, Mapping):
        raise InvalidAnswerKey(
            f"{qt.value} answerKey has the wrong shape ({type(key).__name__})",
            question_id=question_id,
        )
    return parse_answer_key(qt, key, question_id=question_id)
