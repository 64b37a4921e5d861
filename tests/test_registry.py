import pytest
from exam_engine.errors import InvalidAnswerKey, MissingAnswerKey, UnknownQuestionType
from exam_engine.qtypes import (
    AnyOfKey,
    FillInBlankKey,
    IndicesKey,
    QType,
    TFNGKey,
    coerce_qtype,
    ensure_exhaustive,
    is_auto_graded,
    is_unanswered,
    parse_answer_key,
    unanswered,
)


def test_coerce_qtype():
    assert coerce_qtype(" mcq_single ") is QType.MCQ_SINGLE
    with pytest.raises(UnknownQuestionType):
        coerce_qtype("HOTSPOT")
    with pytest.raises(UnknownQuestionType):
        coerce_qtype(None)


def test_manual_types():
    assert not is_auto_graded("ESSAY")
    assert not is_auto_graded("SPEAKING_RECORDING")
    assert is_auto_graded("GAP")


def test_ensure_exhaustive_names_missing_types():
    table = {qt: None for qt in QType if qt != QType.GAP}
    with pytest.raises(RuntimeError, match="GAP"):
        ensure_exhaustive(table, "demo")
    ensure_exhaustive({qt: None for qt in QType}, "demo")


@pytest.mark.parametrize(
    "qtype,sentinel",
    [
        ("TF", None),
        ("MCQ_SINGLE", None),
        ("MCQ_MULTI", []),
        ("ORDER_SENTENCE", []),
        ("DND_GAP", {}),
        ("FILL_IN_BLANK", {}),
        ("SHORT_TEXT", None),
        ("SPEAKING_RECORDING", None),
    ],
)
def test_unanswered_sentinels(qtype, sentinel):
    assert unanswered(qtype) == sentinel
    assert is_unanswered(qtype, sentinel)


def test_is_unanswered_whitespace():
    assert is_unanswered("FILL_IN_BLANK", {"0": " ", "1": ""})
    assert not is_unanswered("FILL_IN_BLANK", {"0": "a"})
    assert is_unanswered("SHORT_TEXT", "  ")
    assert not is_unanswered("TF", False)
    assert not is_unanswered("MCQ_SINGLE", 0)


def test_parse_keys():
    assert parse_answer_key("MCQ_MULTI", {"indices": [2, 0, 2]}) == IndicesKey((0, 2))
    assert parse_answer_key("TF_NG", {"value": "not given"}) == TFNGKey("NOT_GIVEN")
    assert parse_answer_key("GAP", {"answers": ["a", 5]}) == AnyOfKey(("a", "5"))
    key = parse_answer_key("FILL_IN_BLANK", {"answers": ["train", ["90%", "90 %"]], "caseSensitive": True})
    assert key == FillInBlankKey((("train",), ("90%", "90 %")), case_sensitive=True)
    assert key.blank_count == 2
    assert parse_answer_key("ESSAY", None) is None


@pytest.mark.parametrize(
    "qtype,raw,exc",
    [
        ("TF", None, MissingAnswerKey),
        ("TF", {"value": "yes"}, InvalidAnswerKey),
        ("TF_NG", {"value": "maybe"}, InvalidAnswerKey),
        ("SELECT", {"index": True}, InvalidAnswerKey),
        ("MCQ_MULTI", {"indices": [0, -1]}, InvalidAnswerKey),
        ("ORDER_SENTENCE", {"order": "0,1"}, InvalidAnswerKey),
        ("DND_GAP", {"blanks": [None]}, InvalidAnswerKey),
        ("FILL_IN_BLANK", {"answers": [[]]}, InvalidAnswerKey),
        ("FILL_IN_BLANK", {"answers": ["a"], "caseSensitive": "no"}, InvalidAnswerKey),
        ("SHORT_TEXT", "Paris", InvalidAnswerKey),
    ],
)
def test_invalid_keys(qtype, raw, exc):
    with pytest.raises(exc) as info:
        parse_answer_key(qtype, raw, question_id="q9")
    assert info.value.question_id == "q9"
