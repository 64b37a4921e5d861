import pytest
from exam_engine.errors import InvalidAnswerKey, MissingAnswerKey, UnknownQuestionType
from exam_engine.grader import grade
from exam_engine.normalize import normalize
from exam_engine.qtypes import IndexKey

FIB_KEY = {"answers": ["train", ["90%", "90 %"]]}
COLORS = {"choices": ["Red", "Blue", "Green"]}
DND_OPTIONS = {
    "textWithBlanks": "I ___ to school.\nShe ___ a ___ book.",
    "bank": ["go", "reads", "good", "went"],
}
DND_KEY = {"blanks": ["go", "reads", "good"]}


def test_fill_in_blank_partial_credit():
    res = grade("FILL_IN_BLANK", {"0": "Train", "1": "90 %"}, FIB_KEY)
    assert res.score == 2
    assert res.is_correct is True
    assert res.max_score == 2


def test_fill_in_blank_partial_mismatch():
    res = grade("FILL_IN_BLANK", {"0": "bus", "1": "90%"}, FIB_KEY)
    assert res.score == 1
    assert res.is_correct is False
    assert res.blanks == (False, True)


def test_fill_in_blank_ignores_inner_whitespace_and_case():
    res = grade("FILL_IN_BLANK", {"0": "  T rain ", "1": "90  %"}, FIB_KEY)
    assert res.score == 2


def test_fill_in_blank_case_sensitive():
    key = {"answers": ["Train"], "caseSensitive": True}
    assert grade("FILL_IN_BLANK", {"0": "train"}, key).score == 0
    assert grade("FILL_IN_BLANK", {"0": "Train "}, key).score == 1


def test_fill_in_blank_legacy_blanks_key():
    res = grade("FILL_IN_BLANK", {"0": "a", "1": "b"}, {"blanks": ["a", "b"]})
    assert res.is_correct is True


def test_unanswered_fill_in_blank_scores_zero():
    empty = normalize("FILL_IN_BLANK", None)
    assert empty == {}
    res = grade("FILL_IN_BLANK", empty, FIB_KEY)
    assert res.score == 0
    assert res.is_correct is False


def test_mcq_multi_exact_set():
    key = {"indices": [0, 2]}
    assert grade("MCQ_MULTI", [0, 1, 2], key).is_correct is False
    assert grade("MCQ_MULTI", [2, 0], key).is_correct is True
    assert grade("MCQ_MULTI", [0], key).score == 0


@pytest.mark.parametrize("qtype", ["MCQ_SINGLE", "SELECT", "INLINE_SELECT"])
def test_index_types_accept_choice_text(qtype):
    assert grade(qtype, "Blue", {"index": 1}, COLORS).is_correct is True
    assert grade(qtype, 1, {"index": 1}, COLORS).is_correct is True
    assert grade(qtype, "Purple", {"index": 0}, COLORS).is_correct is False


def test_unanswered_index_is_not_index_zero():
    assert grade("MCQ_SINGLE", "Purple", {"index": 0}, COLORS).score == 0
    assert grade("MCQ_SINGLE", None, {"index": 0}, COLORS).score == 0


def test_tf_unanswered_never_matches_false_key():
    assert grade("TF", None, {"value": False}).is_correct is False
    assert grade("TF", False, {"value": False}).is_correct is True
    assert grade("TF", "true", {"value": True}).is_correct is True


def test_tf_ng_case_insensitive():
    assert grade("TF_NG", "not given", {"value": "NOT_GIVEN"}).is_correct is True
    assert grade("TF_NG", "False", {"value": "FALSE"}).is_correct is True
    assert grade("TF_NG", "TRUE", {"value": "NOT_GIVEN"}).is_correct is False


def test_order_sentence_positional():
    key = {"order": [0, 1, 2]}
    assert grade("ORDER_SENTENCE", [0, 1, 2], key).is_correct is True
    assert grade("ORDER_SENTENCE", [2, 0, 1], key).is_correct is False
    assert grade("ORDER_SENTENCE", [], key).is_correct is False


@pytest.mark.parametrize("qtype", ["SHORT_TEXT", "GAP"])
def test_short_text_any_of(qtype):
    key = {"answers": ["Paris", "the city of Paris"]}
    assert grade(qtype, "  paris ", key).is_correct is True
    assert grade(qtype, "The City of Paris", key).is_correct is True
    assert grade(qtype, "Lyon", key).is_correct is False
    assert grade(qtype, "   ", key).is_correct is False


def test_empty_key_answer_never_matches_blank_input():
    assert grade("SHORT_TEXT", "", {"answers": [""]}).is_correct is False


def test_dnd_gap_all_blanks():
    student = {"0": "Go ", "1-0": "reads", "1-1": "GOOD"}
    res = grade("DND_GAP", student, DND_KEY, DND_OPTIONS)
    assert res.is_correct is True
    assert res.blanks == (True, True, True)


def test_dnd_gap_unattempted_blank_is_wrong():
    res = grade("DND_GAP", {"0": "go", "1-0": "reads"}, DND_KEY, DND_OPTIONS)
    assert res.is_correct is False
    assert res.score == 0
    assert res.blanks == (True, True, False)


def test_dnd_gap_positional_list():
    assert grade("DND_GAP", ["go", "reads", "good"], DND_KEY, DND_OPTIONS).is_correct is True


def test_dnd_gap_without_layout_uses_positions():
    assert grade("DND_GAP", {"0": "go", "1": "reads", "2": "good"}, DND_KEY).is_correct is True


@pytest.mark.parametrize("qtype", ["ESSAY", "SPEAKING_RECORDING"])
def test_manual_types_pending(qtype):
    res = grade(qtype, "anything", None)
    assert res.is_pending
    assert res.is_correct is None
    assert res.score == 0


def test_manual_score_resolves_pending():
    res = grade("ESSAY", "text", None, max_score=9, manual_score=9)
    assert res.is_correct is True
    assert res.manual is True
    res = grade("ESSAY", "text", None, max_score=9, manual_score=6)
    assert res.is_correct is False
    assert res.score == 6


def test_full_credit_uses_max_score():
    assert grade("TF", True, {"value": True}, max_score=2).score == 2


def test_parsed_key_accepted():
    assert grade("MCQ_SINGLE", 2, IndexKey(2)).is_correct is True


def test_configuration_errors():
    with pytest.raises(UnknownQuestionType):
        grade("HOTSPOT", 1, {"index": 1})
    with pytest.raises(MissingAnswerKey):
        grade("MCQ_SINGLE", 1, None)
    with pytest.raises(InvalidAnswerKey):
        grade("MCQ_SINGLE", 1, {"index": "one"})
    with pytest.raises(InvalidAnswerKey):
        grade("MCQ_SINGLE", 1, [1])


def test_malformed_answer_never_raises():
    assert grade("MCQ_MULTI", {"weird": True}, {"indices": [1]}).is_correct is False
    assert grade("ORDER_SENTENCE", "0,1", {"order": [0, 1]}).is_correct is False
    assert grade("FILL_IN_BLANK", ["train", "90%"], FIB_KEY).score == 0


def test_grading_is_deterministic():
    first = grade("FILL_IN_BLANK", {"0": "bus", "1": "90%"}, FIB_KEY)
    second = grade("FILL_IN_BLANK", {"0": "bus", "1": "90%"}, FIB_KEY)
    assert first == second
