import pytest
from exam_engine.exam import question_from_dict
from exam_engine.normalize import normalize
from exam_engine.transcoder import NO_SELECTION, from_editable, open_edit, to_editable

COLORS = {"choices": ["Red", "Blue", "Green"]}
TOKENS = {"tokens": ["I", "like", "tea"]}
DND = {"textWithBlanks": "I ___ home.\nWe ___ ___ late."}


def test_choice_text_edits_as_index():
    assert to_editable("MCQ_SINGLE", "Blue", COLORS) == 1
    assert to_editable("MCQ_SINGLE", "Purple", COLORS) is NO_SELECTION


def test_fill_in_blank_always_edits_as_mapping():
    assert to_editable("FILL_IN_BLANK", None) == {}
    assert to_editable("FILL_IN_BLANK", ["a", "b"]) == {}
    assert to_editable("FILL_IN_BLANK", {"0": "a"}) == {"0": "a"}


def test_text_edits_as_string():
    assert to_editable("SHORT_TEXT", None) == ""
    assert to_editable("ESSAY", "essay") == "essay"


def test_recording_edits_as_fields():
    assert to_editable("SPEAKING_RECORDING", None) == {"audioUrl": "", "durationSec": None}
    assert to_editable("SPEAKING_RECORDING", "u") == {"audioUrl": "u", "durationSec": None}


def test_select_posts_strings():
    assert from_editable("SELECT", "2", COLORS) == 2
    assert from_editable("SELECT", "", COLORS) is None
    assert from_editable("MCQ_MULTI", ["0", "2", ""], COLORS) == [0, 2]


def test_digit_choice_text_wins_over_index():
    options = {"choices": ["10", "20", "1"]}
    assert from_editable("MCQ_SINGLE", "1", options) == 2


ROUND_TRIP = [
    ("TF", True, {}),
    ("TF", "junk", {}),
    ("TF_NG", "not given", {}),
    ("MCQ_SINGLE", "Blue", COLORS),
    ("MCQ_SINGLE", "Purple", COLORS),
    ("SELECT", 2, COLORS),
    ("INLINE_SELECT", None, COLORS),
    ("MCQ_MULTI", ["Green", 0], COLORS),
    ("ORDER_SENTENCE", ["tea", "I", "like"], TOKENS),
    ("DND_GAP", ["go", "came", "back"], DND),
    ("DND_GAP", None, DND),
    ("FILL_IN_BLANK", {"0": "train", "1": ""}, {}),
    ("FILL_IN_BLANK", ["train"], {}),
    ("SHORT_TEXT", "  Paris ", {}),
    ("GAP", None, {}),
    ("ESSAY", "My essay", {}),
    ("SPEAKING_RECORDING", {"audioUrl": "u", "durationSec": 30}, {}),
    ("SPEAKING_RECORDING", None, {}),
]


@pytest.mark.parametrize("qtype,stored,options", ROUND_TRIP)
def test_edit_round_trip(qtype, stored, options):
    assert from_editable(qtype, to_editable(qtype, stored, options), options) == normalize(qtype, stored, options)


def _question():
    return question_from_dict(
        {
            "id": "q1",
            "qtype": "MCQ_SINGLE",
            "prompt": "Sky colour?",
            "options": COLORS,
            "answerKey": {"index": 1},
        }
    )


def test_edit_session_flow():
    session = open_edit(_question(), "Red")
    assert session.value == 0
    assert not session.changed
    assert session.preview == "Red"

    session = session.update("1")
    assert session.changed
    assert session.preview == "Blue"
    answer, result = session.commit()
    assert answer == 1
    assert result.is_correct is True


def test_edit_session_clear_selection():
    session = open_edit(_question(), 1).update("")
    answer, result = session.commit()
    assert answer is None
    assert result.score == 0
    assert session.preview == "No answer"


def test_non_ascii_digit_is_not_an_index():
    assert from_editable("SELECT", "²", {"choices": ["a"]}) is None
    assert from_editable("MCQ_MULTI", ["²", "0"], {"choices": ["a"]}) == [0]
