from exam_engine.exam import exam_from_dict
from exam_engine.validation import validate_exam


def _exam(questions, *, section_type="GRAMMAR", category="GENERAL_ENGLISH"):
    return exam_from_dict(
        {
            "id": "e1",
            "category": category,
            "sections": [{"id": "s1", "type": section_type, "questions": questions}],
        }
    )


def _messages(exam, severity):
    return [i.message for i in validate_exam(exam) if i.severity == severity]


def test_clean_exam_has_no_issues():
    exam = _exam(
        [
            {"id": "q1", "qtype": "TF", "answerKey": {"value": True}},
            {"id": "q2", "qtype": "MCQ_SINGLE", "options": {"choices": ["a", "b"]}, "answerKey": {"index": 1}},
            {"id": "q3", "qtype": "FILL_IN_BLANK", "prompt": {"text": "Go by [input]."}, "answerKey": {"answers": ["bus"]}},
            {"id": "q4", "qtype": "ESSAY"},
        ]
    )
    assert validate_exam(exam) == []


def test_index_outside_choices():
    exam = _exam([{"id": "q1", "qtype": "SELECT", "options": {"choices": ["a"]}, "answerKey": {"index": 3}}])
    assert _messages(exam, "error") == ["answerKey.index outside choices"]


def test_unknown_qtype_and_missing_key():
    exam = _exam(
        [
            {"id": "q1", "qtype": "HOTSPOT", "answerKey": {}},
            {"id": "q2", "qtype": "TF"},
        ]
    )
    issues = validate_exam(exam)
    assert [i.question_id for i in issues if i.severity == "error"] == ["q1", "q2"]


def test_mcq_multi_duplicates_warn():
    exam = _exam(
        [{"id": "q1", "qtype": "MCQ_MULTI", "options": {"choices": ["a", "b"]}, "answerKey": {"indices": [1, 1]}}]
    )
    assert _messages(exam, "warning") == ["answerKey.indices has duplicates"]
    assert _messages(exam, "error") == []


def test_order_must_be_permutation():
    exam = _exam(
        [{"id": "q1", "qtype": "ORDER_SENTENCE", "options": {"tokens": ["a", "b", "c"]}, "answerKey": {"order": [0, 0, 1]}}]
    )
    assert _messages(exam, "error") == ["answerKey.order is not a permutation of the tokens"]


def test_fill_in_blank_count_mismatch():
    exam = _exam(
        [{"id": "q1", "qtype": "FILL_IN_BLANK", "prompt": {"text": "[input] and [input]"}, "answerKey": {"answers": ["a"]}}]
    )
    assert _messages(exam, "error") == ["answerKey has 1 blanks but the prompt has 2"]
    assert _messages(exam, "warning") == ["maxScore 2 differs from blank count 1"]


def test_dnd_word_not_in_bank():
    exam = _exam(
        [
            {
                "id": "q1",
                "qtype": "DND_GAP",
                "prompt": {"textWithBlanks": "I ___ home."},
                "options": {"bank": ["go", "went"]},
                "answerKey": {"blanks": ["come"]},
            }
        ]
    )
    assert _messages(exam, "error") == ["answerKey.blanks entry 'come' not in word bank"]


def test_duplicate_question_id():
    exam = _exam(
        [
            {"id": "q1", "qtype": "TF", "answerKey": {"value": True}},
            {"id": "q1", "qtype": "TF", "answerKey": {"value": False}},
        ]
    )
    assert _messages(exam, "error") == ["duplicate question id"]


def test_ielts_listening_question_count_warning():
    exam = _exam(
        [{"id": "q1", "qtype": "TF", "answerKey": {"value": True}}],
        section_type="LISTENING",
        category="IELTS",
    )
    issues = validate_exam(exam)
    assert len(issues) == 1
    assert issues[0].severity == "warning"
    assert issues[0].question_id is None
