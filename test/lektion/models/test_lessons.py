import pytest
from pydantic import ValidationError

from lektion.enums import QuestionType
from lektion.models import lessons as lm


EMPTY_DOC = {"type": "doc", "content": []}


@pytest.mark.parametrize(
    "input,expected",
    [
        ({"id": "1", "content": "<p>x</p>"}, lm.LegacyPage),
        ({"id": "1", "content": None}, lm.LegacyPage),
        ({"id": "1"}, lm.LegacyPage),
        ("<p>x</p>", lm.LegacyPage),
        ({"id": "1", "doc": EMPTY_DOC}, lm.RichPage),
        # A page migrated on the client keeps its old `content`.
        ({"id": "1", "doc": EMPTY_DOC, "content": "<p>x</p>"}, lm.RichPage),
        ({"id": "1", "doc": None, "content": "<p>x</p>"}, lm.LegacyPage),
        ({"id": "1", "blocks": []}, lm.BlockPage),
        ({"id": "1", "blocks": [], "doc": EMPTY_DOC}, lm.BlockPage),
    ],
)
def test_parse_page(input, expected):
    assert type(lm.parse_page(input)) is expected


def test_parse_page__keeps_models():
    page = lm.RichPage(id="1")
    assert lm.parse_page(page) is page


def test_legacy_page__image_urls():
    page = lm.LegacyPage.model_validate(
        {"content": "x", "imagesAbove": ["a.png", None, ""], "imagesBelow": None}
    )
    assert page.images_above == ["a.png"]
    assert page.images_below == []


@pytest.mark.parametrize(
    "input,expected",
    [
        ("multiple-choice", QuestionType.MULTIPLE_CHOICE),
        ("multiple_choice", QuestionType.MULTIPLE_CHOICE),
        ("true-false", QuestionType.TRUE_FALSE),
        ("true_false", QuestionType.TRUE_FALSE),
        ("open-ended", QuestionType.OPEN_ENDED),
        ("open_ended", QuestionType.OPEN_ENDED),
        ("open", QuestionType.OPEN_ENDED),
        ("Open", QuestionType.OPEN_ENDED),
    ],
)
def test_question_type_aliases(input, expected):
    q = lm.Question.model_validate({"type": input, "question": "?"})
    assert q.type == expected


def test_question__options_alias():
    q = lm.Question.model_validate(
        {"type": "multiple_choice", "options": ["a", "b"], "correctAnswer": 1}
    )
    assert q.alternatives == ["a", "b"]
    assert q.correct_answer == 1


def test_question__string_answer_becomes_index():
    q = lm.Question.model_validate(
        {"type": "multiple-choice", "alternatives": ["a", "b"], "correctAnswer": "b"}
    )
    assert q.correct_answer == 1


def test_question__true_false_answer():
    q = lm.Question.model_validate({"type": "true-false", "correctAnswer": True})
    assert q.correct_answer is True


def test_question__creates_stable_id():
    q = lm.Question(question="?")
    assert q.id.startswith("q-")
    assert lm.Question.model_validate(q.to_json()).id == q.id


@pytest.mark.parametrize("answer", [-1, 2, 10])
def test_question__out_of_range_answer_is_rejected(answer):
    with pytest.raises(ValidationError):
        lm.Question(
            type=QuestionType.MULTIPLE_CHOICE,
            alternatives=["a", "b"],
            correct_answer=answer,
        )


def test_stored_question__out_of_range_answer_is_dropped(caplog):
    lesson = lm.Lesson.model_validate(
        {
            "questions": [
                {
                    "id": "q1",
                    "type": "multiple_choice",
                    "alternatives": ["a"],
                    "correctAnswer": 5,
                }
            ]
        }
    )
    (q,) = lesson.questions
    assert q.id == "q1"
    assert q.correct_answer is None
    assert "q1" in caplog.text


def test_stored_question__unknown_type_becomes_open_ended(caplog):
    lesson = lm.Lesson.model_validate(
        {
            "questions": [
                {"id": "q1", "type": "essay", "question": "Varför?"},
                {"id": "q2", "type": "true-false", "correctAnswer": True},
            ]
        }
    )
    q1, q2 = lesson.questions
    assert q1.type == QuestionType.OPEN_ENDED
    assert q1.question == "Varför?"
    assert q2.type == QuestionType.TRUE_FALSE
    assert "essay" in caplog.text


def test_lesson__defaults():
    lesson = lm.Lesson.model_validate({"content": None, "pages": None})
    assert lesson.content == ""
    assert lesson.pages == []
    assert lesson.rich_pages == []
    assert lesson.number_of_pages == 1
    assert not lesson.migrated


@pytest.mark.parametrize(
    "input,expected",
    [(None, 1), (0, 1), (-2, 1), (3, 3), ("2", 2), ("many", 1)],
)
def test_lesson__number_of_pages(input, expected):
    lesson = lm.Lesson.model_validate({"numberOfPages": input})
    assert lesson.number_of_pages == expected


def test_lesson__mixed_pages():
    lesson = lm.Lesson.model_validate(
        {
            "pages": [
                {"id": "1", "content": "<p>a</p>"},
                {"id": "2", "doc": EMPTY_DOC},
                {"id": "3", "blocks": []},
            ]
        }
    )
    assert [type(p) for p in lesson.pages] == [lm.LegacyPage, lm.RichPage, lm.BlockPage]


def test_lesson__keeps_unknown_fields():
    lesson = lm.Lesson.model_validate(
        {"title": "T", "gradeLevel": "4", "isPublished": 1, "numberOfPages": 2}
    )
    data = lesson.to_json()
    assert data["gradeLevel"] == "4"
    assert data["isPublished"] is True
    assert data["numberOfPages"] == 2
