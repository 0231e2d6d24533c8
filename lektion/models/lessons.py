"""Models for reading lessons and their pages.

A lesson owns an ordered list of pages. Over time, pages have been stored in
three shapes, which we tell apart by which fields are present rather than by
an explicit tag:

- `LegacyPage`: `{id, content, imagesAbove?, imagesBelow?, questions?}`
- `RichPage`: `{id, doc, imagesAbove?, imagesBelow?, questions?}`
- `BlockPage`: `{id, blocks, meta?, questions?}`

Use `parse_page` to load a stored page into the right model.
"""

import logging
import uuid
from typing import Annotated, Any

from pydantic import BeforeValidator, ConfigDict, Field, ValidationError
from pydantic import field_validator, model_validator

from lektion.enums import QuestionType
from lektion.models.content import (
    Block,
    ContentModel,
    RichDoc,
    TextBlock,
    coerce_blocks,
    dedupe_block_ids,
)


logger = logging.getLogger(__name__)

#: Question type names used by older versions of the editor.
QUESTION_TYPE_ALIASES = {
    "multiple_choice": QuestionType.MULTIPLE_CHOICE,
    "multiple-choice": QuestionType.MULTIPLE_CHOICE,
    "true_false": QuestionType.TRUE_FALSE,
    "true-false": QuestionType.TRUE_FALSE,
    "open_ended": QuestionType.OPEN_ENDED,
    "open-ended": QuestionType.OPEN_ENDED,
    "open": QuestionType.OPEN_ENDED,
}


def _create_question_id() -> str:
    return f"q-{uuid.uuid4().hex[:12]}"


class Question(ContentModel):
    """A question on a lesson.

    General questions belong to the lesson as a whole. Contextual questions
    ("during reading") belong to a page through `page_id`.
    """

    #: Stable ID, independent of the question's position.
    id: str = Field(default_factory=_create_question_id)
    type: QuestionType = QuestionType.OPEN_ENDED
    #: The prompt shown to the student.
    question: str = ""
    #: Answer options for multiple-choice questions.
    alternatives: list[str] = Field(default_factory=list)
    #: An index into `alternatives` for multiple-choice questions, and a
    #: boolean or string for true/false questions.
    correct_answer: int | bool | str | None = None
    explanation: str | None = None
    #: The page that owns this question, or `None` for a general question.
    page_id: str | None = None
    #: (legacy) 1-based page position. Only read when loading old lessons,
    #: where it's converted to a `page_id`.
    page_number: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("id"):
            data.pop("id", None)
        if raw_type := data.get("type"):
            data["type"] = QUESTION_TYPE_ALIASES.get(str(raw_type).lower(), raw_type)
        if not data.get("alternatives") and data.get("options"):
            data["alternatives"] = data["options"]
        return data

    @model_validator(mode="after")
    def _check_correct_answer(self) -> "Question":
        if self.type != QuestionType.MULTIPLE_CHOICE:
            return self

        answer = self.correct_answer
        if isinstance(answer, str) and answer in self.alternatives:
            # Frozen, so go through `object.__setattr__`.
            object.__setattr__(self, "correct_answer", self.alternatives.index(answer))
        elif type(answer) is int and not 0 <= answer < len(self.alternatives):
            raise ValueError(
                f"Correct answer {answer} is out of range for "
                f"{len(self.alternatives)} alternatives"
            )
        return self


def load_questions(value: Any) -> list:
    """Load stored questions, dropping correct answers that are out of range.

    New questions are validated strictly. Stored questions were saved by older
    editors that didn't check bounds, so we repair them instead of failing.
    """
    if not value:
        return []

    questions = []
    for raw in value:
        if isinstance(raw, Question):
            questions.append(raw)
            continue
        try:
            questions.append(Question.model_validate(raw))
        except ValidationError:
            if not isinstance(raw, dict):
                raise
            questions.append(_repair_question(raw))
    return questions


def _repair_question(raw: dict) -> "Question":
    repaired = dict(raw)
    raw_type = repaired.get("type")
    if raw_type and QUESTION_TYPE_ALIASES.get(str(raw_type).lower(), raw_type) not in {
        t.value for t in QuestionType
    }:
        logger.warning(f"Unknown question type {raw_type!r}, using open-ended")
        repaired["type"] = QuestionType.OPEN_ENDED
        try:
            return Question.model_validate(repaired)
        except ValidationError:
            pass

    repaired = {
        k: v
        for k, v in repaired.items()
        if k not in ("correctAnswer", "correct_answer")
    }
    question = Question.model_validate(repaired)
    logger.warning(f"Dropped invalid correct answer for question {question.id}")
    return question


def _image_urls(value: Any) -> list:
    if not value:
        return []
    return [url for url in value if isinstance(url, str) and url]


StoredQuestions = Annotated[list[Question], BeforeValidator(load_questions)]
ImageUrls = Annotated[list[str], BeforeValidator(_image_urls)]


class PageMeta(ContentModel):
    word_count: int = 0
    #: Only set for block pages.
    block_count: int | None = None


class LegacyPage(ContentModel):
    """A page stored as a single HTML string."""

    id: str | None = None
    content: str | None = None
    images_above: ImageUrls = Field(default_factory=list)
    images_below: ImageUrls = Field(default_factory=list)
    questions: StoredQuestions = Field(default_factory=list)


class RichPage(ContentModel):
    """A page stored as a rich document."""

    id: str = ""
    doc: RichDoc = Field(default_factory=RichDoc)
    images_above: ImageUrls = Field(default_factory=list)
    images_below: ImageUrls = Field(default_factory=list)
    questions: StoredQuestions = Field(default_factory=list)
    meta: PageMeta | None = None


class BlockPage(ContentModel):
    """A page stored as editor blocks. Always has at least one block."""

    id: str = ""
    blocks: list[Block] = Field(default_factory=list, validate_default=True)
    meta: PageMeta | None = None
    questions: StoredQuestions = Field(default_factory=list)

    @field_validator("blocks", mode="before")
    @classmethod
    def _coerce_blocks(cls, value: Any) -> list:
        return coerce_blocks(value)

    @field_validator("blocks")
    @classmethod
    def _check_blocks(cls, value: list) -> list:
        return dedupe_block_ids(value) or [TextBlock()]


Page = LegacyPage | RichPage | BlockPage


def parse_page(raw: Any) -> Page:
    """Load a stored page, using field presence to pick its shape."""
    if isinstance(raw, (LegacyPage, RichPage, BlockPage)):
        return raw
    if isinstance(raw, str):
        return LegacyPage(content=raw)
    if not isinstance(raw, dict):
        return LegacyPage()

    if raw.get("blocks") is not None:
        return BlockPage.model_validate(raw)
    if raw.get("doc") is not None:
        return RichPage.model_validate(raw)
    return LegacyPage.model_validate(raw)


class Lesson(ContentModel):
    """A reading lesson as stored.

    Fields we don't model (grade level, word definitions, ...) are kept as-is
    so that they survive a load and save.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    title: str = ""
    #: (legacy) All pages as one string, separated by the page break marker.
    content: str = ""
    #: Pages in any of the three shapes.
    pages: list[Page] = Field(default_factory=list)
    rich_pages: list[RichPage] = Field(default_factory=list)
    block_pages: list[BlockPage] = Field(default_factory=list)
    #: True once `rich_pages` has been filled in from the legacy fields.
    migrated: bool = False
    #: The page count chosen in the editor.
    number_of_pages: int = 1
    is_published: bool = False
    questions: StoredQuestions = Field(default_factory=list)

    @field_validator("pages", mode="before")
    @classmethod
    def _parse_pages(cls, value: Any) -> list:
        return [parse_page(raw) for raw in value or []]

    @field_validator("rich_pages", "block_pages", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> list:
        return value or []

    @field_validator("content", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return value or ""

    @field_validator("number_of_pages", mode="before")
    @classmethod
    def _at_least_one_page(cls, value: Any) -> int:
        try:
            return max(int(value or 1), 1)
        except (TypeError, ValueError):
            return 1
