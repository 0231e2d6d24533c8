"""Utilities for lesson questions.

Every question has a stable ID. A question that belongs to a page stores that
page's ID in `page_id` and sits in the page's `questions` list. A general
question has no `page_id` and sits in the lesson's `questions` list. We never
locate a question by counting the questions on earlier pages, since that
breaks as soon as pages are reordered.
"""

import logging

from lektion.models.lessons import Lesson, Question


logger = logging.getLogger(__name__)


def _own(question: Question, page_id: str | None) -> Question:
    if question.page_id == page_id and question.page_number is None:
        return question
    return question.model_copy(update={"page_id": page_id, "page_number": None})


def attach_questions(pages: list, questions: list[Question]) -> tuple[list, list[Question]]:
    """Resolve which page owns each question.

    Questions on a page are stamped with that page's ID. Lesson-level
    questions that point to a page, either by `page_id` or by the legacy
    1-based `page_number`, are moved onto that page. The rest stay general.

    All pages must have an ID.

    :return: a tuple of the updated pages and the general questions.
    """
    by_id = {page.id: [] for page in pages}
    general = []
    for question in questions:
        page_id = question.page_id
        if page_id is None and question.page_number is not None:
            if 1 <= question.page_number <= len(pages):
                page_id = pages[question.page_number - 1].id
            else:
                logger.warning(
                    f"Question {question.id} refers to missing page "
                    f"{question.page_number}, keeping it as a general question"
                )
        elif page_id is not None and page_id not in by_id:
            logger.warning(
                f"Question {question.id} refers to unknown page {page_id!r}, "
                "keeping it as a general question"
            )
            page_id = None

        if page_id in by_id:
            by_id[page_id].append(_own(question, page_id))
        else:
            general.append(_own(question, None))

    new_pages = []
    for page in pages:
        page_questions = [_own(q, page.id) for q in page.questions] + by_id[page.id]
        new_pages.append(page.model_copy(update={"questions": page_questions}))
    return new_pages, general


def _page_list_field(lesson: Lesson) -> str:
    if lesson.block_pages:
        return "block_pages"
    if lesson.rich_pages:
        return "rich_pages"
    return "pages"


def general_questions(lesson: Lesson) -> list[Question]:
    return [q for q in lesson.questions if q.page_id is None]


def questions_for_page(lesson: Lesson, page_id: str) -> list[Question]:
    """Return the questions owned by the page with ID `page_id`."""
    for page in getattr(lesson, _page_list_field(lesson)):
        if page.id == page_id:
            return list(page.questions)
    return []


def assign_question_to_page(lesson: Lesson, question_id: str, page_id: str | None) -> Lesson:
    """Move a question to another page, or make it general if `page_id` is None.

    :raises KeyError: if there's no question with `question_id` or no page
        with `page_id`.
    """
    field = _page_list_field(lesson)
    pages = getattr(lesson, field)
    if page_id is not None and page_id not in {page.id for page in pages}:
        raise KeyError(f"Unknown page: {page_id}")

    found = None
    general = []
    for q in lesson.questions:
        if q.id == question_id:
            found = q
        else:
            general.append(q)

    stripped_pages = []
    for page in pages:
        kept = []
        for q in page.questions:
            if q.id == question_id:
                found = q
            else:
                kept.append(q)
        stripped_pages.append(page.model_copy(update={"questions": kept}))

    if found is None:
        raise KeyError(f"Unknown question: {question_id}")

    question = _own(found, page_id)
    if page_id is None:
        general.append(question)
    else:
        stripped_pages = [
            page.model_copy(update={"questions": [*page.questions, question]})
            if page.id == page_id
            else page
            for page in stripped_pages
        ]
    return lesson.model_copy(update={field: stripped_pages, "questions": general})
