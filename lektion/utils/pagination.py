"""Utilities for splitting lesson content into pages.

Older lessons store all of their pages in one string, separated by a fixed
marker (`PAGE_BREAK`). Newer lessons store a list of pages, and the editor
keeps that list in step with the lesson's declared page count.
"""

import logging
import uuid

from lektion.consts import PAGE_BREAK, PAGE_BREAK_SEPARATOR
from lektion.models.content import RichDoc, TextBlock
from lektion.models.lessons import BlockPage, LegacyPage, Lesson, PageMeta, RichPage
from lektion.utils.blocks import blocks_to_rich_doc
from lektion.utils.html_codec import html_to_rich_doc
from lektion.utils.rich_doc import is_empty_rich_doc


logger = logging.getLogger(__name__)


def new_page_id() -> str:
    return f"page-{uuid.uuid4().hex[:12]}"


def split_pages(content: str | None, delimiter: str = PAGE_BREAK) -> list[str]:
    """Split combined content into pages.

    If `content` has no delimiter, it's returned as the only page. Otherwise,
    each page is stripped and empty pages are dropped.
    """
    content = content or ""
    if delimiter not in content:
        return [content]

    pages = [segment.strip() for segment in content.split(delimiter)]
    return [page for page in pages if page] or [""]


def join_pages(pages: list[str], separator: str = PAGE_BREAK_SEPARATOR) -> str:
    """The inverse of `split_pages`."""
    return separator.join(pages)


def page_has_content(page: LegacyPage | RichPage | BlockPage) -> bool:
    """Return whether removing `page` would lose anything an author wrote."""
    if page.questions:
        return True
    match page:
        case BlockPage():
            return not is_empty_rich_doc(blocks_to_rich_doc(page.blocks))
        case RichPage():
            has_images = page.images_above or page.images_below
            return bool(has_images) or not is_empty_rich_doc(page.doc)
        case _:
            has_images = page.images_above or page.images_below
            return bool(has_images) or not is_empty_rich_doc(html_to_rich_doc(page.content))


def create_empty_page(page_type: type = BlockPage) -> LegacyPage | RichPage | BlockPage:
    page_id = new_page_id()
    if page_type is BlockPage:
        return BlockPage(id=page_id, blocks=[TextBlock()], meta=PageMeta(block_count=1))
    if page_type is RichPage:
        return RichPage(id=page_id, doc=RichDoc(), meta=PageMeta())
    return LegacyPage(id=page_id, content="")


def resize_pages(pages: list, count: int, page_type: type = BlockPage) -> list:
    """Grow or shrink `pages` to `count` pages, always at the tail.

    New pages are empty. Pages are only ever dropped from the end, and we log
    a warning for each dropped page that had content.
    """
    count = max(count, 1)
    pages = list(pages)
    if len(pages) < count:
        pages.extend(create_empty_page(page_type) for _ in range(count - len(pages)))
        return pages

    for i, page in enumerate(pages[count:], start=count + 1):
        if page_has_content(page):
            logger.warning(f"Dropping page {i} ({page.id}), which has content")
    return pages[:count]


def with_page_count(lesson: Lesson, count: int) -> Lesson:
    """Set the lesson's declared page count and resize its pages to match.

    We resize whichever page list the lesson is edited through: block pages
    if it has them, then rich pages, then legacy pages. A lesson with no
    pages at all gets block pages.
    """
    count = max(count, 1)
    if lesson.block_pages:
        update = {"block_pages": resize_pages(lesson.block_pages, count, BlockPage)}
    elif lesson.rich_pages:
        update = {"rich_pages": resize_pages(lesson.rich_pages, count, RichPage)}
    elif lesson.pages:
        page_type = type(lesson.pages[-1])
        update = {"pages": resize_pages(lesson.pages, count, page_type)}
    else:
        update = {"block_pages": resize_pages([], count, BlockPage)}
    return lesson.model_copy(update={**update, "number_of_pages": count})
