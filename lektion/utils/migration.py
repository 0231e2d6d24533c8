"""Upgrade stored lessons and pages to the canonical rich document form.

A lesson can store its pages in several places, depending on which version of
the editor last saved it. On load, we resolve them in this order:

1. `blockPages`, if non-empty
2. `richPages`, if non-empty
3. `pages`, each in whatever shape it was stored in
4. the legacy `content` string, split on the page break marker

After that, the rest of the system only deals with `RichPage` (canonical) or
`BlockPage` (editable). Migration is idempotent: migrating a page that already
has a `doc` returns it unchanged.
"""

import dataclasses as dc
import logging
from typing import Any

from lektion.consts import LEGACY_IMAGE_ALT
from lektion.models.content import ContentModel, Image, RichDoc
from lektion.models.lessons import (
    BlockPage,
    LegacyPage,
    Lesson,
    PageMeta,
    RichPage,
    parse_page,
)
from lektion.utils.blocks import block_page_meta, blocks_to_rich_doc, rich_doc_to_blocks
from lektion.utils.html_codec import html_to_rich_doc, rich_doc_to_html
from lektion.utils.pagination import join_pages, new_page_id, split_pages
from lektion.utils.questions import attach_questions
from lektion.utils.rich_doc import count_words, is_empty_rich_doc


logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True)
class MigrationError:
    """A problem found when validating migrated pages."""

    message: str

    def __str__(self):
        return self.message


@dc.dataclass
class MigrationResult:
    """The outcome of migrating a single lesson."""

    #: The lesson with `rich_pages` filled in.
    lesson: Lesson
    #: Human-readable progress messages, in order.
    log: list[str] = dc.field(default_factory=list)
    errors: list[MigrationError] = dc.field(default_factory=list)
    #: True if the lesson was already migrated and we left it alone.
    skipped: bool = False

    @property
    def rich_pages(self) -> list[RichPage]:
        return self.lesson.rich_pages

    @property
    def success(self) -> bool:
        return not self.skipped and not self.errors


# Pages
# -----


def is_legacy_content(page: Any) -> bool:
    """Return whether `page` is stored as an HTML string with no doc or blocks."""
    return isinstance(parse_page(page), LegacyPage)


def _legacy_images(urls: list[str]) -> list[Image]:
    return [Image(attrs={"src": url, "alt": LEGACY_IMAGE_ALT}) for url in urls]


def _legacy_doc(page: LegacyPage | RichPage) -> RichDoc:
    """Fold a page's `imagesAbove` and `imagesBelow` into its document."""
    doc = page.doc if isinstance(page, RichPage) else html_to_rich_doc(page.content)
    if not page.images_above and not page.images_below:
        return doc

    # Drop the placeholder paragraph of an empty document.
    body = [] if is_empty_rich_doc(doc) else list(doc.content)
    return RichDoc(
        content=[
            *_legacy_images(page.images_above),
            *body,
            *_legacy_images(page.images_below),
        ]
    )


def page_rich_doc(page: Any) -> RichDoc:
    """Return the content of a page in any shape as a rich document."""
    page = parse_page(page)
    if isinstance(page, BlockPage):
        return blocks_to_rich_doc(page.blocks)
    return _legacy_doc(page)


def migrate_legacy_page(page: Any, page_id: str | None = None) -> RichPage:
    """Upgrade a page to a `RichPage`.

    A page that already has a `doc` is returned unchanged. Block pages are
    converted through their blocks.

    :param page_id: the ID to use if the page has none. If this is also
        missing, we create one.
    """
    page = parse_page(page)
    if isinstance(page, RichPage):
        return page

    doc = page_rich_doc(page)
    return RichPage(
        id=page.id or page_id or new_page_id(),
        doc=doc,
        questions=page.questions,
        meta=PageMeta(word_count=count_words(doc)),
    )


def migrate_legacy_page_to_blocks(page: Any) -> list:
    """Upgrade a page to a list of blocks.

    A page with no content gives a single empty text block.
    """
    page = parse_page(page)
    if isinstance(page, BlockPage):
        return list(page.blocks)
    return rich_doc_to_blocks(migrate_legacy_page(page).doc)


def to_block_page(page: Any, page_id: str | None = None) -> BlockPage:
    """Convert a page in any shape to a `BlockPage`."""
    page = parse_page(page)
    if isinstance(page, BlockPage):
        if page.meta is None:
            page = page.model_copy(update={"meta": block_page_meta(page.blocks)})
        return page

    blocks = migrate_legacy_page_to_blocks(page)
    return BlockPage(
        id=page.id or page_id or new_page_id(),
        blocks=blocks,
        meta=block_page_meta(blocks),
        questions=page.questions,
    )


# Lessons
# -------


def _source_pages(lesson: Lesson, legacy_only: bool = False) -> list:
    if not legacy_only:
        if lesson.block_pages:
            return list(lesson.block_pages)
        if lesson.rich_pages:
            return list(lesson.rich_pages)
    if lesson.pages:
        return list(lesson.pages)
    return [LegacyPage(content=content) for content in split_pages(lesson.content)]


def _stamp_ids(pages: list) -> list:
    """Give every page a unique ID, using its position if it has none."""
    seen = set()
    stamped = []
    for i, page in enumerate(pages, start=1):
        page_id = page.id or f"page-{i}"
        if page_id in seen:
            new_id = new_page_id()
            logger.warning(f"Duplicate page ID {page_id!r}, reassigned to {new_id!r}")
            page_id = new_id
        seen.add(page_id)
        if page_id != page.id:
            page = page.model_copy(update={"id": page_id})
        stamped.append(page)
    return stamped


def _resolve_pages(lesson: Lesson, legacy_only: bool = False) -> tuple[list, list]:
    pages = _stamp_ids(_source_pages(lesson, legacy_only))
    return attach_questions(pages, lesson.questions)


def _canonicalize(lesson: Lesson, legacy_only: bool = False) -> Lesson:
    pages, general = _resolve_pages(lesson, legacy_only)
    rich_pages = [migrate_legacy_page(page) for page in pages]
    return lesson.model_copy(
        update={"rich_pages": rich_pages, "questions": general, "migrated": True}
    )


def canonicalize_lesson(lesson: Lesson) -> Lesson:
    """Resolve a stored lesson's pages into `rich_pages`.

    Call this once on load. The result always has at least one rich page,
    every page has a unique ID, and each question sits with the page that
    owns it.
    """
    return _canonicalize(lesson)


def lesson_block_pages(lesson: Lesson) -> list[BlockPage]:
    """Return the lesson's pages as editable block pages."""
    pages, _ = _resolve_pages(lesson)
    return [to_block_page(page) for page in pages]


def flatten_lesson_content(pages: list) -> str:
    """Rebuild the legacy `content` field from a list of pages."""
    return join_pages([rich_doc_to_html(page_rich_doc(page)) for page in pages])


def validate_migration(rich_pages: list) -> list[MigrationError]:
    """Check that migrated pages have the shape we expect.

    :param rich_pages: `RichPage` objects or their stored JSON.
    """
    if not rich_pages:
        return [MigrationError("No rich pages generated")]

    errors = []
    for i, page in enumerate(rich_pages, start=1):
        if isinstance(page, ContentModel):
            page = page.to_json()
        if not isinstance(page, dict):
            errors.append(MigrationError(f"Page {i} is not an object"))
            continue
        if not page.get("id"):
            errors.append(MigrationError(f"Page {i} missing ID"))

        doc = page.get("doc")
        if not isinstance(doc, dict):
            errors.append(MigrationError(f"Page {i} missing document"))
            continue
        if doc.get("type") != "doc":
            errors.append(
                MigrationError(f"Page {i} invalid document type: {doc.get('type')}")
            )
        if not isinstance(doc.get("content"), list):
            errors.append(MigrationError(f"Page {i} missing or invalid content array"))
    return errors


def migrate_lesson(lesson: Lesson, force: bool = False) -> MigrationResult:
    """Migrate a lesson and report what happened.

    An already migrated lesson is skipped unless `force` is set. When forced,
    we rebuild the rich pages from the legacy `pages` and `content` fields.
    """
    log = [f"Starting migration for lesson: {lesson.title}"]
    if lesson.migrated and not force:
        log.append("Lesson already migrated. Use force to re-migrate.")
        return MigrationResult(lesson=lesson, log=log, skipped=True)

    sources = _source_pages(lesson, legacy_only=force)
    if not force and lesson.block_pages:
        log.append(f"Found {len(sources)} block pages to convert")
    elif not force and lesson.rich_pages:
        log.append(f"Found {len(sources)} rich pages to check")
    elif lesson.pages:
        log.append(f"Found {len(sources)} pages to migrate")
    else:
        log.append("Migrating from single content field")

    for i, page in enumerate(sources, start=1):
        log.append(f"Migrating page {i}: {page.id or '(no id)'}")
        if isinstance(page, (LegacyPage, RichPage)):
            if page.images_above:
                log.append(f"Adding {len(page.images_above)} images above content")
            if page.images_below:
                log.append(f"Adding {len(page.images_below)} images below content")

    migrated = _canonicalize(lesson, legacy_only=force)
    errors = validate_migration(migrated.rich_pages)
    if errors:
        log.extend(f"Validation failed: {e}" for e in errors)
        return MigrationResult(lesson=lesson, log=log, errors=errors)

    log.append(
        f"Migration completed successfully. Created {len(migrated.rich_pages)} rich pages."
    )
    return MigrationResult(lesson=migrated, log=log)
