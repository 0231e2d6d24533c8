"""Convert between editor blocks and rich documents, and update block pages.

Blocks are the editable projection of a page, and the rich document is the
canonical form. A round trip through `blocks_to_rich_doc` and
`rich_doc_to_blocks` keeps the text, order, and marks of the content, but not
necessarily the block boundaries: adjacent text blocks come back as one.

All update functions return a new page and leave their input unchanged.
"""

import logging

from pydantic import TypeAdapter

from lektion.models.content import (
    Block,
    Image,
    ImageBlock,
    RichDoc,
    TextBlock,
    coerce_blocks,
    dedupe_block_ids,
)
from lektion.models.lessons import BlockPage, PageMeta
from lektion.utils.html_codec import html_to_rich_doc, rich_doc_to_html
from lektion.utils.rich_doc import count_words, rich_doc_to_text


logger = logging.getLogger(__name__)

BLOCK_LIST = TypeAdapter(list[Block])


def load_blocks(raw) -> list:
    """Load blocks from their stored JSON, coercing unknown block types."""
    return BLOCK_LIST.validate_python(coerce_blocks(raw))


def create_text_block(doc: RichDoc | None = None) -> TextBlock:
    return TextBlock(data={"content": doc or RichDoc()})


def create_image_block(src: str = "", alt: str = "", caption: str | None = None) -> ImageBlock:
    return ImageBlock(data={"src": src, "alt": alt, "caption": caption})


def block_text(block: TextBlock | ImageBlock) -> str:
    """Return the plain text of a block. Image blocks have no text."""
    if isinstance(block, TextBlock):
        return rich_doc_to_text(block.data.content)
    return ""


# Bridge
# ------


def blocks_to_rich_doc(blocks: list | None) -> RichDoc:
    """Convert blocks to a rich document, in block order.

    A text block may expand to several nodes. Each image block becomes one
    image node, and its caption becomes the image's title.
    """
    nodes = []
    for block in load_blocks(blocks or []):
        if isinstance(block, ImageBlock):
            data = block.data
            nodes.append(
                Image(attrs={"src": data.src, "alt": data.alt, "title": data.caption})
            )
        else:
            nodes.extend(block.data.content.content)
    return RichDoc(content=nodes)


def rich_doc_to_blocks(doc: RichDoc | None) -> list[TextBlock | ImageBlock]:
    """Convert a rich document to blocks.

    Consecutive paragraphs and headings are grouped into one text block, and
    each image gets its own image block.
    """
    if doc is None:
        doc = RichDoc()

    blocks = []
    pending = []
    for node in doc.content:
        if isinstance(node, Image):
            if pending:
                blocks.append(create_text_block(RichDoc(content=pending)))
                pending = []
            attrs = node.attrs
            blocks.append(create_image_block(attrs.src, attrs.alt, attrs.title))
        else:
            pending.append(node)
    if pending:
        blocks.append(create_text_block(RichDoc(content=pending)))
    return blocks


def blocks_to_html(blocks: list | None) -> str:
    return rich_doc_to_html(blocks_to_rich_doc(blocks))


def html_to_blocks(html_str: str | None) -> list[TextBlock | ImageBlock]:
    return rich_doc_to_blocks(html_to_rich_doc(html_str))


# Block pages
# -----------


def block_page_meta(blocks: list) -> PageMeta:
    return PageMeta(
        word_count=count_words(blocks_to_rich_doc(blocks)),
        block_count=len(blocks),
    )


def _with_blocks(page: BlockPage, blocks: list) -> BlockPage:
    blocks = dedupe_block_ids(blocks)
    if not blocks:
        # Editors always need a block to type into.
        blocks = [create_text_block()]
    return page.model_copy(update={"blocks": blocks, "meta": block_page_meta(blocks)})


def with_block(page: BlockPage, index: int, block: TextBlock | ImageBlock) -> BlockPage:
    """Replace the block at `index`.

    :raises IndexError: if `index` is out of range.
    """
    blocks = list(page.blocks)
    blocks[index] = block
    return _with_blocks(page, blocks)


def insert_block(page: BlockPage, index: int, block: TextBlock | ImageBlock) -> BlockPage:
    """Insert a block before `index`. Use `len(page.blocks)` to append."""
    blocks = list(page.blocks)
    blocks.insert(index, block)
    return _with_blocks(page, blocks)


def remove_block(page: BlockPage, index: int) -> BlockPage:
    """Remove the block at `index`.

    Removing the last block leaves a single empty text block.

    :raises IndexError: if `index` is out of range.
    """
    blocks = list(page.blocks)
    del blocks[index]
    return _with_blocks(page, blocks)


def move_block(page: BlockPage, from_index: int, to_index: int) -> BlockPage:
    """Move a block so that it ends up at `to_index`.

    :raises IndexError: if `from_index` is out of range.
    """
    blocks = list(page.blocks)
    block = blocks.pop(from_index)
    blocks.insert(to_index, block)
    return _with_blocks(page, blocks)
