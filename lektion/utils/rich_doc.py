"""Utilities for working with rich documents."""

from lektion.models.content import Image, Paragraph, RichDoc, TextblockNode


def create_empty_rich_doc() -> RichDoc:
    """Create a document with a single empty paragraph."""
    return RichDoc(content=[Paragraph()])


def is_empty_rich_doc(doc: RichDoc | None) -> bool:
    """Return whether `doc` has no text and no images."""
    if doc is None:
        return True
    for node in doc.content:
        if isinstance(node, Image):
            return False
        if node.text.strip():
            return False
    return True


def rich_doc_to_text(doc: RichDoc | None) -> str:
    """Return the plain text of `doc`, one line per paragraph or heading.

    Images contribute no text.
    """
    if doc is None:
        return ""
    return "\n".join(
        node.text for node in doc.content if isinstance(node, TextblockNode)
    )


def count_words(doc: RichDoc | None) -> int:
    """Count the whitespace-separated tokens in `doc`.

    Punctuation-only tokens count as words too.
    """
    return len(rich_doc_to_text(doc).split())


def concat_rich_docs(docs: list[RichDoc]) -> RichDoc:
    """Join several documents into one, in order."""
    nodes = []
    for doc in docs:
        nodes.extend(doc.content)
    return RichDoc(content=nodes)
