from enum import StrEnum


class NodeType(StrEnum):
    """Node types in a rich document."""

    DOC = "doc"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    IMAGE = "image"
    TEXT = "text"
    #: Not part of the supported set. Splits the enclosing text block on load.
    HARD_BREAK = "hardBreak"


class MarkType(StrEnum):
    """Inline marks on a text run.

    Declaration order is the canonical nesting order, outermost first.
    """

    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    LINK = "link"


class BlockType(StrEnum):
    """Editor block types."""

    TEXT = "text"
    IMAGE = "image"


class QuestionType(StrEnum):
    """Question types for reading lessons."""

    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    OPEN_ENDED = "open-ended"
