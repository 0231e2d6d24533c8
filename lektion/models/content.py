"""Models for lesson content.

We represent formatted content in two shapes:

- `RichDoc` is the canonical tree. Its children are paragraphs, headings, and
  images, and paragraphs and headings hold `TextNode` runs with inline marks.
- `TextBlock` and `ImageBlock` form the editable projection. A page's block
  list is an ordered list of independently editable units.

Both shapes are tolerant on input. Stored content predates the current
editor, so anything outside the supported set is coerced to the nearest
supported construct rather than rejected.
"""

import logging
import re
import uuid
from typing import Annotated, Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from lektion.enums import BlockType, MarkType, NodeType


logger = logging.getLogger(__name__)

#: Characters that an HTML document can't carry.
INVALID_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
#: A blank line in loose text. Blank lines separate paragraphs.
BLANK_LINE_RE = re.compile(r"\n[ \t\r\f\v]*\n")

SUPPORTED_MARKS = {m.value for m in MarkType}
MARK_RANK = {m: i for i, m in enumerate(MarkType)}


class ContentModel(BaseModel):
    """Base class for persisted content. Instances are immutable."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    def to_json(self) -> dict:
        """Dump to the camelCase JSON shape we persist."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Mark(ContentModel):
    """An inline mark on a text run."""

    type: MarkType
    #: Only links have attributes (`{"href": ...}`).
    attrs: dict[str, str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_attrs(cls, data: Any) -> Any:
        if isinstance(data, str):
            data = {"type": data}
        if not isinstance(data, dict):
            return data
        if data.get("type") == MarkType.LINK:
            attrs = data.get("attrs") or {}
            return {"type": MarkType.LINK, "attrs": {"href": str(attrs.get("href") or "")}}
        return {"type": data.get("type")}

    @staticmethod
    def link(href: str) -> "Mark":
        return Mark(type=MarkType.LINK, attrs={"href": href})

    @property
    def href(self) -> str | None:
        return self.attrs.get("href") if self.attrs else None


class TextNode(ContentModel):
    """A run of text that shares the same marks."""

    type: Literal["text"] = "text"
    text: str = ""
    #: Deduplicated per mark type and sorted in canonical nesting order.
    marks: list[Mark] = Field(default_factory=list)

    @field_validator("text", mode="before")
    @classmethod
    def _clean_text(cls, value: Any) -> str:
        if value is None:
            return ""
        # HTML parsers normalize line endings to `\n`.
        text = str(value).replace("\r\n", "\n").replace("\r", "\n")
        return INVALID_CHARS_RE.sub("", text)

    @field_validator("marks", mode="before")
    @classmethod
    def _drop_unsupported_marks(cls, value: Any) -> list:
        if not value:
            return []
        marks = []
        for mark in value:
            if isinstance(mark, Mark):
                marks.append(mark)
                continue
            mark_type = mark.get("type") if isinstance(mark, dict) else mark
            if mark_type in SUPPORTED_MARKS:
                marks.append(mark)
            else:
                logger.debug(f"Dropping unsupported mark {mark_type!r}")
        return marks

    @field_validator("marks")
    @classmethod
    def _canonical_marks(cls, value: list[Mark]) -> list[Mark]:
        # For repeated types, the innermost mark wins.
        by_type = {mark.type: mark for mark in value}
        return sorted(by_type.values(), key=lambda m: MARK_RANK[m.type])


def merge_runs(runs: list[TextNode]) -> list[TextNode]:
    """Drop empty runs and merge adjacent runs with equal marks."""
    merged = []
    for run in runs:
        if not run.text:
            continue
        if merged and merged[-1].marks == run.marks:
            prev = merged[-1]
            merged[-1] = prev.model_copy(update={"text": prev.text + run.text})
        else:
            merged.append(run)
    return merged


def extract_text(raw: Any) -> str:
    """Extract the plain text of a raw node, whatever its type."""
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(by_alias=True)
    if isinstance(raw, str):
        return raw
    if not isinstance(raw, dict):
        return ""
    if raw.get("type") == NodeType.HARD_BREAK:
        return "\n"
    if isinstance(raw.get("text"), str):
        return raw["text"]

    children = raw.get("content")
    if isinstance(children, dict):
        return extract_text(children)
    if not isinstance(children, list):
        return ""

    parts = [extract_text(child) for child in children]
    is_inline = all(_is_inline(child) for child in children)
    return ("" if is_inline else "\n").join(p for p in parts if p)


def _is_inline(raw: Any) -> bool:
    if isinstance(raw, str):
        return True
    return isinstance(raw, dict) and raw.get("type") in (
        NodeType.TEXT,
        NodeType.HARD_BREAK,
    )


def _coerce_runs(value: Any) -> list:
    if not value:
        return []
    runs = []
    for item in value:
        if isinstance(item, TextNode):
            runs.append(item)
        elif isinstance(item, str):
            runs.append({"text": item})
        elif isinstance(item, dict) and item.get("type", NodeType.TEXT) == NodeType.TEXT:
            runs.append(item)
        elif text := extract_text(item):
            runs.append({"text": text})
    return runs


class TextblockNode(ContentModel):
    """Base class for nodes that hold text runs."""

    content: list[TextNode] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> list:
        return _coerce_runs(value)

    @field_validator("content")
    @classmethod
    def _merge_content(cls, value: list[TextNode]) -> list[TextNode]:
        return merge_runs(value)

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.content)


class Paragraph(TextblockNode):
    type: Literal["paragraph"] = "paragraph"


class HeadingAttrs(ContentModel):
    #: Clamped to 1 through 6.
    level: int = 1

    @field_validator("level", mode="before")
    @classmethod
    def _clamp_level(cls, value: Any) -> int:
        try:
            level = int(value)
        except (TypeError, ValueError):
            return 1
        return min(max(level, 1), 6)


class Heading(TextblockNode):
    type: Literal["heading"] = "heading"
    attrs: HeadingAttrs = Field(default_factory=HeadingAttrs)

    @property
    def level(self) -> int:
        return self.attrs.level


class ImageAttrs(ContentModel):
    src: str = ""
    alt: str = ""
    #: Shown as a caption in the block editor.
    title: str | None = None

    @field_validator("src", "alt", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)


class Image(ContentModel):
    type: Literal["image"] = "image"
    attrs: ImageAttrs = Field(default_factory=ImageAttrs)


BlockNode = Annotated[Paragraph | Heading | Image, Field(discriminator="type")]


class TextblockBuilder:
    """Collects inline content into paragraphs or headings.

    A line break ends the current text block, and an image splits it in two.

    In `loose` mode, which we use for text that sits outside of any paragraph,
    whitespace at the edges of each text block is trimmed, whitespace-only
    blocks are dropped, and a blank line starts a new block.
    """

    def __init__(
        self, make_node: Callable[[list[TextNode]], TextblockNode], loose: bool = False
    ):
        self.make_node = make_node
        self.loose = loose
        self.nodes: list[TextblockNode | Image] = []
        self._runs: list[TextNode] = []

    def add_text(self, text: str | None, marks: tuple[Mark, ...] = ()):
        if not text:
            return
        if self.loose:
            for i, piece in enumerate(BLANK_LINE_RE.split(text)):
                if i:
                    self._flush()
                self._append(piece, marks)
        else:
            self._append(text, marks)

    def add_run(self, run: TextNode):
        if run.text:
            self._runs.append(run)

    def line_break(self):
        self._flush(keep_empty=not self.loose)

    def end_block(self):
        """End the current text block, if it has any text."""
        self._flush()

    def add_image(self, image: Image):
        if not "".join(r.text for r in self._runs).strip():
            self._runs = []
        self._flush()
        self.nodes.append(image)

    def finish(self) -> list[TextblockNode | Image]:
        self._flush(keep_empty=not self.loose and not self.nodes)
        return self.nodes

    def _append(self, text: str, marks: tuple[Mark, ...]):
        if text:
            self._runs.append(TextNode(text=text, marks=list(marks)))

    def _flush(self, keep_empty: bool = False):
        runs, self._runs = self._runs, []
        if self.loose:
            runs = _trim_runs(runs)
        if runs or keep_empty:
            self.nodes.append(self.make_node(runs))


def _trim_runs(runs: list[TextNode]) -> list[TextNode]:
    runs = list(runs)
    while runs and not runs[0].text.strip():
        runs.pop(0)
    while runs and not runs[-1].text.strip():
        runs.pop()
    if runs:
        runs[0] = runs[0].model_copy(update={"text": runs[0].text.lstrip()})
        runs[-1] = runs[-1].model_copy(update={"text": runs[-1].text.rstrip()})
    return runs


def _split_textblock(
    raw: dict, make_node: Callable[[list[TextNode]], TextblockNode]
) -> list:
    builder = TextblockBuilder(make_node)
    for child in raw.get("content") or []:
        if isinstance(child, TextNode):
            builder.add_run(child)
            continue
        if isinstance(child, str):
            builder.add_text(child)
            continue
        child_type = child.get("type", NodeType.TEXT) if isinstance(child, dict) else None
        match child_type:
            case NodeType.TEXT:
                builder.add_run(TextNode.model_validate(child))
            case NodeType.HARD_BREAK:
                builder.line_break()
            case NodeType.IMAGE:
                builder.add_image(Image.model_validate(child))
            case _:
                logger.debug(f"Coercing inline node {child_type!r} to plain text")
                builder.add_text(extract_text(child))
    return builder.finish()


def coerce_nodes(raw: Any) -> list:
    """Coerce raw block-level nodes into the supported node types.

    Unknown node types become a paragraph with the node's text, so that
    nothing an author wrote is lost.
    """
    if not isinstance(raw, list):
        return []

    nodes = []
    for item in raw:
        if isinstance(item, (Paragraph, Heading, Image)):
            nodes.append(item)
            continue
        if isinstance(item, RichDoc):
            nodes.extend(item.content)
            continue
        if isinstance(item, str):
            nodes.append(Paragraph(content=[TextNode(text=item)]))
            continue
        if not isinstance(item, dict):
            logger.warning(f"Ignoring non-node value in document content: {item!r}")
            continue

        node_type = item.get("type")
        match node_type:
            case NodeType.PARAGRAPH:
                nodes.extend(_split_textblock(item, lambda runs: Paragraph(content=runs)))
            case NodeType.HEADING:
                attrs = item.get("attrs") or {}
                nodes.extend(
                    _split_textblock(
                        item, lambda runs: Heading(attrs=attrs, content=runs)
                    )
                )
            case NodeType.IMAGE:
                nodes.append(Image.model_validate(item))
            case NodeType.DOC:
                nodes.extend(coerce_nodes(item.get("content")))
            case NodeType.HARD_BREAK:
                nodes.append(Paragraph())
            case _:
                logger.debug(f"Coercing node {node_type!r} to a paragraph")
                nodes.append(Paragraph(content=[TextNode(text=extract_text(item))]))
    return nodes


class RichDoc(ContentModel):
    """A rich document. Always has at least one node."""

    type: Literal["doc"] = "doc"
    content: list[BlockNode] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if data is None:
            return {"content": []}
        if isinstance(data, RichDoc):
            return {"content": list(data.content)}
        if isinstance(data, list):
            return {"content": coerce_nodes(data)}
        if isinstance(data, dict):
            if data.get("type") not in (None, NodeType.DOC):
                # A bare node where we expected a document.
                return {"content": coerce_nodes([data])}
            return {"content": coerce_nodes(data.get("content"))}
        return data

    @field_validator("content")
    @classmethod
    def _never_empty(cls, value: list) -> list:
        return value or [Paragraph()]


def new_block_id(block_type: str) -> str:
    return f"{block_type}-{uuid.uuid4().hex[:12]}"


class TextBlockData(ContentModel):
    #: Structured content, as a small rich document.
    content: RichDoc = Field(default_factory=RichDoc)
    #: Fallback HTML from older editors. Parsed if `content` is missing.
    html_content: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _parse_html_fallback(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("content") is None:
            html = data.get("htmlContent", data.get("html_content"))
            if html:
                from lektion.utils.html_codec import html_to_rich_doc

                return {**data, "content": html_to_rich_doc(html)}
        return data


class ImageBlockData(ContentModel):
    #: May be empty for a placeholder that has no image yet.
    src: str = ""
    alt: str = ""
    caption: str | None = None
    width: int | None = None
    height: int | None = None
    alignment: str = "center"
    size: str = "medium"

    @field_validator("src", "alt", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)


class BaseBlock(ContentModel):
    #: Stable within a page. Never reused.
    id: str

    @model_validator(mode="before")
    @classmethod
    def _ensure_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            block_type = cls.model_fields["type"].default
            return {**data, "id": new_block_id(block_type)}
        return data


class TextBlock(BaseBlock):
    type: Literal["text"] = "text"
    data: TextBlockData = Field(default_factory=TextBlockData)


class ImageBlock(BaseBlock):
    type: Literal["image"] = "image"
    data: ImageBlockData = Field(default_factory=ImageBlockData)


Block = Annotated[TextBlock | ImageBlock, Field(discriminator="type")]


def coerce_blocks(raw: Any) -> list:
    """Coerce raw blocks into supported block types.

    Unknown block types become a text block with the block's text.
    """
    if not isinstance(raw, list):
        return []

    blocks = []
    for item in raw:
        if isinstance(item, (TextBlock, ImageBlock)):
            blocks.append(item)
        elif isinstance(item, dict) and item.get("type") in (
            BlockType.TEXT,
            BlockType.IMAGE,
        ):
            blocks.append(item)
        elif isinstance(item, dict):
            logger.debug(f"Coercing block {item.get('type')!r} to a text block")
            text = extract_text(item.get("data") or {})
            doc = RichDoc(content=[Paragraph(content=[TextNode(text=text)])])
            blocks.append(TextBlock(id=item.get("id") or "", data={"content": doc}))
        else:
            logger.warning(f"Ignoring non-block value in block list: {item!r}")
    return blocks


def dedupe_block_ids(blocks: list) -> list:
    """Give a fresh ID to any block whose ID is already taken."""
    seen = set()
    result = []
    for block in blocks:
        if block.id in seen:
            new_id = new_block_id(block.type)
            logger.warning(f"Duplicate block ID {block.id!r}, reassigned to {new_id!r}")
            block = block.model_copy(update={"id": new_id})
        seen.add(block.id)
        result.append(block)
    return result
