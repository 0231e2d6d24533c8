"""Convert rich documents to and from HTML.

Serialization is deterministic: each node type maps to one tag, and marks are
nested in a fixed order (`<strong>`, `<em>`, `<u>`, `<a>`, outermost first),
so serializing an unchanged document always gives the same string.

Parsing is tolerant. We parse with `lxml.html`, which repairs broken markup
the way a browser would, and then map what we find onto the supported node
types:

- unknown tags are unwrapped, and their children are kept
- void tags with no text (`<br>`, `<hr>`) become empty paragraphs
- `<script>`, `<style>`, and `<template>` are dropped, since they hold no
  text an author wrote

For any document built from supported nodes and marks,
`html_to_rich_doc(rich_doc_to_html(doc)) == doc`.
"""

import html
import logging
import re

import lxml.html
from lxml import etree

from lektion.enums import MarkType
from lektion.models.content import (
    INVALID_CHARS_RE,
    Heading,
    Image,
    Mark,
    Paragraph,
    RichDoc,
    TextblockBuilder,
    TextblockNode,
    TextNode,
)
from lektion.utils.rich_doc import rich_doc_to_text


logger = logging.getLogger(__name__)

#: Matches any tag. Only used when lxml can't parse the input at all.
TAG_RE = re.compile(r"<[^>]*>")

HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
#: Tags with no text content that still take up vertical space.
SPACER_TAGS = {"br", "hr"}
#: Tags whose content is never shown to the reader.
DROPPED_TAGS = {"script", "style", "template", "noscript", "head", "title"}
#: Block-level tags that group other blocks. We keep their children.
CONTAINER_TAGS = {
    "address",
    "article",
    "aside",
    "blockquote",
    "body",
    "center",
    "dd",
    "details",
    "div",
    "dl",
    "dt",
    "fieldset",
    "figcaption",
    "figure",
    "footer",
    "form",
    "header",
    "html",
    "li",
    "main",
    "nav",
    "ol",
    "pre",
    "section",
    "summary",
    "table",
    "tbody",
    "td",
    "tfoot",
    "th",
    "thead",
    "tr",
    "ul",
}
BLOCK_TAGS = {"p", "img"} | HEADING_TAGS | SPACER_TAGS | CONTAINER_TAGS

MARK_TAGS = {
    "strong": MarkType.BOLD,
    "b": MarkType.BOLD,
    "em": MarkType.ITALIC,
    "i": MarkType.ITALIC,
    "u": MarkType.UNDERLINE,
}
TAG_FOR_MARK = {
    MarkType.BOLD: "strong",
    MarkType.ITALIC: "em",
    MarkType.UNDERLINE: "u",
}


def _paragraph(runs: list[TextNode]) -> Paragraph:
    return Paragraph(content=runs)


def _heading(level: int):
    return lambda runs: Heading(attrs={"level": level}, content=runs)


def _tag_name(el) -> str | None:
    # Comments and processing instructions have a non-string tag.
    if not isinstance(el.tag, str):
        return None
    return el.tag.lower()


def _image(el) -> Image:
    return Image(
        attrs={
            "src": el.get("src", ""),
            "alt": el.get("alt", ""),
            "title": el.get("title"),
        }
    )


# HTML --> RichDoc
# ----------------


def _add_inline(builder: TextblockBuilder, el, marks: tuple[Mark, ...]):
    """Add an element and its children to `builder` as inline content.

    The element's tail is handled by the caller.
    """
    tag = _tag_name(el)
    if tag is None:
        return

    if tag == "br":
        builder.line_break()
        return
    if tag == "hr":
        builder.end_block()
        return
    if tag == "img":
        builder.add_image(_image(el))
        return
    if tag in DROPPED_TAGS:
        logger.warning(f"Dropping <{tag}> element inside text")
        return

    if tag in MARK_TAGS:
        marks = marks + (Mark(type=MARK_TAGS[tag]),)
    elif tag == "a" and el.get("href") is not None:
        marks = marks + (Mark.link(el.get("href")),)

    # Block content inside a text block splits it.
    is_block = tag in BLOCK_TAGS
    if is_block:
        builder.end_block()
    builder.add_text(el.text, marks)
    for child in el:
        _add_inline(builder, child, marks)
        builder.add_text(child.tail, marks)
    if is_block:
        builder.end_block()


def _textblock_nodes(el, make_node) -> list:
    builder = TextblockBuilder(make_node)
    builder.add_text(el.text)
    for child in el:
        _add_inline(builder, child, ())
        builder.add_text(child.tail)
    return builder.finish()


def _block_nodes(el) -> list:
    """Convert a block-level element into a list of document nodes."""
    tag = _tag_name(el)
    if tag == "p":
        return _textblock_nodes(el, _paragraph)
    if tag in HEADING_TAGS:
        return _textblock_nodes(el, _heading(int(tag[1])))
    if tag == "img":
        return [_image(el)]
    if tag in SPACER_TAGS:
        return [Paragraph()]
    # An empty container still takes up space on the page.
    return _child_nodes(el) or [Paragraph()]


def _child_nodes(parent) -> list:
    """Convert the children of a container element into document nodes.

    Loose text and inline elements between blocks are collected into
    paragraphs.
    """
    nodes = []
    builder = TextblockBuilder(_paragraph, loose=True)
    builder.add_text(parent.text)
    for child in parent:
        tag = _tag_name(child)
        if tag is None:
            pass
        elif tag in DROPPED_TAGS:
            logger.warning(f"Dropping <{tag}> element")
        elif tag in BLOCK_TAGS:
            nodes.extend(builder.finish())
            builder = TextblockBuilder(_paragraph, loose=True)
            nodes.extend(_block_nodes(child))
        else:
            if tag not in MARK_TAGS and tag not in ("a", "span"):
                logger.debug(f"Unwrapping unsupported tag <{tag}>")
            _add_inline(builder, child, ())
        builder.add_text(child.tail)
    nodes.extend(builder.finish())
    return nodes


def _parse_root(html_str: str):
    """Parse `html_str` into a single container element."""
    return lxml.html.fragment_fromstring(html_str, create_parent="div")


def html_to_rich_doc(html_str: str | None) -> RichDoc:
    """Parse HTML into a rich document.

    This never raises. If the input can't be parsed at all, we keep its text
    with the tags stripped.
    """
    if not html_str:
        return RichDoc()
    html_str = INVALID_CHARS_RE.sub("", html_str)
    if not html_str.strip():
        return RichDoc()

    try:
        root = _parse_root(html_str)
    except (etree.ParserError, ValueError) as e:
        logger.warning(f"Could not parse HTML, keeping plain text: {e}")
        builder = TextblockBuilder(_paragraph, loose=True)
        builder.add_text(html.unescape(TAG_RE.sub("", html_str)))
        return RichDoc(content=builder.finish())

    return RichDoc(content=_child_nodes(root))


def html_to_text(html_str: str | None) -> str:
    """Return the plain text of some HTML, one line per text block."""
    return rich_doc_to_text(html_to_rich_doc(html_str))


# RichDoc --> HTML
# ----------------


def _escape_attr(value: str) -> str:
    return html.escape(value, quote=True)


def _run_to_html(run: TextNode) -> str:
    buf = html.escape(run.text, quote=False)
    # Marks are stored outermost first, so wrap from the inside out.
    for mark in reversed(run.marks):
        if mark.type == MarkType.LINK:
            buf = f'<a href="{_escape_attr(mark.href or "")}">{buf}</a>'
        else:
            tag = TAG_FOR_MARK[mark.type]
            buf = f"<{tag}>{buf}</{tag}>"
    return buf


def _node_to_html(node: TextblockNode | Image) -> str:
    match node:
        case Image(attrs=attrs):
            buf = f'<img src="{_escape_attr(attrs.src)}" alt="{_escape_attr(attrs.alt)}"'
            if attrs.title is not None:
                buf += f' title="{_escape_attr(attrs.title)}"'
            return buf + ">"
        case Heading():
            inner = "".join(_run_to_html(run) for run in node.content)
            return f"<h{node.level}>{inner}</h{node.level}>"
        case _:
            inner = "".join(_run_to_html(run) for run in node.content)
            return f"<p>{inner}</p>"


def rich_doc_to_html(doc: RichDoc | None) -> str:
    """Serialize a rich document to HTML."""
    if doc is None:
        doc = RichDoc()
    return "".join(_node_to_html(node) for node in doc.content)
