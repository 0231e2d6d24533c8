import pytest

from lektion.enums import MarkType
from lektion.models import content as c
from lektion.models.lessons import BlockPage


def text(value, *marks):
    return {"type": "text", "text": value, "marks": list(marks)}


def para(*runs):
    return {"type": "paragraph", "content": list(runs)}


BOLD = {"type": "bold"}
ITALIC = {"type": "italic"}


@pytest.mark.parametrize(
    "input,expected",
    [
        # Sorted in canonical order
        ([{"type": "link", "attrs": {"href": "x"}}, BOLD], ["bold", "link"]),
        (["underline", "italic", "bold"], ["bold", "italic", "underline"]),
        # Deduplicated
        ([BOLD, BOLD, ITALIC], ["bold", "italic"]),
        # Unsupported marks are dropped
        ([{"type": "strike"}, ITALIC, {"type": "code"}], ["italic"]),
        ([], []),
        (None, []),
    ],
)
def test_text_node_marks(input, expected):
    node = c.TextNode(text="foo", marks=input)
    assert [m.type for m in node.marks] == expected


def test_text_node_marks__innermost_link_wins():
    node = c.TextNode.model_validate(
        text(
            "foo",
            {"type": "link", "attrs": {"href": "outer"}},
            {"type": "link", "attrs": {"href": "inner"}},
        )
    )
    assert node.marks == [c.Mark.link("inner")]


@pytest.mark.parametrize(
    "input,expected",
    [
        ("foo", "foo"),
        ("a\x00b\x1fc", "abc"),
        ("tab\tand\nnewline", "tab\tand\nnewline"),
        ("a\r\nb\rc", "a\nb\nc"),
        (None, ""),
    ],
)
def test_text_node_text(input, expected):
    assert c.TextNode(text=input).text == expected


def test_paragraph__merges_runs():
    node = c.Paragraph.model_validate(
        para(text("a"), text("b"), text(""), text("c", BOLD), text("d", BOLD))
    )
    assert node.content == [
        c.TextNode(text="ab"),
        c.TextNode(text="cd", marks=[c.Mark(type=MarkType.BOLD)]),
    ]
    assert node.text == "abcd"


@pytest.mark.parametrize(
    "input,expected",
    [
        (1, 1),
        (3, 3),
        ("2", 2),
        (0, 1),
        (7, 6),
        (-4, 1),
        (None, 1),
        ("big", 1),
    ],
)
def test_heading_level(input, expected):
    node = c.Heading.model_validate({"type": "heading", "attrs": {"level": input}})
    assert node.level == expected


@pytest.mark.parametrize(
    "input",
    [
        None,
        {},
        {"type": "doc"},
        {"type": "doc", "content": []},
        {"type": "doc", "content": None},
        [],
    ],
)
def test_rich_doc__never_empty(input):
    doc = c.RichDoc.model_validate(input)
    assert doc.content == [c.Paragraph()]


def test_rich_doc__default():
    assert c.RichDoc().content == [c.Paragraph()]


def test_rich_doc__hard_break_splits_paragraph():
    doc = c.RichDoc.model_validate(
        {
            "type": "doc",
            "content": [
                para(text("a"), {"type": "hardBreak"}, text("b")),
                para(text("c"), {"type": "hardBreak"}, {"type": "hardBreak"}, text("d")),
            ],
        }
    )
    assert [n.text for n in doc.content] == ["a", "b", "c", "", "d"]


def test_rich_doc__inline_image_is_lifted():
    image = {"type": "image", "attrs": {"src": "x.png", "alt": "X"}}
    doc = c.RichDoc.model_validate(
        {"type": "doc", "content": [para(text("a"), image, text("b"))]}
    )
    assert [n.type for n in doc.content] == ["paragraph", "image", "paragraph"]
    assert doc.content[1].attrs.src == "x.png"


def test_rich_doc__unknown_node_becomes_paragraph():
    doc = c.RichDoc.model_validate(
        {
            "type": "doc",
            "content": [
                {
                    "type": "bulletList",
                    "content": [
                        {"type": "listItem", "content": [para(text("a"))]},
                        {"type": "listItem", "content": [para(text("b"))]},
                    ],
                },
                {"type": "codeBlock", "content": [text("x = 1")]},
            ],
        }
    )
    assert doc.content == [
        c.Paragraph(content=[c.TextNode(text="a\nb")]),
        c.Paragraph(content=[c.TextNode(text="x = 1")]),
    ]


def test_rich_doc__unknown_inline_node_keeps_text():
    doc = c.RichDoc.model_validate(
        {"type": "doc", "content": [para(text("a"), {"type": "mention", "text": "@b"})]}
    )
    assert doc.content == [c.Paragraph(content=[c.TextNode(text="a@b")])]


def test_rich_doc__bare_node_is_wrapped():
    doc = c.RichDoc.model_validate(para(text("foo")))
    assert doc.content == [c.Paragraph(content=[c.TextNode(text="foo")])]


def test_rich_doc__to_json():
    doc = c.RichDoc(
        content=[
            c.Heading(
                attrs={"level": 2},
                content=[c.TextNode(text="T", marks=[c.Mark(type=MarkType.BOLD)])],
            ),
            c.Paragraph(content=[c.TextNode(text="l", marks=[c.Mark.link("https://x.se")])]),
            c.Image(attrs={"src": "a.png"}),
        ]
    )
    assert doc.to_json() == {
        "type": "doc",
        "content": [
            {
                "type": "heading",
                "attrs": {"level": 2},
                "content": [{"type": "text", "text": "T", "marks": [{"type": "bold"}]}],
            },
            {
                "type": "paragraph",
                "content": [
                    {
                        "type": "text",
                        "text": "l",
                        "marks": [{"type": "link", "attrs": {"href": "https://x.se"}}],
                    }
                ],
            },
            {"type": "image", "attrs": {"src": "a.png", "alt": ""}},
        ],
    }


def test_rich_doc__json_round_trip():
    doc = c.RichDoc(
        content=[
            c.Paragraph(content=[c.TextNode(text="a", marks=[c.Mark(type=MarkType.ITALIC)])]),
            c.Image(attrs={"src": "a.png", "alt": "A", "title": "Bild"}),
        ]
    )
    assert c.RichDoc.model_validate(doc.to_json()) == doc


def test_text_block__creates_id():
    block = c.TextBlock()
    assert block.id.startswith("text-")
    assert c.ImageBlock().id.startswith("image-")
    assert c.TextBlock().id != block.id


def test_text_block__html_fallback():
    block = c.TextBlock.model_validate(
        {"id": "b1", "type": "text", "data": {"htmlContent": "<p>Hej</p>"}}
    )
    assert block.data.content == c.RichDoc(
        content=[c.Paragraph(content=[c.TextNode(text="Hej")])]
    )


def test_image_block__defaults():
    block = c.ImageBlock.model_validate(
        {"id": "b1", "type": "image", "data": {"src": "a.png", "alt": None}}
    )
    assert block.data.alt == ""
    assert block.data.alignment == "center"
    assert block.data.size == "medium"
    assert block.data.caption is None


def test_block_page__never_empty():
    page = BlockPage(id="p1")
    assert len(page.blocks) == 1
    assert isinstance(page.blocks[0], c.TextBlock)


def test_block_page__unknown_block_becomes_text_block():
    page = BlockPage.model_validate(
        {"id": "p1", "blocks": [{"id": "v1", "type": "video", "data": {"text": "Film"}}]}
    )
    (block,) = page.blocks
    assert isinstance(block, c.TextBlock)
    assert block.id == "v1"
    assert block.data.content.content[0].text == "Film"


def test_block_page__duplicate_ids_are_replaced(caplog):
    page = BlockPage.model_validate(
        {
            "id": "p1",
            "blocks": [
                {"id": "a", "type": "text"},
                {"id": "a", "type": "image", "data": {"src": "x.png"}},
            ],
        }
    )
    first, second = page.blocks
    assert first.id == "a"
    assert second.id != "a"
    assert second.id.startswith("image-")
    assert "Duplicate block ID" in caplog.text
