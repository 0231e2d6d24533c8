import pytest

from lektion.models.lessons import BlockPage, LegacyPage, Lesson, RichPage
from lektion.utils import pagination as pg


@pytest.mark.parametrize(
    "input,expected",
    [
        ("A--- SIDBRYTNING ---B--- SIDBRYTNING ---C", ["A", "B", "C"]),
        # No delimiter: the whole string is the only page.
        ("abc", ["abc"]),
        ("  abc\n", ["  abc\n"]),
        ("", [""]),
        (None, [""]),
        # Pages are stripped, and empty pages are dropped.
        ("<p>A</p>\n\n--- SIDBRYTNING ---\n\n<p>B</p>", ["<p>A</p>", "<p>B</p>"]),
        ("A--- SIDBRYTNING ------ SIDBRYTNING ---B", ["A", "B"]),
        ("--- SIDBRYTNING ---A--- SIDBRYTNING ---  ", ["A"]),
        ("--- SIDBRYTNING ---", [""]),
    ],
)
def test_split_pages(input, expected):
    assert pg.split_pages(input) == expected


def test_split_pages__custom_delimiter():
    assert pg.split_pages("a|b", delimiter="|") == ["a", "b"]


def test_join_pages():
    assert pg.join_pages(["A", "B"]) == "A\n\n--- SIDBRYTNING ---\n\nB"
    assert pg.join_pages(["A"]) == "A"


@pytest.mark.parametrize(
    "input,expected",
    [
        (LegacyPage(content=""), False),
        (LegacyPage(content="<p></p>"), False),
        (LegacyPage(content="<p>a</p>"), True),
        (LegacyPage(content="", images_below=["x.png"]), True),
        (RichPage(id="1"), False),
        (RichPage.model_validate({"id": "1", "doc": {"type": "paragraph", "content": [{"type": "text", "text": "a"}]}}), True),
        (BlockPage(id="1"), False),
        (BlockPage.model_validate({"id": "1", "blocks": [{"type": "image", "data": {"src": "x.png"}}]}), True),
        (LegacyPage(content="", questions=[{"id": "q1", "question": "?"}]), True),
    ],
)
def test_page_has_content(input, expected):
    assert pg.page_has_content(input) == expected


def test_resize_pages__grow():
    first = BlockPage(id="a")
    pages = pg.resize_pages([first], 3)
    assert len(pages) == 3
    assert pages[0] is first
    assert all(isinstance(p, BlockPage) for p in pages)
    assert len({p.id for p in pages}) == 3


def test_resize_pages__grow_rich_pages():
    pages = pg.resize_pages([], 2, RichPage)
    assert [type(p) for p in pages] == [RichPage, RichPage]


def test_resize_pages__shrink(caplog):
    pages = [
        LegacyPage(id="a", content="<p>a</p>"),
        LegacyPage(id="b", content=""),
        LegacyPage(id="c", content="<p>c</p>"),
    ]
    assert [p.id for p in pg.resize_pages(pages, 1)] == ["a"]
    assert "Dropping page 3 (c)" in caplog.text
    assert "(b)" not in caplog.text


@pytest.mark.parametrize("count", [0, -1])
def test_resize_pages__at_least_one(count):
    pages = [BlockPage(id="a"), BlockPage(id="b")]
    assert [p.id for p in pg.resize_pages(pages, count)] == ["a"]


def test_with_page_count__new_lesson():
    lesson = pg.with_page_count(Lesson(), 2)
    assert lesson.number_of_pages == 2
    assert len(lesson.block_pages) == 2


def test_with_page_count__keeps_page_shape():
    lesson = Lesson.model_validate(
        {"numberOfPages": 1, "richPages": [{"id": "a", "doc": {"type": "doc", "content": []}}]}
    )
    lesson = pg.with_page_count(lesson, 3)
    assert lesson.number_of_pages == 3
    assert [type(p) for p in lesson.rich_pages] == [RichPage] * 3
    assert lesson.rich_pages[0].id == "a"
    assert lesson.block_pages == []

    lesson = pg.with_page_count(lesson, 0)
    assert lesson.number_of_pages == 1
    assert [p.id for p in lesson.rich_pages] == ["a"]


def test_with_page_count__legacy_pages():
    lesson = Lesson.model_validate({"pages": [{"id": "a", "content": "x"}]})
    lesson = pg.with_page_count(lesson, 2)
    assert [type(p) for p in lesson.pages] == [LegacyPage, LegacyPage]
