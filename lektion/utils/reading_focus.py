"""Split page content into lines for reading-focus mode.

In reading-focus mode, the student sees a small window of lines at a time and
steps through the text. We build those lines from plain text:

1. Split the text into sentences on `.`, `!`, and `?`.
2. If a sentence is longer than the column budget, greedily pack its words
   into lines that fit. We never split a word, so a single word longer than
   the budget gets a line of its own.
3. Drop empty lines.
"""

import dataclasses as dc
import re
from typing import Any

from lektion.consts import LINE_WIDTH, READING_FOCUS_LINES
from lektion.utils.html_codec import html_to_text
from lektion.utils.migration import page_rich_doc
from lektion.utils.rich_doc import rich_doc_to_text


#: A sentence, with its closing punctuation. The second branch catches
#: punctuation with no text before it.
SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*|[.!?]+")


def _pack_words(words: list[str], width: int) -> list[str]:
    lines = []
    current = ""
    for word in words:
        if current and len(current) + 1 + len(word) > width:
            lines.append(current)
            current = word
        else:
            current = f"{current} {word}" if current else word
    if current:
        lines.append(current)
    return lines


def split_into_lines(text: str | None, width: int = LINE_WIDTH) -> list[str]:
    """Split plain text into reading lines of at most `width` characters.

    Each paragraph (line of `text`) is split separately, so a heading with no
    closing punctuation doesn't run into the paragraph after it.
    """
    lines = []
    for paragraph in (text or "").splitlines():
        for sentence in SENTENCE_RE.findall(paragraph):
            words = sentence.split()
            if not words:
                continue
            sentence = " ".join(words)
            if len(sentence) <= width:
                lines.append(sentence)
            else:
                lines.extend(_pack_words(words, width))
    return lines


def html_lines(html_str: str | None, width: int = LINE_WIDTH) -> list[str]:
    return split_into_lines(html_to_text(html_str), width)


def page_lines(page: Any, width: int = LINE_WIDTH) -> list[str]:
    """Split a page in any shape into reading lines."""
    return split_into_lines(rich_doc_to_text(page_rich_doc(page)), width)


@dc.dataclass(frozen=True)
class ReadingWindow:
    """A window of `lines_per_window` lines, starting at line `current`.

    `current` is always clamped to `[0, len(lines) - lines_per_window]`, so
    moving past either end does nothing.
    """

    lines: tuple[str, ...]
    lines_per_window: int = READING_FOCUS_LINES
    #: Index of the first visible line.
    current: int = 0

    def __post_init__(self):
        # Frozen, so go through `object.__setattr__`.
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "lines_per_window", max(self.lines_per_window, 1))
        object.__setattr__(self, "current", min(max(self.current, 0), self.max_line))

    @property
    def max_line(self) -> int:
        """The largest valid value of `current`."""
        return max(0, len(self.lines) - self.lines_per_window)

    @property
    def visible_lines(self) -> tuple[str, ...]:
        return self.lines[self.current : self.current + self.lines_per_window]

    @property
    def is_on_last_window(self) -> bool:
        return self.current >= self.max_line

    def forward(self, step: int = 1) -> "ReadingWindow":
        return dc.replace(self, current=self.current + step)

    def back(self, step: int = 1) -> "ReadingWindow":
        return dc.replace(self, current=self.current - step)

    def jump_to(self, line: int) -> "ReadingWindow":
        return dc.replace(self, current=line)
