"""Derive the reading style from a student's accessibility settings."""

import dataclasses as dc

from pydantic import Field

from lektion.consts import READING_FOCUS_LINES
from lektion.models.content import ContentModel


DEFAULT_COLOR_SCHEME = "black-on-white"
DEFAULT_FONT_FAMILY = "standard"

#: Color schemes as (background, text) pairs.
COLOR_SCHEMES = {
    "black-on-white": ("#FFFFFF", "#000000"),
    "light-gray-on-gray": ("#595959", "#D9D9D9"),
    "white-on-black": ("#000000", "#FFFFFF"),
    "black-on-light-yellow": ("#FFFFCC", "#000000"),
    "black-on-light-blue": ("#CCFFFF", "#000000"),
    "light-yellow-on-blue": ("#003399", "#FFFFCC"),
    "black-on-light-red": ("#FFCCCC", "#000000"),
}

FONT_FAMILY_CSS = {
    "standard": "system-ui, -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif",
    "dyslexia-friendly": "'OpenDyslexic', 'Comic Sans MS', cursive, system-ui, sans-serif",
}


class ReadingSettings(ContentModel):
    """A student's reading settings, as stored."""

    #: In pixels.
    font_size: int = Field(default=16, ge=8, le=96)
    line_height: float = Field(default=1.5, ge=1.0, le=3.0)
    #: A key of `COLOR_SCHEMES`. The stored name is `backgroundColor`.
    background_color: str = DEFAULT_COLOR_SCHEME
    #: A key of `FONT_FAMILY_CSS`.
    font_family: str = DEFAULT_FONT_FAMILY
    reading_focus_lines: int = Field(default=READING_FOCUS_LINES, ge=1)


@dc.dataclass(frozen=True)
class ReadingStyle:
    background_color: str
    text_color: str
    border_color: str
    font_family: str
    font_size: int
    line_height: float

    def css_variables(self) -> dict[str, str]:
        """Return the style as CSS custom properties."""
        font_size = f"{self.font_size}px"
        line_height = str(self.line_height)
        return {
            "--accessibility-bg-color": self.background_color,
            "--accessibility-text-color": self.text_color,
            "--accessibility-border-color": self.border_color,
            "--accessibility-font-family": self.font_family,
            "--accessibility-font-size": font_size,
            "--accessibility-line-height": line_height,
            "--reading-font-size": font_size,
            "--reading-line-height": line_height,
            "--normal-font-family": self.font_family,
            "--focus-font-family": self.font_family,
        }


def reading_style(settings: ReadingSettings | None = None) -> ReadingStyle:
    """Derive a reading style from `settings`.

    Unknown color schemes and fonts fall back to the defaults.
    """
    settings = settings or ReadingSettings()
    background, text = COLOR_SCHEMES.get(
        settings.background_color, COLOR_SCHEMES[DEFAULT_COLOR_SCHEME]
    )
    font_family = FONT_FAMILY_CSS.get(
        settings.font_family, FONT_FAMILY_CSS[DEFAULT_FONT_FAMILY]
    )
    return ReadingStyle(
        background_color=background,
        text_color=text,
        border_color=text,
        font_family=font_family,
        font_size=settings.font_size,
        line_height=settings.line_height,
    )
