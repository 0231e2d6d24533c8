"""Constants shared across the content layer."""

#: Marker between pages in the legacy single-string `content` field.
PAGE_BREAK = "--- SIDBRYTNING ---"

#: Separator used when we write the legacy `content` field ourselves.
PAGE_BREAK_SEPARATOR = f"\n\n{PAGE_BREAK}\n\n"

#: Column budget for a line in reading-focus mode.
LINE_WIDTH = 80

#: Number of lines revealed at once in reading-focus mode.
READING_FOCUS_LINES = 3

#: Alt text for images moved into the document from `imagesAbove` and
#: `imagesBelow`.
LEGACY_IMAGE_ALT = "Migrated image"
