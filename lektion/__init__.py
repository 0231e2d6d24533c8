"""Content model and conversion layer for paginated reading lessons.

A lesson page can be stored in three shapes that were introduced at different
times: a raw HTML string, a rich document tree, or an ordered list of editor
blocks. The modules in `lektion.utils` convert between these shapes, and
`lektion.utils.migration` resolves whatever is stored into the canonical rich
document form.
"""

from dotenv import load_dotenv


load_dotenv(".env")
