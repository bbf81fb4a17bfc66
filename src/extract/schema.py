"""Key names used by the KOReader metadata formats.

KOReader has renamed fields over the years. Each tuple below lists the
names for one concept, newest first; the extractor takes the first name
that is present.
"""

# Top level
BOOK_PROPS_KEYS = ("doc_props", "stats")
HIGHLIGHT_COLLECTION_KEYS = ("annotations", "highlight")
DOC_PATH_KEYS = ("doc_path",)

# Inside the book properties table
TITLE_KEYS = ("title",)
AUTHOR_KEYS = ("authors", "author")

# Inside one highlight table
TEXT_KEYS = ("text",)
TIMESTAMP_KEYS = ("datetime", "date", "timestamp")
NOTE_KEYS = ("note", "notes")
POSITION_KEYS = ("pageno", "page", "pos0")
CHAPTER_KEYS = ("chapter",)

# Formats accepted for string timestamps
TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)
