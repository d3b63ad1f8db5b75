"""Anki text and JSON export of study sets."""

from synapse.anki.export import (
    StudySet,
    format_anki_card,
    format_for_anki_txt,
    format_for_json,
    import_from_json,
)

__all__ = [
    "StudySet",
    "format_anki_card",
    "format_for_anki_txt",
    "format_for_json",
    "import_from_json",
]
