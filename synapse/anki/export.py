"""
Study set export and import.

Formats:
- Anki text import: one "front<TAB>back" line per item, HTML allowed
- JSON: the full study set, re-importable as a new set
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from synapse.core.exceptions import ExportFormatError
from synapse.core.models import (
    CaseStudy,
    Flashcard,
    FreeResponse,
    MultipleChoice,
    StudyItem,
    TrueFalse,
    ensure_utc,
    to_iso,
    utc_now,
)
from synapse.core.sanitize import item_from_dict


@dataclass
class StudySet:
    """A titled collection of study items."""

    id: str
    title: str
    items: list[StudyItem] = field(default_factory=list)
    created_at: datetime | None = None
    source_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "items": [item.to_dict() for item in self.items],
            "createdAt": to_iso(self.created_at),
        }
        if self.source_text is not None:
            data["sourceText"] = self.source_text
        return data


# =============================================================================
# Anki
# =============================================================================


def _mcq_back(item: MultipleChoice) -> str:
    options = []
    for index, option in enumerate(item.options):
        prefix = chr(65 + index)
        if index == item.correct_answer_index:
            options.append(f"<li><b>{prefix}. {option} (Correct)</b></li>")
        else:
            options.append(f"<li>{prefix}. {option}</li>")
    return f"<ul>{''.join(options)}</ul>"


def format_anki_card(item: StudyItem) -> str:
    """Format one item as an Anki "front<TAB>back" line."""
    if isinstance(item, MultipleChoice):
        back = _mcq_back(item)
    elif isinstance(item, TrueFalse):
        back = "True" if item.correct_answer else "False"
    elif isinstance(item, (Flashcard, FreeResponse, CaseStudy)):
        back = item.answer or ""
    else:
        back = ""

    if item.explanation:
        back += f"<br><hr><br><b>Explanation:</b> {item.explanation}"

    # Tabs separate fields and newlines separate notes
    front = item.question.replace("\n", "<br>")
    return f"{front}\t{back}"


def format_for_anki_txt(items: Iterable[StudyItem]) -> str:
    """Anki text-import content for a collection of items."""
    return "\n".join(format_anki_card(item) for item in items)


# =============================================================================
# JSON
# =============================================================================


def format_for_json(study_set: StudySet) -> str:
    return json.dumps(study_set.to_dict(), indent=2, ensure_ascii=False)


def import_from_json(text: str, now: datetime | None = None) -> StudySet:
    """
    Read an exported study set back as a new set.

    The set and all of its items get fresh ids so an import never collides
    with the set it was exported from.

    Args:
        text: JSON produced by ``format_for_json``
        now: Import time (defaults to UTC now)

    Returns:
        New StudySet titled "<title> (Imported)"

    Raises:
        ExportFormatError: If the text is not JSON or lacks id/title/items
    """
    if not text or not text.strip():
        raise ExportFormatError("File is empty or could not be read.")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExportFormatError("Failed to parse JSON. The file may be corrupt.") from e

    if (
        not isinstance(data, dict)
        or not data.get("id")
        or not data.get("title")
        or not isinstance(data.get("items"), list)
    ):
        raise ExportFormatError("Invalid JSON format. Missing required 'id', 'title', or 'items' fields.")

    imported_at = ensure_utc(now) if isinstance(now, datetime) else utc_now()
    stamp = int(imported_at.timestamp() * 1000)

    items: list[StudyItem] = []
    for index, raw in enumerate(data["items"]):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping non-object item #{index} in imported set")
            continue
        item_type = raw.get("type") or "flashcard"
        item = item_from_dict({**raw, "id": f"{item_type}-imported-{stamp}-{index}"})
        if item is not None:
            items.append(item)

    source_text = data.get("sourceText")
    return StudySet(
        id=f"set-imported-{stamp}",
        title=f"{data['title']} (Imported)",
        items=items,
        created_at=imported_at,
        source_text=source_text if isinstance(source_text, str) else None,
    )
