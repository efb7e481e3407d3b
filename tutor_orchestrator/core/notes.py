"""
Structured note extraction from model replies.

Model output is untrusted. Extraction validates every element, drops what it
cannot use and never raises.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .prompts import extract_notes_json

logger = logging.getLogger(__name__)

VALID_NOTE_TYPES = frozenset({"vocab", "grammar", "exception", "other"})
VALID_TAG_CATEGORIES = frozenset({"topic", "formality", "difficulty", "function"})
MAX_TITLE_LENGTH = 60


@dataclass(frozen=True)
class NoteTag:
    """Categorized label attached to a note."""
    category: str
    value: str


@dataclass(frozen=True)
class ExtractedNote:
    """Validated study note ready to hand to the note store."""
    type: str
    title: str
    summary: Optional[str]
    content: Optional[str]
    learning_language: str
    structured: Optional[Dict[str, Any]] = None
    tags: List[NoteTag] = field(default_factory=list)


def _text(node: Dict[str, Any], key: str) -> str:
    value = node.get(key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value).strip()
    return ""


def _parse_tags(raw_tags: Any) -> List[NoteTag]:
    if not isinstance(raw_tags, list):
        return []
    tags = []
    for raw_tag in raw_tags:
        if not isinstance(raw_tag, dict):
            continue
        category = _text(raw_tag, "category").lower()
        value = _text(raw_tag, "value").lower()
        if category in VALID_TAG_CATEGORIES and value:
            tags.append(NoteTag(category=category, value=value))
    return tags


def parse_note(node: Any, learning_language: str) -> Optional[ExtractedNote]:
    """Validate a single note object.

    Args:
        node: Decoded JSON value for one note
        learning_language: Language the note is filed under, regardless of
            any language hint inside the JSON

    Returns:
        The note, or None when it must be skipped
    """
    if not isinstance(node, dict):
        logger.warning("Note entry is not an object, skipping")
        return None

    note_type = _text(node, "type").lower()
    title = _text(node, "title")

    if note_type not in VALID_NOTE_TYPES:
        logger.warning(f"Invalid note type '{note_type}', skipping note with title '{title}'")
        return None
    if not title:
        logger.warning("Note missing title, skipping")
        return None

    summary = _text(node, "summary")
    content = _text(node, "content")
    structured = node.get("structured")

    return ExtractedNote(
        type=note_type,
        title=title[:MAX_TITLE_LENGTH],
        summary=summary or None,
        content=content or None,
        learning_language=learning_language,
        structured=dict(structured) if isinstance(structured, dict) else None,
        tags=_parse_tags(node.get("tags"))
    )


class NoteExtractor:
    """Parses the notes block appended to a chat reply."""

    def extract(self, raw_reply: Optional[str], learning_language: str) -> List[ExtractedNote]:
        """Extract validated notes from a raw model reply.

        Args:
            raw_reply: Full model output, possibly ending in a notes block
            learning_language: Language code stamped on every note

        Returns:
            Accepted notes in their original order (possibly empty)
        """
        json_part = extract_notes_json(raw_reply)
        if json_part is None:
            return []

        try:
            # anything after the first JSON value is ignored
            root, _ = json.JSONDecoder().raw_decode(json_part)
        except (ValueError, RecursionError) as e:
            logger.warning(f"Failed to parse notes JSON for language={learning_language}: {e}")
            return []

        if not isinstance(root, dict) or not isinstance(root.get("notes"), list):
            logger.warning(f"Notes block has no 'notes' array for language={learning_language}")
            return []

        notes = []
        for node in root["notes"]:
            note = parse_note(node, learning_language)
            if note is not None:
                notes.append(note)
        return notes
