"""
Prompt construction and reply block handling.

Pure functions: system and user prompts for every provider call, plus the
helpers that split a model reply into user-facing text and the machine-readable
blocks appended after it.
"""

import json
import logging
from typing import Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

NOTES_DELIMITER = "---NOTES_JSON---"
TOPICS_DELIMITER = "---TOPICS---"

MAX_TOPIC_LENGTH = 40

CHAT_SYSTEM_PROMPT = """\
You are a patient and knowledgeable language tutor specializing in {target}.

RULES:
- The learner's native language is {app}. Write your explanations in {app}.
- You are teaching {target}. Use {target} for examples, vocabulary and sample sentences.
- When you introduce a word or phrase in {target}, show it in its native script,
  a romanization or pronunciation guide when the script is not Latin, and its
  meaning in {app}.
- Keep explanations clear and concise. Correct mistakes gently and explain why.
- When explaining grammar, give the rule first, then concrete examples.
- Stay focused on language learning and redirect off-topic questions.

STUDY NOTES:
If your reply teaches a vocabulary item, grammar point or exception worth
reviewing later, append the block below after your reply. Otherwise omit it.

{notes_delimiter}
{{"notes": [{{"type": "vocab | grammar | exception | other", "title": "short title", "summary": "one sentence", "content": "fuller explanation"}}]}}

- "type" must be exactly one of: vocab, grammar, exception, other.
- "title" is the {target} word, phrase or grammar point, under 60 characters.
- The JSON must be valid: double-quoted strings, no trailing commas.

TOPIC SUGGESTION:
If your reply covers 3 or more distinct topics that each deserve their own
study note, append a topics block before any notes block:

{topics_delimiter}
["topic title 1", "topic title 2", "topic title 3"]

- Topic titles must be under 40 characters.
- If fewer than 3 distinct topics exist, do not append this block.
"""

NOTE_EXTRACTION_PROMPT = """\
You extract study notes from a {target} lesson written for a learner whose
native language is {app}.

Respond with ONLY valid JSON of the form:
{{"notes": [{{"type": "...", "title": "...", "summary": "...", "content": "..."}}]}}

- "type" must be exactly one of: vocab, grammar, exception, other.
- "title" is the {target} word, phrase or grammar point, under 60 characters.
- Write "summary" and "content" in {app}.
- Return {{"notes": []}} when nothing worth reviewing was taught.
"""

NOTE_CREATION_SYSTEM_PROMPT = """\
You are a language learning assistant that creates structured study notes from
tutor conversations.

The target language is {target}. The learner's native language is {app}.
Notes must help the learner review {target} concepts.

Respond with ONLY valid JSON matching this schema (no other text, no markdown fences):
{{
  "type": "vocab | grammar | exception | other",
  "title": "short title (under 60 characters)",
  "summary": "1-2 sentence explanation in the learner's native language",
  "content": "fuller explanation with examples, in the learner's native language",
  "structured": {{ <type-specific fields> }},
  "tags": [{{ "category": "...", "value": "..." }}]
}}

Type-specific "structured" fields:
- vocab:     {{ "word", "reading", "meaning", "partOfSpeech", "exampleSentences", "commonMistakes" }}
- grammar:   {{ "pattern", "meaning", "explanation", "formality", "exampleSentences", "commonMistakes" }}
- exception: {{ "rule", "exception", "explanation", "exampleSentences" }}
- other:     any relevant key-value pairs

Tag categories: topic, formality, difficulty, function. Use 1-4 lowercase tags.
Include the tutor's example sentences in "exampleSentences".
"""


def build_chat_system_prompt(app_language_name: str, target_language_name: str) -> str:
    """System prompt for the tutor chat role.

    Args:
        app_language_name: Learner's native language, e.g. "English"
        target_language_name: Language being learned, e.g. "Japanese"
    """
    return CHAT_SYSTEM_PROMPT.format(
        app=app_language_name,
        target=target_language_name,
        notes_delimiter=NOTES_DELIMITER,
        topics_delimiter=TOPICS_DELIMITER
    )


def build_note_extraction_prompt(app_language_name: str, target_language_name: str) -> str:
    return NOTE_EXTRACTION_PROMPT.format(app=app_language_name, target=target_language_name)


def build_note_creation_system_prompt(app_language_name: str, target_language_name: str) -> str:
    """System prompt for the explicit, JSON-only note creation call."""
    return NOTE_CREATION_SYSTEM_PROMPT.format(app=app_language_name, target=target_language_name)


def build_note_creation_user_prompt(
    messages: Iterable[Mapping[str, str]],
    topic_focus: Optional[str] = None
) -> str:
    """User prompt asking for a new note built from a conversation transcript."""
    if topic_focus and topic_focus.strip():
        header = f"Create a study note specifically about: {topic_focus.strip()}\n\n"
    else:
        header = "Create a study note capturing the most important concepts from this conversation.\n\n"
    return header + _render_conversation(messages)


def build_note_update_user_prompt(
    messages: Iterable[Mapping[str, str]],
    existing_note_json: str,
    topic_focus: Optional[str] = None
) -> str:
    """User prompt asking the model to build on an existing note."""
    parts = ["Update the following existing study note based on new information in the conversation below.\n"]
    if topic_focus and topic_focus.strip():
        parts.append(f"Focus the update on: {topic_focus.strip()}\n")
    parts.append(f"\nExisting note:\n{existing_note_json}\n\n")
    parts.append(_render_conversation(messages))
    return "".join(parts)


def _render_conversation(messages: Iterable[Mapping[str, str]]) -> str:
    lines = ["Conversation:"]
    for message in messages:
        speaker = "Learner" if message.get("role") == "user" else "Tutor"
        lines.append(f"{speaker}: {message.get('content', '')}")
    return "\n".join(lines) + "\n"


def strip_notes_block(raw_reply: Optional[str]) -> str:
    """Text before the notes delimiter, trimmed. Empty string for None."""
    if raw_reply is None:
        return ""
    idx = raw_reply.find(NOTES_DELIMITER)
    if idx == -1:
        return raw_reply.strip()
    return raw_reply[:idx].strip()


def extract_notes_json(raw_reply: Optional[str]) -> Optional[str]:
    """Trimmed text after the notes delimiter, or None when there is no block."""
    if raw_reply is None:
        return None
    idx = raw_reply.find(NOTES_DELIMITER)
    if idx == -1:
        return None
    return raw_reply[idx + len(NOTES_DELIMITER):].strip()


def strip_reply_blocks(raw_reply: Optional[str]) -> str:
    """User-facing reply text with every appended block removed."""
    if raw_reply is None:
        return ""
    positions = [
        idx for idx in (raw_reply.find(NOTES_DELIMITER), raw_reply.find(TOPICS_DELIMITER))
        if idx != -1
    ]
    if not positions:
        return raw_reply.strip()
    return raw_reply[:min(positions)].strip()


def extract_topics(raw_reply: Optional[str]) -> List[str]:
    """Suggested topic titles from the topics block.

    Returns an empty list when the block is absent or unparsable.
    """
    if raw_reply is None:
        return []
    idx = raw_reply.find(TOPICS_DELIMITER)
    if idx == -1:
        return []
    json_part = raw_reply[idx + len(TOPICS_DELIMITER):]
    notes_idx = json_part.find(NOTES_DELIMITER)
    if notes_idx != -1:
        json_part = json_part[:notes_idx]
    try:
        parsed = json.loads(json_part.strip())
    except (ValueError, RecursionError) as e:
        logger.warning(f"Failed to parse topics JSON: {e}")
        return []
    if not isinstance(parsed, list):
        return []
    return [
        item.strip()[:MAX_TOPIC_LENGTH]
        for item in parsed
        if isinstance(item, str) and item.strip()
    ]
