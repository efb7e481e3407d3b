"""
Unit tests for prompt construction and reply block handling.
"""

from tutor_orchestrator.core.prompts import (
    NOTES_DELIMITER,
    TOPICS_DELIMITER,
    build_chat_system_prompt,
    build_note_creation_system_prompt,
    build_note_creation_user_prompt,
    build_note_extraction_prompt,
    build_note_update_user_prompt,
    extract_notes_json,
    extract_topics,
    strip_notes_block,
    strip_reply_blocks
)


class TestSystemPrompts:
    """Test prompt templates render both languages."""

    def test_chat_prompt_mentions_languages_and_delimiters(self):
        prompt = build_chat_system_prompt("English", "Japanese")

        assert "Japanese" in prompt
        assert "English" in prompt
        assert NOTES_DELIMITER in prompt
        assert TOPICS_DELIMITER in prompt
        assert '{"notes": [' in prompt

    def test_note_extraction_prompt(self):
        prompt = build_note_extraction_prompt("English", "Spanish")

        assert "Spanish" in prompt
        assert "English" in prompt
        assert "vocab, grammar, exception, other" in prompt

    def test_note_creation_system_prompt(self):
        prompt = build_note_creation_system_prompt("English", "Korean")

        assert "The target language is Korean" in prompt
        assert "exampleSentences" in prompt


class TestUserPrompts:
    """Test conversation rendering for note creation."""

    messages = [
        {"role": "user", "content": "What does 水 mean?"},
        {"role": "assistant", "content": "水 (mizu) means water."}
    ]

    def test_creation_prompt_renders_speakers(self):
        prompt = build_note_creation_user_prompt(self.messages)

        assert "Learner: What does 水 mean?" in prompt
        assert "Tutor: 水 (mizu) means water." in prompt
        assert "most important concepts" in prompt

    def test_creation_prompt_with_focus(self):
        prompt = build_note_creation_user_prompt(self.messages, " water ")
        assert "specifically about: water" in prompt

    def test_blank_focus_ignored(self):
        prompt = build_note_creation_user_prompt(self.messages, "   ")
        assert "specifically about" not in prompt

    def test_update_prompt_includes_existing_note(self):
        prompt = build_note_update_user_prompt(self.messages, '{"title": "水"}', "usage")

        assert 'Existing note:\n{"title": "水"}' in prompt
        assert "Focus the update on: usage" in prompt
        assert "Learner: What does 水 mean?" in prompt


class TestReplyBlocks:
    """Test splitting a reply into text and appended blocks."""

    def test_strip_notes_block(self):
        raw = f"Hello there!  \n{NOTES_DELIMITER}\n{{\"notes\": []}}"
        assert strip_notes_block(raw) == "Hello there!"

    def test_strip_notes_block_without_delimiter(self):
        assert strip_notes_block("  Just text  ") == "Just text"
        assert strip_notes_block(None) == ""

    def test_extract_notes_json(self):
        raw = f"Text\n{NOTES_DELIMITER}\n  {{\"notes\": []}}  "
        assert extract_notes_json(raw) == '{"notes": []}'
        assert extract_notes_json("no block") is None
        assert extract_notes_json(None) is None

    def test_strip_reply_blocks_uses_earliest_delimiter(self):
        raw = f"Answer\n{TOPICS_DELIMITER}\n[\"a\"]\n{NOTES_DELIMITER}\n{{}}"
        assert strip_reply_blocks(raw) == "Answer"

    def test_extract_topics_stops_at_notes_block(self):
        raw = (
            f"Answer\n{TOPICS_DELIMITER}\n[\"particles\", \"verb forms\", \"counters\"]\n"
            f"{NOTES_DELIMITER}\n{{\"notes\": []}}"
        )
        assert extract_topics(raw) == ["particles", "verb forms", "counters"]

    def test_extract_topics_filters_and_truncates(self):
        raw = f"{TOPICS_DELIMITER}\n[\"{'x' * 50}\", 3, \"  \", \" keigo \"]"
        assert extract_topics(raw) == ["x" * 40, "keigo"]

    def test_extract_topics_absent_or_invalid(self):
        assert extract_topics("plain reply") == []
        assert extract_topics(f"{TOPICS_DELIMITER}\nnot json") == []
        assert extract_topics(f"{TOPICS_DELIMITER}\n{{\"a\": 1}}") == []
        assert extract_topics(None) == []

    def test_extract_topics_deeply_nested(self):
        """Pathologically nested topics JSON yields no topics instead of raising."""
        raw = f"Reply\n{TOPICS_DELIMITER}\n" + "[" * 100000 + "]" * 100000
        assert extract_topics(raw) == []
