"""
Conversation context assembly.

Renders condensed older history (summaries) followed by the most recent raw
turns into the transcript sent ahead of a new user message.
"""

import logging
from typing import Dict, List

from ..config.loader import ContextConfig
from ..storage.repository import LanguageStore, MessageStore, SummaryStore

logger = logging.getLogger(__name__)

SUMMARY_HEADER = "Previous conversation context:\n"


class ContextAssembler:
    """Builds the bounded transcript for a (user, learning language) pair."""

    def __init__(
        self,
        language_store: LanguageStore,
        message_store: MessageStore,
        summary_store: SummaryStore,
        config: ContextConfig
    ):
        self.language_store = language_store
        self.message_store = message_store
        self.summary_store = summary_store
        self.config = config

    def build_context(
        self,
        user_id: str,
        learning_language: str,
        include_context: bool
    ) -> List[Dict[str, str]]:
        """Assemble the conversation transcript.

        Args:
            user_id: Owner of the history
            learning_language: Learning language code
            include_context: When False, no store is queried at all

        Returns:
            Role-tagged entries: one system entry with the summaries (oldest
            first) when any exist, then recent turns oldest first. Empty when
            context is disabled or the language can't be resolved.
        """
        if not include_context:
            return []

        language = self.language_store.find_by_code(learning_language)
        if language is None:
            logger.warning(f"Language not found: {learning_language}, skipping context")
            return []

        summaries = self.summary_store.find_recent(
            user_id, language.code, self.config.max_summaries
        )
        turns = self.message_store.find_recent(
            user_id, language.code, self.config.max_messages
        )

        transcript: List[Dict[str, str]] = []
        if summaries:
            lines = [f"- {summary.summary_text}\n" for summary in reversed(summaries)]
            transcript.append({"role": "system", "content": SUMMARY_HEADER + "".join(lines)})

        for turn in turns:
            transcript.append({"role": turn.role.value, "content": turn.content})

        logger.debug(
            f"Built context: user_id={user_id}, language={language.code}, "
            f"summaries={len(summaries)}, turns={len(turns)}"
        )
        return transcript
