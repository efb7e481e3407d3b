"""
Reply orchestration.

Wires budget accounting, model selection, context assembly, the completion
client and note parsing into the operations the API layer calls. The
orchestrator holds no per-user state between calls.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .budget import TokenBudgetTracker
from .completion import CompletionClient, CompletionRequest
from .context import ContextAssembler
from .errors import InvalidArgumentError, NotFoundError, ProviderError, RateLimitExceededError
from .model_selection import ModelSelector
from .notes import ExtractedNote, NoteExtractor, parse_note
from .prompts import (
    build_chat_system_prompt,
    build_note_creation_system_prompt,
    build_note_creation_user_prompt,
    build_note_update_user_prompt,
    extract_topics,
    strip_reply_blocks,
)
from .token_counter import TokenUsage, count_tokens
from ..config.loader import OrchestratorConfig
from ..storage.models import Language, UserRecord
from ..storage.repository import LanguageStore, MessageStore, SummaryStore, UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplyRequest:
    """Incoming chat message for a tutor reply."""
    user_id: str
    language: str
    message: str
    intent: Optional[str] = None
    depth: Optional[str] = None
    include_context: bool = True


@dataclass(frozen=True)
class ReplyResult:
    """Tutor reply with the metadata the caller persists."""
    reply: str
    raw_reply: str
    model: str
    usage: TokenUsage
    suggested_topics: List[str] = field(default_factory=list)


class Orchestrator:
    """Entry point for tutor replies and note generation."""

    def __init__(
        self,
        user_store: UserStore,
        language_store: LanguageStore,
        message_store: MessageStore,
        summary_store: SummaryStore,
        config: OrchestratorConfig,
        completion_client: CompletionClient,
        now: Callable[[], datetime] = datetime.now
    ):
        self.user_store = user_store
        self.language_store = language_store
        self.config = config
        self.completion_client = completion_client
        self.budget = TokenBudgetTracker(user_store, config.token_limits, now=now)
        self.selector = ModelSelector(config.models)
        self.context = ContextAssembler(language_store, message_store, summary_store, config.context)
        self.extractor = NoteExtractor()

    def generate_reply(self, request: ReplyRequest) -> ReplyResult:
        """Generate a tutor reply for one user message.

        Args:
            request: User, learning language, message and selection hints

        Returns:
            Reply with appended blocks stripped, the raw reply, the model used,
            provider usage and any suggested topics

        Raises:
            NotFoundError: If the user or their app language is missing
            InvalidArgumentError: If the learning language is not supported
            RateLimitExceededError: If the estimate does not fit the daily budget
            ProviderError: If the completion call fails
        """
        user = self._find_user(request.user_id)
        app_language = self._find_app_language(user)
        target_language = self._find_target_language(request.language)

        system_prompt = build_chat_system_prompt(app_language.name, target_language.name)
        model = self.selector.select_model(user.tier, request.intent, request.depth)

        estimated = count_tokens(system_prompt) + count_tokens(request.message)
        self._ensure_budget(user.user_id, estimated)

        transcript = self.context.build_context(
            user.user_id, target_language.code, request.include_context
        )
        transcript.append({"role": "user", "content": request.message})

        outcome = self.completion_client.call(CompletionRequest(
            system_prompt=system_prompt,
            transcript=transcript,
            model=model,
            max_tokens=self.config.token_limits.per_request_max
        ))
        self.budget.record_usage(user.user_id, outcome.usage)

        logger.info(
            f"Generated reply: user_id={user.user_id}, language={target_language.code}, "
            f"model={model}, tokens={outcome.usage.total_tokens}"
        )
        return ReplyResult(
            reply=strip_reply_blocks(outcome.reply_text),
            raw_reply=outcome.reply_text,
            model=model,
            usage=outcome.usage,
            suggested_topics=extract_topics(outcome.reply_text)
        )

    def extract_notes(self, raw_reply: Optional[str], learning_language: str) -> List[ExtractedNote]:
        """Notes embedded in a raw reply. Never raises."""
        return self.extractor.extract(raw_reply, learning_language)

    def generate_note_from_conversation(
        self,
        user_id: str,
        messages: List[Dict[str, str]],
        learning_language_code: str,
        topic_focus: Optional[str] = None,
        existing_note: Optional[ExtractedNote] = None
    ) -> ExtractedNote:
        """Ask the model for one structured note built from a conversation.

        When ``existing_note`` is given the model is asked to update it instead
        of starting from scratch.

        Raises:
            NotFoundError: If the user or their app language is missing
            InvalidArgumentError: If the learning language is not supported
            RateLimitExceededError: If the estimate does not fit the daily budget
            ProviderError: If the call fails or returns no usable note
        """
        user = self._find_user(user_id)
        app_language = self._find_app_language(user)
        target_language = self._find_target_language(learning_language_code)

        system_prompt = build_note_creation_system_prompt(app_language.name, target_language.name)
        if existing_note is not None:
            user_prompt = build_note_update_user_prompt(
                messages, json.dumps(asdict(existing_note), ensure_ascii=False), topic_focus
            )
        else:
            user_prompt = build_note_creation_user_prompt(messages, topic_focus)

        model = self.selector.select_tier_model(user.tier)
        self._ensure_budget(user.user_id, count_tokens(system_prompt) + count_tokens(user_prompt))

        outcome = self.completion_client.call(CompletionRequest(
            system_prompt=system_prompt,
            transcript=[{"role": "user", "content": user_prompt}],
            model=model,
            max_tokens=self.config.token_limits.per_request_max
        ))
        self.budget.record_usage(user.user_id, outcome.usage)

        try:
            node = json.loads(outcome.reply_text.strip())
        except (ValueError, RecursionError) as e:
            logger.error(f"Failed to parse note JSON from model={model}: {e}")
            raise ProviderError(f"Failed to parse note from AI response: {e}") from e

        note = parse_note(node, target_language.code)
        if note is None:
            raise ProviderError("AI response did not contain a valid note")

        logger.info(
            f"Generated note: user_id={user.user_id}, language={target_language.code}, "
            f"type={note.type}, title={note.title!r}"
        )
        return note

    def _ensure_budget(self, user_id: str, estimated_tokens: int) -> None:
        if not self.budget.check_budget(user_id, estimated_tokens):
            remaining = self.budget.get_budget_status(user_id).remaining
            raise RateLimitExceededError(
                f"Daily token limit exceeded. Remaining tokens: {remaining}",
                remaining_tokens=remaining
            )

    def _find_user(self, user_id: str) -> UserRecord:
        user = self.user_store.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    def _find_app_language(self, user: UserRecord) -> Language:
        language = self.language_store.find_by_code(user.app_language_code)
        if language is None:
            raise NotFoundError(f"App language not found: {user.app_language_code}")
        return language

    def _find_target_language(self, code: str) -> Language:
        language = self.language_store.find_by_code(code)
        if language is None:
            raise InvalidArgumentError(f"Language not supported: {code}")
        return language
