"""
Completion provider calls with bounded retries.

Retry policy is split from the transport: ``classify_error`` is a pure function
deciding whether a failure is worth another attempt, and ``CompletionClient``
runs the bounded loop around any transport that can send a chat completion
payload.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .errors import ProviderError
from .token_counter import TokenUsage
from ..config.loader import RetryConfig

logger = logging.getLogger(__name__)


class ErrorClass(Enum):
    """Whether a failed attempt may be repeated."""
    RETRYABLE = "retryable"
    FATAL = "fatal"


class HTTPStatusError(Exception):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: Optional[str] = None):
        super().__init__(f"HTTP {status_code}: {body}" if body else f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class TransportError(Exception):
    """Connection failure or timeout before a response was received."""


class MalformedResponseError(Exception):
    """Response arrived but lacks the fields a completion must carry."""


class CompletionTransport(Protocol):
    """Sends one chat completion payload and returns the decoded response body."""

    def send(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]: ...


@dataclass(frozen=True)
class CompletionRequest:
    """Single provider call, built per request and discarded after use."""
    system_prompt: str
    transcript: List[Dict[str, str]]
    model: str
    max_tokens: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload: the system prompt first, then the transcript in order."""
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend(dict(entry) for entry in self.transcript)
        payload: Dict[str, Any] = {"model": self.model, "messages": messages}
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload


@dataclass(frozen=True)
class CompletionOutcome:
    """Successful completion."""
    reply_text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


def classify_error(error: BaseException) -> ErrorClass:
    """Classify a failed attempt.

    Rate limiting (429) and server errors (5xx) are retryable, as are transport
    failures and malformed responses. Any other HTTP status is fatal. Unknown
    exceptions are treated as transport-level and retried.
    """
    if isinstance(error, HTTPStatusError):
        if error.status_code == 429 or error.status_code >= 500:
            return ErrorClass.RETRYABLE
        return ErrorClass.FATAL
    return ErrorClass.RETRYABLE


def parse_completion(response: Optional[Mapping[str, Any]]) -> CompletionOutcome:
    """Validate a decoded provider response.

    Raises:
        MalformedResponseError: If the body, ``choices`` or the first message
            content is missing
    """
    if response is None:
        raise MalformedResponseError("Invalid LLM response: empty body")
    if not isinstance(response, Mapping) or "choices" not in response:
        raise MalformedResponseError("Invalid LLM response: missing 'choices'")

    choices = response["choices"]
    if not isinstance(choices, list) or not choices:
        raise MalformedResponseError("Invalid LLM response: empty 'choices'")

    first = choices[0] if isinstance(choices[0], Mapping) else {}
    message = first.get("message")
    content = message.get("content") if isinstance(message, Mapping) else None
    if not isinstance(content, str):
        raise MalformedResponseError("Invalid LLM response: missing message content")

    return CompletionOutcome(
        reply_text=content,
        usage=TokenUsage.from_payload(response.get("usage"))
    )


class CompletionClient:
    """Calls the completion provider, retrying transient failures."""

    def __init__(
        self,
        transport: CompletionTransport,
        retry: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.transport = transport
        self.retry = retry or RetryConfig()
        self.sleep = sleep

    def call(self, request: CompletionRequest) -> CompletionOutcome:
        """Perform the completion call.

        Args:
            request: Prompt, transcript and target model

        Returns:
            Reply text and usage counters

        Raises:
            ProviderError: Immediately on a fatal error, or after the last
                attempt when every attempt failed with a retryable error
        """
        payload = request.to_payload()
        attempts = 0

        def attempt() -> CompletionOutcome:
            nonlocal attempts
            attempts += 1
            return parse_completion(self.transport.send(payload))

        retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential(multiplier=self.retry.initial_backoff_seconds, exp_base=2),
            retry=retry_if_exception(lambda e: classify_error(e) is ErrorClass.RETRYABLE),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
            reraise=True
        )

        try:
            outcome = retrying(attempt)
        except Exception as e:
            status = getattr(e, "status_code", None)
            body = getattr(e, "body", None)

            if classify_error(e) is ErrorClass.FATAL:
                logger.error(f"LLM API non-retryable error: status={status}, body={body}")
                raise ProviderError(
                    f"LLM API returned {status}",
                    provider_status=status,
                    body=body,
                    attempts=attempts
                ) from e

            logger.error(f"LLM API call failed after {attempts} attempts: {e}")
            raise ProviderError(
                f"LLM API call failed after {attempts} attempts: {e}",
                provider_status=status,
                body=body,
                attempts=attempts
            ) from e

        logger.info(
            f"LLM call completed: model={request.model}, attempt={attempts}, "
            f"tokens={outcome.usage.total_tokens}"
        )
        return outcome
