"""
OpenAI completion transport.

Sends chat completion payloads through the OpenAI SDK and maps SDK failures
onto the completion client's error kinds. Retries are owned by the completion
client, so the SDK's own retry loop is disabled.
"""

import json
import os
from typing import Any, Dict, Optional

from openai import APIConnectionError, APIStatusError, OpenAI

from ..config.loader import ApiConfig
from ..core.completion import HTTPStatusError, TransportError


class OpenAICompletionTransport:
    """Completion transport backed by ``OpenAI().chat.completions``."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0
    ):
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0
        )

    @classmethod
    def from_config(cls, api: ApiConfig) -> "OpenAICompletionTransport":
        """Build a transport reading the API key from ``api.api_key_env``."""
        return cls(
            api_key=os.environ.get(api.api_key_env),
            base_url=api.base_url,
            timeout=api.timeout_seconds
        )

    def send(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Create one chat completion.

        Args:
            payload: ``model``, ``messages`` and optional ``max_tokens``

        Returns:
            Response body as a plain dict, or None if the SDK returned nothing

        Raises:
            ValueError: If messages is empty
            HTTPStatusError: Provider answered with an error status
            TransportError: Connection failure or timeout
        """
        if not payload.get("messages"):
            raise ValueError("messages is required and cannot be empty")

        try:
            response = self.client.chat.completions.create(**payload)
        except APIStatusError as e:
            raise HTTPStatusError(e.status_code, _error_body(e)) from e
        except APIConnectionError as e:
            # APITimeoutError is a subclass
            raise TransportError(str(e)) from e

        if response is None:
            return None
        return response.model_dump(exclude_unset=True)


def _error_body(error: APIStatusError) -> Optional[str]:
    if isinstance(error.body, (dict, list)):
        return json.dumps(error.body)
    if error.body is not None:
        return str(error.body)
    return error.message
