"""
Provider transports for the tutor orchestrator.
"""

from .openai_client import OpenAICompletionTransport

__all__ = ["OpenAICompletionTransport"]
