"""Companion Service: supportive AI messages grounded in stored progress.

Features:
- Daily affirmation for the current phase
- End-of-week summary from stored check-ins and the week's reflection
- Feedback on a stored check-in
- Chat with recent progress as context
- Replies to journal entries (stored on the entry)

Every feature returns a fixed supportive message when the LLM is disabled
or fails.
"""

from .base_llm import (
    LLMProvider,
    LLMConfig,
    LLMResponse,
    BaseLLM,
    OpenAILLM,
    HuggingFaceLLM,
    create_llm,
)
from .context_builder import ContextBuilder
from .companion import CompanionConfig, CompanionReply, CompanionService, ReplySource
from .handler import CompanionHandler, app

__all__ = [
    "LLMProvider",
    "LLMConfig",
    "LLMResponse",
    "BaseLLM",
    "OpenAILLM",
    "HuggingFaceLLM",
    "create_llm",
    "ContextBuilder",
    "CompanionConfig",
    "CompanionReply",
    "CompanionService",
    "ReplySource",
    "CompanionHandler",
    "app",
]
