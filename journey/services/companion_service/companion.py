"""Companion service: supportive AI messages built on stored progress.

Every feature degrades to a fixed supportive message when the LLM is disabled,
misconfigured, fails, or returns nothing, so callers always get text back.
"""
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from journey.shared.models import (
    AccommodationLog,
    CheckInEntry,
    JournalEntry,
    Reflection,
    Subject,
)
from journey.shared.utils import hash_pii
from .base_llm import BaseLLM, LLMConfig, LLMProvider, create_llm
from .context_builder import ContextBuilder
from . import prompts

logger = logging.getLogger(__name__)


class ReplySource(Enum):
    """Where a companion reply came from."""
    LLM_GENERATED = "llm_generated"
    FALLBACK = "fallback"


@dataclass
class CompanionReply:
    text: str
    source: ReplySource
    metadata: Dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"text": self.text, "source": self.source.value}


AFFIRMATION_FALLBACK = "You are doing important work. Every small step matters."

WEEKLY_SUMMARY_FALLBACK = (
    "You've completed another week of your journey. Every step forward, "
    "no matter how small, is progress worth celebrating."
)

CHECKIN_FALLBACK = (
    "Thank you for checking in today. Your commitment to this process "
    "shows real strength."
)

CHAT_EMPTY_FALLBACK = "I'm here for you, {name}. What's on your mind?"

CHAT_ERROR_FALLBACK = (
    "I'm having trouble connecting right now, but I'm still here for you. "
    "Could you try again in a moment?"
)

JOURNAL_EMPTY_FALLBACK = (
    "Thank you for sharing. Every thought you write down is a step toward "
    "understanding yourself better."
)

JOURNAL_ERROR_FALLBACK = (
    "Thank you for sharing your thoughts. Taking time to reflect is an "
    "important part of taking care of yourself."
)


@dataclass
class CompanionConfig:
    """Configuration for the companion service."""
    provider: str = "openai"
    model_name: str = "gpt-4o-mini"
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: int = 512
    temperature: float = 0.7
    timeout_seconds: int = 30
    enable_llm: bool = True
    history_limit: int = 10

    @classmethod
    def from_env(cls) -> "CompanionConfig":
        """Create config from environment variables.

        Environment variables:
            LLM_PROVIDER: openai or huggingface (default openai)
            LLM_MODEL_NAME: Model identifier
            LLM_ENDPOINT: Inference endpoint (required for huggingface)
            OPENAI_API_KEY / HUGGINGFACE_TOKEN: Credentials for the provider
            LLM_TEMPERATURE, LLM_MAX_TOKENS, LLM_TIMEOUT_SECONDS
            ENABLE_LLM: Set to false to always use fallback messages
            CHAT_HISTORY_LIMIT: Earlier chat turns sent to the model (default 10)
        """
        provider = os.getenv("LLM_PROVIDER", "openai").lower()

        if provider == LLMProvider.HUGGINGFACE.value:
            api_key = os.getenv("HUGGINGFACE_TOKEN")
        else:
            api_key = os.getenv("OPENAI_API_KEY")

        return cls(
            provider=provider,
            model_name=os.getenv("LLM_MODEL_NAME", "gpt-4o-mini"),
            endpoint=os.getenv("LLM_ENDPOINT"),
            api_key=api_key,
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "512")),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            timeout_seconds=int(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
            enable_llm=os.getenv("ENABLE_LLM", "true").lower() == "true",
            history_limit=int(os.getenv("CHAT_HISTORY_LIMIT", "10")),
        )

    def to_llm_config(self) -> LLMConfig:
        return LLMConfig(
            provider=LLMProvider(self.provider),
            model_name=self.model_name,
            endpoint=self.endpoint,
            api_key=self.api_key,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout_seconds=self.timeout_seconds,
        )


class CompanionService:
    """Generates affirmations, summaries, feedback, chat and journal replies."""

    def __init__(
        self,
        config: Optional[CompanionConfig] = None,
        llm: Optional[BaseLLM] = None,
        context_builder: Optional[ContextBuilder] = None,
    ):
        """Initialize the service.

        Args:
            config: Service configuration
            llm: LLM client (built from config when omitted)
            context_builder: Builder for prompt context
        """
        self.config = config or CompanionConfig()
        self.context = context_builder or ContextBuilder(history_limit=self.config.history_limit)
        self.llm = llm

        if self.llm is None and self.config.enable_llm:
            try:
                self.llm = create_llm(self.config.to_llm_config())
            except Exception as e:
                logger.error(
                    "LLM_INITIALIZATION_FAILED",
                    extra={
                        "provider": self.config.provider,
                        "error": str(e)
                    }
                )
                self.llm = None

        logger.info(
            "COMPANION_SERVICE_INITIALIZED",
            extra={
                "llm_enabled": self.config.enable_llm,
                "llm_available": self.llm is not None,
            }
        )

    @property
    def llm_available(self) -> bool:
        return self.llm is not None

    async def _generate(
        self,
        feature: str,
        subject: Subject,
        prompt: str,
        system_prompt: str,
        fallback: str,
        empty_fallback: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> CompanionReply:
        subject_id_hash = hash_pii(subject.id)

        if self.llm is None:
            return CompanionReply(text=fallback, source=ReplySource.FALLBACK)

        try:
            response = await self.llm.generate(
                prompt=prompt,
                system_prompt=system_prompt,
                history=history,
            )
        except Exception as e:
            logger.error(
                "COMPANION_GENERATION_FAILED",
                extra={
                    "feature": feature,
                    "subject_id_hash": subject_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__
                }
            )
            return CompanionReply(text=fallback, source=ReplySource.FALLBACK)

        text = (response.text or "").strip()
        if not text:
            logger.warning(
                "COMPANION_EMPTY_RESPONSE",
                extra={"feature": feature, "subject_id_hash": subject_id_hash}
            )
            return CompanionReply(text=empty_fallback or fallback, source=ReplySource.FALLBACK)

        logger.info(
            "COMPANION_RESPONSE_GENERATED",
            extra={
                "feature": feature,
                "subject_id_hash": subject_id_hash,
                "response_length": len(text),
                "latency_ms": response.latency_ms,
                "tokens_used": response.tokens_used
            }
        )
        return CompanionReply(
            text=text,
            source=ReplySource.LLM_GENERATED,
            metadata={"model": response.model, "latency_ms": response.latency_ms},
        )

    async def affirmation(
        self,
        subject: Subject,
        entries: Sequence[CheckInEntry],
        accommodations: Sequence[AccommodationLog],
        recent_anxiety: Optional[int] = None,
        recent_guilt: Optional[int] = None,
        completed_days: Optional[int] = None,
    ) -> CompanionReply:
        lines = self.context.affirmation(
            subject.current_week,
            entries,
            accommodations,
            recent_anxiety=recent_anxiety,
            recent_guilt=recent_guilt,
            completed_days=completed_days,
        )
        return await self._generate(
            "affirmation",
            subject,
            prompt="Please write today's affirmation.",
            system_prompt=prompts.build_system_prompt(subject.name, prompts.AFFIRMATION_TASK, lines),
            fallback=AFFIRMATION_FALLBACK,
        )

    async def weekly_summary(
        self,
        subject: Subject,
        week_number: int,
        entries: Sequence[CheckInEntry],
        reflection: Optional[Reflection] = None,
    ) -> CompanionReply:
        lines = self.context.weekly_summary(week_number, entries, reflection)
        return await self._generate(
            "weekly_summary",
            subject,
            prompt=f"Please summarize week {week_number}.",
            system_prompt=prompts.build_system_prompt(subject.name, prompts.WEEKLY_SUMMARY_TASK, lines),
            fallback=WEEKLY_SUMMARY_FALLBACK,
        )

    async def checkin_feedback(
        self,
        subject: Subject,
        entry: CheckInEntry,
        earlier_entries: Sequence[CheckInEntry],
    ) -> CompanionReply:
        lines = self.context.checkin_feedback(entry, earlier_entries)
        prompt = "Here is my check-in for today."
        if entry.activity_description:
            prompt += f"\nWhat I did: {entry.activity_description}"
        if entry.observation:
            prompt += f"\nWhat I noticed: {entry.observation}"
        return await self._generate(
            "checkin_feedback",
            subject,
            prompt=prompt,
            system_prompt=prompts.build_system_prompt(subject.name, prompts.CHECKIN_FEEDBACK_TASK, lines),
            fallback=CHECKIN_FALLBACK,
        )

    async def chat(
        self,
        subject: Subject,
        message: str,
        history: Sequence[Dict[str, str]],
        entries: Sequence[CheckInEntry],
        accommodations: Sequence[AccommodationLog],
        journal: Sequence[JournalEntry] = (),
    ) -> CompanionReply:
        lines = self.context.chat(subject.current_week, entries, accommodations, journal)
        logger.info(
            "CHAT_MESSAGE_RECEIVED",
            extra={
                "subject_id_hash": hash_pii(subject.id),
                "message_length": len(message),
                "history_length": len(history),
            }
        )
        return await self._generate(
            "chat",
            subject,
            prompt=message,
            system_prompt=prompts.build_system_prompt(subject.name, prompts.CHAT_TASK, lines),
            fallback=CHAT_ERROR_FALLBACK,
            empty_fallback=CHAT_EMPTY_FALLBACK.format(name=subject.name),
            history=self.context.chat_history(history),
        )

    async def journal_response(self, subject: Subject, entry: JournalEntry) -> CompanionReply:
        lines = [self.context.phase_line(subject.current_week)]
        return await self._generate(
            "journal_response",
            subject,
            prompt=self.context.journal(entry),
            system_prompt=prompts.build_system_prompt(subject.name, prompts.JOURNAL_TASK, lines),
            fallback=JOURNAL_ERROR_FALLBACK,
            empty_fallback=JOURNAL_EMPTY_FALLBACK,
        )
