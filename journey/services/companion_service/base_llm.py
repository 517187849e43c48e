"""Base LLM interface and implementations.

Provides the abstract client the companion talks to and concrete
implementations for the OpenAI chat API and HuggingFace inference endpoints.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import aiohttp
import openai

logger = logging.getLogger(__name__)

MAX_PROMPT_LENGTH = 10000

CHAT_ROLES = ("user", "assistant")


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    HUGGINGFACE = "huggingface"


@dataclass
class LLMConfig:
    """Configuration for LLM inference."""
    provider: LLMProvider
    model_name: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: int = 512
    temperature: float = 0.7
    top_p: float = 0.9
    timeout_seconds: int = 30


@dataclass
class LLMResponse:
    """Response from LLM inference."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None
    latency_ms: Optional[float] = None
    metadata: Optional[Dict] = None


class BaseLLM(ABC):
    """Abstract base class for LLM implementations."""

    def __init__(self, config: LLMConfig):
        self.config = config
        logger.info(
            "LLM_INITIALIZED",
            extra={
                "provider": config.provider.value,
                "model": config.model_name
            }
        )

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> LLMResponse:
        """Generate a response.

        Args:
            prompt: The newest user message
            system_prompt: Optional system prompt for context
            history: Earlier turns as {"role": "user"|"assistant", "content": ...}

        Returns:
            LLMResponse object

        Raises:
            ValueError: If the prompt is invalid
        """
        pass

    def validate_prompt(self, prompt: str) -> bool:
        """Validate prompt before sending to LLM."""
        if not prompt or not prompt.strip():
            logger.warning("LLM_PROMPT_EMPTY")
            return False

        if len(prompt) > MAX_PROMPT_LENGTH:
            logger.warning(
                "LLM_PROMPT_TOO_LONG",
                extra={"length": len(prompt)}
            )
            return False

        return True

    def build_messages(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> List[Dict[str, str]]:
        """Chat message list: system, earlier turns, then the prompt."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for turn in history or []:
            messages.append({"role": turn["role"], "content": turn["content"]})
        messages.append({"role": "user", "content": prompt})
        return messages


class OpenAILLM(BaseLLM):
    """OpenAI chat completions implementation."""

    def __init__(self, config: LLMConfig, client: Optional[openai.AsyncOpenAI] = None):
        """Initialize OpenAI LLM.

        Without an injected client, each call opens its own client and
        closes it before returning.

        Args:
            config: LLM configuration with API key
            client: Preconfigured client (injected for testing)
        """
        super().__init__(config)

        if client is None and not config.api_key:
            raise ValueError("OpenAI API key required")

        self.client = client

    def new_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.endpoint,
        )

    async def _complete(self, **kwargs):
        if self.client is not None:
            return await self.client.chat.completions.create(**kwargs)
        async with self.new_client() as client:
            return await client.chat.completions.create(**kwargs)

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> LLMResponse:
        if not self.validate_prompt(prompt):
            raise ValueError("Invalid prompt")

        start_time = time.time()

        try:
            response = await self._complete(
                model=self.config.model_name,
                messages=self.build_messages(prompt, system_prompt, history),
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                top_p=self.config.top_p,
                timeout=self.config.timeout_seconds,
            )
        except Exception as e:
            logger.error(
                "OPENAI_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e)
                }
            )
            raise

        latency_ms = (time.time() - start_time) * 1000
        generated_text = response.choices[0].message.content or ""
        tokens_used = response.usage.total_tokens if response.usage else None

        logger.info(
            "OPENAI_GENERATION_SUCCEEDED",
            extra={
                "model": self.config.model_name,
                "latency_ms": latency_ms,
                "tokens_used": tokens_used
            }
        )

        return LLMResponse(
            text=generated_text,
            model=self.config.model_name,
            provider=self.config.provider.value,
            tokens_used=tokens_used,
            latency_ms=latency_ms
        )


class HuggingFaceLLM(BaseLLM):
    """HuggingFace inference endpoint implementation."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.endpoint:
            raise ValueError("HuggingFace endpoint required")

        self.endpoint = config.endpoint
        self.headers = {}

        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    def build_prompt(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        """Flatten the conversation for text-generation endpoints."""
        parts = []
        if system_prompt:
            parts.append(system_prompt)
        for turn in history or []:
            speaker = "User" if turn["role"] == "user" else "Assistant"
            parts.append(f"{speaker}: {turn['content']}")
        if history:
            parts.append(f"User: {prompt}\nAssistant:")
        else:
            parts.append(prompt)
        return "\n\n".join(parts)

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> LLMResponse:
        if not self.validate_prompt(prompt):
            raise ValueError("Invalid prompt")

        payload = {
            "inputs": self.build_prompt(prompt, system_prompt, history),
            "parameters": {
                "max_new_tokens": self.config.max_tokens,
                "temperature": self.config.temperature,
                "top_p": self.config.top_p,
                "return_full_text": False
            }
        }

        start_time = time.time()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.endpoint,
                    headers=self.headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
                ) as response:
                    response.raise_for_status()
                    result = await response.json()
        except Exception as e:
            logger.error(
                "HUGGINGFACE_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e)
                }
            )
            raise

        latency_ms = (time.time() - start_time) * 1000

        if isinstance(result, list) and len(result) > 0:
            generated_text = result[0].get("generated_text", "")
        else:
            generated_text = result.get("generated_text", "")

        logger.info(
            "HUGGINGFACE_GENERATION_SUCCEEDED",
            extra={
                "model": self.config.model_name,
                "latency_ms": latency_ms
            }
        )

        return LLMResponse(
            text=generated_text,
            model=self.config.model_name,
            provider=self.config.provider.value,
            latency_ms=latency_ms,
            metadata={"endpoint": self.endpoint}
        )


def create_llm(config: LLMConfig) -> BaseLLM:
    """Factory function to create LLM instance.

    Raises:
        ValueError: If provider not supported or misconfigured
    """
    if config.provider == LLMProvider.OPENAI:
        return OpenAILLM(config)
    elif config.provider == LLMProvider.HUGGINGFACE:
        return HuggingFaceLLM(config)
    else:
        raise ValueError(f"Unsupported provider: {config.provider}")
