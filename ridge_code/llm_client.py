"""Streaming LLM clients that feed the chat session."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional
from enum import Enum

try:
    import openai
    OPENAI_AVAILABLE = True
except ImportError:
    OPENAI_AVAILABLE = False

try:
    import anthropic
    ANTHROPIC_AVAILABLE = True
except ImportError:
    ANTHROPIC_AVAILABLE = False

from .config import LLMConfig


Message = Dict[str, str]


class LLMProvider(Enum):
    """Supported LLM providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@dataclass
class UsageStats:
    """Running token usage of a client."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    last_output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens


class LLMClient(ABC):
    """Abstract base class for streaming LLM clients."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.model = config.default_model
        self.usage = UsageStats()
        self.logger = logging.getLogger(__name__)

    def stream_message(self, messages: List[Message]) -> Iterator[str]:
        """
        Stream the assistant reply to a conversation.

        Args:
            messages: Conversation as ``{"role": ..., "content": ...}`` dicts

        Yields:
            Text chunks in arrival order
        """
        self.usage.total_requests += 1
        self.usage.last_output_tokens = 0
        try:
            yield from self._stream(messages)
        except Exception as e:
            self.usage.failed_requests += 1
            self.logger.error(f"Streaming request to {self.model} failed: {e}")
            raise
        self.usage.successful_requests += 1

    def _record_usage(self, input_tokens: int, output_tokens: int) -> None:
        self.usage.total_input_tokens += input_tokens
        self.usage.total_output_tokens += output_tokens
        self.usage.last_output_tokens = output_tokens

    @abstractmethod
    def _stream(self, messages: List[Message]) -> Iterator[str]:
        """Provider specific streaming; must call _record_usage when usage is known."""
        pass


class AnthropicClient(LLMClient):
    """Anthropic Claude-based LLM client."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        if not ANTHROPIC_AVAILABLE:
            raise ImportError("Anthropic library not installed. Run: pip install anthropic")

        if not config.anthropic_api_key:
            raise ValueError("Anthropic API key not provided")

        self.client = anthropic.Anthropic(api_key=config.anthropic_api_key)

    def _stream(self, messages: List[Message]) -> Iterator[str]:
        system = [m['content'] for m in messages if m['role'] == 'system']
        chat = [m for m in messages if m['role'] != 'system']

        kwargs = {}
        if system:
            kwargs['system'] = "\n\n".join(system)

        with self.client.messages.stream(
            model=self.model,
            max_tokens=self.config.max_tokens,
            messages=chat,
            **kwargs
        ) as stream:
            for text in stream.text_stream:
                yield text
            final = stream.get_final_message()

        self._record_usage(final.usage.input_tokens, final.usage.output_tokens)


class OpenAIClient(LLMClient):
    """OpenAI-based LLM client."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        if not OPENAI_AVAILABLE:
            raise ImportError("OpenAI library not installed. Run: pip install openai")

        if not config.openai_api_key:
            raise ValueError("OpenAI API key not provided")

        self.client = openai.OpenAI(api_key=config.openai_api_key)

    def _stream(self, messages: List[Message]) -> Iterator[str]:
        stream = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.config.max_tokens,
            stream=True,
            stream_options={"include_usage": True},
        )

        for chunk in stream:
            if chunk.choices:
                content = chunk.choices[0].delta.content
                if content:
                    yield content
            if getattr(chunk, 'usage', None):
                self._record_usage(chunk.usage.prompt_tokens, chunk.usage.completion_tokens)


def create_llm_client(config: LLMConfig, provider: Optional[LLMProvider] = None) -> LLMClient:
    """Factory function to create appropriate LLM client."""
    if provider is None:
        # Auto-detect based on available API keys
        if config.anthropic_api_key:
            provider = LLMProvider.ANTHROPIC
        elif config.openai_api_key:
            provider = LLMProvider.OPENAI
        else:
            raise ValueError("No LLM API key provided")

    if provider == LLMProvider.ANTHROPIC:
        return AnthropicClient(config)
    elif provider == LLMProvider.OPENAI:
        return OpenAIClient(config)
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")
