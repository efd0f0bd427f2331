"""Chat session: streams model replies and records them in the history."""

import logging
import time
from typing import Iterator, List, Optional

from .history import ResponseHistory, ResponseMetadata
from .llm_client import LLMClient, Message


class ChatSession:
    """Keeps the conversation and appends every completed reply to the history.

    stream() re-yields chunks as they arrive so a renderer can draw them; the
    reply reaches the history only once the stream is exhausted. A failed or
    empty stream leaves the history untouched.
    """

    def __init__(self, llm_client: LLMClient, history: ResponseHistory,
                 system_prompt: Optional[str] = None):
        self.llm_client = llm_client
        self.history = history
        self.system_prompt = system_prompt
        self.messages: List[Message] = []
        self.logger = logging.getLogger(__name__)

    def _conversation(self, message: str) -> List[Message]:
        conversation = []
        if self.system_prompt:
            conversation.append({'role': 'system', 'content': self.system_prompt})
        conversation.extend(self.messages)
        conversation.append({'role': 'user', 'content': message})
        return conversation

    def stream(self, message: str) -> Iterator[str]:
        """
        Send ``message`` and yield the reply chunk by chunk.

        Args:
            message: User message

        Yields:
            Text chunks of the assistant reply
        """
        started = time.monotonic()
        chunks = []

        for chunk in self.llm_client.stream_message(self._conversation(message)):
            chunks.append(chunk)
            yield chunk

        content = "".join(chunks)
        if not content:
            self.logger.warning("Model returned an empty response, nothing buffered")
            return

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self.history.append(content, ResponseMetadata(
            model_id=self.llm_client.model,
            token_count=self.llm_client.usage.last_output_tokens,
            response_time_ms=elapsed_ms,
        ))
        self.messages.append({'role': 'user', 'content': message})
        self.messages.append({'role': 'assistant', 'content': content})
        self.logger.debug(f"Buffered response of {len(content)} chars in {elapsed_ms}ms")

    def send(self, message: str) -> str:
        """Send ``message`` and return the complete reply."""
        return "".join(self.stream(message))

    def reset(self) -> None:
        """Forget the conversation; the history is kept."""
        self.messages.clear()
