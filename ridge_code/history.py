"""Bounded history of model responses with search and command mining."""

import logging
import re
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .extractor import CommandExtractor, ExtractedCommand


DEFAULT_CAPACITY = 50
CONTEXT_RADIUS = 100
ELLIPSIS = "..."


class ResponseMetadata(BaseModel):
    """Telemetry recorded with a buffered response."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str = Field(default="unknown", description="Model that produced the response")
    token_count: int = Field(default=0, description="Output tokens reported for the response")
    response_time_ms: int = Field(default=0, description="Wall time from request to end of stream")


class BufferedResponse(BaseModel):
    """A complete model response as stored in the history."""

    model_config = ConfigDict(frozen=True)

    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class PatternMatch(BaseModel):
    """A single ``search_pattern`` hit."""

    pattern: str = Field(description="The matched text")
    context_snippet: str = Field(description="Text window around the match")
    timestamp: datetime
    metadata: ResponseMetadata


class HistoryStats(BaseModel):
    """Aggregate view of the history."""

    total_responses: int = 0
    oldest_timestamp: Optional[datetime] = None
    newest_timestamp: Optional[datetime] = None
    total_content_length: int = 0
    average_response_time_ms: float = 0.0


class ResponseHistory:
    """FIFO buffer of the most recent model responses.

    Reads hand out deep copies, so a caller holding a result can neither
    mutate the buffer nor observe later appends through it.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY,
                 extractor: Optional[CommandExtractor] = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._responses: Deque[BufferedResponse] = deque(maxlen=capacity)
        self.extractor = extractor if extractor is not None else CommandExtractor()
        self.logger = logging.getLogger(__name__)

    @property
    def size(self) -> int:
        return len(self._responses)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._responses)

    def append(self, content: str,
               metadata: Optional[Union[ResponseMetadata, dict]] = None) -> None:
        """
        Add a response, evicting the oldest one when the buffer is full.

        Args:
            content: Full response text
            metadata: Response telemetry; defaults are used when omitted
        """
        if metadata is None:
            metadata = ResponseMetadata()
        elif isinstance(metadata, dict):
            metadata = ResponseMetadata(**metadata)
        else:
            metadata = metadata.model_copy()

        if len(self._responses) == self._capacity:
            self.logger.debug("Response history full, evicting oldest entry")
        self._responses.append(BufferedResponse(content=content, metadata=metadata))

    def recent(self, count: int) -> List[BufferedResponse]:
        """Return up to ``count`` most recent responses, oldest first."""
        if count <= 0:
            return []
        count = min(count, len(self._responses))
        snapshot = list(self._responses)[-count:]
        return [response.model_copy(deep=True) for response in snapshot]

    def search_pattern(self, pattern: str) -> List[PatternMatch]:
        """
        Case-insensitive regex search across all buffered responses.

        Args:
            pattern: Regular expression

        Returns:
            One entry per match with a text window of ``CONTEXT_RADIUS``
            characters on each side, newest response first

        Raises:
            re.error: If ``pattern`` is not a valid regular expression
        """
        regex = re.compile(pattern, re.IGNORECASE)
        results = []

        # buffer is chronological, so walking it backwards yields newest first
        for response in reversed(list(self._responses)):
            for match in regex.finditer(response.content):
                results.append(PatternMatch(
                    pattern=match.group(0),
                    context_snippet=self._context_around(response.content, match.start(), match.end()),
                    timestamp=response.timestamp,
                    metadata=response.metadata.model_copy(),
                ))

        return results

    def extract_commands(self) -> List[ExtractedCommand]:
        """Mine every buffered response for embedded commands, oldest response first."""
        commands = []
        for response in list(self._responses):
            commands.extend(self.extractor.extract_commands(response.content))
        return commands

    def recent_commands(self, count: int = 10) -> List[ExtractedCommand]:
        """First ``count`` commands of ``extract_commands()``."""
        if count <= 0:
            return []
        return self.extract_commands()[:count]

    def stats(self) -> HistoryStats:
        """Summarize the buffer contents."""
        responses = list(self._responses)
        if not responses:
            return HistoryStats()

        total_time = sum(r.metadata.response_time_ms for r in responses)
        return HistoryStats(
            total_responses=len(responses),
            oldest_timestamp=responses[0].timestamp,
            newest_timestamp=responses[-1].timestamp,
            total_content_length=sum(len(r.content) for r in responses),
            average_response_time_ms=total_time / len(responses),
        )

    def clear(self) -> None:
        self._responses.clear()
        self.logger.debug("Response history cleared")

    @staticmethod
    def _context_around(content: str, start: int, end: int) -> str:
        window_start = max(0, start - CONTEXT_RADIUS)
        window_end = min(len(content), end + CONTEXT_RADIUS)

        snippet = content[window_start:window_end]
        if window_start > 0:
            snippet = ELLIPSIS + snippet
        if window_end < len(content):
            snippet = snippet + ELLIPSIS
        return snippet
