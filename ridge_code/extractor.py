"""Extraction of AIDIS commands embedded in free-form model output."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .schemas import CommandSchemaRegistry, default_registry


COMMAND_MARKER = "mcp__aidis__"

# Marker, command name, then whitespace up to the opening brace of the payload.
# The payload itself is read with a JSON decoder so that it ends exactly where
# the JSON value ends.
COMMAND_PATTERN = re.compile(re.escape(COMMAND_MARKER) + r"([A-Za-z0-9_]+)\s+(?=\{)")


@dataclass
class ExtractedCommand:
    """A validated command found in model output."""
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCall:
    """An extracted command in the shape the AIDIS service expects."""
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


class CommandExtractor:
    """Scan text for ``mcp__aidis__<name> {json}`` fragments and validate them.

    Each call is a self-contained scan; nothing is kept between calls.
    Malformed JSON, unknown names and invalid payloads are logged and skipped
    so that one bad fragment never hides the others.
    """

    def __init__(self, registry: Optional[CommandSchemaRegistry] = None):
        self.registry = registry if registry is not None else default_registry()
        self.logger = logging.getLogger(__name__)
        self._decoder = json.JSONDecoder()

    def extract_commands(self, text: str) -> List[ExtractedCommand]:
        """
        Extract every valid command from ``text``.

        Args:
            text: Free-form model output

        Returns:
            Commands in left-to-right order of appearance
        """
        commands = []
        for match in COMMAND_PATTERN.finditer(text):
            command = self._parse_match(text, match)
            if command is not None:
                commands.append(command)
        return commands

    def validate_string(self, text: str) -> Optional[ExtractedCommand]:
        """Run the pipeline on the first marker in ``text`` only."""
        match = COMMAND_PATTERN.search(text)
        if match is None:
            return None
        return self._parse_match(text, match)

    def _parse_match(self, text: str, match: "re.Match[str]") -> Optional[ExtractedCommand]:
        name = match.group(1)
        try:
            payload, end = self._decoder.raw_decode(text, match.end())
        except json.JSONDecodeError as e:
            self.logger.warning(f"Failed to parse AIDIS command payload for '{name}' "
                                f"at offset {match.start()}: {e}")
            return None

        validated = self.registry.validate(name, payload)
        if validated is None:
            return None

        self.logger.debug(f"Extracted AIDIS command '{name}' from {text[match.start():end]!r}")
        return ExtractedCommand(name=name, payload=validated)

    def to_tool_call(self, command: ExtractedCommand) -> ToolCall:
        """Format an extracted command as a tool call."""
        return ToolCall(name=f"{COMMAND_MARKER}{command.name}", arguments=dict(command.payload))

    def parse_response(self, text: str) -> List[ToolCall]:
        """Extract and format every command in ``text``."""
        return [self.to_tool_call(cmd) for cmd in self.extract_commands(text)]

    def supported_commands(self) -> List[str]:
        return self.registry.names()
