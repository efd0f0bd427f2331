"""Validation contracts for the commands a model can embed in its output."""

import logging
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError


ContextType = Literal[
    'code', 'decision', 'error', 'discussion', 'planning', 'completion', 'milestone'
]
TaskType = Literal[
    'feature', 'bugfix', 'refactor', 'test', 'review', 'documentation', 'general'
]
TaskPriority = Literal['low', 'medium', 'high', 'urgent']


class CommandPayload(BaseModel):
    """Base class for embedded command payloads.

    Field names follow the camelCase keys the model writes; unknown keys are
    ignored. Validation is strict: "5" is not a number and true is not a score.
    """

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True, strict=True)

    def to_payload(self) -> Dict[str, Any]:
        """Dump the validated payload with defaults applied and unset optionals omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ContextStoreCommand(CommandPayload):
    """Payload of ``context_store``: a piece of knowledge to persist."""

    content: str = Field(..., min_length=1, description="Free-text content to store")
    type: ContextType = Field(..., description="Context category")
    tags: Optional[List[str]] = Field(None, description="Tags for later retrieval")
    relevance_score: Optional[float] = Field(
        None, alias='relevanceScore', ge=0, le=10, description="Relevance between 0 and 10"
    )
    session_id: Optional[str] = Field(None, alias='sessionId', description="Originating session")
    project_id: Optional[str] = Field(None, alias='projectId', description="Target project")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")


class TaskCreateCommand(CommandPayload):
    """Payload of ``task_create``: a task to open in the tracker."""

    title: str = Field(..., min_length=1, description="Task title")
    description: Optional[str] = Field(None, description="Longer task description")
    type: TaskType = Field('general', description="Task type")
    priority: TaskPriority = Field('medium', description="Task priority")
    assigned_to: Optional[str] = Field(None, alias='assignedTo', description="Assignee")
    dependencies: Optional[List[str]] = Field(None, description="Tasks this one depends on")
    tags: Optional[List[str]] = Field(None, description="Task tags")
    project_id: Optional[str] = Field(None, alias='projectId', description="Target project")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")


class CommandSchemaRegistry:
    """Maps command names to their payload model.

    A lookup miss is not an error here; callers decide what an unknown
    command means.
    """

    def __init__(self, schemas: Optional[Dict[str, Type[CommandPayload]]] = None):
        self._schemas: Dict[str, Type[CommandPayload]] = dict(schemas or {})
        self.logger = logging.getLogger(__name__)

    def register(self, name: str, schema: Type[CommandPayload]) -> None:
        if name in self._schemas:
            self.logger.debug(f"Replacing schema for command: {name}")
        self._schemas[name] = schema

    def get(self, name: str) -> Optional[Type[CommandPayload]]:
        return self._schemas.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def names(self) -> List[str]:
        return list(self._schemas)

    def validate(self, name: str, payload: Any) -> Optional[Dict[str, Any]]:
        """
        Validate ``payload`` against the schema registered for ``name``.

        Args:
            name: Command name
            payload: Parsed JSON value

        Returns:
            The normalized payload (defaults applied), or None when the command
            is unknown or the payload is invalid
        """
        schema = self.get(name)
        if schema is None:
            self.logger.warning(f"Unknown AIDIS command: {name}")
            return None

        if not isinstance(payload, dict):
            self.logger.warning(f"Invalid payload for command {name}: expected a JSON object")
            return None

        try:
            return schema.model_validate(payload).to_payload()
        except ValidationError as e:
            self.logger.warning(f"Invalid payload for command {name}: {e.errors()}")
            return None


def default_registry() -> CommandSchemaRegistry:
    """Registry with the built-in ``context_store`` and ``task_create`` commands."""
    return CommandSchemaRegistry({
        'context_store': ContextStoreCommand,
        'task_create': TaskCreateCommand,
    })
