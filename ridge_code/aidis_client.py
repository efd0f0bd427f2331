"""HTTP client for the AIDIS knowledge and task service."""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests
from pydantic import BaseModel, Field

from .config import AidisConfig
from .utils import call_with_backoff, extract_error_message, remove_none_values


# AIDIS has no discovery endpoint over HTTP, so the tool list is fixed.
AIDIS_OPERATIONS = [
    'aidis_ping', 'aidis_status', 'aidis_help', 'aidis_explain', 'aidis_examples',
    'context_store', 'context_search', 'context_get_recent', 'context_stats',
    'project_list', 'project_create', 'project_switch', 'project_current', 'project_info',
    'project_insights',
    'naming_register', 'naming_check', 'naming_suggest', 'naming_stats',
    'decision_record', 'decision_search', 'decision_update', 'decision_stats',
    'agent_register', 'agent_list', 'agent_status', 'agent_join', 'agent_leave',
    'agent_sessions', 'agent_message', 'agent_messages',
    'task_create', 'task_list', 'task_update',
    'code_analyze', 'code_components', 'code_dependencies', 'code_impact', 'code_stats',
    'smart_search', 'get_recommendations',
]


class AidisClientError(Exception):
    """Exception raised for AIDIS API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[Dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class AidisConnectionError(AidisClientError):
    """Raised when connect() exhausts its retries."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class NotConnectedError(AidisClientError):
    """Raised by data-plane calls made before connect()."""

    def __init__(self, message: str = "Client not connected. Call connect() first."):
        super().__init__(message)


class ServiceCallResult(BaseModel):
    """Outcome of a single AIDIS operation."""

    success: bool = Field(description="Whether the service accepted the call")
    data: Optional[Any] = Field(None, description="Service result on success")
    error: Optional[str] = Field(None, description="Error message on failure")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the call completed")


class AidisClient:
    """Client for the AIDIS HTTP API.

    The client is either connected or disconnected. connect() verifies the
    service with a ping, retrying with exponential backoff; data-plane calls
    made while disconnected raise NotConnectedError without touching the
    network. Every payload gets the configured project id injected.
    """

    CONNECT_MESSAGE = "Ridge-Code HTTP Connection Test"
    PING_MESSAGE = "Ridge-Code CLI Connection Test"

    def __init__(self, config: AidisConfig, session: Optional[requests.Session] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        self.config = config
        self.base_url = f"{config.base_url}{config.tools_path}"
        self.session = session if session is not None else requests.Session()
        self.logger = logging.getLogger(__name__)
        self._sleep = sleep if sleep is not None else time.sleep
        self._connected = False
        self.connect_attempts = 0

        self.session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        })

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        """
        Verify the service and mark the client connected.

        Calling connect() on a connected client is a no-op.

        Raises:
            AidisConnectionError: If every attempt failed
        """
        if self._connected:
            self.logger.debug("connect() called on a connected client, nothing to do")
            return

        self.connect_attempts = 0
        try:
            call_with_backoff(
                self._attempt_connection,
                max_retries=self.config.max_retries,
                base_delay=self.config.base_delay,
                max_delay=self.config.max_delay,
                sleep=self._sleep,
                description="AIDIS connect",
            )
        except AidisClientError as e:
            raise AidisConnectionError(
                f"Failed to connect after {self.config.max_retries} retries: {e}",
                attempts=self.connect_attempts,
            ) from e

        self._connected = True
        self.logger.info(f"Connected to AIDIS HTTP API at {self.config.base_url}")

    def disconnect(self) -> None:
        if self._connected:
            self.logger.info("Disconnected from AIDIS HTTP API")
        self._connected = False

    def _attempt_connection(self) -> None:
        """Single health check; raises AidisClientError on any failure."""
        self.connect_attempts += 1
        response = self._post('aidis_ping', {
            'message': self.CONNECT_MESSAGE,
            'projectId': self.config.project_id,
        })
        if not response.get('success'):
            raise AidisClientError("Ping request failed", response_data=response)

    def _post(self, operation: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """POST ``{"arguments": ...}`` to an operation and return the decoded body."""
        url = f"{self.base_url}/{operation}"
        self.logger.debug(f"POST {url} with arguments: {arguments}")

        try:
            response = self.session.post(
                url,
                json={'arguments': arguments},
                timeout=self.config.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Request failed: {e}")
            raise AidisClientError(f"Request failed: {e}")

        self.logger.debug(f"POST {url} -> {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if response.status_code >= 400:
            raise AidisClientError(
                extract_error_message(data),
                status_code=response.status_code,
                response_data=data,
            )

        if not isinstance(data, dict):
            raise AidisClientError(f"Unexpected response body: {data!r}", status_code=response.status_code)

        return data

    def _require_connection(self) -> None:
        if not self._connected:
            raise NotConnectedError()

    def execute(self, operation: str, payload: Dict[str, Any]) -> ServiceCallResult:
        """
        Run an AIDIS operation.

        Args:
            operation: Operation name, e.g. ``context_store``
            payload: Operation arguments; ``projectId`` is always overwritten

        Returns:
            ServiceCallResult; transport failures and service rejections both
            come back as ``success=False``

        Raises:
            NotConnectedError: If the client is not connected
        """
        self._require_connection()

        arguments = dict(payload)
        arguments['projectId'] = self.config.project_id

        try:
            body = self._post(operation, arguments)
        except AidisClientError as e:
            self.logger.warning(f"AIDIS operation {operation} failed: {e}")
            return ServiceCallResult(success=False, error=f"HTTP Error: {e}")

        if body.get('success'):
            return ServiceCallResult(success=True, data=body.get('result'))

        error = body.get('error') or 'Unknown API error'
        self.logger.warning(f"AIDIS rejected {operation}: {error}")
        return ServiceCallResult(success=False, error=str(error))

    def ping(self) -> ServiceCallResult:
        return self.execute('aidis_ping', {'message': self.PING_MESSAGE})

    def list_operations(self) -> ServiceCallResult:
        """Operations the service exposes."""
        self._require_connection()
        return ServiceCallResult(success=True, data=list(AIDIS_OPERATIONS))

    def store_context(self, content: str, type: str, tags: Optional[List[str]] = None,
                      relevance_score: Optional[float] = None, session_id: Optional[str] = None,
                      metadata: Optional[Dict[str, Any]] = None) -> ServiceCallResult:
        """
        Store a piece of context.

        Args:
            content: Context text
            type: Context category (code, decision, error, ...)
            tags: Optional tags
            relevance_score: Optional score between 0 and 10
            session_id: Optional originating session
            metadata: Optional free-form metadata

        Returns:
            ServiceCallResult of the ``context_store`` operation
        """
        payload = remove_none_values({
            'content': content,
            'type': type,
            'tags': tags,
            'relevanceScore': relevance_score,
            'sessionId': session_id,
            'metadata': metadata,
        })
        return self.execute('context_store', payload)

    def create_task(self, title: str, description: Optional[str] = None, type: Optional[str] = None,
                    priority: Optional[str] = None, assigned_to: Optional[str] = None,
                    dependencies: Optional[List[str]] = None, tags: Optional[List[str]] = None,
                    metadata: Optional[Dict[str, Any]] = None) -> ServiceCallResult:
        """Create a task through the ``task_create`` operation."""
        payload = remove_none_values({
            'title': title,
            'description': description,
            'type': type,
            'priority': priority,
            'assignedTo': assigned_to,
            'dependencies': dependencies,
            'tags': tags,
            'metadata': metadata,
        })
        return self.execute('task_create', payload)
