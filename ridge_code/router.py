"""Routing of user directives to AIDIS, the local shell, or built-in help."""

import logging
import os
import signal
import subprocess
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from .aidis_client import AidisClient, AidisClientError, ServiceCallResult
from .extractor import ExtractedCommand
from .history import ResponseHistory
from .safety import SafetyPolicy
from .utils import truncate


REMOTE_PREFIX = "/aidis_"
HELP_DIRECTIVE = "/help"


class DirectiveKind(str, Enum):
    """Which handler produced a result."""
    REMOTE = "remote"
    SHELL = "shell"
    HELP = "help"


class ErrorCategory(str, Enum):
    """Why a directive failed."""
    USAGE = "usage"                # malformed or unknown directive
    NO_COMMANDS = "no_commands"    # nothing in the history to act on
    REMOTE = "remote"              # AIDIS unreachable or rejected the call
    SAFETY = "safety"              # shell command blocked by the denylist
    EXECUTION = "execution"        # shell command failed or could not start
    TIMEOUT = "timeout"            # shell command killed after the timeout


class DirectiveResult(BaseModel):
    """Uniform result of CommandRouter.dispatch."""

    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    kind: DirectiveKind
    category: Optional[ErrorCategory] = Field(None, description="Set on failures only")

    @property
    def blocked(self) -> bool:
        return self.category == ErrorCategory.SAFETY


def _ok(kind: DirectiveKind, output: str) -> DirectiveResult:
    return DirectiveResult(success=True, output=output, kind=kind)


def _fail(kind: DirectiveKind, category: ErrorCategory, error: str,
          output: Optional[str] = None) -> DirectiveResult:
    return DirectiveResult(success=False, error=error, output=output, kind=kind, category=category)


class CommandRouter:
    """Dispatch a raw directive string.

    ``/aidis_*`` directives talk to AIDIS, ``/help`` returns help text and
    anything else runs in the local shell behind the safety policy.
    dispatch() never raises; every outcome is a DirectiveResult.
    """

    STORE_FLAGS = {
        '--context': 'context_store',
        '--task': 'task_create',
    }

    def __init__(self, history: ResponseHistory, aidis_client: AidisClient,
                 safety_policy: Optional[SafetyPolicy] = None, shell_timeout: float = 30.0,
                 store_window: int = 5):
        self.history = history
        self.aidis_client = aidis_client
        self.safety_policy = safety_policy if safety_policy is not None else SafetyPolicy()
        self.shell_timeout = shell_timeout
        self.store_window = store_window
        self.logger = logging.getLogger(__name__)

        self.remote_handlers: Dict[str, Callable[[List[str]], DirectiveResult]] = {
            'aidis_ping': self._handle_ping,
            'aidis_store': self._handle_store,
        }

    def dispatch(self, raw_input: str) -> DirectiveResult:
        """
        Route a directive to its handler.

        Args:
            raw_input: Directive as typed by the user

        Returns:
            DirectiveResult describing the outcome
        """
        directive = raw_input.strip()

        if directive.startswith(REMOTE_PREFIX):
            return self._handle_remote(directive)
        elif directive == HELP_DIRECTIVE:
            return self._handle_help()
        else:
            return self._handle_shell(directive)

    # AIDIS directives

    def _handle_remote(self, directive: str) -> DirectiveResult:
        parts = directive.split()
        command = parts[0][1:]
        args = parts[1:]

        handler = self.remote_handlers.get(command)
        if handler is None:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.USAGE, f"Unknown AIDIS command: {command}")

        try:
            return handler(args)
        except Exception as e:
            self.logger.exception(f"AIDIS directive {command} failed")
            return _fail(DirectiveKind.REMOTE, ErrorCategory.REMOTE, str(e))

    def _ensure_connected(self) -> None:
        if not self.aidis_client.is_connected:
            self.aidis_client.connect()

    def _handle_ping(self, args: List[str]) -> DirectiveResult:
        try:
            self._ensure_connected()
            result = self.aidis_client.ping()
        except AidisClientError as e:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.REMOTE, str(e))

        if result.success:
            return _ok(DirectiveKind.REMOTE, "AIDIS connection successful")
        return _fail(DirectiveKind.REMOTE, ErrorCategory.REMOTE, f"AIDIS ping failed: {result.error}")

    def _handle_store(self, args: List[str]) -> DirectiveResult:
        if len(args) != 1 or args[0] not in self.STORE_FLAGS:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.USAGE,
                         "aidis_store requires exactly one flag: --context or --task")

        command_name = self.STORE_FLAGS[args[0]]

        recent = self.history.recent(self.store_window)
        if not recent:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.NO_COMMANDS,
                         "No responses found in buffer to store")

        extracted: List[ExtractedCommand] = []
        for response in recent:
            extracted.extend(self.history.extractor.extract_commands(response.content))

        if not extracted:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.NO_COMMANDS,
                         "No AIDIS commands found in recent responses")

        matching = [cmd for cmd in extracted if cmd.name == command_name]
        if not matching:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.NO_COMMANDS,
                         f"No {command_name} commands found in recent responses")

        try:
            self._ensure_connected()
        except AidisClientError as e:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.REMOTE, str(e))

        executed = 0
        lines = []
        for cmd in matching:
            result, success_line, failure_prefix = self._execute_extracted(cmd)
            if result.success:
                executed += 1
                lines.append(success_line)
            else:
                lines.append(f"{failure_prefix}: {result.error}")

        summary = "\n".join(lines)
        if executed == 0:
            return _fail(DirectiveKind.REMOTE, ErrorCategory.REMOTE,
                         f"All {len(matching)} {command_name} commands failed:\n{summary}")

        self.logger.info(f"Executed {executed} of {len(matching)} {command_name} commands")
        return _ok(DirectiveKind.REMOTE, f"Executed {executed} of {len(matching)} commands:\n{summary}")

    def _execute_extracted(self, cmd: ExtractedCommand) -> Tuple[ServiceCallResult, str, str]:
        payload = cmd.payload
        if cmd.name == 'context_store':
            result = self.aidis_client.store_context(
                payload['content'],
                payload['type'],
                tags=payload.get('tags'),
                relevance_score=payload.get('relevanceScore'),
                session_id=payload.get('sessionId'),
                metadata=payload.get('metadata'),
            )
            return result, f"Stored context: {truncate(payload['content'])}", "Failed to store context"

        result = self.aidis_client.create_task(
            payload['title'],
            description=payload.get('description'),
            type=payload.get('type'),
            priority=payload.get('priority'),
            assigned_to=payload.get('assignedTo'),
            dependencies=payload.get('dependencies'),
            tags=payload.get('tags'),
            metadata=payload.get('metadata'),
        )
        return result, f"Created task: {payload['title']}", "Failed to create task"

    # Help

    def _handle_help(self) -> DirectiveResult:
        status = 'Connected' if self.aidis_client.is_connected else 'Disconnected'
        help_text = f"""
Ridge-Code CLI Commands:

AIDIS Commands:
  /aidis_store --context   Store context from the response history
  /aidis_store --task      Store tasks from the response history
  /aidis_ping              Test AIDIS connection

System Commands:
  /help                    Show this help message

Shell Passthrough:
  Any other input is executed as a shell command
  Examples:
    ls -la                 List directory contents
    git status             Check git status

Safety Features:
  - Dangerous commands are blocked ({len(self.safety_policy.blocked_commands)} denylist entries)
  - Shell commands are killed after {self.shell_timeout:g} seconds
  - All AIDIS operations carry the configured project context

Status:
  - AIDIS Client: {status}
  - Response History: {self.history.size}/{self.history.capacity}
"""
        return _ok(DirectiveKind.HELP, help_text.strip())

    # Shell passthrough

    def _handle_shell(self, command: str) -> DirectiveResult:
        if not command:
            return _fail(DirectiveKind.SHELL, ErrorCategory.USAGE, "Empty command provided")

        blocked = self.safety_policy.find_violation(command)
        if blocked is not None:
            return _fail(DirectiveKind.SHELL, ErrorCategory.SAFETY, f"Command blocked for safety: {blocked}")

        return self._run_shell(command)

    def _run_shell(self, command: str) -> DirectiveResult:
        self.logger.debug(f"Running shell command: {command}")
        try:
            # own session, so a timeout can kill the whole process group
            process = subprocess.Popen(
                command,
                shell=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding='utf-8',
                errors='replace',
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            return _fail(DirectiveKind.SHELL, ErrorCategory.EXECUTION, f"Failed to execute command: {e}")

        try:
            stdout, stderr = process.communicate(timeout=self.shell_timeout)
        except subprocess.TimeoutExpired:
            self._kill_process_group(process)
            process.communicate()
            self.logger.warning(f"Shell command timed out after {self.shell_timeout:g}s: {command}")
            return _fail(DirectiveKind.SHELL, ErrorCategory.TIMEOUT,
                         f"Command timed out after {self.shell_timeout:g} seconds")
        finally:
            # the child must not outlive this call on any path
            if process.poll() is None:
                self._kill_process_group(process)
                process.wait()

        output = (stdout or '').strip()
        error = (stderr or '').strip()

        if process.returncode == 0:
            return _ok(DirectiveKind.SHELL, output or "Command completed successfully")

        return _fail(DirectiveKind.SHELL, ErrorCategory.EXECUTION,
                     error or f"Command failed with exit code {process.returncode}",
                     output=output or None)

    def _kill_process_group(self, process: subprocess.Popen) -> None:
        """SIGKILL the shell and everything it spawned."""
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            # group already gone; the shell itself may still need reaping
            process.kill()
