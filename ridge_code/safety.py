"""Safety policy for shell passthrough commands."""

import logging
from typing import Iterable, List, Optional


# Destructive or irreversible operations. Matching is a case-insensitive
# substring test, so "echo rm -rf" is blocked as well.
DEFAULT_BLOCKED_COMMANDS = (
    'rm -rf',
    'sudo rm',
    'mkfs',
    'dd if=',
    'shred',
    'wipefs',
    'fdisk',
    'parted',
    'mkswap',
    'systemctl poweroff',
    'systemctl halt',
    'shutdown',
    'reboot',
    'init 0',
    'init 6',
    'halt',
    'poweroff',
)


class SafetyPolicy:
    """Denylist filter applied to every shell command before it is spawned."""

    def __init__(self, blocked_commands: Optional[Iterable[str]] = None):
        if blocked_commands is None:
            blocked_commands = DEFAULT_BLOCKED_COMMANDS
        self.blocked_commands: List[str] = [entry for entry in blocked_commands if entry]
        self.logger = logging.getLogger(__name__)

    def find_violation(self, command: str) -> Optional[str]:
        """Return the first denylist entry found in ``command``, or None.

        Entries are checked in list order so the reported entry is stable.
        """
        lowered = command.lower()
        for blocked in self.blocked_commands:
            if blocked.lower() in lowered:
                self.logger.warning(f"Blocked shell command (matched '{blocked}'): {command}")
                return blocked
        return None

    def is_allowed(self, command: str) -> bool:
        return self.find_violation(command) is None
