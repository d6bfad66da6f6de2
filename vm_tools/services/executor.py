"""External command execution."""

import logging
import os
import subprocess
from dataclasses import dataclass

from vm_tools.config import COMMAND_TIMEOUT, ESCALATION_PREFIX
from vm_tools.errors import OperationTimeoutError, ResourceUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of one command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    escalated: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs external commands, retrying once with privilege escalation.

    If an unprivileged invocation fails, the identical command is retried a
    single time behind ``escalation_prefix``. The retry result is returned
    unless the escalation tool itself refused to run the command, in which
    case the unprivileged failure is kept.
    """

    def __init__(
        self,
        escalation_prefix: tuple[str, ...] = ESCALATION_PREFIX,
        timeout: float = COMMAND_TIMEOUT,
    ) -> None:
        self.escalation_prefix = escalation_prefix
        self.timeout = timeout

    def run(
        self,
        args: list[str] | tuple[str, ...],
        escalate: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command and return its result."""
        argv = tuple(args)
        try:
            result = self._execute(argv, timeout)
        except PermissionError as e:
            result = CommandResult(argv, 126, "", str(e))

        if result.ok or not escalate or not self._can_escalate():
            return result

        logger.debug("Retrying with escalation: %s", " ".join(argv))
        try:
            escalated = self._execute(self.escalation_prefix + argv, timeout)
        except ResourceUnavailableError:
            logger.debug("Escalation unavailable: %s not found", self.escalation_prefix[0])
            return result
        if not escalated.ok and self._refused_by_escalation(escalated):
            logger.debug("Escalation refused: %s", escalated.stderr.strip())
            return result
        return CommandResult(
            argv, escalated.returncode, escalated.stdout, escalated.stderr, escalated=True
        )

    def _refused_by_escalation(self, escalated: CommandResult) -> bool:
        """The escalation wrapper itself failed, so the command never ran."""
        tool = os.path.basename(self.escalation_prefix[0])
        return any(line.startswith(f"{tool}:") for line in escalated.stderr.splitlines())

    def _can_escalate(self) -> bool:
        """Escalation is pointless when already root or disabled."""
        return bool(self.escalation_prefix) and os.geteuid() != 0

    def _execute(self, argv: tuple[str, ...], timeout: float | None) -> CommandResult:
        logger.debug("Running: %s", " ".join(argv))
        try:
            proc = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                timeout=timeout or self.timeout,
            )
        except FileNotFoundError as e:
            raise ResourceUnavailableError(
                f"Command not found: {argv[0]}. Is it installed?"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise OperationTimeoutError(
                f"Command timed out after {e.timeout}s: {' '.join(argv)}"
            ) from e

        if proc.returncode != 0:
            logger.debug("Exit %d: %s", proc.returncode, proc.stderr.strip())
        return CommandResult(argv, proc.returncode, proc.stdout, proc.stderr)
