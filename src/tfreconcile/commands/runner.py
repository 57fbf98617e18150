"""Runs suggested remediation commands against the working state file."""

import os
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from tfreconcile.engine.models import CommandExecutionLog
from tfreconcile.utils.errors import CommandExecutionError
from tfreconcile.utils.logging import get_logger

logger = get_logger(__name__)

STATE_FLAG = '-state='


@dataclass
class CommandRunResult:
    """Outcome of running a batch of remediation commands."""
    logs: List[CommandExecutionLog] = field(default_factory=list)
    state_altering_attempted: bool = False

    @property
    def failed(self) -> List[CommandExecutionLog]:
        return [log for log in self.logs if not log.is_success()]

    @property
    def succeeded(self) -> bool:
        return not self.failed


def has_state_flag(args: List[str]) -> bool:
    return any(arg.startswith(STATE_FLAG) for arg in args)


def is_state_altering(args: List[str]) -> bool:
    """terraform import and terraform state commands count as attempted
    mutations, even when malformed."""
    return len(args) >= 2 and args[0] == 'terraform' and args[1] in ('import', 'state')


def prepare_args(args: List[str], state_path: str) -> List[str]:
    """Validate a terraform command and point it at the working state.

    terraform import needs an address and an ID. terraform state needs a
    subcommand. Both get -state=<path> unless the command already has one.

    Returns:
        Arguments to execute

    Raises:
        CommandExecutionError: If an import or state command is malformed
    """
    if len(args) < 2 or args[0] != 'terraform':
        return args

    action = args[1]
    if action == 'import':
        if len(args) < 4:
            raise CommandExecutionError("malformed terraform import command: expects ADDR and ID")
        if has_state_flag(args):
            return args
        return args[:2] + [f"{STATE_FLAG}{state_path}"] + args[2:]

    if action == 'state':
        if len(args) < 3:
            raise CommandExecutionError("malformed terraform state command: missing subcommand")
        if has_state_flag(args):
            return args
        return args[:3] + [f"{STATE_FLAG}{state_path}"] + args[3:]

    return args


class CommandRunner:
    """Executes remediation commands one at a time, in the order given.

    Commands run without a shell, from the Terraform working directory, and
    always against the local working copy of the state.
    """

    def __init__(self, state_path, terraform_dir: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize command runner.

        Args:
            state_path: Local working state file passed as -state=
            terraform_dir: Directory holding the Terraform configuration
            timeout: Per-command timeout in seconds (default none)
        """
        # Commands run from terraform_dir, so the state path must not be relative
        self.state_path = os.path.abspath(str(state_path))
        self.terraform_dir = str(terraform_dir) if terraform_dir else None
        self.timeout = timeout

    def run(self, commands: Iterable[str]) -> CommandRunResult:
        """Attempt every command in order. Failures never stop the batch."""
        result = CommandRunResult()
        for command in commands:
            if not command.strip():
                continue
            log, altering = self.run_one(command)
            result.logs.append(log)
            result.state_altering_attempted = result.state_altering_attempted or altering
        if result.logs:
            logger.info(
                f"Executed {len(result.logs)} commands, {len(result.failed)} failed"
            )
        return result

    def run_one(self, command: str) -> Tuple[CommandExecutionLog, bool]:
        """Run one command.

        Returns:
            (log, state_altering) for the command
        """
        try:
            args = shlex.split(command)
        except ValueError as e:
            return self._rejected(command, f"cannot parse command: {e}"), False
        if not args:
            return self._rejected(command, "empty command"), False

        altering = is_state_altering(args)
        try:
            args = prepare_args(args, self.state_path)
        except CommandExecutionError as e:
            logger.error(f"Skipping '{command}': {e.message}")
            return self._rejected(command, e.message, e.exit_code), altering

        logger.info(f"Executing: {command}")
        try:
            completed = subprocess.run(
                args,
                cwd=self.terraform_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Command failed to start: {command}: {e}")
            return CommandExecutionLog(command=command, exit_code=1, error=str(e)), altering

        log = CommandExecutionLog(
            command=command,
            stdout=completed.stdout or '',
            stderr=completed.stderr or '',
            exit_code=completed.returncode,
        )
        if completed.returncode != 0:
            log.error = f"exit status {completed.returncode}"
            logger.warning(f"Command exited with {completed.returncode}: {command}")
        return log, altering

    def _rejected(self, command: str, message: str, exit_code: int = 1) -> CommandExecutionLog:
        return CommandExecutionLog(command=command, exit_code=exit_code, error=message)
