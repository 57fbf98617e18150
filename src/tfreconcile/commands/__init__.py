"""Remediation command execution."""

from tfreconcile.commands.runner import CommandRunResult, CommandRunner, is_state_altering, prepare_args

__all__ = ['CommandRunResult', 'CommandRunner', 'is_state_altering', 'prepare_args']
