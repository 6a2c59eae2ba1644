"""Synchronous execution of external certificate engine commands."""

import os
import subprocess

from .errors import CommandFailureError, RunnerError
from .logging_config import LOGGER
from .models import CommandInvocation, CommandResult


class ProcessRunner:
    """Runs one external command at a time and blocks until it exits.

    Certificate material written by a command must be complete before the
    next step reads it, so there is no background execution here.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize runner.

        Args:
            timeout: Seconds to wait for each command, None to wait forever
        """
        self.timeout = timeout

    def run(self, invocation: CommandInvocation) -> CommandResult:
        """Execute a command and return its captured output.

        Args:
            invocation: Command to execute

        Returns:
            CommandResult with exit code zero

        Raises:
            CommandFailureError: If the command exits non-zero
            RunnerError: If the command cannot be launched or waited on
        """
        command = invocation.render()
        LOGGER.debug("starting command... %s", command)

        env = None
        if invocation.env:
            env = {**os.environ, **invocation.env}

        try:
            # subprocess.run kills and reaps the child on any exception
            completed = subprocess.run(
                list(invocation.argv),
                capture_output=True,
                text=True,
                env=env,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise RunnerError(command, f"timed out after {e.timeout} seconds") from e
        except (OSError, subprocess.SubprocessError) as e:
            raise RunnerError(command, str(e)) from e
        except KeyboardInterrupt as e:
            raise RunnerError(command, "interrupted") from e

        result = CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if result.stdout.strip():
            # Tools such as openssl ca report failures on stdout too
            log = LOGGER.info if result.succeeded else LOGGER.error
            log("output stream of %s:\n\n%s", invocation.program, result.stdout)
        if result.stderr.strip():
            LOGGER.error("error stream of %s:\n\n%s", invocation.program, result.stderr)

        if not result.succeeded:
            raise CommandFailureError(
                result.exit_code, command, stderr=result.stderr, stdout=result.stdout
            )

        LOGGER.debug("command exited successfully with code [%d]", result.exit_code)
        return result
