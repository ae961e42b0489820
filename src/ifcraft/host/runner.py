"""Subprocess-backed command runner with timeout and bounded retry."""
import logging
import subprocess
from typing import Optional

from ..config_engine.schema import CommandOutcome
from ..utils.retry import TransientCommandError, with_retry
from .base import CommandRunner

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def _as_text(output) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


class SubprocessRunner(CommandRunner):
    """Run commands with ``subprocess.run``.

    Timeouts and launch failures other than a missing binary count as
    transient and are retried up to ``attempts`` times. Non-zero exits
    are returned as-is; deciding what they mean is the caller's job.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        attempts: int = 1,
        min_wait: float = 1,
        max_wait: float = 10,
    ):
        self.timeout = timeout
        self.attempts = max(1, attempts)
        self.min_wait = min_wait
        self.max_wait = max_wait

    def run(
        self,
        command: list[str],
        timeout: Optional[float] = None
    ) -> CommandOutcome:
        run_once = with_retry(
            max_attempts=self.attempts,
            min_wait=self.min_wait,
            max_wait=self.max_wait,
            exceptions=(TransientCommandError,),
        )(self._run_once)

        try:
            return run_once(command, timeout or self.timeout)
        except TransientCommandError as e:
            logger.error(f"Giving up on {e.outcome.describe()}")
            return e.outcome

    def _run_once(self, command: list[str], timeout: float) -> CommandOutcome:
        logger.debug(f"Running: {' '.join(command)}")
        try:
            proc = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise TransientCommandError(CommandOutcome(
                command=command,
                returncode=None,
                output=_as_text(e.output),
                timed_out=True,
            ))
        except FileNotFoundError as e:
            return CommandOutcome(command=command, returncode=127, output=str(e))
        except OSError as e:
            raise TransientCommandError(CommandOutcome(
                command=command,
                returncode=None,
                output=str(e),
            ))

        output = (proc.stdout or "") + (proc.stderr or "")
        if proc.returncode != 0:
            logger.debug(f"'{' '.join(command)}' exited {proc.returncode}: {output.strip()}")
        return CommandOutcome(
            command=command,
            returncode=proc.returncode,
            output=output,
        )
