import logging
import subprocess
from typing import TYPE_CHECKING

from .const import CANCEL_POLL_INTERVAL, UNKNOWN_EXIT_CODE
from .exceptions import OperationCancelled
from .models import RuntimeOutcome

if TYPE_CHECKING:
    from .guard import CancelToken

logger = logging.getLogger(__name__)


class ContainerRuntime:
    """
    Invokes the container runtime CLI (docker or podman).

    Every call runs exactly one subcommand and reports combined output, the
    exit status and, separately, whether the binary could be invoked at all.
    Nothing here raises for a failed subcommand; callers decide what a
    non-zero status means.
    """

    def __init__(
        self, binary: str = "docker", poll_interval: float = CANCEL_POLL_INTERVAL
    ) -> None:
        self.binary = binary
        self.poll_interval = poll_interval

    def invoke(self, *args: str, cancel: "CancelToken | None" = None) -> RuntimeOutcome:
        """
        Run `<binary> args...` and wait for it to finish.

        If `cancel` is given it is polled while the child runs. Once it is
        cancelled the child process is killed and reaped, and the outcome
        carries an OperationCancelled invocation error.
        """
        command = [self.binary, *args]
        logger.debug("Running %s", " ".join(command))

        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.debug("Failed to invoke %s: %s", self.binary, e)
            return RuntimeOutcome(
                output="", exit_code=UNKNOWN_EXIT_CODE, invocation_error=e
            )

        if cancel is None:
            output, _ = process.communicate()
        else:
            while True:
                try:
                    output, _ = process.communicate(timeout=self.poll_interval)
                    break
                except subprocess.TimeoutExpired:
                    if not cancel.cancelled:
                        continue
                    process.kill()
                    output, _ = process.communicate()
                    logger.debug("Cancelled %s", " ".join(command))
                    return RuntimeOutcome(
                        output=output or "",
                        exit_code=UNKNOWN_EXIT_CODE,
                        invocation_error=OperationCancelled(
                            f"'{' '.join(args)}' was cancelled"
                        ),
                    )

        outcome = RuntimeOutcome(
            output=output or "", exit_code=self._exit_code(process.returncode)
        )
        if outcome.exit_code != 0:
            logger.debug(
                "%s exited with %d: %s",
                " ".join(command),
                outcome.exit_code,
                outcome.output.strip(),
            )
        return outcome

    @staticmethod
    def _exit_code(returncode: int | None) -> int:
        # A negative code means the CLI itself died from a signal; its real
        # status is unknown.
        if returncode is None or returncode < 0:
            return UNKNOWN_EXIT_CODE
        return returncode

    def __repr__(self) -> str:
        return f"<ContainerRuntime: {self.binary}>"
