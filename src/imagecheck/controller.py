import logging
from typing import TYPE_CHECKING, Sequence

from .const import DEFAULT_STOP_SIGNAL, STATE_FORMAT
from .exceptions import ContainerRuntimeError, OperationCancelled, StateParseError
from .models import ContainerHandle, ContainerState
from .runtime import ContainerRuntime

if TYPE_CHECKING:
    from .guard import CancelToken

logger = logging.getLogger(__name__)


class ContainerController:
    """
    Container lifecycle operations on top of a ContainerRuntime.

    Each operation issues exactly one runtime call and turns a failed call
    into a ContainerRuntimeError with an operation specific message.
    """

    def __init__(self, runtime: ContainerRuntime) -> None:
        self.runtime = runtime

    def _call(
        self, message: str, *args: str, cancel: "CancelToken | None" = None
    ) -> str:
        outcome = self.runtime.invoke(*args, cancel=cancel)
        if isinstance(outcome.invocation_error, OperationCancelled):
            raise OperationCancelled(
                f"{message}: {outcome.invocation_error}", outcome=outcome
            )
        if not outcome.ok:
            raise ContainerRuntimeError(f"{message}: {outcome.describe()}", outcome)
        return outcome.output

    def pull(self, image: str) -> None:
        """
        Pull an image.
        Equivalent to: docker pull
        """
        logger.info("Pulling %s...", image)
        self._call(f"encountered error while pulling '{image}'", "pull", image)

    def exists(self, image: str) -> bool:
        """Whether `image` can be inspected. Any failure counts as missing."""
        outcome = self.runtime.invoke("inspect", image)
        if not outcome.ok:
            logger.debug("'%s' doesn't exist: %s", image, outcome.describe())
            return False
        return True

    def run(
        self,
        image: str,
        run_args: Sequence[str],
        command: Sequence[str] | None = None,
    ) -> ContainerHandle:
        """
        Create and start a container.
        Equivalent to: docker run <run_args> <image> [command]
        """
        logger.info("Creating container for image '%s'...", image)
        args = ["run", *run_args, image]
        if command:
            args.extend(command)

        container_id = self._call("failed to run the container", *args).strip()
        if not container_id:
            raise ContainerRuntimeError(
                "failed to run the container: runtime returned no container id"
            )
        return ContainerHandle(container_id)

    def start(self, handle: ContainerHandle) -> None:
        logger.info("Starting container %s...", handle.short_id)
        self._call("failed to start the container", "start", handle.container_id)

    def stop(self, handle: ContainerHandle, signal: str = DEFAULT_STOP_SIGNAL) -> None:
        """
        Send `signal` to the container without waiting for it to exit.
        Equivalent to: docker kill -s TERM
        """
        logger.info("Stopping container %s with SIG%s...", handle.short_id, signal)
        self._call(
            "failed to stop the container", "kill", "-s", signal, handle.container_id
        )

    def kill(self, handle: ContainerHandle) -> None:
        logger.info("Killing container %s...", handle.short_id)
        self._call("failed to kill the container", "kill", handle.container_id)

    def remove(self, handle: ContainerHandle) -> None:
        logger.info("Removing container %s...", handle.short_id)
        self._call("failed to delete the container", "rm", handle.container_id)

    def wait(
        self, handle: ContainerHandle, cancel: "CancelToken | None" = None
    ) -> int | None:
        """
        Block until the container exits.

        Returns the exit code printed by the runtime, or None when it printed
        something else.
        """
        output = self._call(
            "failed to wait for the container",
            "wait",
            handle.container_id,
            cancel=cancel,
        )
        try:
            return int(output.strip())
        except ValueError:
            return None

    def inspect_state(self, handle: ContainerHandle) -> ContainerState:
        """
        Fetch whether the container is running and its last exit code.

        The runtime must answer with exactly "<true|false> <int>"; anything
        else raises StateParseError.
        """
        output = self._call(
            f"'{handle.container_id}' doesn't exist",
            "inspect",
            f"--format={STATE_FORMAT}",
            handle.container_id,
        )
        return parse_state(output)


def parse_state(output: str) -> ContainerState:
    fields = output.strip().split()
    if len(fields) != 2:
        raise StateParseError(
            f"failed to get container state: output is broken: {output.strip()!r}"
        )

    running_field, exit_code_field = fields
    if running_field not in ("true", "false"):
        raise StateParseError(
            f"failed to get container state: unexpected running flag {running_field!r}"
        )
    try:
        exit_code = int(exit_code_field)
    except ValueError:
        raise StateParseError(
            f"failed to get container state: couldn't parse integer {exit_code_field!r}"
        ) from None

    return ContainerState(running=running_field == "true", exit_code=exit_code)
