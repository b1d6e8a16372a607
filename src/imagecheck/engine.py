import logging
from typing import Callable

from .config import ProbeConfig
from .const import SETTLE_SECONDS, STOP_TIMEOUT
from .controller import ContainerController
from .exceptions import (
    ContainerExitedError,
    ContainerRuntimeError,
    ImageCheckException,
)
from .guard import TimeoutGuard
from .models import ContainerHandle, ProbeResult, ProbeStage, ProbeVerdict
from .progress import countdown

logger = logging.getLogger(__name__)


class ProbeEngine:
    """
    Runs the graceful stop / restart diagnostic against one image.

    Each test step takes the current ProbeVerdict and returns the updated
    one. Infrastructure failures raise ImageCheckException; failed tests only
    downgrade the verdict.
    """

    def __init__(
        self,
        controller: ContainerController,
        guard: TimeoutGuard | None = None,
        settle_seconds: float = SETTLE_SECONDS,
        stop_timeout: float = STOP_TIMEOUT,
        settle: Callable[[float], None] = countdown,
    ) -> None:
        self.controller = controller
        self.guard = guard or TimeoutGuard()
        self.settle_seconds = settle_seconds
        self.stop_timeout = stop_timeout
        self.settle = settle
        self.stage = ProbeStage.NOT_STARTED

    def _enter(self, stage: ProbeStage) -> None:
        logger.debug("Probe stage: %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def run(self, config: ProbeConfig) -> ProbeResult:
        """Probe `config.image` and return the verdict."""
        self.stage = ProbeStage.NOT_STARTED
        self.ensure_image(config.image)

        handle = self.controller.run(config.image, config.run_args, config.command)
        self._enter(ProbeStage.STARTED)
        logger.info("Started container %s", handle.short_id)
        verdict = ProbeVerdict(command_was_specified=bool(config.command))

        try:
            return self._probe(config, handle, verdict)
        except BaseException:
            # includes KeyboardInterrupt during the settle or stop waits
            if config.auto_cleanup:
                self.cleanup(handle)
            raise

    def _probe(
        self, config: ProbeConfig, handle: ContainerHandle, verdict: ProbeVerdict
    ) -> ProbeResult:
        self._enter(ProbeStage.SETTLE_WAIT)
        self.settle(self.settle_seconds)
        self.check_alive(handle)

        self._enter(ProbeStage.FIRST_STOP_ATTEMPT)
        verdict = self.stop_test(handle, verdict, signal_failure_is_fatal=True)

        self._enter(ProbeStage.FIRST_RESTART_ATTEMPT)
        verdict = self.restart_test(handle, verdict)

        if not verdict.passed:
            logger.info("Skipping the second stop test")
            diagnostics = self.cleanup(handle) if config.auto_cleanup else []
            return ProbeResult(config.image, handle, verdict, self.stage, diagnostics)

        self._enter(ProbeStage.SECOND_STOP_ATTEMPT)
        verdict = self.stop_test(handle, verdict, signal_failure_is_fatal=False)

        self._enter(ProbeStage.TERMINAL)
        diagnostics = self.cleanup(handle)
        return ProbeResult(config.image, handle, verdict, self.stage, diagnostics)

    def ensure_image(self, image: str) -> None:
        if not self.controller.exists(image):
            self.controller.pull(image)

    def check_alive(self, handle: ContainerHandle) -> None:
        state = self.controller.inspect_state(handle)
        if not state.running:
            raise ContainerExitedError(
                f"failure: container {handle.container_id} "
                f"exited with {state.exit_code}"
            )

    def stop_test(
        self,
        handle: ContainerHandle,
        verdict: ProbeVerdict,
        signal_failure_is_fatal: bool,
    ) -> ProbeVerdict:
        """
        Send SIGTERM and give the container `stop_timeout` seconds to exit 0.

        A container that is still running, or exited non-zero, is killed so
        the next step starts from a stopped container.
        """
        try:
            self.controller.stop(handle)
        except ContainerRuntimeError as e:
            if signal_failure_is_fatal:
                raise
            logger.warning("Failed to stop container %s: %s", handle.short_id, e)
            verdict = verdict.fail_graceful_stop()
            self.force_kill(handle)

        race = self.guard.race(
            lambda token: self.controller.wait(handle, cancel=token),
            self.stop_timeout,
            name=f"wait {handle.short_id}",
        )
        if race.timed_out:
            logger.info(
                "Container %s did not exit within %ss",
                handle.short_id,
                self.stop_timeout,
            )
            verdict = verdict.fail_graceful_stop()
        elif race.error is not None:
            logger.warning(
                "Waiting for container %s failed: %s", handle.short_id, race.error
            )

        state = self.controller.inspect_state(handle)
        if state.running or state.exit_code != 0:
            logger.info(
                "Container %s did not stop gracefully (running=%s, exit code %d)",
                handle.short_id,
                state.running,
                state.exit_code,
            )
            verdict = verdict.fail_graceful_stop()
            self.force_kill(handle)
        return verdict

    def restart_test(
        self, handle: ContainerHandle, verdict: ProbeVerdict
    ) -> ProbeVerdict:
        """
        Start the stopped container again.

        A restart only counts when the stop test before it passed.
        """
        try:
            self.controller.start(handle)
        except ContainerRuntimeError as e:
            logger.warning("Failed to restart container %s: %s", handle.short_id, e)
            verdict = verdict.fail_restart()

        if not verdict.handles_graceful_stop:
            verdict = verdict.fail_restart()

        state = self.controller.inspect_state(handle)
        if not state.running:
            logger.info("Container %s is not running after start", handle.short_id)
            verdict = verdict.fail_restart()
        return verdict

    def force_kill(self, handle: ContainerHandle) -> None:
        try:
            self.controller.kill(handle)
        except (ImageCheckException, OSError) as e:
            logger.info("Failed to kill container %s: %s", handle.short_id, e)

    def cleanup(self, handle: ContainerHandle) -> list[str]:
        """
        Kill and remove the container, best effort.

        Never raises; failures are logged and returned as diagnostics.
        """
        diagnostics = []
        try:
            self.controller.kill(handle)
        except (ImageCheckException, OSError) as e:
            # usually just "not running"
            logger.debug("Cleanup kill of %s failed: %s", handle.short_id, e)
            diagnostics.append(str(e))

        try:
            self.controller.remove(handle)
        except (ImageCheckException, OSError) as e:
            logger.warning("Failed to cleanup container %s: %s", handle.short_id, e)
            diagnostics.append(str(e))
        return diagnostics
