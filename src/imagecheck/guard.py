"""
Races a blocking call against a wall-clock deadline.

The operation runs on a worker thread and receives a CancelToken. When the
deadline wins, the token is cancelled so the operation can tear down what
it is blocked on, and its eventual result is still logged once it arrives.
"""

import logging
import threading
from concurrent import futures
from dataclasses import dataclass
from typing import Any, Callable

from .const import CANCEL_GRACE_SECONDS

logger = logging.getLogger(__name__)


class CancelToken:
    """A one-way cancellation flag shared with a running operation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or `timeout` elapses. Returns `cancelled`."""
        return self._event.wait(timeout)


@dataclass(frozen=True)
class RaceOutcome:
    value: Any = None
    error: BaseException | None = None
    timed_out: bool = False

    @property
    def completed(self) -> bool:
        return not self.timed_out


class TimeoutGuard:
    def __init__(self, cancel_grace: float = CANCEL_GRACE_SECONDS) -> None:
        self.cancel_grace = cancel_grace

    def race(
        self,
        operation: Callable[[CancelToken], Any],
        deadline: float,
        name: str = "operation",
    ) -> RaceOutcome:
        """
        Run `operation` for at most `deadline` seconds.

        Whatever finishes first decides the outcome: the operation's value or
        exception, or a timed out outcome. A timed out operation is cancelled,
        not awaited.
        """
        token = CancelToken()
        future: "futures.Future[Any]" = futures.Future()

        def runner() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = operation(token)
            except BaseException as e:
                future.set_exception(e)
            else:
                future.set_result(result)

        worker = threading.Thread(
            target=runner, name=f"imagecheck-{name}", daemon=True
        )
        worker.start()

        done, _ = futures.wait([future], timeout=deadline)
        if not done:
            logger.info("Timeout reached after %ss waiting for %s", deadline, name)
            token.cancel()
            future.add_done_callback(lambda late: self._log_abandoned(name, late))
            worker.join(self.cancel_grace)
            if worker.is_alive():
                logger.warning(
                    "%s is still running %ss after being cancelled",
                    name,
                    self.cancel_grace,
                )
            return RaceOutcome(timed_out=True)

        error = future.exception()
        if error is not None:
            return RaceOutcome(error=error)
        return RaceOutcome(value=future.result())

    @staticmethod
    def _log_abandoned(name: str, future: "futures.Future[Any]") -> None:
        error = future.exception()
        if error is not None:
            logger.debug("Abandoned %s ended with: %s", name, error)
        else:
            logger.debug("Abandoned %s finished with: %r", name, future.result())


def race_with_timeout(
    operation: Callable[[CancelToken], Any], deadline: float
) -> RaceOutcome:
    return TimeoutGuard().race(operation, deadline)
