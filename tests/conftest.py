import shutil
import subprocess
import time
import uuid
from typing import Generator

import pytest

from imagecheck import ContainerController, ContainerRuntime, ProbeEngine, TimeoutGuard
from imagecheck.exceptions import OperationCancelled
from imagecheck.models import RuntimeOutcome

GRACEFUL = "graceful"
IGNORES_TERM = "ignores-term"
NONZERO_ON_TERM = "nonzero-on-term"
EXITS_IMMEDIATELY = "exits-immediately"
NO_RESTART = "no-restart"
TERM_ONCE = "term-once"
REJECT_RUN = "reject-run"
TERM_FAILS = "term-fails"
SECOND_TERM_FAILS = "second-term-fails"


class FakeContainer:
    def __init__(self, container_id: str, behavior: str) -> None:
        self.container_id = container_id
        self.behavior = behavior
        self.running = behavior != EXITS_IMMEDIATELY
        self.exit_code = 0
        self.terms = 0


class FakeRuntime:
    """
    In-memory stand-in for the docker CLI.

    Containers follow a scripted behavior looked up by the run command (joined
    with spaces) or, without a command, by the image name.
    """

    def __init__(
        self,
        behaviors: dict[str, str] | None = None,
        local_images: tuple[str, ...] = ("busybox:latest",),
        remote_images: tuple[str, ...] = (),
    ) -> None:
        self.behaviors = behaviors or {}
        self.local_images = set(local_images)
        self.remote_images = set(remote_images)
        self.containers: dict[str, FakeContainer] = {}
        self.removed: list[str] = []
        self.calls: list[tuple[str, ...]] = []
        self.state_output: str | None = None
        self._next_id = 0

    def invoke(self, *args: str, cancel=None) -> RuntimeOutcome:
        self.calls.append(args)
        handler = getattr(self, f"_{args[0]}")
        return handler(list(args[1:]), cancel)

    @staticmethod
    def _ok(output: str = "") -> RuntimeOutcome:
        return RuntimeOutcome(output=output, exit_code=0)

    @staticmethod
    def _fail(output: str, exit_code: int = 1) -> RuntimeOutcome:
        return RuntimeOutcome(output=output, exit_code=exit_code)

    def _pull(self, args, cancel):
        image = args[0]
        if image not in self.remote_images:
            return self._fail(f"manifest for {image} not found")
        self.local_images.add(image)
        return self._ok(f"Status: Downloaded newer image for {image}\n")

    def _inspect(self, args, cancel):
        if args[0].startswith("--format="):
            container = self.containers.get(args[1])
            if container is None:
                return self._fail(f"Error: No such object: {args[1]}")
            if self.state_output is not None:
                return self._ok(self.state_output)
            running = "true" if container.running else "false"
            return self._ok(f"{running} {container.exit_code}\n")
        if args[0] in self.local_images or args[0] in self.containers:
            return self._ok("[{}]\n")
        return self._fail(f"Error: No such object: {args[0]}")

    def _run(self, args, cancel):
        run_args = []
        while args and args[0].startswith("-"):
            run_args.append(args.pop(0))
        image, command = args[0], args[1:]
        behavior = self.behaviors.get(" ".join(command) or image, GRACEFUL)
        if behavior == REJECT_RUN:
            return self._fail("docker: invalid reference format.", exit_code=125)

        self._next_id += 1
        container_id = f"{self._next_id:064x}"
        self.containers[container_id] = FakeContainer(container_id, behavior)
        return self._ok(container_id + "\n")

    def _start(self, args, cancel):
        container = self.containers.get(args[0])
        if container is None:
            return self._fail(f"Error: No such container: {args[0]}")
        if container.behavior == NO_RESTART:
            return self._fail("Error response from daemon: cannot start container")
        container.running = True
        container.exit_code = 0
        return self._ok(args[0] + "\n")

    def _kill(self, args, cancel):
        container = self.containers.get(args[-1])
        if container is None:
            return self._fail(f"Error: No such container: {args[-1]}")
        if not container.running:
            return self._fail(f"container {args[-1]} is not running")

        if args[0] != "-s":
            container.running = False
            container.exit_code = 137
            return self._ok(args[-1] + "\n")

        container.terms += 1
        if container.behavior == TERM_FAILS or (
            container.behavior == SECOND_TERM_FAILS and container.terms > 1
        ):
            return self._fail("cannot kill container: permission denied")
        if container.behavior in (GRACEFUL, SECOND_TERM_FAILS) or (
            container.behavior == TERM_ONCE and container.terms == 1
        ):
            container.running = False
            container.exit_code = 0
        elif container.behavior == NONZERO_ON_TERM:
            container.running = False
            container.exit_code = 143
        elif container.behavior == NO_RESTART:
            container.running = False
            container.exit_code = 0
        return self._ok(args[-1] + "\n")

    def _rm(self, args, cancel):
        container = self.containers.get(args[0])
        if container is None:
            return self._fail(f"Error: No such container: {args[0]}")
        if container.running:
            return self._fail("stop the container before removing")
        del self.containers[args[0]]
        self.removed.append(args[0])
        return self._ok(args[0] + "\n")

    def _wait(self, args, cancel):
        while True:
            container = self.containers.get(args[0])
            if container is None:
                return self._fail(f"Error: No such container: {args[0]}")
            if not container.running:
                return self._ok(f"{container.exit_code}\n")
            if cancel is not None and cancel.wait(0.01):
                return RuntimeOutcome(
                    output="",
                    exit_code=127,
                    invocation_error=OperationCancelled("'wait' was cancelled"),
                )
            if cancel is None:
                time.sleep(0.01)


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def controller(fake_runtime: FakeRuntime) -> ContainerController:
    return ContainerController(fake_runtime)


@pytest.fixture
def engine(controller: ContainerController) -> ProbeEngine:
    """An engine with the timings shrunk so tests run fast."""
    return ProbeEngine(
        controller,
        guard=TimeoutGuard(cancel_grace=0.5),
        settle_seconds=0,
        stop_timeout=0.3,
        settle=lambda seconds: None,
    )


def _docker_available() -> bool:
    if shutil.which("docker") is None:
        return False
    try:
        result = subprocess.run(
            ["docker", "info"], capture_output=True, timeout=10, check=False
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


@pytest.fixture
def docker_controller() -> Generator[ContainerController, None, None]:
    """Controller over the real docker CLI; skips when no daemon is reachable."""
    if not _docker_available():
        pytest.skip("docker daemon not available")
    yield ContainerController(ContainerRuntime("docker"))


@pytest.fixture
def random_name() -> str:
    """Generate a random name for containers to avoid collisions."""
    return f"imagecheck-test-{uuid.uuid4().hex[:8]}"
