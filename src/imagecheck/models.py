import enum
from dataclasses import dataclass, field, replace

from .const import EXIT_OK, EXIT_PROBE_FAILED, UNKNOWN_EXIT_CODE


@dataclass(frozen=True)
class ContainerHandle:
    """A container created by the runtime for a single probe."""

    container_id: str

    @property
    def short_id(self) -> str:
        return self.container_id[:12]

    def __str__(self) -> str:
        return self.container_id

    def __repr__(self) -> str:
        return f"<Container: {self.short_id}>"


@dataclass(frozen=True)
class ContainerState:
    """Snapshot of a container's state. Never cached."""

    running: bool
    exit_code: int


@dataclass(frozen=True)
class RuntimeOutcome:
    """
    Result of one runtime invocation.

    When `invocation_error` is set the runtime never produced a usable
    result, so `output` and `exit_code` are not authoritative.
    """

    output: str
    exit_code: int
    invocation_error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.invocation_error is None and self.exit_code == 0

    @property
    def exit_code_known(self) -> bool:
        return self.invocation_error is None and self.exit_code != UNKNOWN_EXIT_CODE

    def describe(self) -> str:
        if self.invocation_error is not None:
            return f"invocation failed: {self.invocation_error}"
        detail = self.output.strip()
        if not self.exit_code_known:
            status = "unknown exit status"
        else:
            status = f"exit status {self.exit_code}"
        return f"{status}: {detail}" if detail else status


@dataclass(frozen=True)
class ProbeVerdict:
    """
    Pass/fail verdicts of a probe.

    Both test verdicts start out passing and can only be downgraded; there
    is no way to set one back to True.
    """

    handles_graceful_stop: bool = True
    handles_restart: bool = True
    command_was_specified: bool = False

    def fail_graceful_stop(self) -> "ProbeVerdict":
        return replace(self, handles_graceful_stop=False)

    def fail_restart(self) -> "ProbeVerdict":
        return replace(self, handles_restart=False)

    @property
    def passed(self) -> bool:
        return self.handles_graceful_stop and self.handles_restart


class ProbeStage(enum.Enum):
    NOT_STARTED = "not started"
    STARTED = "started"
    SETTLE_WAIT = "settle wait"
    FIRST_STOP_ATTEMPT = "first stop attempt"
    FIRST_RESTART_ATTEMPT = "first restart attempt"
    SECOND_STOP_ATTEMPT = "second stop attempt"
    TERMINAL = "terminal"


@dataclass
class ProbeResult:
    image: str
    handle: ContainerHandle
    verdict: ProbeVerdict
    stage: ProbeStage
    cleanup_diagnostics: list[str] = field(default_factory=list)

    @property
    def exit_status(self) -> int:
        return EXIT_OK if self.verdict.passed else EXIT_PROBE_FAILED
