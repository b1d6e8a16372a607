import logging
import os
import shlex
import shutil
from dataclasses import dataclass, field

from .const import DEFAULT_RUN_ARGS, RUNTIME_CANDIDATES, RUNTIME_ENV_VAR
from .exceptions import RuntimeNotFoundError

logger = logging.getLogger(__name__)

_DETACH_FLAGS = ("-d", "--detach", "--detach=true")


@dataclass
class ProbeConfig:
    """What to probe and how to start it."""

    image: str
    run_args: list[str] = field(default_factory=lambda: [DEFAULT_RUN_ARGS])
    command: list[str] | None = None
    auto_cleanup: bool = True
    runtime: str | None = None

    @classmethod
    def from_strings(
        cls,
        image: str,
        run_args: str = DEFAULT_RUN_ARGS,
        run_cmd: str = "",
        auto_cleanup: bool = True,
        runtime: str | None = None,
    ) -> "ProbeConfig":
        """
        Build a config from user supplied argument strings.

        Both strings are split like a shell would. An empty `run_cmd` means
        the image's own entrypoint/cmd is used. Empty `run_args` fall back
        to the default so the run call never stays attached.
        """
        if not run_args.strip():
            logger.warning(
                "the runargs can't be empty. At least '-d' should be provided"
            )
            run_args = DEFAULT_RUN_ARGS
        split_args = shlex.split(run_args)
        if split_args and not _detaches(split_args):
            logger.warning(
                "runargs %r don't detach the container; the run call will block",
                run_args,
            )

        command = shlex.split(run_cmd) if run_cmd.strip() else None
        return cls(
            image=image,
            run_args=split_args,
            command=command,
            auto_cleanup=auto_cleanup,
            runtime=runtime,
        )


def _detaches(args: list[str]) -> bool:
    for arg in args:
        if arg in _DETACH_FLAGS:
            return True
        # "-itd" style groups of single letter flags
        if arg.startswith("-") and not arg.startswith("--") and arg[1:].isalpha():
            if "d" in arg[1:]:
                return True
    return False


def resolve_runtime(binary: str | None = None) -> str:
    """
    Find the container runtime binary to use.

    Order: the explicit `binary`, the IMAGECHECK_RUNTIME environment
    variable, then the first of docker/podman found on PATH.
    """
    if binary:
        return binary

    env_binary = os.environ.get(RUNTIME_ENV_VAR)
    if env_binary:
        logger.debug("Using runtime from %s: %s", RUNTIME_ENV_VAR, env_binary)
        return env_binary

    for candidate in RUNTIME_CANDIDATES:
        path = shutil.which(candidate)
        if path:
            logger.debug("Found container runtime %s", path)
            return candidate

    raise RuntimeNotFoundError(
        "No container runtime found. Install docker or podman, or set "
        f"{RUNTIME_ENV_VAR}."
    )
