import argparse
import logging
import sys

from .config import ProbeConfig, resolve_runtime
from .const import DEFAULT_RUN_ARGS, EXIT_FATAL
from .controller import ContainerController
from .engine import ProbeEngine
from .exceptions import ImageCheckException
from .report import ReportPresenter
from .runtime import ContainerRuntime

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagecheck",
        description=(
            "Check that containers from IMAGE stop gracefully on SIGTERM "
            "and can be restarted."
        ),
    )
    parser.add_argument("image", nargs="?", help="image to check")
    parser.add_argument(
        "--runargs",
        "-runargs",
        default=DEFAULT_RUN_ARGS,
        help=(
            "necessary options for running the container, "
            "e.g. --runargs='-d -p 80:80' (default: %(default)s)"
        ),
    )
    parser.add_argument(
        "--runcmd",
        "-runcmd",
        default="",
        help="command to run in the container; defaults to entrypoint/cmd",
    )
    parser.add_argument(
        "--autocleanup",
        dest="auto_cleanup",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="remove the container when running into errors (default: true)",
    )
    parser.add_argument(
        "--runtime",
        help="container runtime binary (default: $IMAGECHECK_RUNTIME or docker/podman)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return parser


def build_engine(runtime_binary: str | None) -> ProbeEngine:
    runtime = ContainerRuntime(resolve_runtime(runtime_binary))
    return ProbeEngine(ContainerController(runtime))


def main(argv: list[str] | None = None) -> int:
    """Run the probe from the command line and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    package_logger = logging.getLogger("imagecheck")
    if args.verbose:
        package_logger.setLevel(logging.DEBUG)
    elif args.quiet:
        package_logger.setLevel(logging.WARNING)

    if not args.image:
        print("ERROR: the image must be specified")
        parser.print_usage(sys.stdout)
        return EXIT_FATAL

    config = ProbeConfig.from_strings(
        args.image,
        run_args=args.runargs,
        run_cmd=args.runcmd,
        auto_cleanup=args.auto_cleanup,
        runtime=args.runtime,
    )

    try:
        engine = build_engine(config.runtime)
        result = engine.run(config)
    except ImageCheckException as e:
        logger.error("%s", e)
        return EXIT_FATAL

    print(ReportPresenter().render_result(result))
    for diagnostic in result.cleanup_diagnostics:
        logger.debug("Cleanup: %s", diagnostic)
    return result.exit_status
