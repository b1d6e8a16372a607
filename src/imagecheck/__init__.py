"""Container image graceful-shutdown probe.

This package checks that containers started from an image stop cleanly on
SIGTERM, can be started again, and stop cleanly a second time.
"""

from .config import ProbeConfig
from .controller import ContainerController
from .engine import ProbeEngine
from .exceptions import ImageCheckException
from .guard import TimeoutGuard, race_with_timeout
from .models import ContainerHandle, ContainerState, ProbeResult, ProbeVerdict
from .report import ReportPresenter
from .runtime import ContainerRuntime

__all__ = [
    "ContainerController",
    "ContainerHandle",
    "ContainerRuntime",
    "ContainerState",
    "ImageCheckException",
    "ProbeConfig",
    "ProbeEngine",
    "ProbeResult",
    "ProbeVerdict",
    "ReportPresenter",
    "TimeoutGuard",
    "race_with_timeout",
]

import logging
import sys

# Configure logging for the entire package
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Only add handler if none exists to avoid duplicates
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
