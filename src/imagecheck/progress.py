import logging
import sys
import time
from typing import Callable

from tqdm import tqdm


def countdown(
    seconds: float,
    desc: str = "Settling",
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Sleep for `seconds`, drawing a one-tick-per-second bar on stderr.

    The bar is hidden when stderr is not a terminal or the package logger is
    above INFO; the sleep happens either way.
    """
    quiet = not logging.getLogger("imagecheck").isEnabledFor(logging.INFO)
    whole, remainder = divmod(seconds, 1)

    with tqdm(
        total=int(whole),
        desc=desc,
        unit="s",
        file=sys.stderr,
        leave=False,
        disable=True if quiet else None,
    ) as bar:
        for _ in range(int(whole)):
            sleep(1)
            bar.update(1)
    if remainder:
        sleep(remainder)
