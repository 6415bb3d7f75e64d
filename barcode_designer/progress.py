'''Progress reporting and cooperative cancellation'''

import logging
import threading
from typing import Callable, Optional

from tqdm import tqdm

from .errors import CancellationSignal

# report(percentage, message) -> continue?
ProgressCallback = Callable[[float, str], bool]


def silent_progress(percentage: float, message: str) -> bool:
    """Progress callback that ignores all reports"""
    return True


class CancellationToken:
    """Thread-safe cancellation flag shared by a search and its caller"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class Progress:
    """Forwards reports to a callback and records cancellation requests"""

    def __init__(self, callback: Optional[ProgressCallback] = None,
                 token: Optional[CancellationToken] = None):
        self.callback = callback or silent_progress
        self.token = token or CancellationToken()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def report(self, percentage: float, message: str) -> bool:
        """Report progress; returns False once cancellation was requested"""
        if self.token.cancelled:
            return False
        try:
            keep_going = self.callback(percentage, message)
        except CancellationSignal:
            keep_going = False
        if keep_going is False:
            logging.info(f"Cancellation requested: {message}")
            self.token.cancel()
        return not self.token.cancelled

    def prefixed(self, prefix: str) -> ProgressCallback:
        """Callback that prefixes messages before forwarding them here"""
        return lambda percentage, message: self.report(percentage, f"{prefix}{message}")


class TqdmProgress:
    """Progress callback drawing a tqdm bar from 0 to 100 percent"""

    def __init__(self, desc: str = 'Barcode search', disable: bool = False):
        self.bar = tqdm(total=100, desc=desc, disable=disable,
                        bar_format='{l_bar}{bar}| {n:.0f}/{total_fmt}% [{elapsed}]')

    def __call__(self, percentage: float, message: str) -> bool:
        self.bar.n = min(100.0, max(0.0, percentage))
        self.bar.set_postfix_str(message, refresh=False)
        self.bar.refresh()
        return True

    def close(self) -> None:
        self.bar.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
