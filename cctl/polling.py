# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Clock, cancellation token, and deadline-bounded polling."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Protocol, TypeVar

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result

from cctl.errors import CancelledError, WaitTimeoutError

T = TypeVar("T")


class CancelToken:
    """Thread-safe cancellation flag shared between a signal handler and poll loops."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Block up to *seconds*; return True as soon as the token is cancelled."""
        return self._event.wait(seconds)

    def check(self, operation: str) -> None:
        """Raise CancelledError if the token has been cancelled.

        Args:
            operation: Description used in the error message.
        """
        if self.cancelled:
            raise CancelledError(f"{operation} cancelled")


class Clock(Protocol):
    """Time source used by poll loops, swappable for a virtual clock in tests."""

    def now(self) -> float: ...

    def sleep(self, seconds: float, cancel: CancelToken | None = None) -> None: ...


class SystemClock:
    """Monotonic wall clock. Sleeps return early when *cancel* fires."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel: CancelToken | None = None) -> None:
        if seconds <= 0:
            return
        if cancel is None:
            time.sleep(seconds)
        else:
            cancel.wait(seconds)


def sleep_checked(
    clock: Clock,
    seconds: float,
    cancel: CancelToken | None,
    operation: str,
) -> None:
    """Sleep on *clock*, raising CancelledError if *cancel* fires before or during the sleep."""
    if cancel is not None:
        cancel.check(operation)
    clock.sleep(seconds, cancel)
    if cancel is not None:
        cancel.check(operation)


def poll(
    probe: Callable[[], T | None],
    *,
    interval: float,
    timeout: float,
    description: str,
    clock: Clock | None = None,
    cancel: CancelToken | None = None,
    delay_first: bool = False,
) -> T:
    """Call *probe* on a fixed tick until it returns a value or the deadline passes.

    Ticks are aligned to the start of the loop, so a slow probe shortens the
    following wait instead of drifting the schedule. Exceptions raised by
    *probe* are not retried.

    Args:
        probe: Callable returning a result, or None for "not yet".
        interval: Seconds between ticks.
        timeout: Seconds until the deadline, measured from the call.
        description: What is being waited for, used in error messages.
        clock: Time source, defaults to the system clock.
        cancel: Optional cancellation token observed before every sleep.
        delay_first: Wait one tick before the first probe.

    Returns:
        The first non-None value returned by *probe*.

    Raises:
        WaitTimeoutError: If the deadline passes without a result.
        CancelledError: If *cancel* fires while waiting.
    """
    clock = clock or SystemClock()
    operation = f"wait for {description}"
    start = clock.now()
    deadline = start + timeout

    def _next_tick(_state: RetryCallState) -> float:
        elapsed = clock.now() - start
        return interval - (elapsed % interval)

    def _deadline_passed(_state: RetryCallState) -> bool:
        return clock.now() >= deadline

    def _sleep(seconds: float) -> None:
        sleep_checked(clock, seconds, cancel, operation)

    if cancel is not None:
        cancel.check(operation)
    if delay_first:
        _sleep(interval)

    retrying = Retrying(
        stop=_deadline_passed,
        wait=_next_tick,
        sleep=_sleep,
        retry=retry_if_result(lambda result: result is None),
        reraise=True,
    )
    try:
        return retrying(probe)
    except RetryError:
        raise WaitTimeoutError(f"timed out after {timeout:g}s waiting for {description}") from None
