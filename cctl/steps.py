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

"""Sequential setup steps with required and best-effort members."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from cctl import console, logger
from cctl.errors import CctlError


@dataclass(frozen=True)
class Step:
    """One unit of a setup sequence.

    Attributes:
        name: Label used in log lines and error messages.
        action: Callable performing the step.
        required: When False, a failure is logged and the sequence continues.
    """

    name: str
    action: Callable[[], None]
    required: bool = True


@dataclass(frozen=True)
class StepResult:
    name: str
    ok: bool
    error: str = ""


def run_steps(steps: Iterable[Step]) -> list[StepResult]:
    """Run *steps* in order.

    Args:
        steps: Steps to run.

    Returns:
        One result per step that ran.

    Raises:
        CctlError: The first failure of a required step, prefixed with its name.
    """
    results: list[StepResult] = []
    for step in steps:
        logger.debug("Running step %s", step.name)
        try:
            step.action()
        except CctlError as err:
            if step.required:
                raise err.with_operation(step.name)
            logger.warning("%s failed (non-fatal): %s", step.name, err)
            console.print(f"[yellow]\u26a0\ufe0f  {step.name} failed, continuing[/yellow]")
            results.append(StepResult(step.name, ok=False, error=str(err)))
            continue
        results.append(StepResult(step.name, ok=True))
    return results
