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

"""kind cluster create, delete, and reset."""

from __future__ import annotations

from pathlib import Path

from rich.panel import Panel

from cctl import console, logger
from cctl.config import KindConfig
from cctl.constants import KIND_WAIT_READY
from cctl.steps import Step, run_steps
from cctl.utils import require_commands, run_streaming


def create_args(kind_cfg: KindConfig) -> list[str]:
    """Build ``kind create cluster`` arguments; the config file is passed only if it exists."""
    args = ["create", "cluster", "--name", kind_cfg.name, "--wait", KIND_WAIT_READY]
    if kind_cfg.config and Path(kind_cfg.config).is_file():
        args.extend(["--config", kind_cfg.config])
    else:
        logger.debug("kind config %r not found, using kind defaults", kind_cfg.config)
    return args


def create_cluster(kind_cfg: KindConfig) -> None:
    """Create a kind cluster and wait for its nodes to become ready.

    Args:
        kind_cfg: kind cluster name and config file.
    """
    require_commands("kind")
    console.print(Panel.fit(f"Creating kind cluster '{kind_cfg.name}'", style="bold blue"))
    run_streaming("kind", create_args(kind_cfg))
    console.print(f"[green]\u2705 kind cluster '{kind_cfg.name}' is ready[/green]")


def delete_cluster(kind_cfg: KindConfig) -> None:
    """Delete a kind cluster. kind itself treats a missing cluster as success."""
    require_commands("kind")
    console.print(f"[yellow]\u2139\ufe0f  Deleting kind cluster '{kind_cfg.name}'...[/yellow]")
    run_streaming("kind", ["delete", "cluster", "--name", kind_cfg.name])
    console.print(f"[green]\u2705 kind cluster '{kind_cfg.name}' deleted[/green]")


def reset_cluster(kind_cfg: KindConfig) -> None:
    """Delete then recreate a kind cluster. A failed delete does not stop the create."""
    run_steps([
        Step(f"delete kind cluster {kind_cfg.name}", lambda: delete_cluster(kind_cfg), required=False),
        Step(f"create kind cluster {kind_cfg.name}", lambda: create_cluster(kind_cfg)),
    ])
