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

"""kind subcommands (up, down, reset)."""

from __future__ import annotations

import typer

from cctl.config import KindConfig, Settings
from cctl.kind import create_cluster, delete_cluster, reset_cluster

app = typer.Typer(help="Manage the local kind management cluster.", no_args_is_help=True)

NameOption = typer.Option(None, "--name", help="kind cluster name (default: dev)")
ConfigOption = typer.Option(None, "--config", help="kind config file (default: configs/kind.yaml)")


def _kind_config(ctx: typer.Context, name: str | None, config: str | None) -> KindConfig:
    settings: Settings = ctx.obj
    return settings.load(KindConfig, name=name, config=config)


@app.command()
def up(
    ctx: typer.Context,
    name: str | None = NameOption,
    config: str | None = ConfigOption,
) -> None:
    """Create a kind cluster."""
    create_cluster(_kind_config(ctx, name, config))


@app.command()
def down(
    ctx: typer.Context,
    name: str | None = NameOption,
) -> None:
    """Delete a kind cluster."""
    delete_cluster(_kind_config(ctx, name, None))


@app.command()
def reset(
    ctx: typer.Context,
    name: str | None = NameOption,
    config: str | None = ConfigOption,
) -> None:
    """Delete and recreate a kind cluster."""
    reset_cluster(_kind_config(ctx, name, config))
