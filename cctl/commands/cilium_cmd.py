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

"""Cilium subcommands (install)."""

from __future__ import annotations

import typer

from cctl.cilium import install_cilium
from cctl.config import Settings
from cctl.utils import existing_path

app = typer.Typer(help="Cilium CNI.", no_args_is_help=True)


@app.command()
def install(
    ctx: typer.Context,
    version: str | None = typer.Option(
        None, "--version", help="Cilium chart version (default: cluster cilium version)"),
) -> None:
    """Install or upgrade Cilium (kube-proxy-free, KubePrism ready).

    Targets the workload cluster kubeconfig when it exists, otherwise the
    current kubectl context.
    """
    settings: Settings = ctx.obj
    cluster = settings.cluster
    install_cilium(version or cluster.cilium_version, existing_path(cluster.kubeconfig_file))
