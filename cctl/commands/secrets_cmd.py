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

"""Secrets subcommands (get-kubeconfig, get-talosconfig, kubeconfig-via-talos)."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel

from cctl import console, logger
from cctl.config import SecretsConfig, Settings
from cctl.kube import KubeClient
from cctl.talos import kubeconfig_via_talos as generate_talos_kubeconfig
from cctl.utils import require_commands

app = typer.Typer(help="Fetch workload cluster credentials.", no_args_is_help=True)

TimeoutOption = typer.Option(
    None, "--timeout", help="Maximum time to wait for the secret, e.g. 20m (default: 20m)")
KubeconfigOption = typer.Option(
    None, "--kubeconfig", help="Kubeconfig of the management cluster (default: current context)")


def _fetch_secret(
    settings: Settings,
    kind: str,
    out_path: Path,
    timeout: str | None,
    kubeconfig: str | None,
) -> None:
    require_commands("kubectl")
    cluster = settings.cluster
    secrets_cfg = settings.load(SecretsConfig, timeout=timeout)

    client = KubeClient(kubeconfig or "", cluster.namespace, cancel=settings.cancel)
    pattern = f"{cluster.name}-{kind}"

    console.print(Panel.fit(f"Waiting for {kind} secret of cluster '{cluster.name}'", style="bold blue"))
    logger.info("Waiting for %s secret", kind, extra={"secret_pattern": pattern, "namespace": cluster.namespace})
    name = client.wait_for_secret(pattern, cluster.name, secrets_cfg.timeout)
    console.print(f"[green]\u2705 Found secret {name}[/green]")

    path = client.extract_secret_to_file(name, kind, out_path)
    console.print(f"[green]\u2705 Wrote {kind} to {path}[/green]")


@app.command("get-kubeconfig")
def get_kubeconfig(
    ctx: typer.Context,
    timeout: str | None = TimeoutOption,
    kubeconfig: str | None = KubeconfigOption,
) -> None:
    """Wait for the Cluster API kubeconfig secret and write it to disk."""
    settings: Settings = ctx.obj
    _fetch_secret(settings, "kubeconfig", settings.cluster.kubeconfig_file, timeout, kubeconfig)


@app.command("get-talosconfig")
def get_talosconfig(
    ctx: typer.Context,
    timeout: str | None = TimeoutOption,
    kubeconfig: str | None = KubeconfigOption,
) -> None:
    """Wait for the Talos talosconfig secret and write it to disk."""
    settings: Settings = ctx.obj
    _fetch_secret(settings, "talosconfig", settings.cluster.talosconfig_file, timeout, kubeconfig)


@app.command("kubeconfig-via-talos")
def kubeconfig_via_talos(ctx: typer.Context) -> None:
    """Generate a kubeconfig with talosctl from the first control plane node."""
    settings: Settings = ctx.obj
    require_commands("kubectl", "talosctl")
    console.print(Panel.fit("Generating kubeconfig via talosctl", style="bold blue"))
    generate_talos_kubeconfig(settings.cluster)
