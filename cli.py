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

"""
cli.py - CLI for kind, Cluster API, Cilium, Talos and Proxmox workflows.

Subcommands:
    kind      Manage the local kind management cluster (up, down, reset)
    capi      Cluster API providers and manifests (init, deploy)
    cilium    Install or upgrade Cilium (install)
    secrets   Fetch workload cluster credentials
    proxmox   Talos schematics, ISO uploads and VM templates
    version   Show the version

Examples:
    # Create the management cluster and install Cluster API providers
    cctl kind up
    cctl capi init --infrastructure proxmox --bootstrap talos --control-plane talos

    # Wait for the workload kubeconfig and talosconfig
    cctl --cluster-name coffee-cluster secrets get-kubeconfig --timeout 20m
    cctl secrets get-talosconfig

    # Upload a Talos ISO and build the VM template
    cctl proxmox --url pve.lan --node pve1 get-talos-image --version 1.11.2
    cctl proxmox create-template

For detailed usage information, run: cctl --help
"""

from __future__ import annotations

import signal
import sys

import typer

from cctl import __version__, console, logger
from cctl.commands import capi_cmd, cilium_cmd, kind_cmd, proxmox_cmd, secrets_cmd
from cctl.config import Settings, resolve_settings
from cctl.polling import CancelToken
from cctl.utils import configure_logging

app = typer.Typer(
    help="CLI tool for managing kind, Cluster API, Cilium, Talos and Proxmox.",
    no_args_is_help=True,
)


def _install_signal_handlers(cancel: CancelToken) -> None:
    """Turn SIGINT/SIGTERM into a cancellation observed by every wait loop and download.

    A second signal raises KeyboardInterrupt so cleanup in ``finally`` blocks still runs.
    """
    def _handler(signum: int, _frame) -> None:
        if cancel.cancelled:
            raise KeyboardInterrupt
        logger.warning("Received %s, cancelling", signal.Signals(signum).name)
        cancel.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _handler)


@app.callback()
def _main_callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Enable verbose logging"),
    config: str | None = typer.Option(None, "--config", help="Path to a YAML or JSON config file"),
    log_format: str | None = typer.Option(None, "--log-format", help="Log format: console|json"),
    cluster_name: str | None = typer.Option(
        None, "--cluster-name", help="Cluster API workload cluster name (default: coffee-cluster)"),
    namespace: str | None = typer.Option(
        None, "--namespace", help="Namespace for Cluster API objects (default: default)"),
    out_dir: str | None = typer.Option(
        None, "--out-dir", help="Output directory for generated artifacts (default: ./out)"),
    kubeconfig_path: str | None = typer.Option(
        None, "--kubeconfig-path", help="Workload cluster kubeconfig (default: <out>/kubeconfig-<name>)"),
    talosconfig_path: str | None = typer.Option(
        None, "--talosconfig-path", help="Workload cluster talosconfig (default: <out>/talosconfig-<name>)"),
) -> None:
    """Resolve settings and initialize logging for all subcommands."""
    settings: Settings = resolve_settings(
        config_file=config,
        debug=debug or None,
        log_format=log_format,
        cluster_name=cluster_name,
        namespace=namespace,
        out_dir=out_dir,
        kubeconfig_path=kubeconfig_path,
        talosconfig_path=talosconfig_path,
    )
    configure_logging(settings.log.format, settings.log.debug)
    _install_signal_handlers(settings.cancel)
    ctx.obj = settings


@app.command()
def version() -> None:
    """Show the version."""
    typer.echo(__version__)


app.add_typer(kind_cmd.app, name="kind")
app.add_typer(capi_cmd.app, name="capi")
app.add_typer(cilium_cmd.app, name="cilium")
app.add_typer(secrets_cmd.app, name="secrets")
app.add_typer(proxmox_cmd.app, name="proxmox")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
