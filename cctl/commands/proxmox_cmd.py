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

"""Proxmox subcommands (Talos schematics, ISO uploads, VM templates)."""

from __future__ import annotations

from dataclasses import dataclass

import typer

from cctl import console
from cctl.config import ProxmoxConfig, Settings
from cctl.factory import TalosFactory
from cctl.images import get_talos_image as fetch_and_upload_image
from cctl.proxmox import ProxmoxClient
from cctl.schematic import SchematicCache
from cctl.template import create_template as build_template
from cctl.template import load_descriptor

app = typer.Typer(
    help="Proxmox helpers (Talos schematics, ISO uploads, VM templates).",
    no_args_is_help=True,
)


@dataclass(frozen=True)
class ProxmoxContext:
    settings: Settings
    config: ProxmoxConfig

    def factory(self) -> TalosFactory:
        return TalosFactory(timeout=self.config.http_timeout)

    def cache(self) -> SchematicCache:
        return SchematicCache(self.config.schematic_file, self.config.schematic_yaml, self.factory())

    def client(self) -> ProxmoxClient:
        return ProxmoxClient(self.config)


@app.callback()
def _proxmox_callback(
    ctx: typer.Context,
    url: str | None = typer.Option(
        None, "--url", help="Proxmox host/IP without scheme"),
    token_id: str | None = typer.Option(
        None, "--token-id", help="Proxmox API token ID"),
    token_secret: str | None = typer.Option(
        None, "--token-secret", help="Proxmox API token secret"),
    node: str | None = typer.Option(
        None, "--node", help="Proxmox node name"),
    iso_storage: str | None = typer.Option(
        None, "--iso-storage", help="Storage target for ISO uploads (default: local)"),
    schematic_file: str | None = typer.Option(
        None, "--schematic-file", help="Path to the cached Talos schematic ID"),
    schematic_yaml: str | None = typer.Option(
        None, "--schematic-yaml", help="Talos factory schematic YAML input"),
    template_json: str | None = typer.Option(
        None, "--template-json", help="Template JSON payload for VM creation"),
    skip_tls_verify: bool | None = typer.Option(
        None, "--skip-tls-verify/--verify-tls", help="Skip TLS verification for the Proxmox API (default: skip)"),
    http_timeout: str | None = typer.Option(
        None, "--http-timeout", help="HTTP timeout for Proxmox and Talos requests, e.g. 60s"),
) -> None:
    """Resolve the shared Proxmox options for every subcommand."""
    settings: Settings = ctx.obj
    config = settings.load(
        ProxmoxConfig,
        url=url,
        token_id=token_id,
        token_secret=token_secret,
        node=node,
        iso_storage=iso_storage,
        schematic_file=schematic_file,
        schematic_yaml=schematic_yaml,
        template_json=template_json,
        skip_tls_verify=skip_tls_verify,
        http_timeout=http_timeout,
    )
    ctx.obj = ProxmoxContext(settings=settings, config=config)


@app.command("refresh-schematic")
def refresh_schematic(ctx: typer.Context) -> None:
    """Upload the schematic YAML to the Talos factory and cache the returned ID."""
    pctx: ProxmoxContext = ctx.obj
    schematic_id = pctx.cache().refresh()
    console.print(f"[green]\u2705 Cached schematic ID {schematic_id}[/green]")
    typer.echo(schematic_id)


@app.command("show-schematic")
def show_schematic(ctx: typer.Context) -> None:
    """Print the cached schematic ID."""
    pctx: ProxmoxContext = ctx.obj
    typer.echo(pctx.cache().show())


@app.command("clear-schematic")
def clear_schematic(ctx: typer.Context) -> None:
    """Remove the cached schematic ID."""
    pctx: ProxmoxContext = ctx.obj
    pctx.cache().clear()
    console.print(f"[green]\u2705 Removed {pctx.config.schematic_file}[/green]")


@app.command("get-talos-image")
def get_talos_image(
    ctx: typer.Context,
    version: str | None = typer.Option(
        None, "--version", help="Talos release version (e.g. 1.11.2)"),
) -> None:
    """Download the Talos ISO for a version and upload it to Proxmox storage."""
    pctx: ProxmoxContext = ctx.obj
    client = pctx.client()
    factory = pctx.factory()
    cache = SchematicCache(pctx.config.schematic_file, pctx.config.schematic_yaml, factory)
    fetch_and_upload_image(version or "", cache, factory, client, cancel=pctx.settings.cancel)


@app.command("create-template")
def create_template(ctx: typer.Context) -> None:
    """Create a VM from the template JSON and convert it into a template."""
    pctx: ProxmoxContext = ctx.obj
    descriptor = load_descriptor(pctx.config.template_json)
    build_template(descriptor, pctx.client(), cancel=pctx.settings.cancel)
