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

"""Cluster API subcommands (init, deploy)."""

from __future__ import annotations

import typer

from cctl.capi import apply_manifests, init_providers
from cctl.config import CapiConfig, Settings

app = typer.Typer(help="Cluster API providers and manifests.", no_args_is_help=True)


@app.command()
def init(
    ctx: typer.Context,
    clusterctl_config: str | None = typer.Option(
        None, "--clusterctl-config", help="Path to clusterctl.yaml"),
    core: str | None = typer.Option(
        None, "--core", help="Core provider (usually 'cluster-api')"),
    bootstrap: str | None = typer.Option(
        None, "--bootstrap", help="Bootstrap providers, comma separated"),
    control_plane: str | None = typer.Option(
        None, "--control-plane", help="Control plane providers, comma separated"),
    infrastructure: str | None = typer.Option(
        None, "--infrastructure", help="Infrastructure providers, comma separated"),
    kubeconfig: str | None = typer.Option(
        None, "--kubeconfig", help="Kubeconfig of the management cluster"),
) -> None:
    """Initialize Cluster API providers via clusterctl."""
    settings: Settings = ctx.obj
    capi_cfg = settings.load(
        CapiConfig,
        clusterctl_config=clusterctl_config,
        core=core,
        bootstrap=bootstrap,
        control_plane=control_plane,
        infrastructure=infrastructure,
        kubeconfig=kubeconfig,
    )
    init_providers(capi_cfg)


@app.command()
def deploy(
    ctx: typer.Context,
    file: str | None = typer.Option(
        None, "--file", "-f", help="Manifest file or directory"),
    namespace: str | None = typer.Option(
        None, "--namespace", help="Namespace for the manifests"),
    kubeconfig: str | None = typer.Option(
        None, "--kubeconfig", help="Kubeconfig of the management cluster"),
) -> None:
    """Apply Cluster API manifests with kubectl."""
    settings: Settings = ctx.obj
    capi_cfg = settings.load(CapiConfig, file=file, namespace=namespace, kubeconfig=kubeconfig)
    apply_manifests(capi_cfg.file, capi_cfg.namespace, capi_cfg.kubeconfig)
