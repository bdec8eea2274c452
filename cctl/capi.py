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

"""Cluster API provider installation and manifest apply."""

from __future__ import annotations

from pathlib import Path

from rich.panel import Panel

from cctl import console, logger
from cctl.config import CapiConfig
from cctl.errors import ValidationError
from cctl.kube import KubeClient
from cctl.utils import kubeconfig_env, require_commands, run_streaming


def init_args(capi_cfg: CapiConfig) -> list[str]:
    """Build ``clusterctl init`` arguments from *capi_cfg*."""
    args = ["init", "--core", capi_cfg.core]
    for flag, providers in (
        ("--bootstrap", capi_cfg.bootstrap),
        ("--control-plane", capi_cfg.control_plane),
        ("--infrastructure", capi_cfg.infrastructure),
    ):
        if providers:
            args.extend([flag, ",".join(providers)])
    if capi_cfg.kubeconfig:
        args.extend(["--kubeconfig", capi_cfg.kubeconfig])
    if capi_cfg.clusterctl_config and Path(capi_cfg.clusterctl_config).is_file():
        args.extend(["--config", capi_cfg.clusterctl_config])
    return args


def init_providers(capi_cfg: CapiConfig) -> None:
    """Install Cluster API providers into the management cluster.

    Args:
        capi_cfg: Provider selection, target kubeconfig and clusterctl config.
    """
    require_commands("clusterctl")
    console.print(Panel.fit("Initializing Cluster API providers", style="bold blue"))
    logger.info(
        "clusterctl init",
        extra={
            "core": capi_cfg.core,
            "bootstrap": capi_cfg.bootstrap,
            "control_plane": capi_cfg.control_plane,
            "infrastructure": capi_cfg.infrastructure,
        },
    )
    run_streaming("clusterctl", init_args(capi_cfg), env=kubeconfig_env(capi_cfg.kubeconfig))
    console.print("[green]\u2705 Cluster API providers installed[/green]")


def apply_manifests(path: str, namespace: str, kubeconfig: str = "") -> None:
    """Apply a manifest file or directory with ``kubectl apply -f``.

    Raises:
        ValidationError: If *path* is empty.
    """
    if not path:
        raise ValidationError("manifest path is required")
    require_commands("kubectl")
    console.print(f"[yellow]\u2139\ufe0f  Applying {path} to namespace {namespace or '<current>'}...[/yellow]")
    KubeClient(kubeconfig, namespace).apply(path)
    console.print(f"[green]\u2705 Applied {path}[/green]")
