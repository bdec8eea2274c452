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

"""Kubeconfig generation through talosctl against the control plane."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from cctl import console, logger
from cctl.config import ClusterConfig
from cctl.constants import TALOS_KUBEPRISM_PORT
from cctl.errors import CommandError, NotFoundError, TransportError, ValidationError
from cctl.kube import KubeClient
from cctl.utils import run_capture, run_streaming, write_private_file

Capture = Callable[[str, list[str]], tuple[bool, str, str]]


def talos_kubeconfig_path(cluster_cfg: ClusterConfig) -> Path:
    return Path(cluster_cfg.out_dir) / f"kubeconfig-{cluster_cfg.name}-talosctl"


def _require_file(path: Path, label: str, hint: str) -> None:
    if not path.exists():
        raise ValidationError(f"{label} not found at {path} (run: secrets {hint})")


def kubeconfig_via_talos(
    cluster_cfg: ClusterConfig,
    kube: KubeClient | None = None,
    capture: Capture | None = None,
    stream: Callable[[str, list[str]], None] | None = None,
) -> Path:
    """Point talosctl at the control plane and generate a kubeconfig from the first node.

    Args:
        cluster_cfg: Cluster name, output directory and config file paths.
        kube: kubectl client for node discovery; built from *cluster_cfg* when omitted.
        capture: Runs a command and returns (success, stdout, stderr).
        stream: Runs a command with output attached to the terminal.

    Returns:
        Path of the written kubeconfig.

    Raises:
        ValidationError: If the talosconfig or kubeconfig file is missing.
        NotFoundError: If no control plane node reports an InternalIP.
        CommandError: If a talosctl call fails.
    """
    capture = capture or (lambda cmd, args: run_capture(cmd, args))
    stream = stream or run_streaming
    talosconfig = cluster_cfg.talosconfig_file
    kubeconfig = cluster_cfg.kubeconfig_file
    _require_file(talosconfig, "talosconfig", "get-talosconfig")
    _require_file(kubeconfig, "kubeconfig", "get-kubeconfig")

    kube = kube or KubeClient(str(kubeconfig), cluster_cfg.namespace)
    ips = kube.control_plane_ips()
    if not ips:
        raise NotFoundError("no control-plane nodes discovered yet")
    logger.info("Talos control plane endpoints", extra={"ips": ips})

    base = ["--talosconfig", str(talosconfig)]
    for sub in ("endpoints", "nodes"):
        try:
            stream("talosctl", [*base, "config", sub, *ips])
        except CommandError as err:
            raise err.with_operation(f"talosctl config {sub}")

    cp0 = ips[0]
    args = [*base, "kubeconfig", "-", "--nodes", cp0, "--endpoints", f"{cp0}:{TALOS_KUBEPRISM_PORT}", "--force"]
    ok, stdout, stderr = capture("talosctl", args)
    if not ok:
        raise CommandError(f"talosctl kubeconfig: {stderr.strip()}",
                           command=" ".join(["talosctl", *args]), stderr=stderr.strip())

    target = talos_kubeconfig_path(cluster_cfg)
    try:
        write_private_file(target, stdout.encode())
    except OSError as err:
        raise TransportError(f"write {target}: {err}") from err
    console.print(f"[green]\u2705 Saved talosctl-generated kubeconfig to {target}[/green]")
    return target
