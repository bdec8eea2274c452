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

"""Cilium installation with Helm."""

from __future__ import annotations

from rich.panel import Panel

from cctl import console
from cctl.constants import (
    CILIUM_HELM_VALUES,
    CILIUM_ROLLOUT_TIMEOUT,
    HELM_CHART_CILIUM,
    HELM_RELEASE_CILIUM,
    HELM_REPO_CILIUM,
    HELM_REPO_CILIUM_URL,
    NS_KUBE_SYSTEM,
)
from cctl.errors import ValidationError
from cctl.steps import Step, StepResult, run_steps
from cctl.utils import kubeconfig_env, require_commands, run_streaming


def helm_install_args(version: str) -> list[str]:
    args = [
        "upgrade", "--install", HELM_RELEASE_CILIUM, HELM_CHART_CILIUM,
        "--namespace", NS_KUBE_SYSTEM,
        "--create-namespace",
        "--version", version,
    ]
    for value in CILIUM_HELM_VALUES:
        args.extend(["--set", value])
    return args


def install_steps(version: str, kubeconfig: str = "") -> list[Step]:
    """Build the Cilium install sequence.

    Repo setup and the final pod listing are best-effort; the chart install
    and the DaemonSet rollout must succeed.
    """
    env = kubeconfig_env(kubeconfig)
    return [
        Step("helm repo add cilium",
             lambda: run_streaming("helm", ["repo", "add", HELM_REPO_CILIUM, HELM_REPO_CILIUM_URL], env=env),
             required=False),
        Step("helm repo update", lambda: run_streaming("helm", ["repo", "update"], env=env), required=False),
        Step("helm upgrade --install cilium", lambda: run_streaming("helm", helm_install_args(version), env=env)),
        Step("kubectl rollout status cilium",
             lambda: run_streaming("kubectl", [
                 "-n", NS_KUBE_SYSTEM, "rollout", "status", "ds/cilium", f"--timeout={CILIUM_ROLLOUT_TIMEOUT}",
             ], env=env)),
        Step("kubectl get pods",
             lambda: run_streaming("kubectl", [
                 "-n", NS_KUBE_SYSTEM, "get", "pods", "-l", "k8s-app=cilium", "-owide",
             ], env=env),
             required=False),
    ]


def install_cilium(version: str, kubeconfig: str = "") -> list[StepResult]:
    """Install or upgrade Cilium in kube-proxy-free mode behind KubePrism.

    Args:
        version: Cilium chart version.
        kubeconfig: Kubeconfig for helm and kubectl, or empty for the default.

    Returns:
        One result per step.

    Raises:
        ValidationError: If *version* is empty or helm/kubectl are missing.
    """
    if not version:
        raise ValidationError("cilium version is required")
    require_commands("helm", "kubectl")

    console.print(Panel.fit(f"Installing Cilium {version}", style="bold blue"))
    results = run_steps(install_steps(version, kubeconfig))
    console.print("[green]\u2705 Cilium installation complete[/green]")
    return results
