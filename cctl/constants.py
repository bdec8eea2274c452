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

"""Defaults, remote endpoints, and polling constants."""

from __future__ import annotations

# -- Cluster defaults --
DEFAULT_CLUSTER_NAME = "coffee-cluster"
DEFAULT_NAMESPACE = "default"
DEFAULT_OUT_DIR = "./out"
DEFAULT_CILIUM_VERSION = "1.16.4"

# -- kind defaults --
DEFAULT_KIND_NAME = "dev"
DEFAULT_KIND_CONFIG = "configs/kind.yaml"
KIND_WAIT_READY = "2m"

# -- Cluster API defaults --
DEFAULT_CLUSTERCTL_CONFIG = "configs/capi/clusterctl.yaml"
DEFAULT_CAPI_CORE = "cluster-api"
DEFAULT_CAPI_BOOTSTRAP = ("kubeadm",)
DEFAULT_CAPI_CONTROL_PLANE = ("kubeadm",)
DEFAULT_CAPI_INFRASTRUCTURE = ("docker",)
DEFAULT_CAPI_MANIFEST = "configs/capi/templates/cluster.yaml"

# -- Secrets --
LABEL_CLUSTER_NAME = "cluster.x-k8s.io/cluster-name"
LABEL_CONTROL_PLANE = "node-role.kubernetes.io/control-plane"
SECRET_FALLBACK_PATTERN = r"(kubeconfig|talosconfig)"
SECRET_FALLBACK_KEY = "value"
SECRET_POLL_INTERVAL_SECONDS = 5.0
SECRET_WAIT_FLOOR_SECONDS = 15 * 60.0
DEFAULT_SECRET_TIMEOUT_SECONDS = 20 * 60.0
KUBECTL_TIMEOUT_SECONDS = 60
TALOS_KUBEPRISM_PORT = 7445

# -- Proxmox --
PROXMOX_API_PORT = 8006
PROXMOX_API_PATH = "/api2/json"
DEFAULT_ISO_STORAGE = "local"
DEFAULT_SCHEMATIC_FILE = ".schematic_id"
DEFAULT_SCHEMATIC_YAML = "talos-factory-schematic.yaml"
DEFAULT_TEMPLATE_JSON = "template.json"
DEFAULT_HTTP_TIMEOUT_SECONDS = 60.0
VM_DELETE_POLL_INTERVAL_SECONDS = 1.0
VM_DELETE_TIMEOUT_SECONDS = 90.0
VM_CREATE_SETTLE_SECONDS = 2.0
EXISTS_BODY_LIMIT = 1024
API_BODY_LIMIT = 2048

# -- Talos image factory --
TALOS_FACTORY_URL = "https://factory.talos.dev"
FACTORY_BODY_LIMIT = 1024
DOWNLOAD_CHUNK_SIZE = 1024 * 1024

# -- Cilium --
HELM_REPO_CILIUM = "cilium"
HELM_REPO_CILIUM_URL = "https://helm.cilium.io"
HELM_CHART_CILIUM = "cilium/cilium"
HELM_RELEASE_CILIUM = "cilium"
NS_KUBE_SYSTEM = "kube-system"
CILIUM_HELM_VALUES = (
    "kubeProxyReplacement=true",
    "k8sServiceHost=localhost",
    f"k8sServicePort={TALOS_KUBEPRISM_PORT}",
    "routingMode=native",
    "ipam.mode=kubernetes",
    "hubble.enabled=true",
    "hubble.relay.enabled=true",
    "hubble.ui.enabled=true",
)
CILIUM_ROLLOUT_TIMEOUT = "5m"
