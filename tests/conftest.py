"""Shared fixtures: virtual clock, fake kubectl, fake HTTP responses."""

from __future__ import annotations

import base64
import json
import logging
from unittest.mock import MagicMock

import pytest

from cctl.constants import LABEL_CLUSTER_NAME
from cctl.utils import configure_logging


class FakeClock:
    """Virtual clock: sleeping advances time instantly and is recorded."""

    def __init__(self, start: float = 0.0) -> None:
        self.t = start
        self.sleeps: list[float] = []
        self.on_sleep = None

    def now(self) -> float:
        return self.t

    def sleep(self, seconds: float, cancel=None) -> None:
        self.sleeps.append(seconds)
        self.t += seconds
        if self.on_sleep is not None:
            self.on_sleep(self)


def _make_secret(name: str, cluster: str | None = None, data: dict[str, bytes] | None = None) -> dict:
    labels = {LABEL_CLUSTER_NAME: cluster} if cluster is not None else {}
    encoded = {k: base64.b64encode(v).decode() for k, v in (data or {}).items()}
    return {"metadata": {"name": name, "labels": labels}, "data": encoded}


class FakeKubectl:
    """Stands in for ``kubectl`` as a KubeClient runner.

    Secrets are visible once the clock reaches their ``visible_at`` time.
    """

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.secrets: list[tuple[float, dict]] = []
        self.nodes: list[dict] = []
        self.calls: list[list[str]] = []
        self.get_error = ""
        self.list_error = ""

    def add_secret(self, secret: dict, visible_at: float = 0.0) -> None:
        self.secrets.append((visible_at, secret))

    def _visible(self) -> list[dict]:
        now = self.clock.now() if self.clock else 0.0
        return [s for at, s in self.secrets if now >= at]

    def __call__(self, args: list[str]) -> tuple[bool, str, str]:
        self.calls.append(list(args))
        if args[:1] == ["-n"]:
            args = args[2:]
        if args[:2] == ["get", "secret"]:
            if self.get_error:
                return False, "", self.get_error
            name = args[2]
            for secret in self._visible():
                if secret["metadata"]["name"] == name:
                    return True, json.dumps(secret), ""
            return False, "", f'Error from server (NotFound): secrets "{name}" not found'
        if args[:2] == ["get", "secrets"]:
            if self.list_error:
                return False, "", self.list_error
            return True, json.dumps({"items": self._visible()}), ""
        if args[:2] == ["get", "nodes"]:
            return True, json.dumps({"items": self.nodes}), ""
        return False, "", f"unexpected kubectl call: {args}"

    def count(self, verb: str, kind: str) -> int:
        return sum(1 for c in self.calls if verb in c and kind in c)


def _http_response(status: int = 200, body: str = "", reason: str = "", headers: dict | None = None) -> MagicMock:
    """Build a requests.Response stand-in."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.reason = reason or {200: "OK", 404: "Not Found", 500: "Internal Server Error"}.get(status, "")
    resp.text = body
    resp.content = body.encode()
    resp.headers = headers or {}
    return resp


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_secret():
    return _make_secret


@pytest.fixture
def http_response():
    return _http_response


@pytest.fixture
def kubectl(clock) -> FakeKubectl:
    return FakeKubectl(clock)


@pytest.fixture
def kubectl_factory():
    return FakeKubectl


@pytest.fixture
def clean_env(monkeypatch):
    """Clear every environment variable the config classes read."""
    for key in (
        "CLUSTER", "NS", "OUT_DIR", "KUBECONFIG_PATH", "TALOSCONFIG_PATH", "CILIUM_VER",
        "PROXMOX_URL", "PROXMOX_TOKEN", "PROXMOX_SECRET", "PVE_NODE", "PROXMOX_ISO_STORAGE",
        "SCHEMATIC_FILE", "TALOS_SCHEMATIC_YAML", "TEMPLATE_JSON", "PROXMOX_SKIP_TLS_VERIFY",
        "CCTL_CLUSTER_NAME", "CCTL_CLUSTER_NAMESPACE", "CCTL_CLUSTER_OUT_DIR",
        "CCTL_CLUSTER_KUBECONFIG_PATH", "CCTL_CLUSTER_TALOSCONFIG_PATH", "CCTL_CLUSTER_CILIUM_VERSION",
        "CCTL_KIND_NAME", "CCTL_KIND_CONFIG", "CCTL_CAPI_CORE", "CCTL_CAPI_BOOTSTRAP",
        "CCTL_CAPI_CONTROL_PLANE", "CCTL_CAPI_INFRASTRUCTURE", "CCTL_CAPI_KUBECONFIG",
        "CCTL_CAPI_FILE", "CCTL_CAPI_NAMESPACE", "CCTL_CAPI_CLUSTERCTL_CONFIG",
        "CCTL_PROXMOX_URL", "CCTL_PROXMOX_TOKEN_ID", "CCTL_PROXMOX_TOKEN_SECRET", "CCTL_PROXMOX_NODE",
        "CCTL_PROXMOX_ISO_STORAGE", "CCTL_PROXMOX_SCHEMATIC_FILE", "CCTL_PROXMOX_SCHEMATIC_YAML",
        "CCTL_PROXMOX_TEMPLATE_JSON", "CCTL_PROXMOX_SKIP_TLS_VERIFY", "CCTL_PROXMOX_HTTP_TIMEOUT",
        "CCTL_SECRETS_TIMEOUT", "CCTL_DEBUG", "CCTL_LOG_FORMAT",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(params=["console", "json"])
def configured_logging(request):
    """Install the CLI's root handler at DEBUG so every log call builds a record."""
    root = logging.getLogger()
    saved = (root.handlers[:], root.level)
    configure_logging(request.param, debug=True)
    yield request.param
    root.handlers, root.level = saved
