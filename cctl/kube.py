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

"""kubectl-backed secret lookup, secret extraction, and node discovery."""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Callable
from pathlib import Path

import pydantic

from cctl import logger
from cctl.constants import (
    KUBECTL_TIMEOUT_SECONDS,
    LABEL_CONTROL_PLANE,
    SECRET_FALLBACK_KEY,
    SECRET_FALLBACK_PATTERN,
    SECRET_POLL_INTERVAL_SECONDS,
    SECRET_WAIT_FLOOR_SECONDS,
)
from cctl.errors import CommandError, DecodeError, NotFoundError, TransportError, ValidationError
from cctl.models import NodeList, SecretList, SecretObject
from cctl.polling import CancelToken, Clock, poll
from cctl.utils import kubeconfig_env, run_capture, run_streaming, write_private_file

Runner = Callable[[list[str]], tuple[bool, str, str]]

_FALLBACK_RE = re.compile(SECRET_FALLBACK_PATTERN)
_OBJECT_NAME_RE = re.compile(r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$")


def _is_not_found(stderr: str) -> bool:
    text = stderr.lower()
    return "notfound" in text or "not found" in text


def select_secret_key(data: dict[str, str], preferred_key: str = "") -> str:
    """Pick the data key to extract from a secret.

    Order: *preferred_key* if present, then ``value``, then the
    lexicographically smallest key.

    Args:
        data: Secret data mapping; must not be empty.
        preferred_key: Key to use when present.

    Returns:
        The selected key.
    """
    if preferred_key and preferred_key in data:
        return preferred_key
    if SECRET_FALLBACK_KEY in data:
        return SECRET_FALLBACK_KEY
    return min(data)


class KubeClient:
    """kubectl wrapper scoped to one namespace and an optional kubeconfig.

    Args:
        kubeconfig: Kubeconfig path, or empty to use kubectl's default.
        namespace: Namespace for every namespaced call, or empty for the context default.
        runner: Callable running ``kubectl <args>`` and returning (success, stdout, stderr).
        clock: Time source for the secret wait loop.
        cancel: Cancellation token observed by the secret wait loop.
    """

    def __init__(
        self,
        kubeconfig: str = "",
        namespace: str = "",
        *,
        runner: Runner | None = None,
        clock: Clock | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self.kubeconfig = kubeconfig
        self.namespace = namespace
        self._runner = runner or self._run_kubectl
        self._clock = clock
        self._cancel = cancel

    def _run_kubectl(self, args: list[str]) -> tuple[bool, str, str]:
        return run_capture("kubectl", args, env=kubeconfig_env(self.kubeconfig), timeout=KUBECTL_TIMEOUT_SECONDS)

    def _namespaced(self, args: list[str]) -> list[str]:
        if self.namespace:
            return ["-n", self.namespace, *args]
        return args

    def _capture(self, args: list[str]) -> str:
        ok, stdout, stderr = self._runner(args)
        if not ok:
            raise CommandError(
                f"kubectl {' '.join(args)}: {stderr.strip()}",
                command=" ".join(["kubectl", *args]),
                stderr=stderr.strip(),
            )
        return stdout

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def get_secret(self, name: str) -> SecretObject:
        """Fetch a secret by exact name.

        Raises:
            NotFoundError: If the secret does not exist.
            TransportError: On any other kubectl failure or an unparsable response.
        """
        args = self._namespaced(["get", "secret", name, "-o", "json"])
        ok, stdout, stderr = self._runner(args)
        if not ok:
            if _is_not_found(stderr):
                raise NotFoundError(f"secret {name} not found in namespace {self.namespace or '<current>'}")
            raise CommandError(f"kubectl get secret {name}: {stderr.strip()}",
                               command=" ".join(["kubectl", *args]), stderr=stderr.strip())
        try:
            return SecretObject.model_validate_json(stdout)
        except pydantic.ValidationError as err:
            raise TransportError(f"parse secret {name}: {err}") from err

    def list_secrets(self) -> list[SecretObject]:
        """List every secret in the namespace, in the order kubectl returns them."""
        stdout = self._capture(self._namespaced(["get", "secrets", "-o", "json"]))
        try:
            return SecretList.model_validate_json(stdout).items
        except pydantic.ValidationError as err:
            raise TransportError(f"parse secrets list: {err}") from err

    def _find_secret(self, name_pattern: str, pattern: re.Pattern | None, owner: str) -> str | None:
        if _OBJECT_NAME_RE.match(name_pattern):
            try:
                secret = self.get_secret(name_pattern)
            except NotFoundError:
                logger.debug("Secret %s not found by name, listing namespace", name_pattern)
            else:
                if secret.owner_label == owner:
                    return secret.name
        for secret in self.list_secrets():
            if secret.owner_label != owner:
                continue
            if pattern is not None and pattern.search(secret.name):
                return secret.name
            if _FALLBACK_RE.search(secret.name):
                return secret.name
        return None

    def wait_for_secret(self, name_pattern: str, owner: str, timeout: float) -> str:
        """Poll the namespace for a secret owned by cluster *owner*.

        Each cycle tries a direct lookup of *name_pattern* when it is a plain
        object name (a hit still needs the owner label), then lists the
        namespace and takes the first secret, in list order, whose name
        matches *name_pattern* or ``kubeconfig``/``talosconfig`` and whose
        cluster-name label equals *owner*.

        Args:
            name_pattern: Regular expression (and candidate exact name), or empty.
            owner: Expected ``cluster.x-k8s.io/cluster-name`` label value.
            timeout: Seconds to wait; zero or less means 15 minutes.

        Returns:
            The matching secret name.

        Raises:
            ValidationError: If *name_pattern* is not a valid regular expression.
            WaitTimeoutError: If no secret matches before the deadline.
            CancelledError: If the wait is cancelled.
            TransportError: If kubectl fails for any reason other than "not found".
        """
        if timeout <= 0:
            timeout = SECRET_WAIT_FLOOR_SECONDS
        pattern = None
        if name_pattern:
            try:
                pattern = re.compile(name_pattern)
            except re.error as err:
                raise ValidationError(f"compile secret regex {name_pattern!r}: {err}") from err

        return poll(
            lambda: self._find_secret(name_pattern, pattern, owner),
            interval=SECRET_POLL_INTERVAL_SECONDS,
            timeout=timeout,
            description=f"secret like {name_pattern!r} in namespace {self.namespace or '<current>'}",
            clock=self._clock,
            cancel=self._cancel,
        )

    def extract_secret_to_file(self, secret_name: str, preferred_key: str, out_path: str | Path) -> Path:
        """Decode one key of a secret and write it to *out_path* with 0600 permissions.

        Args:
            secret_name: Secret to read.
            preferred_key: Data key to prefer; see ``select_secret_key``.
            out_path: Destination file; parent directories are created.

        Returns:
            The written path.

        Raises:
            ValidationError: If *secret_name* is empty.
            NotFoundError: If the secret is missing or has no data.
            DecodeError: If the payload is not valid base64.
        """
        if not secret_name:
            raise ValidationError("secret name is required")
        secret = self.get_secret(secret_name)
        if not secret.data:
            raise NotFoundError(f"secret {secret_name} has no data")

        key = select_secret_key(secret.data, preferred_key)
        try:
            raw = base64.b64decode(secret.data[key], validate=True)
        except (binascii.Error, ValueError) as err:
            raise DecodeError(f"decode secret {secret_name} key {key}: {err}") from err

        try:
            path = write_private_file(out_path, raw)
        except OSError as err:
            raise TransportError(f"write {out_path}: {err}") from err
        logger.debug("Extracted key %s of secret %s to %s", key, secret_name, path)
        return path

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def control_plane_ips(self) -> list[str]:
        """Return the unique InternalIP addresses of control plane nodes, in node order."""
        stdout = self._capture(["get", "nodes", "-l", LABEL_CONTROL_PLANE, "-o", "json"])
        try:
            nodes = NodeList.model_validate_json(stdout)
        except pydantic.ValidationError as err:
            raise TransportError(f"parse kubectl nodes response: {err}") from err

        ips: list[str] = []
        for node in nodes.items:
            for addr in node.status.addresses:
                if addr.type == "InternalIP" and addr.address and addr.address not in ips:
                    ips.append(addr.address)
        return ips

    def apply(self, path: str) -> None:
        """Stream ``kubectl apply -f <path>`` in the client's namespace."""
        run_streaming("kubectl", [*self._namespaced(["apply", "-f", path])], env=kubeconfig_env(self.kubeconfig))
