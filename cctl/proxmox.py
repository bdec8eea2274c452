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

"""Proxmox VE REST API calls used by the template and ISO workflows."""

from __future__ import annotations

from pathlib import Path

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from cctl import logger
from cctl.config import ProxmoxConfig
from cctl.constants import API_BODY_LIMIT, EXISTS_BODY_LIMIT, PROXMOX_API_PATH, PROXMOX_API_PORT
from cctl.errors import ApiError, TransportError, ValidationError
from cctl.utils import body_snippet


def _api_error(resp: requests.Response, method: str, path: str, limit: int) -> ApiError:
    body = body_snippet(resp.content, limit)
    return ApiError(
        f"proxmox API {method} {PROXMOX_API_PATH}{path} returned {resp.status_code} {resp.reason}: {body}",
        status_code=resp.status_code,
        body=body,
    )


class ProxmoxClient:
    """Token-authenticated client for one Proxmox node.

    Args:
        cfg: Proxmox settings; URL, token ID, token secret and node are required.
        session: HTTP session to use, mainly for tests.

    Raises:
        ValidationError: If a required setting is empty.
    """

    def __init__(self, cfg: ProxmoxConfig, session: requests.Session | None = None) -> None:
        for value, label in (
            (cfg.url, "proxmox URL"),
            (cfg.token_id, "proxmox token ID"),
            (cfg.token_secret, "proxmox token secret"),
            (cfg.node, "proxmox node"),
        ):
            if not value:
                raise ValidationError(f"{label} is required")

        self.base_url = f"https://{cfg.url}:{PROXMOX_API_PORT}{PROXMOX_API_PATH}"
        self.node = cfg.node
        self.iso_storage = cfg.iso_storage
        self.timeout = cfg.http_timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"PVEAPIToken={cfg.token_id}={cfg.token_secret}",
            "Accept": "application/json",
        })
        self.session.verify = not cfg.skip_tls_verify
        if cfg.skip_tls_verify:
            urllib3.disable_warnings(InsecureRequestWarning)

    def _request(self, method: str, path: str, operation: str, **kwargs) -> requests.Response:
        logger.debug("proxmox %s %s", method, path)
        try:
            return self.session.request(method, self.base_url + path, timeout=self.timeout, **kwargs)
        except requests.RequestException as err:
            raise TransportError(f"{operation} request failed: {err}") from err

    def _call(self, method: str, path: str, operation: str, **kwargs) -> requests.Response:
        resp = self._request(method, path, operation, **kwargs)
        if not resp.ok:
            raise _api_error(resp, method, path, API_BODY_LIMIT)
        return resp

    def vm_exists(self, vmid: int) -> bool:
        """Report whether *vmid* exists on the node.

        Raises:
            ApiError: If the status is neither 200 nor 404.
        """
        path = f"/nodes/{self.node}/qemu/{vmid}/config"
        resp = self._request("GET", path, "check vm")
        if resp.status_code == 200:
            return True
        if resp.status_code == 404:
            return False
        raise _api_error(resp, "GET", path, EXISTS_BODY_LIMIT).with_operation("vm existence check")

    def delete_vm(self, vmid: int) -> None:
        self._call("DELETE", f"/nodes/{self.node}/qemu/{vmid}", "delete vm")

    def create_vm(self, payload: bytes) -> None:
        self._call(
            "POST", f"/nodes/{self.node}/qemu", "create vm",
            data=payload, headers={"Content-Type": "application/json"},
        )

    def convert_to_template(self, vmid: int) -> None:
        self._call("POST", f"/nodes/{self.node}/qemu/{vmid}/template", "convert to template")

    def upload_iso(self, local_path: Path, filename: str) -> None:
        """Upload a local ISO into the configured storage as *filename*."""
        with open(local_path, "rb") as fh:
            self._call(
                "POST", f"/nodes/{self.node}/storage/{self.iso_storage}/upload", "upload iso",
                data={"content": "iso"},
                files={"filename": (filename, fh, "application/octet-stream")},
            )
