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

"""Talos image factory: schematic upload and ISO download."""

from __future__ import annotations

from pathlib import Path

import pydantic
import requests
from rich.progress import BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn, TransferSpeedColumn

from cctl import console
from cctl.constants import (
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DOWNLOAD_CHUNK_SIZE,
    FACTORY_BODY_LIMIT,
    TALOS_FACTORY_URL,
)
from cctl.errors import DownloadError, FactoryError
from cctl.models import SchematicResponse
from cctl.polling import CancelToken
from cctl.utils import body_snippet


class TalosFactory:
    """Client for the Talos image factory.

    Args:
        timeout: Seconds before a request (or a stalled read) times out.
        session: HTTP session to use, mainly for tests.
        base_url: Factory endpoint.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        base_url: str = TALOS_FACTORY_URL,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")

    def create_schematic(self, definition: bytes) -> str:
        """Upload a schematic definition and return the ID the factory assigns.

        Args:
            definition: Schematic YAML bytes.

        Returns:
            Non-empty schematic ID.

        Raises:
            FactoryError: On transport failure, a non-2xx status, or an empty ID.
        """
        try:
            resp = self.session.post(
                f"{self.base_url}/schematics",
                data=definition,
                headers={"Content-Type": "application/x-yaml"},
                timeout=self.timeout,
            )
        except requests.RequestException as err:
            raise FactoryError(f"talos factory request failed: {err}") from err

        if not resp.ok:
            raise FactoryError(
                f"talos factory returned {resp.status_code} {resp.reason}: "
                f"{body_snippet(resp.content, FACTORY_BODY_LIMIT)}"
            )
        try:
            payload = SchematicResponse.model_validate_json(resp.content)
        except pydantic.ValidationError as err:
            raise FactoryError(f"decode talos factory response: {err}") from err
        if not payload.id:
            raise FactoryError("talos factory response missing id")
        return payload.id

    def image_url(self, schematic_id: str, version: str) -> str:
        """URL of the nocloud amd64 ISO for *schematic_id* at Talos *version*."""
        return f"{self.base_url}/image/{schematic_id}/v{version}/nocloud-amd64.iso"

    def download(self, url: str, dest: Path, cancel: CancelToken | None = None) -> int:
        """Stream *url* into *dest*, showing a progress bar.

        Args:
            url: Image URL.
            dest: Local file to write.
            cancel: Checked before every chunk; the download stops once it fires.

        Returns:
            Number of bytes written.

        Raises:
            DownloadError: On transport failure, a non-2xx status, or a write error.
            CancelledError: If *cancel* fires mid-download.
        """
        try:
            resp = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as err:
            raise DownloadError(f"download request failed: {err}") from err

        try:
            if not resp.ok:
                raise DownloadError(
                    f"download returned {resp.status_code} {resp.reason}: "
                    f"{body_snippet(resp.content, FACTORY_BODY_LIMIT)}"
                )
            total = int(resp.headers.get("Content-Length") or 0) or None
            written = 0
            with Progress(
                SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                BarColumn(), DownloadColumn(), TransferSpeedColumn(), console=console,
            ) as progress, open(dest, "wb") as out:
                task = progress.add_task(f"[cyan]{dest.name}", total=total)
                for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if cancel is not None:
                        cancel.check("download talos iso")
                    out.write(chunk)
                    written += len(chunk)
                    progress.advance(task, len(chunk))
            return written
        except requests.RequestException as err:
            raise DownloadError(f"read download body: {err}") from err
        except OSError as err:
            raise DownloadError(f"write {dest}: {err}") from err
        finally:
            resp.close()
