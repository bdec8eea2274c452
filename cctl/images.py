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

"""Talos ISO download and upload into Proxmox storage."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from cctl import console, logger
from cctl.errors import CctlError, TransportError, UploadError, ValidationError
from cctl.factory import TalosFactory
from cctl.polling import CancelToken
from cctl.proxmox import ProxmoxClient
from cctl.schematic import SchematicCache


def normalize_version(version: str) -> str:
    """Strip whitespace and a leading ``v`` so ``v1.11.2`` and ``1.11.2`` agree."""
    version = version.strip()
    if version[:1] in ("v", "V"):
        version = version[1:]
    return version


def iso_filename(version: str) -> str:
    return f"talos-{version}-nocloud-amd64.iso"


def materialize_and_upload(
    schematic_id: str,
    version: str,
    factory: TalosFactory,
    proxmox: ProxmoxClient,
    cancel: CancelToken | None = None,
) -> str:
    """Download the Talos ISO for *schematic_id* and upload it to Proxmox.

    The ISO is staged in a temporary file which is removed whether or not the
    upload succeeds.

    Args:
        schematic_id: Image factory schematic ID.
        version: Talos version without the ``v`` prefix.
        factory: Image factory client.
        proxmox: Proxmox client holding the target node and storage.
        cancel: Checked during the download and again before the upload.

    Returns:
        The file name the ISO was uploaded as.

    Raises:
        DownloadError: If the download fails.
        UploadError: If Proxmox rejects the upload or cannot be reached.
        CancelledError: If *cancel* fires; the staged file is still removed.
    """
    url = factory.image_url(schematic_id, version)
    filename = iso_filename(version)

    with tempfile.NamedTemporaryFile(prefix="talos-", suffix=".iso", delete=False) as tmp:
        staged = Path(tmp.name)
    try:
        logger.info("Downloading Talos ISO", extra={"schematic_id": schematic_id, "version": version, "url": url})
        size = factory.download(url, staged, cancel=cancel)
        logger.debug("Downloaded %d bytes to %s", size, staged)
        if cancel is not None:
            cancel.check("upload iso")

        logger.info(
            "Uploading ISO to Proxmox",
            extra={"node": proxmox.node, "storage": proxmox.iso_storage, "file": filename},
        )
        try:
            proxmox.upload_iso(staged, filename)
        except TransportError as err:
            raise UploadError(f"upload iso to proxmox: {err}") from err
        except OSError as err:
            raise UploadError(f"open staged iso {staged}: {err}") from err
    finally:
        try:
            os.remove(staged)
        except FileNotFoundError:
            pass
        except OSError as err:
            logger.warning("Failed to remove temporary ISO %s: %s", staged, err)
    return filename


def get_talos_image(
    version: str,
    cache: SchematicCache,
    factory: TalosFactory,
    proxmox: ProxmoxClient,
    cancel: CancelToken | None = None,
) -> str:
    """Resolve the schematic ID, then download and upload the matching ISO.

    Raises:
        ValidationError: If *version* is empty.
    """
    version = normalize_version(version)
    if not version:
        raise ValidationError("talos version is required (e.g. --version 1.11.2)")

    try:
        schematic_id = cache.ensure()
    except CctlError as err:
        raise err.with_operation("ensure schematic")

    try:
        filename = materialize_and_upload(schematic_id, version, factory, proxmox, cancel=cancel)
    except CctlError as err:
        raise err.with_operation("download talos iso")
    console.print(f"[green]\u2705 Uploaded {filename} to {proxmox.node}:{proxmox.iso_storage}[/green]")
    return filename
