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

"""Proxmox VM template lifecycle: replace, create, settle, convert."""

from __future__ import annotations

from pathlib import Path

from rich.panel import Panel

from cctl import console, logger
from cctl.constants import (
    VM_CREATE_SETTLE_SECONDS,
    VM_DELETE_POLL_INTERVAL_SECONDS,
    VM_DELETE_TIMEOUT_SECONDS,
)
from cctl.errors import CctlError, ConflictError, ValidationError, WaitTimeoutError
from cctl.models import VMDescriptor, parse_descriptor
from cctl.polling import CancelToken, Clock, SystemClock, poll, sleep_checked
from cctl.proxmox import ProxmoxClient


def load_descriptor(path: str | Path) -> VMDescriptor:
    """Read and parse the template JSON at *path*.

    Raises:
        ValidationError: If the file cannot be read or does not describe a VM.
    """
    try:
        payload = Path(path).read_bytes()
    except OSError as err:
        raise ValidationError(f"read template json: {err}") from err
    return parse_descriptor(payload)


def wait_for_vm_deletion(
    client: ProxmoxClient,
    vmid: int,
    *,
    clock: Clock | None = None,
    cancel: CancelToken | None = None,
    timeout: float = VM_DELETE_TIMEOUT_SECONDS,
) -> None:
    """Poll once per second, starting one second after the delete, until *vmid* is gone.

    Raises:
        ConflictError: If the VM still exists when *timeout* expires.
        CancelledError: If *cancel* fires.
        ApiError: If an existence check returns an unexpected status.
    """
    try:
        poll(
            lambda: True if not client.vm_exists(vmid) else None,
            interval=VM_DELETE_POLL_INTERVAL_SECONDS,
            timeout=timeout,
            description=f"vm {vmid} deletion",
            clock=clock,
            cancel=cancel,
            delay_first=True,
        )
    except WaitTimeoutError as err:
        raise ConflictError(f"vm {vmid} still exists: {err}") from err


def create_template(
    descriptor: VMDescriptor,
    client: ProxmoxClient,
    *,
    clock: Clock | None = None,
    cancel: CancelToken | None = None,
) -> None:
    """Create the VM described by *descriptor* and convert it into a template.

    An existing VM with the same ID is deleted first, and creation waits
    until Proxmox no longer reports it. Nothing here is retried except that
    deletion check.

    Args:
        descriptor: VM ID, name and the JSON payload forwarded to Proxmox.
        client: Proxmox client for the target node.
        clock: Time source for the deletion poll and the settle delay.
        cancel: Cancellation token observed while waiting.

    Raises:
        ValidationError: If the descriptor has no ID or name.
        ConflictError: If the previous VM is not gone within 90 seconds.
        TransportError: If a Proxmox call fails.
    """
    if descriptor.vmid <= 0 or not descriptor.name:
        raise ValidationError("template descriptor requires vmid and name")
    clock = clock or SystemClock()
    vmid = descriptor.vmid

    console.print(Panel.fit(f"Creating template {descriptor.name} ({vmid})", style="bold blue"))

    try:
        exists = client.vm_exists(vmid)
    except CctlError as err:
        raise err.with_operation("check vm exists")

    if exists:
        console.print(f"[yellow]\u26a0\ufe0f  VM {vmid} already exists; deleting before template creation[/yellow]")
        try:
            client.delete_vm(vmid)
        except CctlError as err:
            raise err.with_operation(f"delete vm {vmid}")
        try:
            wait_for_vm_deletion(client, vmid, clock=clock, cancel=cancel)
        except CctlError as err:
            raise err.with_operation("wait for vm deletion")
        console.print(f"[green]\u2705 VM {vmid} deleted[/green]")

    logger.info("Creating Proxmox VM from template descriptor", extra={"vmid": vmid, "vm_name": descriptor.name})
    try:
        client.create_vm(descriptor.raw_payload)
    except CctlError as err:
        raise err.with_operation("create vm")

    # Proxmox rejects a convert issued right after create.
    sleep_checked(clock, VM_CREATE_SETTLE_SECONDS, cancel, "settle after vm create")

    try:
        client.convert_to_template(vmid)
    except CctlError as err:
        raise err.with_operation(f"convert vm {vmid} to template")

    console.print(f"[green]\u2705 Template {descriptor.name} ({vmid}) created[/green]")
