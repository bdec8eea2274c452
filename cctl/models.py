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

"""Typed views of kubectl, Talos factory, and Proxmox payloads."""

from __future__ import annotations

import json

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from cctl.constants import LABEL_CLUSTER_NAME
from cctl.errors import ValidationError


# ============================================================================
# kubectl responses
# ============================================================================

class ObjectMeta(BaseModel):
    """Subset of Kubernetes object metadata."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)


class SecretObject(BaseModel):
    """A Kubernetes Secret as returned by ``kubectl get secret -o json``.

    Attributes:
        metadata: Object name and labels.
        data: Mapping of key to base64 payload.
    """

    model_config = ConfigDict(extra="ignore")

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    data: dict[str, str] = Field(default_factory=dict)

    @pydantic.field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value):
        return value or {}

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def owner_label(self) -> str:
        return self.metadata.labels.get(LABEL_CLUSTER_NAME, "")


class SecretList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[SecretObject] = Field(default_factory=list)


class NodeAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = ""
    address: str = ""


class NodeStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    addresses: list[NodeAddress] = Field(default_factory=list)


class Node(BaseModel):
    model_config = ConfigDict(extra="ignore")

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: NodeStatus = Field(default_factory=NodeStatus)


class NodeList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[Node] = Field(default_factory=list)


# ============================================================================
# Talos image factory
# ============================================================================

class SchematicResponse(BaseModel):
    """Body of a ``POST /schematics`` response."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""


# ============================================================================
# Proxmox VM template descriptor
# ============================================================================

class VMDescriptor(BaseModel):
    """VM identity parsed from a template JSON payload.

    The payload itself is forwarded untouched to the create call.

    Attributes:
        vmid: Proxmox VM identifier.
        name: VM name.
        raw_payload: Original JSON bytes.
    """

    model_config = ConfigDict(frozen=True)

    vmid: int = Field(gt=0)
    name: str = Field(min_length=1)
    raw_payload: bytes = b""


def parse_descriptor(payload: bytes) -> VMDescriptor:
    """Parse and validate a VM template payload.

    Args:
        payload: Template JSON bytes.

    Returns:
        The validated descriptor, carrying *payload* as ``raw_payload``.

    Raises:
        ValidationError: If the JSON is malformed, or vmid/name are missing or invalid.
    """
    try:
        meta = json.loads(payload)
    except ValueError as err:
        raise ValidationError(f"parse template json: {err}") from err
    if not isinstance(meta, dict):
        raise ValidationError("parse template json: expected a JSON object")
    if meta.get("vmid") in (None, ""):
        raise ValidationError("template json missing vmid")
    if not meta.get("name"):
        raise ValidationError("template json missing name")
    if isinstance(meta["vmid"], bool):
        raise ValidationError("vmid is not a number")
    try:
        return VMDescriptor(vmid=meta["vmid"], name=meta["name"], raw_payload=payload)
    except pydantic.ValidationError as err:
        problems = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in err.errors())
        raise ValidationError(f"invalid template json: {problems}") from err
