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

"""Configuration classes, config file loading, and resolved settings.

Precedence for every value is CLI option, then environment, then config
file, then default. Environment variables use the ``CCTL_<SECTION>_<FIELD>``
form; the names the original shell scripts exported are accepted too.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, ClassVar, TypeVar

import pydantic
import yaml
from pydantic import AliasChoices, BeforeValidator, Field
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from cctl.constants import (
    DEFAULT_CAPI_BOOTSTRAP,
    DEFAULT_CAPI_CONTROL_PLANE,
    DEFAULT_CAPI_CORE,
    DEFAULT_CAPI_INFRASTRUCTURE,
    DEFAULT_CAPI_MANIFEST,
    DEFAULT_CILIUM_VERSION,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_CLUSTERCTL_CONFIG,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_ISO_STORAGE,
    DEFAULT_KIND_CONFIG,
    DEFAULT_KIND_NAME,
    DEFAULT_NAMESPACE,
    DEFAULT_OUT_DIR,
    DEFAULT_SCHEMATIC_FILE,
    DEFAULT_SCHEMATIC_YAML,
    DEFAULT_SECRET_TIMEOUT_SECONDS,
    DEFAULT_TEMPLATE_JSON,
)
from cctl.errors import ValidationError
from cctl.polling import CancelToken
from cctl.utils import parse_duration


def _duration(value: Any) -> float:
    try:
        return parse_duration(value)
    except ValidationError as err:
        raise ValueError(str(err)) from err


def _csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


Duration = Annotated[float, BeforeValidator(_duration)]
CsvList = Annotated[list[str], NoDecode, BeforeValidator(_csv)]


def _env(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """Cluster API workload cluster settings.

    Attributes:
        name: Workload cluster name, also the secret owner label value.
        namespace: Namespace holding the Cluster API objects.
        out_dir: Directory for generated artifacts.
        kubeconfig_path: Workload kubeconfig path, empty for ``<out>/kubeconfig-<name>``.
        talosconfig_path: Talosconfig path, empty for ``<out>/talosconfig-<name>``.
        cilium_version: Cilium Helm chart version.
    """

    section: ClassVar[str] = "cluster"
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(default=DEFAULT_CLUSTER_NAME, min_length=1,
                      validation_alias=_env("CCTL_CLUSTER_NAME", "CLUSTER"))
    namespace: str = Field(default=DEFAULT_NAMESPACE, validation_alias=_env("CCTL_CLUSTER_NAMESPACE", "NS"))
    out_dir: str = Field(default=DEFAULT_OUT_DIR, validation_alias=_env("CCTL_CLUSTER_OUT_DIR", "OUT_DIR"))
    kubeconfig_path: str = Field(default="",
                                 validation_alias=_env("CCTL_CLUSTER_KUBECONFIG_PATH", "KUBECONFIG_PATH"))
    talosconfig_path: str = Field(default="",
                                  validation_alias=_env("CCTL_CLUSTER_TALOSCONFIG_PATH", "TALOSCONFIG_PATH"))
    cilium_version: str = Field(default=DEFAULT_CILIUM_VERSION,
                                validation_alias=_env("CCTL_CLUSTER_CILIUM_VERSION", "CILIUM_VER"))

    @property
    def kubeconfig_file(self) -> Path:
        if self.kubeconfig_path:
            return Path(self.kubeconfig_path)
        return Path(self.out_dir) / f"kubeconfig-{self.name}"

    @property
    def talosconfig_file(self) -> Path:
        if self.talosconfig_path:
            return Path(self.talosconfig_path)
        return Path(self.out_dir) / f"talosconfig-{self.name}"


class KindConfig(BaseSettings):
    """kind cluster settings, auto-loaded from CCTL_KIND_* env vars."""

    section: ClassVar[str] = "kind"
    model_config = SettingsConfigDict(env_prefix="CCTL_KIND_", extra="ignore")

    name: str = Field(default=DEFAULT_KIND_NAME, min_length=1)
    config: str = DEFAULT_KIND_CONFIG


class CapiConfig(BaseSettings):
    """Cluster API provider and manifest settings, auto-loaded from CCTL_CAPI_* env vars.

    Attributes:
        clusterctl_config: Path to clusterctl.yaml.
        core: Core provider.
        bootstrap: Bootstrap providers.
        control_plane: Control plane providers.
        infrastructure: Infrastructure providers.
        kubeconfig: Kubeconfig of the management cluster, or empty for the default.
        file: Manifest file or directory applied by ``capi deploy``.
        namespace: Namespace the manifests are applied to.
    """

    section: ClassVar[str] = "capi"
    model_config = SettingsConfigDict(env_prefix="CCTL_CAPI_", extra="ignore")

    clusterctl_config: str = DEFAULT_CLUSTERCTL_CONFIG
    core: str = DEFAULT_CAPI_CORE
    bootstrap: CsvList = Field(default_factory=lambda: list(DEFAULT_CAPI_BOOTSTRAP))
    control_plane: CsvList = Field(default_factory=lambda: list(DEFAULT_CAPI_CONTROL_PLANE))
    infrastructure: CsvList = Field(default_factory=lambda: list(DEFAULT_CAPI_INFRASTRUCTURE))
    kubeconfig: str = ""
    file: str = DEFAULT_CAPI_MANIFEST
    namespace: str = DEFAULT_NAMESPACE


class ProxmoxConfig(BaseSettings):
    """Proxmox API and Talos factory settings.

    Attributes:
        url: Proxmox host or IP without scheme.
        token_id: PVEAPIToken token ID (``user@realm!name``).
        token_secret: PVEAPIToken secret.
        node: Proxmox node name.
        iso_storage: Storage target for ISO uploads.
        schematic_file: Path of the cached schematic ID.
        schematic_yaml: Talos factory schematic YAML input.
        template_json: VM template payload.
        skip_tls_verify: Whether to skip TLS verification for Proxmox calls.
        http_timeout: Seconds before an HTTP request times out.
    """

    section: ClassVar[str] = "proxmox"
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    url: str = Field(default="", validation_alias=_env("CCTL_PROXMOX_URL", "PROXMOX_URL"))
    token_id: str = Field(default="", validation_alias=_env("CCTL_PROXMOX_TOKEN_ID", "PROXMOX_TOKEN"))
    token_secret: str = Field(default="", repr=False,
                              validation_alias=_env("CCTL_PROXMOX_TOKEN_SECRET", "PROXMOX_SECRET"))
    node: str = Field(default="", validation_alias=_env("CCTL_PROXMOX_NODE", "PVE_NODE"))
    iso_storage: str = Field(default=DEFAULT_ISO_STORAGE,
                             validation_alias=_env("CCTL_PROXMOX_ISO_STORAGE", "PROXMOX_ISO_STORAGE"))
    schematic_file: str = Field(default=DEFAULT_SCHEMATIC_FILE,
                                validation_alias=_env("CCTL_PROXMOX_SCHEMATIC_FILE", "SCHEMATIC_FILE"))
    schematic_yaml: str = Field(default=DEFAULT_SCHEMATIC_YAML,
                                validation_alias=_env("CCTL_PROXMOX_SCHEMATIC_YAML", "TALOS_SCHEMATIC_YAML"))
    template_json: str = Field(default=DEFAULT_TEMPLATE_JSON,
                               validation_alias=_env("CCTL_PROXMOX_TEMPLATE_JSON", "TEMPLATE_JSON"))
    skip_tls_verify: bool = Field(default=True,
                                  validation_alias=_env("CCTL_PROXMOX_SKIP_TLS_VERIFY", "PROXMOX_SKIP_TLS_VERIFY"))
    http_timeout: Duration = Field(default=DEFAULT_HTTP_TIMEOUT_SECONDS, gt=0,
                                   validation_alias=_env("CCTL_PROXMOX_HTTP_TIMEOUT"))


class SecretsConfig(BaseSettings):
    """Secret wait settings, auto-loaded from CCTL_SECRETS_* env vars."""

    section: ClassVar[str] = "secrets"
    model_config = SettingsConfigDict(env_prefix="CCTL_SECRETS_", extra="ignore")

    timeout: Duration = DEFAULT_SECRET_TIMEOUT_SECONDS


class LogConfig(BaseSettings):
    """Logging settings, auto-loaded from CCTL_DEBUG and CCTL_LOG_FORMAT."""

    section: ClassVar[str] = "log"
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    debug: bool = Field(default=False, validation_alias=_env("CCTL_DEBUG"))
    format: str = Field(default="console", pattern=r"^(?i:console|json)$",
                        validation_alias=_env("CCTL_LOG_FORMAT"))


# ============================================================================
# Loading
# ============================================================================

S = TypeVar("S", bound=BaseSettings)


def read_config_file(path: str | Path | None) -> dict[str, dict[str, Any]]:
    """Read a YAML (or JSON) config file into per-section mappings.

    Args:
        path: Config file path, or None/empty for no file.

    Returns:
        Mapping of section name to that section's values.

    Raises:
        ValidationError: If the file cannot be read or is not a mapping of mappings.
    """
    if not path:
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as err:
        raise ValidationError(f"read config {path}: {err}") from err
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"read config {path}: top level must be a mapping")
    sections: dict[str, dict[str, Any]] = {}
    for name, values in data.items():
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ValidationError(f"read config {path}: section '{name}' must be a mapping")
        sections[str(name)] = {str(k).replace("-", "_"): v for k, v in values.items()}
    return sections


def build_config(cls: type[S], file_values: Mapping[str, Any] | None = None, **overrides: Any) -> S:
    """Build a settings object honouring CLI > env > file > default precedence.

    Args:
        cls: Settings class to instantiate.
        file_values: Values for this section read from the config file.
        **overrides: CLI values; None means "not given".

    Returns:
        The validated settings object.

    Raises:
        ValidationError: If any value fails validation.
    """
    cli = {key: value for key, value in overrides.items() if value is not None}
    try:
        from_env = cls()
        from_file = {
            key: value for key, value in (file_values or {}).items()
            if key not in from_env.model_fields_set
        }
        if not from_file and not cli:
            return from_env
        return cls(**{**from_file, **cli})
    except pydantic.ValidationError as err:
        problems = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in err.errors())
        raise ValidationError(f"invalid {cls.section} configuration: {problems}") from err


# ============================================================================
# Resolved settings
# ============================================================================

@dataclass(frozen=True)
class Settings:
    """Settings resolved once by the root command and passed to every subcommand.

    Attributes:
        cluster: Workload cluster settings.
        log: Logging settings.
        file_data: Raw config file sections, for configs built by subcommands.
        cancel: Set by the signal handlers; observed by every wait loop.
    """

    cluster: ClusterConfig
    log: LogConfig
    file_data: dict[str, dict[str, Any]] = field(default_factory=dict)
    cancel: CancelToken = field(default_factory=CancelToken, compare=False)

    def load(self, cls: type[S], **overrides: Any) -> S:
        """Build a section config from this settings' config file plus CLI overrides."""
        return build_config(cls, self.file_data.get(cls.section), **overrides)


def resolve_settings(
    *,
    config_file: str | None = None,
    debug: bool | None = None,
    log_format: str | None = None,
    cluster_name: str | None = None,
    namespace: str | None = None,
    out_dir: str | None = None,
    kubeconfig_path: str | None = None,
    talosconfig_path: str | None = None,
) -> Settings:
    """Resolve root-level settings from CLI values, environment, and config file.

    Args:
        config_file: Optional YAML/JSON config file.
        debug: CLI ``--debug`` value, or None.
        log_format: CLI ``--log-format`` value, or None.
        cluster_name: CLI ``--cluster-name`` override, or None.
        namespace: CLI ``--namespace`` override, or None.
        out_dir: CLI ``--out-dir`` override, or None.
        kubeconfig_path: CLI ``--kubeconfig-path`` override, or None.
        talosconfig_path: CLI ``--talosconfig-path`` override, or None.

    Returns:
        Resolved settings.
    """
    file_data = read_config_file(config_file)
    cluster = build_config(
        ClusterConfig, file_data.get(ClusterConfig.section),
        name=cluster_name,
        namespace=namespace,
        out_dir=out_dir,
        kubeconfig_path=kubeconfig_path,
        talosconfig_path=talosconfig_path,
    )
    log = build_config(LogConfig, file_data.get(LogConfig.section), debug=debug, format=log_format)
    return Settings(cluster=cluster, log=log, file_data=file_data)
