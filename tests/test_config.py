"""Tests for cctl.config (precedence, legacy env names, config files)."""

from __future__ import annotations

from pathlib import Path

import pytest

from cctl.config import (
    CapiConfig,
    ClusterConfig,
    KindConfig,
    ProxmoxConfig,
    SecretsConfig,
    build_config,
    read_config_file,
    resolve_settings,
)
from cctl.errors import ValidationError


@pytest.fixture(autouse=True)
def _clean(clean_env):
    yield


class TestDefaults:
    def test_cluster_defaults(self):
        cfg = ClusterConfig()
        assert cfg.name == "coffee-cluster"
        assert cfg.namespace == "default"
        assert cfg.out_dir == "./out"
        assert cfg.cilium_version == "1.16.4"
        assert cfg.kubeconfig_file == Path("./out/kubeconfig-coffee-cluster")
        assert cfg.talosconfig_file == Path("./out/talosconfig-coffee-cluster")

    def test_proxmox_defaults(self):
        cfg = ProxmoxConfig()
        assert cfg.iso_storage == "local"
        assert cfg.schematic_file == ".schematic_id"
        assert cfg.schematic_yaml == "talos-factory-schematic.yaml"
        assert cfg.template_json == "template.json"
        assert cfg.skip_tls_verify is True
        assert cfg.http_timeout == 60

    def test_secrets_default_timeout_is_twenty_minutes(self):
        assert SecretsConfig().timeout == 1200

    def test_capi_defaults(self):
        cfg = CapiConfig()
        assert cfg.core == "cluster-api"
        assert cfg.bootstrap == ["kubeadm"]
        assert cfg.control_plane == ["kubeadm"]
        assert cfg.infrastructure == ["docker"]
        assert cfg.file == "configs/capi/templates/cluster.yaml"

    def test_token_secret_hidden_from_repr(self, monkeypatch):
        monkeypatch.setenv("PROXMOX_SECRET", "s3cr3t")
        assert "s3cr3t" not in repr(ProxmoxConfig())


class TestEnvironment:
    def test_legacy_cluster_names(self, monkeypatch):
        monkeypatch.setenv("CLUSTER", "tea")
        monkeypatch.setenv("NS", "capi")
        monkeypatch.setenv("OUT_DIR", "/tmp/out")
        monkeypatch.setenv("CILIUM_VER", "1.17.0")
        cfg = ClusterConfig()
        assert (cfg.name, cfg.namespace, cfg.out_dir, cfg.cilium_version) == ("tea", "capi", "/tmp/out", "1.17.0")
        assert cfg.kubeconfig_file == Path("/tmp/out/kubeconfig-tea")

    def test_prefixed_name_wins_over_legacy(self, monkeypatch):
        monkeypatch.setenv("CCTL_CLUSTER_NAME", "prefixed")
        monkeypatch.setenv("CLUSTER", "legacy")
        assert ClusterConfig().name == "prefixed"

    def test_legacy_proxmox_names(self, monkeypatch):
        monkeypatch.setenv("PROXMOX_URL", "pve.lan")
        monkeypatch.setenv("PROXMOX_TOKEN", "root@pam!cctl")
        monkeypatch.setenv("PROXMOX_SECRET", "abc")
        monkeypatch.setenv("PVE_NODE", "pve1")
        monkeypatch.setenv("PROXMOX_SKIP_TLS_VERIFY", "false")
        cfg = ProxmoxConfig()
        assert cfg.url == "pve.lan"
        assert cfg.token_id == "root@pam!cctl"
        assert cfg.token_secret == "abc"
        assert cfg.node == "pve1"
        assert cfg.skip_tls_verify is False

    def test_duration_from_env(self, monkeypatch):
        monkeypatch.setenv("CCTL_PROXMOX_HTTP_TIMEOUT", "2m")
        monkeypatch.setenv("CCTL_SECRETS_TIMEOUT", "1h30m")
        assert ProxmoxConfig().http_timeout == 120
        assert SecretsConfig().timeout == 5400

    def test_csv_provider_list_from_env(self, monkeypatch):
        monkeypatch.setenv("CCTL_CAPI_INFRASTRUCTURE", "proxmox, docker")
        assert CapiConfig().infrastructure == ["proxmox", "docker"]

    def test_invalid_duration_rejected(self, monkeypatch):
        monkeypatch.setenv("CCTL_PROXMOX_HTTP_TIMEOUT", "soon")
        with pytest.raises(ValidationError, match="invalid proxmox configuration"):
            build_config(ProxmoxConfig)


class TestPrecedence:
    def test_cli_over_env_over_file_over_default(self, monkeypatch):
        file_values = {"name": "from-file", "namespace": "file-ns", "out_dir": "/file"}
        monkeypatch.setenv("NS", "env-ns")
        cfg = build_config(ClusterConfig, file_values, name="from-cli", out_dir=None)
        assert cfg.name == "from-cli"
        assert cfg.namespace == "env-ns"
        assert cfg.out_dir == "/file"
        assert cfg.cilium_version == "1.16.4"

    def test_none_overrides_are_ignored(self):
        cfg = build_config(KindConfig, None, name=None, config=None)
        assert cfg.name == "dev"

    def test_invalid_value_is_validation_error(self):
        with pytest.raises(ValidationError, match="invalid kind configuration"):
            build_config(KindConfig, {"name": ""})


class TestConfigFile:
    def test_reads_sections_and_normalises_keys(self, tmp_path):
        path = tmp_path / "cctl.yaml"
        path.write_text(
            "cluster:\n"
            "  name: file-cluster\n"
            "  out-dir: /srv/out\n"
            "proxmox:\n"
            "  url: pve.lan\n"
            "  http-timeout: 90s\n"
        )
        data = read_config_file(path)
        assert data["cluster"] == {"name": "file-cluster", "out_dir": "/srv/out"}
        assert build_config(ProxmoxConfig, data["proxmox"]).http_timeout == 90

    def test_json_is_accepted(self, tmp_path):
        path = tmp_path / "cctl.json"
        path.write_text('{"kind": {"name": "json-kind"}}')
        assert read_config_file(path) == {"kind": {"name": "json-kind"}}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError, match="read config"):
            read_config_file(tmp_path / "absent.yaml")

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValidationError, match="must be a mapping"):
            read_config_file(path)

    def test_no_file(self):
        assert read_config_file(None) == {}


class TestResolveSettings:
    def test_resolves_cluster_and_log(self, tmp_path):
        path = tmp_path / "cctl.yaml"
        path.write_text("cluster:\n  name: from-file\nlog:\n  format: json\nkind:\n  name: k\n")
        settings = resolve_settings(config_file=str(path), namespace="ns-cli")
        assert settings.cluster.name == "from-file"
        assert settings.cluster.namespace == "ns-cli"
        assert settings.log.format == "json"
        assert settings.log.debug is False
        assert settings.load(KindConfig).name == "k"
        assert settings.load(KindConfig, name="cli-kind").name == "cli-kind"
        assert not settings.cancel.cancelled

    def test_debug_flag(self):
        assert resolve_settings(debug=True).log.debug is True

    def test_bad_log_format(self):
        with pytest.raises(ValidationError, match="invalid log configuration"):
            resolve_settings(log_format="xml")
