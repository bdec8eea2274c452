"""Tests for cctl.images (ISO staging and upload)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from cctl.errors import ApiError, CancelledError, DownloadError, FactoryError, UploadError, ValidationError
from cctl.images import get_talos_image, iso_filename, materialize_and_upload, normalize_version
from cctl.polling import CancelToken


@pytest.fixture
def staged():
    """Records every path the factory downloads into."""
    return []


@pytest.fixture
def factory(staged):
    f = MagicMock()
    f.image_url.side_effect = lambda sid, ver: f"https://factory.talos.dev/image/{sid}/v{ver}/nocloud-amd64.iso"

    def _download(url, dest, cancel=None):
        staged.append(Path(dest))
        Path(dest).write_bytes(b"ISO")
        return 3

    f.download.side_effect = _download
    return f


@pytest.fixture
def proxmox():
    p = MagicMock()
    p.node = "pve1"
    p.iso_storage = "local"
    return p


class TestNaming:
    @pytest.mark.parametrize("raw", ["1.11.2", "v1.11.2", " v1.11.2 "])
    def test_normalize_version(self, raw):
        assert normalize_version(raw) == "1.11.2"

    def test_iso_filename(self):
        assert iso_filename("1.11.2") == "talos-1.11.2-nocloud-amd64.iso"


@pytest.mark.usefixtures("configured_logging")
class TestMaterializeAndUpload:
    def test_uploads_and_removes_staged_file(self, factory, proxmox, staged):
        name = materialize_and_upload("abc", "1.11.2", factory, proxmox)
        assert name == "talos-1.11.2-nocloud-amd64.iso"
        factory.download.assert_called_once()
        assert factory.download.call_args.args[0] == "https://factory.talos.dev/image/abc/v1.11.2/nocloud-amd64.iso"
        proxmox.upload_iso.assert_called_once_with(staged[0], "talos-1.11.2-nocloud-amd64.iso")
        assert staged[0].name.startswith("talos-")
        assert staged[0].suffix == ".iso"
        assert not staged[0].exists()

    def test_upload_failure_removes_staged_file(self, factory, proxmox, staged):
        proxmox.upload_iso.side_effect = ApiError("proxmox API POST upload returned 500", status_code=500)
        with pytest.raises(UploadError, match="upload iso to proxmox: proxmox API POST upload returned 500"):
            materialize_and_upload("abc", "1.11.2", factory, proxmox)
        assert not staged[0].exists()

    def test_download_failure_skips_upload(self, factory, proxmox, staged):
        def _fail(url, dest, cancel=None):
            staged.append(Path(dest))
            raise DownloadError("download returned 404 Not Found: no such image")

        factory.download.side_effect = _fail
        with pytest.raises(DownloadError, match="404"):
            materialize_and_upload("abc", "9.9.9", factory, proxmox)
        proxmox.upload_iso.assert_not_called()
        assert not staged[0].exists()

    def test_cancel_during_download_skips_upload(self, factory, proxmox, staged):
        token = CancelToken()

        def _interrupted(url, dest, cancel=None):
            staged.append(Path(dest))
            Path(dest).write_bytes(b"IS")
            token.cancel()
            return 2

        factory.download.side_effect = _interrupted
        with pytest.raises(CancelledError, match="upload iso cancelled"):
            materialize_and_upload("abc", "1.11.2", factory, proxmox, cancel=token)
        assert factory.download.call_args.kwargs["cancel"] is token
        proxmox.upload_iso.assert_not_called()
        assert not staged[0].exists()


@pytest.mark.usefixtures("configured_logging")
class TestGetTalosImage:
    def test_uses_cached_schematic(self, factory, proxmox):
        cache = MagicMock()
        cache.ensure.return_value = "abc"
        assert get_talos_image("v1.11.2", cache, factory, proxmox) == "talos-1.11.2-nocloud-amd64.iso"
        factory.image_url.assert_called_once_with("abc", "1.11.2")

    def test_empty_version(self, factory, proxmox):
        cache = MagicMock()
        with pytest.raises(ValidationError, match="talos version is required"):
            get_talos_image("  ", cache, factory, proxmox)
        cache.ensure.assert_not_called()
        factory.download.assert_not_called()

    def test_schematic_failure_is_prefixed(self, factory, proxmox):
        cache = MagicMock()
        cache.ensure.side_effect = FactoryError("talos factory returned 500 Internal Server Error: boom")
        with pytest.raises(FactoryError, match="^ensure schematic: talos factory returned 500"):
            get_talos_image("1.11.2", cache, factory, proxmox)
        factory.download.assert_not_called()

    def test_missing_schematic_yaml_is_prefixed(self, factory, proxmox):
        cache = MagicMock()
        cache.ensure.side_effect = ValidationError("read schematic yaml: no such file")
        with pytest.raises(ValidationError, match="^ensure schematic: read schematic yaml"):
            get_talos_image("1.11.2", cache, factory, proxmox)

    def test_upload_failure_is_prefixed(self, factory, proxmox):
        cache = MagicMock()
        cache.ensure.return_value = "abc"
        proxmox.upload_iso.side_effect = ApiError("proxmox API POST returned 500", status_code=500)
        with pytest.raises(UploadError, match="^download talos iso: upload iso to proxmox: "):
            get_talos_image("1.11.2", cache, factory, proxmox)

    def test_cancel_is_forwarded(self, factory, proxmox):
        cache = MagicMock()
        cache.ensure.return_value = "abc"
        token = CancelToken()
        get_talos_image("1.11.2", cache, factory, proxmox, cancel=token)
        assert factory.download.call_args.kwargs["cancel"] is token
