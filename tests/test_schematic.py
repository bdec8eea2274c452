"""Tests for cctl.factory and cctl.schematic."""

from __future__ import annotations

import stat
from unittest.mock import MagicMock

import pytest
import requests

from cctl.errors import CancelledError, DownloadError, FactoryError, NotCachedError, ValidationError
from cctl.factory import TalosFactory
from cctl.polling import CancelToken
from cctl.schematic import SchematicCache

SCHEMATIC_YAML = b"customization:\n  systemExtensions:\n    officialExtensions:\n      - siderolabs/qemu-guest-agent\n"


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def factory(session) -> TalosFactory:
    return TalosFactory(timeout=15, session=session)


@pytest.fixture
def cache(tmp_path, factory) -> SchematicCache:
    yaml_path = tmp_path / "talos-factory-schematic.yaml"
    yaml_path.write_bytes(SCHEMATIC_YAML)
    return SchematicCache(tmp_path / ".schematic_id", yaml_path, factory)


class TestTalosFactory:
    def test_create_schematic_posts_yaml(self, factory, session, http_response):
        session.post.return_value = http_response(201, '{"id": "376567988ad370138ad8b2698212367b"}')
        assert factory.create_schematic(SCHEMATIC_YAML) == "376567988ad370138ad8b2698212367b"
        call = session.post.call_args
        assert call.args == ("https://factory.talos.dev/schematics",)
        assert call.kwargs["data"] == SCHEMATIC_YAML
        assert call.kwargs["headers"] == {"Content-Type": "application/x-yaml"}
        assert call.kwargs["timeout"] == 15

    def test_non_2xx_includes_body_snippet(self, factory, session, http_response):
        session.post.return_value = http_response(400, "invalid schematic: " + "z" * 3000, reason="Bad Request")
        with pytest.raises(FactoryError, match="400 Bad Request: invalid schematic") as excinfo:
            factory.create_schematic(SCHEMATIC_YAML)
        assert len(str(excinfo.value)) < 1200

    def test_empty_id_is_fatal(self, factory, session, http_response):
        session.post.return_value = http_response(200, '{"id": ""}')
        with pytest.raises(FactoryError, match="missing id"):
            factory.create_schematic(SCHEMATIC_YAML)

    def test_unparsable_response(self, factory, session, http_response):
        session.post.return_value = http_response(200, "<html>")
        with pytest.raises(FactoryError, match="decode"):
            factory.create_schematic(SCHEMATIC_YAML)

    def test_transport_failure(self, factory, session):
        session.post.side_effect = requests.Timeout("read timed out")
        with pytest.raises(FactoryError, match="read timed out"):
            factory.create_schematic(SCHEMATIC_YAML)

    def test_image_url(self, factory):
        assert factory.image_url("abc", "1.11.2") == "https://factory.talos.dev/image/abc/v1.11.2/nocloud-amd64.iso"

    def test_download_streams_to_file(self, factory, session, http_response, tmp_path):
        resp = http_response(200, headers={"Content-Length": "6"})
        resp.iter_content.return_value = iter([b"abc", b"def"])
        session.get.return_value = resp
        dest = tmp_path / "talos.iso"
        assert factory.download("https://factory.talos.dev/image/abc/v1.11.2/nocloud-amd64.iso", dest) == 6
        assert dest.read_bytes() == b"abcdef"
        assert session.get.call_args.kwargs["stream"] is True
        resp.close.assert_called_once()

    def test_download_non_2xx(self, factory, session, http_response, tmp_path):
        session.get.return_value = http_response(404, "no such version")
        with pytest.raises(DownloadError, match="404 Not Found: no such version"):
            factory.download("https://factory.talos.dev/image/abc/v9.9.9/nocloud-amd64.iso", tmp_path / "x.iso")
        assert not (tmp_path / "x.iso").exists()

    def test_download_stops_when_cancelled(self, factory, session, http_response, tmp_path):
        token = CancelToken()

        def _chunks():
            yield b"abc"
            token.cancel()
            yield b"def"

        resp = http_response(200)
        resp.iter_content.return_value = _chunks()
        session.get.return_value = resp
        dest = tmp_path / "talos.iso"
        with pytest.raises(CancelledError, match="download talos iso cancelled"):
            factory.download("https://factory.talos.dev/image/abc/v1.11.2/nocloud-amd64.iso", dest, cancel=token)
        assert dest.read_bytes() == b"abc"
        resp.close.assert_called_once()


@pytest.mark.usefixtures("configured_logging")
class TestSchematicCache:
    def test_ensure_on_miss_refreshes_and_caches(self, cache, session, http_response):
        session.post.return_value = http_response(201, '{"id": "abc123"}')
        assert cache.ensure() == "abc123"
        assert cache.path.read_text() == "abc123"
        assert stat.S_IMODE(cache.path.stat().st_mode) == 0o644

    def test_refresh_then_ensure_uses_cache(self, cache, session, http_response):
        session.post.return_value = http_response(201, '{"id": "abc123"}')
        first = cache.refresh()
        second = cache.ensure()
        assert first == second == "abc123"
        assert session.post.call_count == 1

    def test_ensure_with_cached_value_skips_network(self, cache, session):
        cache.path.write_text("cached-id\n")
        assert cache.ensure() == "cached-id"
        session.post.assert_not_called()

    def test_empty_cache_file_is_a_miss(self, cache, session, http_response):
        cache.path.write_text("  \n")
        session.post.return_value = http_response(201, '{"id": "fresh"}')
        assert cache.ensure() == "fresh"

    def test_show_without_cache(self, cache):
        with pytest.raises(NotCachedError, match="run refresh first"):
            cache.show()

    def test_show_returns_cached(self, cache):
        cache.path.write_text("abc123")
        assert cache.show() == "abc123"

    def test_clear_is_idempotent(self, cache):
        cache.path.write_text("abc123")
        cache.clear()
        assert not cache.path.exists()
        cache.clear()

    def test_failed_refresh_leaves_cache_untouched(self, cache, session, http_response):
        session.post.return_value = http_response(500, "boom")
        with pytest.raises(FactoryError):
            cache.refresh()
        assert not cache.path.exists()

    def test_missing_schematic_yaml(self, tmp_path, factory, session):
        cache = SchematicCache(tmp_path / ".schematic_id", tmp_path / "absent.yaml", factory)
        with pytest.raises(ValidationError, match="read schematic yaml"):
            cache.refresh()
        session.post.assert_not_called()
