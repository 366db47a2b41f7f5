"""Media stores."""

from unittest.mock import Mock, patch

from pydantic import SecretStr
import pytest
import requests

from blverse.core.config import Settings
from blverse.core.exceptions import UpstreamException
from blverse.services.media_storage import (
    LocalMediaStore,
    R2MediaStore,
    build_media_store,
    new_media_key,
)

pytestmark = pytest.mark.unit


def _r2_settings(**overrides) -> Settings:
    values = dict(
        media_storage_backend="r2",
        r2_account_id="acct",
        r2_bucket_name="bucket",
        r2_access_key_id="AKID",
        r2_secret_access_key=SecretStr("secret"),
        media_public_base_url="https://cdn.example.com/media",
    )
    values.update(overrides)
    return Settings(**values)


class TestLocalMediaStore:
    def test_save_then_resolve(self, tmp_path):
        store = LocalMediaStore(tmp_path, "/api/v1/messages/media/")

        stored = store.save(b"\x89PNG", "image/png")

        assert stored.key.endswith(".png")
        assert stored.url == f"/api/v1/messages/media/{stored.key}"
        assert store.resolve(stored.key).read_bytes() == b"\x89PNG"

    def test_resolve_rejects_unknown_and_malformed_keys(self, tmp_path):
        store = LocalMediaStore(tmp_path, "/media")
        assert store.resolve(new_media_key("image/png")) is None
        assert store.resolve("../secret.png") is None

    def test_write_failure_is_upstream_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        store = LocalMediaStore(blocker, "/media")

        with pytest.raises(UpstreamException):
            store.save(b"data", "audio/webm")


class TestR2MediaStore:
    def test_presigned_url_carries_signature(self):
        store = R2MediaStore(_r2_settings())

        url = store.presign_put("01HZZZZZZZZZZZZZZZZZZZZZZZ.png")

        assert url.startswith("https://acct.r2.cloudflarestorage.com/bucket/")
        assert "X-Amz-Algorithm=AWS4-HMAC-SHA256" in url
        assert "X-Amz-Signature=" in url

    def test_successful_upload_returns_public_url(self):
        store = R2MediaStore(_r2_settings())
        with patch("blverse.services.media_storage.requests.put") as put:
            put.return_value = Mock(status_code=200)
            stored = store.save(b"data", "image/jpeg")

        assert stored.url == f"https://cdn.example.com/media/{stored.key}"
        assert put.call_args.kwargs["headers"] == {"Content-Type": "image/jpeg"}

    def test_error_status_is_upstream_error(self):
        store = R2MediaStore(_r2_settings())
        with patch("blverse.services.media_storage.requests.put") as put:
            put.return_value = Mock(status_code=403)
            with pytest.raises(UpstreamException) as exc_info:
                store.save(b"data", "image/jpeg")

        assert exc_info.value.details == {"status_code": 403}

    def test_network_error_is_upstream_error(self):
        store = R2MediaStore(_r2_settings())
        with patch(
            "blverse.services.media_storage.requests.put",
            side_effect=requests.ConnectionError("down"),
        ):
            with pytest.raises(UpstreamException):
                store.save(b"data", "image/jpeg")

    def test_missing_configuration_fails_fast(self):
        with pytest.raises(RuntimeError):
            R2MediaStore(_r2_settings(r2_bucket_name=""))


def test_build_media_store_follows_backend_setting(tmp_path):
    local = build_media_store(Settings(media_local_dir=str(tmp_path)))
    assert isinstance(local, LocalMediaStore)
    assert isinstance(build_media_store(_r2_settings()), R2MediaStore)


def test_upstream_detail_hidden_outside_development():
    exc = UpstreamException("bucket exploded", details={"status_code": 500})
    http_exc = exc.to_http_exception()

    assert http_exc.detail["message"] == UpstreamException.GENERIC_MESSAGE
    assert http_exc.detail["details"] == {}
