# blverse/services/media_storage.py
"""
Object storage for message media.

One backend is chosen per deployment (``media_storage_backend``); there is
no runtime fallback from one store to another. If the configured store
cannot take the upload the send fails with ``UpstreamException`` and no
message row is written.

- LocalMediaStore: files under ``media_local_dir``, served back through
  ``GET /api/v1/messages/media/{key}``.
- R2MediaStore: Cloudflare R2 (S3-compatible) via a SigV4 presigned PUT,
  without requiring boto3.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import hashlib
import hmac
import logging
from pathlib import Path
import re
from typing import Dict, Optional, Protocol
from urllib.parse import quote

import requests
import ulid

from ..core.config import Settings, settings
from ..core.exceptions import UpstreamException

logger = logging.getLogger(__name__)

EXTENSION_BY_TYPE: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/wav": ".wav",
}
TYPE_BY_EXTENSION: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".mp3": "audio/mpeg",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
}
MEDIA_KEY_PATTERN = re.compile(r"^[0-9A-Z]{26}\.[a-z0-9]{2,5}$")


@dataclass(frozen=True)
class StoredMedia:
    key: str
    url: str


class MediaStore(Protocol):
    def save(self, data: bytes, content_type: str) -> StoredMedia: ...


def new_media_key(content_type: str) -> str:
    return f"{ulid.ULID()}{EXTENSION_BY_TYPE.get(content_type, '.bin')}"


class LocalMediaStore:
    def __init__(self, root: Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def save(self, data: bytes, content_type: str) -> StoredMedia:
        key = new_media_key(content_type)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            (self.root / key).write_bytes(data)
        except OSError as exc:
            logger.error(f"Failed to store media {key}: {exc}")
            raise UpstreamException(f"Media storage failed: {exc}") from exc
        return StoredMedia(key=key, url=f"{self.public_base_url}/{key}")

    def resolve(self, key: str) -> Optional[Path]:
        """Path for a stored key, or None for unknown or malformed keys."""
        if not MEDIA_KEY_PATTERN.match(key):
            return None
        path = self.root / key
        return path if path.is_file() else None


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


class R2MediaStore:
    """Upload through a presigned PUT URL (query-string SigV4, UNSIGNED-PAYLOAD)."""

    region = "auto"
    service = "s3"
    algorithm = "AWS4-HMAC-SHA256"

    def __init__(self, config: Settings):
        if not (config.r2_bucket_name and config.r2_access_key_id and config.r2_account_id):
            raise RuntimeError("R2 configuration is missing; check r2_* settings")
        self.access_key_id = config.r2_access_key_id
        self.secret_key = config.r2_secret_access_key.get_secret_value()
        self.bucket_name = config.r2_bucket_name
        self.host = f"{config.r2_account_id}.r2.cloudflarestorage.com"
        self.public_base_url = config.media_public_base_url.rstrip("/")
        self.timeout = config.r2_upload_timeout_seconds

    def presign_put(self, key: str, expires_seconds: int = 300) -> str:
        now = datetime.now(timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        datestamp = now.strftime("%Y%m%d")
        scope = f"{datestamp}/{self.region}/{self.service}/aws4_request"
        canonical_uri = f"/{self.bucket_name}/{key}"

        params = {
            "X-Amz-Algorithm": self.algorithm,
            "X-Amz-Credential": f"{self.access_key_id}/{scope}",
            "X-Amz-Date": amz_date,
            "X-Amz-Expires": str(expires_seconds),
            "X-Amz-SignedHeaders": "host",
        }
        query = "&".join(
            f"{quote(k, safe='-_.~')}={quote(v, safe='-_.~')}" for k, v in sorted(params.items())
        )
        canonical_request = "\n".join(
            ["PUT", canonical_uri, query, f"host:{self.host}\n", "host", "UNSIGNED-PAYLOAD"]
        )
        string_to_sign = "\n".join(
            [
                self.algorithm,
                amz_date,
                scope,
                hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
            ]
        )
        signing_key = _hmac(
            _hmac(_hmac(_hmac(f"AWS4{self.secret_key}".encode("utf-8"), datestamp), self.region), self.service),
            "aws4_request",
        )
        signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()
        return f"https://{self.host}{canonical_uri}?{query}&X-Amz-Signature={signature}"

    def save(self, data: bytes, content_type: str) -> StoredMedia:
        key = new_media_key(content_type)
        try:
            response = requests.put(
                self.presign_put(key),
                data=data,
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(f"Failed to upload {key}: {exc}")
            raise UpstreamException(f"Media upload failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            logger.error(f"Failed to upload {key}: status={response.status_code}")
            raise UpstreamException(
                f"Media upload failed with status {response.status_code}",
                details={"status_code": response.status_code},
            )
        return StoredMedia(key=key, url=f"{self.public_base_url}/{key}")


def build_media_store(config: Settings = settings) -> MediaStore:
    if config.media_storage_backend == "r2":
        return R2MediaStore(config)
    return LocalMediaStore(Path(config.media_local_dir), config.media_public_base_url)
