"""Storage backends for build asset bytes.

The backend is chosen once at application start from settings and handed to
the asset endpoint through ``app.state``; nothing in update resolution reads
it.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from apps.api.app.core.config import Settings
from apps.api.app.db.models import StorageDestination

logger = logging.getLogger("ota.storage")


class StorageBackend(Protocol):
    destination: str

    def upload(
        self,
        *,
        content: bytes,
        app_id: str,
        build_id: str,
        filename: str,
        content_type: str,
    ) -> str: ...

    def delete(self, path: str) -> None: ...

    def get_url(self, path: str) -> str: ...


def _object_key(app_id: str, build_id: str, filename: str) -> str:
    parts = PurePosixPath(filename.replace("\\", "/")).parts
    if not parts or any(part in {"", ".", ".."} for part in parts) or parts[0] == "/":
        raise ValueError(f"invalid asset filename: {filename!r}")
    return str(PurePosixPath(app_id, build_id, *parts))


class LocalStorageBackend:
    """Stores assets below ``base_dir``; paths are kept relative to it."""

    destination = StorageDestination.LOCAL.value

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)

    def resolve_path(self, path: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        resolved = candidate.resolve()
        if not resolved.is_relative_to(self.base_dir.resolve()):
            raise ValueError(f"path escapes storage root: {path!r}")
        return resolved

    def upload(
        self,
        *,
        content: bytes,
        app_id: str,
        build_id: str,
        filename: str,
        content_type: str,
    ) -> str:
        del content_type
        key = _object_key(app_id, build_id, filename)
        target = self.resolve_path(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return key

    def delete(self, path: str) -> None:
        target = self.resolve_path(path)
        try:
            target.unlink(missing_ok=True)
        except OSError:
            logger.exception("unable to delete file %s", path)

    def get_url(self, path: str) -> str:
        raise NotImplementedError("local storage serves asset bytes directly")

    def read_bytes(self, path: str) -> bytes:
        return self.resolve_path(path).read_bytes()


class S3StorageBackend:
    destination = StorageDestination.S3.value

    def __init__(
        self,
        *,
        bucket: str,
        region: str = "",
        endpoint: str = "",
        access_key: str = "",
        secret_key: str = "",
        presign_ttl_seconds: int = 3600,
        client: Any | None = None,
    ) -> None:
        if not bucket:
            raise RuntimeError("s3 bucket is required")
        self.bucket = bucket
        self.presign_ttl_seconds = presign_ttl_seconds
        if client is None:
            client_kwargs: dict[str, Any] = {}
            if region:
                client_kwargs["region_name"] = region
            if endpoint:
                client_kwargs["endpoint_url"] = endpoint
            if access_key and secret_key:
                client_kwargs["aws_access_key_id"] = access_key
                client_kwargs["aws_secret_access_key"] = secret_key
            client = boto3.client("s3", **client_kwargs)
        self.client = client

    def upload(
        self,
        *,
        content: bytes,
        app_id: str,
        build_id: str,
        filename: str,
        content_type: str,
    ) -> str:
        key = _object_key(app_id, build_id, filename)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=content,
            ContentType=content_type or "application/octet-stream",
        )
        return key

    def delete(self, path: str) -> None:
        try:
            response = self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": path}], "Quiet": False},
            )
        except (BotoCoreError, ClientError):
            logger.exception("unable to delete object %s", path)
            return
        logger.debug("deleted objects: %s", response.get("Deleted", []))

    def get_url(self, path: str) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=self.presign_ttl_seconds,
        )


class StorageBackendRegistry:
    def __init__(self, *, primary: StorageBackend, backends: list[StorageBackend]) -> None:
        self.primary = primary
        self._by_destination = {backend.destination: backend for backend in backends}
        self._by_destination.setdefault(primary.destination, primary)

    def get_backend(self, destination: str) -> StorageBackend:
        backend = self._by_destination.get(destination)
        if backend is None:
            raise LookupError(f"no storage backend configured for {destination}")
        return backend


def build_storage_registry(settings: Settings) -> StorageBackendRegistry:
    """Select the upload backend from ``settings.upload_provider``.

    Local storage stays registered so assets written before a switch to S3
    remain readable.
    """
    local = LocalStorageBackend(settings.upload_dir)
    if settings.upload_provider.strip().lower() == "s3":
        s3 = S3StorageBackend(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            endpoint=settings.s3_endpoint,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            presign_ttl_seconds=settings.s3_presign_ttl_seconds,
        )
        return StorageBackendRegistry(primary=s3, backends=[local, s3])
    return StorageBackendRegistry(primary=local, backends=[local])
