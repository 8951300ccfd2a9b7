"""Local object storage for task photos.

Objects live under ``STORAGE_DIR/<bucket>/<path>``. Paths are POSIX-style
keys such as ``"42/start_1718000000000.jpg"``; the first segment is the
task folder. Read access from clients goes through signed URLs: a short-lived
JWT naming bucket + path, served by ``GET /api/storage/signed/{token}``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath
from typing import Iterable

import jwt

from config import settings

logger = logging.getLogger(__name__)

SIGNED_URL_PREFIX = "/api/storage/signed/"
_TOKEN_TYPE = "storage"


class StorageError(Exception):
    """Base class for object storage failures."""


class InvalidObjectPath(StorageError):
    pass


class ObjectNotFound(StorageError):
    pass


class ObjectExists(StorageError):
    pass


@dataclass
class StoredObject:
    name: str
    size: int


class ObjectStorage:
    """Bucketed file store rooted at a directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _resolve(self, bucket: str, path: str) -> Path:
        key = PurePosixPath(path)
        if not path or key.is_absolute() or ".." in key.parts or "/" in bucket or bucket in ("", ".", ".."):
            raise InvalidObjectPath(f"Invalid object path: {bucket}/{path}")
        return self.root.joinpath(bucket, *key.parts)

    def upload(self, bucket: str, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        """Store ``data`` under ``path``; existing objects are never overwritten."""
        target = self._resolve(bucket, path)
        if target.exists():
            raise ObjectExists(f"Object already exists: {bucket}/{path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("stored %s/%s (%d bytes, %s)", bucket, path, len(data), content_type)
        return path

    def list(self, bucket: str, folder: str) -> list[StoredObject]:
        """Files directly inside ``folder``; a missing folder is simply empty."""
        directory = self._resolve(bucket, folder.rstrip("/"))
        if not directory.is_dir():
            return []
        return [
            StoredObject(name=p.name, size=p.stat().st_size)
            for p in sorted(directory.iterdir())
            if p.is_file()
        ]

    def remove(self, bucket: str, paths: Iterable[str]) -> int:
        """Delete objects; missing ones are ignored. Returns how many were deleted."""
        # Resolve everything up front so a bad path aborts before any unlink
        targets = [self._resolve(bucket, path) for path in paths]
        removed = 0
        for target in targets:
            try:
                target.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            parent = target.parent
            if parent != self.root / bucket and not any(parent.iterdir()):
                parent.rmdir()
        return removed

    def read(self, bucket: str, path: str) -> Path:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise ObjectNotFound(f"Object not found: {bucket}/{path}")
        return target

    # --- Signed URLs ---

    def create_signed_url(self, bucket: str, path: str, expires_in: int | None = None) -> str:
        self._resolve(bucket, path)
        ttl = expires_in if expires_in is not None else settings.SIGNED_URL_TTL_S
        payload = {
            "type": _TOKEN_TYPE,
            "bucket": bucket,
            "path": path,
            "exp": datetime.now(timezone.utc) + timedelta(seconds=ttl),
        }
        token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
        return f"{SIGNED_URL_PREFIX}{token}"

    def resolve_signed(self, token: str) -> Path:
        """Validate a signed-URL token and return the file it grants access to.

        Raises:
            InvalidObjectPath: expired, tampered or wrong-type token
            ObjectNotFound: the object was deleted after signing
        """
        try:
            payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError as exc:
            raise InvalidObjectPath("Signed URL expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidObjectPath("Invalid signed URL") from exc
        if payload.get("type") != _TOKEN_TYPE:
            raise InvalidObjectPath("Invalid signed URL")
        return self.read(payload["bucket"], payload["path"])


storage = ObjectStorage(settings.STORAGE_DIR)


def get_storage() -> ObjectStorage:
    """Storage dependency (overridable in tests)."""
    return storage
