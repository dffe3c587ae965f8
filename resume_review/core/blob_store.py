from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    path: str
    name: str
    size: int


class BlobStore(Protocol):
    async def write(self, path: str, data: bytes) -> StoredBlob: ...

    async def read(self, path: str) -> bytes | None: ...

    async def delete(self, path: str) -> bool: ...


def normalize_blob_path(path: str) -> str:
    raw = (path or "").replace("\\", "/").strip()
    parts = [part for part in PurePosixPath(raw).parts if part not in {"/", "", "."}]
    if not parts:
        raise ValueError("Blob path is required.")
    if any(part == ".." for part in parts):
        raise ValueError(f"Blob path '{path}' escapes the store root.")
    return "/".join(parts)


class LocalBlobStore:
    """Blob store backed by a directory on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _resolve(self, path: str) -> tuple[str, Path]:
        normalized = normalize_blob_path(path)
        return normalized, self._root / normalized

    def _write_sync(self, path: str, data: bytes) -> StoredBlob:
        normalized, target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.tmp")
        tmp.write_bytes(data)
        tmp.replace(target)
        return StoredBlob(path=f"/{normalized}", name=target.name, size=len(data))

    def _read_sync(self, path: str) -> bytes | None:
        try:
            _, target = self._resolve(path)
        except ValueError as exc:
            logger.warning("blob_read_rejected path=%s: %s", path, exc)
            return None
        if not target.is_file():
            return None
        return target.read_bytes()

    def _delete_sync(self, path: str) -> bool:
        _, target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        return True

    async def write(self, path: str, data: bytes) -> StoredBlob:
        return await asyncio.to_thread(self._write_sync, path, data)

    async def read(self, path: str) -> bytes | None:
        return await asyncio.to_thread(self._read_sync, path)

    async def delete(self, path: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, path)
