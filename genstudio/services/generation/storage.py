"""
Local media storage: turns drained byte streams into stable, servable references
"""

import logging
import uuid
from contextlib import suppress
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles

from genstudio.core.config import Settings
from genstudio.core.exceptions import GenStudioException, MediaStorageError

logger = logging.getLogger(__name__)


class MediaStorage:
    """Stores result media under ``root`` and serves it below ``url_prefix``.

    References look like ``/media/live2d-animation-<hex>.mp4``; the same
    directory is mounted as static files by the API.
    """

    def __init__(self, root: Path, url_prefix: str = "/media"):
        self.root = Path(root).resolve()
        self.url_prefix = "/" + url_prefix.strip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaStorage":
        return cls(Path(settings.MEDIA_ROOT), settings.MEDIA_URL_PREFIX)

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    @staticmethod
    def generate_filename(prefix: str, suffix: str = "") -> str:
        if suffix and not suffix.startswith("."):
            suffix = f".{suffix}"
        return f"{prefix}-{uuid.uuid4().hex}{suffix}"

    async def drain(self, chunks: AsyncIterator[bytes]) -> bytes:
        """Read a byte stream to completion into memory."""
        buffer = bytearray()
        try:
            async for chunk in chunks:
                if chunk:
                    buffer.extend(chunk)
        except GenStudioException:
            raise
        except Exception as e:
            raise MediaStorageError(f"Failed to read output stream: {e}") from e
        return bytes(buffer)

    async def save(self, data: bytes, prefix: str = "output", suffix: str = "") -> str:
        filename = self.generate_filename(prefix, suffix)
        path = self.root / filename

        try:
            self.ensure_root()
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            with suppress(OSError):
                path.unlink(missing_ok=True)
            raise MediaStorageError(f"Failed to persist output: {e}") from e

        logger.info(f"Persisted {len(data)} bytes to {path}")
        return f"{self.url_prefix}/{filename}"

    async def persist(
        self,
        chunks: AsyncIterator[bytes],
        prefix: str = "output",
        suffix: str = "",
    ) -> str:
        """Drain ``chunks`` and store them; returns the stable reference."""
        data = await self.drain(chunks)
        return await self.save(data, prefix, suffix)

    def owns(self, reference: str) -> bool:
        return reference.startswith(f"{self.url_prefix}/")

    def resolve(self, reference: str) -> Optional[Path]:
        """Map a reference back to a file inside the root, or None."""
        if not self.owns(reference):
            return None
        name = reference[len(self.url_prefix) + 1:]
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        path = self.root / name
        if not path.is_file():
            return None
        return path

    async def read(self, reference: str) -> bytes:
        path = self.resolve(reference)
        if path is None:
            raise MediaStorageError(f"Unknown media reference: {reference}")
        async with aiofiles.open(path, "rb") as f:
            return await f.read()
