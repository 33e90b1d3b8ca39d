"""Blob store: uploaded file content on local disk under generated names."""
import asyncio
import logging
import os
import stat as stat_module
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple

import aiofiles
import aiofiles.os

from docstore.core.errors import (
    BlobNotFoundError,
    InvalidBlobNameError,
    StorageDeleteError,
    StorageReadError,
    StorageWriteError,
    UploadTooLargeError,
)
from docstore.utils.filenames import StoredNames

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"
NAME_ATTEMPTS = 5


class BlobReader:
    """An open blob; iterate it once, or read it whole."""

    def __init__(self, handle, stored_name: str, size: int, chunk_size: int):
        self._handle = handle
        self.stored_name = stored_name
        self.size = size
        self.chunk_size = chunk_size

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await self._handle.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            await self.close()

    async def read(self) -> bytes:
        try:
            return await self._handle.read()
        finally:
            await self.close()

    async def close(self) -> None:
        await self._handle.close()


class BlobStore:
    """
    Stores blobs as flat files inside a single root directory.

    Content is written to ``<name>.part`` first and renamed into place once
    complete, so a blob is only ever visible under its final name in full.
    """

    def __init__(self, root: Path, chunk_size: int = 64 * 1024):
        self.root = Path(root)
        self.chunk_size = chunk_size
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, stored_name: str) -> Path:
        if not StoredNames.is_safe(stored_name):
            raise InvalidBlobNameError(stored_name)
        path = self.root / stored_name
        if path.resolve().parent != self.root.resolve():
            raise InvalidBlobNameError(stored_name)
        return path

    async def _open_new(self, original_filename: str):
        for _ in range(NAME_ATTEMPTS):
            stored_name = StoredNames.generate(original_filename)
            partial = self.root / (stored_name + PARTIAL_SUFFIX)
            if await aiofiles.os.path.exists(self.root / stored_name):
                continue
            try:
                handle = await aiofiles.open(partial, "xb")
            except FileExistsError:
                continue
            return stored_name, partial, handle
        raise StorageWriteError(f"Could not allocate a unique stored name for {original_filename!r}")

    async def put(
        self,
        chunks: AsyncIterator[bytes],
        original_filename: str,
        max_bytes: Optional[int] = None,
    ) -> Tuple[str, int]:
        """
        Stream ``chunks`` into a new blob.

        Returns:
            Tuple of (stored_name, size_bytes)

        Raises:
            UploadTooLargeError: If the stream goes past ``max_bytes``
            StorageWriteError: If the disk write or the input stream fails
        """
        try:
            stored_name, partial, handle = await self._open_new(original_filename)
        except OSError as e:
            raise StorageWriteError(f"Cannot create blob in {self.root}: {e}") from e

        written = 0
        try:
            try:
                async for chunk in chunks:
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise UploadTooLargeError(max_bytes)
                    await handle.write(chunk)
                await handle.flush()
            finally:
                await handle.close()
            await aiofiles.os.replace(partial, self.root / stored_name)
        except UploadTooLargeError:
            await self._discard(partial)
            raise
        except OSError as e:
            await self._discard(partial)
            raise StorageWriteError(f"Failed to write blob {stored_name}: {e}") from e
        except asyncio.CancelledError:
            # No awaiting once cancelled
            partial.unlink(missing_ok=True)
            raise
        except Exception as e:
            # The input stream itself broke, e.g. the client went away
            await self._discard(partial)
            raise StorageWriteError(f"Upload stream aborted for {stored_name}: {e}") from e

        logger.debug("Stored blob %s (%d bytes)", stored_name, written)
        return stored_name, written

    async def _discard(self, partial: Path) -> None:
        try:
            await aiofiles.os.remove(partial)
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Could not remove partial blob %s", partial)

    async def get(self, stored_name: str) -> BlobReader:
        path = self._path_for(stored_name)
        try:
            # stat first so a failed stat never leaves an open handle behind
            stat = await aiofiles.os.stat(path)
            handle = await aiofiles.open(path, "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise BlobNotFoundError(stored_name) from e
        except OSError as e:
            raise StorageReadError(f"Failed to open blob {stored_name}: {e}") from e
        return BlobReader(handle, stored_name, stat.st_size, self.chunk_size)

    async def exists(self, stored_name: str) -> bool:
        path = self._path_for(stored_name)
        try:
            stat = await aiofiles.os.stat(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageReadError(f"Failed to check blob {stored_name}: {e}") from e
        return stat_module.S_ISREG(stat.st_mode)

    async def delete(self, stored_name: str) -> bool:
        """
        Remove a blob.

        Returns True if a file was removed, False if it was already gone.
        Both count as success.
        """
        path = self._path_for(stored_name)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.info("Blob %s already absent", stored_name)
            return False
        except OSError as e:
            raise StorageDeleteError(f"Failed to delete blob {stored_name}: {e}") from e
        return True

    async def list_names(self) -> list[str]:
        """Names of completed blobs, in no particular order."""
        try:
            names = await aiofiles.os.listdir(self.root)
            return [
                name for name in names
                if not name.endswith(PARTIAL_SUFFIX) and os.path.isfile(self.root / name)
            ]
        except OSError as e:
            raise StorageReadError(f"Failed to list blobs in {self.root}: {e}") from e
