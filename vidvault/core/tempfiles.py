"""Scoped temporary files.

Each helper acquires a local path, yields it, and removes it on the way out
no matter how the block exits. Removal failures are logged and swallowed so
cleanup can never mask the error that ended the block.
"""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Iterator, Optional

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


class SizeLimitExceeded(Exception):
    """Raised when a copied stream crosses its byte ceiling."""

    def __init__(self, limit: int):
        super().__init__(f"Stream exceeds {limit} bytes")
        self.limit = limit


class LimitedReader:
    """Read-only wrapper that fails once more than `limit` bytes pass through."""

    def __init__(self, source: BinaryIO, limit: int):
        self._source = source
        self.limit = limit
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        # Never ask for more than one byte past the ceiling
        remaining = self.limit - self.bytes_read + 1
        if size is None or size < 0 or size > remaining:
            size = remaining
        chunk = self._source.read(size)
        self.bytes_read += len(chunk)
        if self.bytes_read > self.limit:
            raise SizeLimitExceeded(self.limit)
        return chunk


def remove_quietly(path: str) -> None:
    """Remove a file if present; log instead of raising on failure."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove temp file {path}: {e}")


@contextmanager
def scoped_path(path: str) -> Iterator[str]:
    """Own `path` for the duration of the block and delete it afterwards.

    The file does not need to exist on entry; this is how an output path is
    claimed before the tool that writes it runs.
    """
    try:
        yield path
    finally:
        remove_quietly(path)


@contextmanager
def staged_upload(
    source: BinaryIO,
    limit: int,
    suffix: str = "",
    prefix: str = "vidvault-upload-",
    dir: Optional[str] = None,
) -> Iterator[BinaryIO]:
    """Copy `source` into a fresh temp file and yield it rewound to offset 0.

    The copy goes through a LimitedReader so at most limit + 1 bytes ever
    reach the disk. The file handle is closed and the file removed when the
    block exits.
    """
    staged = tempfile.NamedTemporaryFile(
        mode="w+b", prefix=prefix, suffix=suffix, dir=dir, delete=False
    )
    try:
        with staged:
            shutil.copyfileobj(LimitedReader(source, limit), staged, COPY_CHUNK_SIZE)
            staged.flush()
            staged.seek(0)
            yield staged
    finally:
        remove_quietly(staged.name)
