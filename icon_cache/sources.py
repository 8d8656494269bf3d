# ==================================================
# icon_cache/sources.py
# ==================================================
"""Random-access byte sources an :class:`~icon_cache.cache.IconCache` reads from.

The cache only ever asks a source for its length, for bounded reads and for
a read-only buffer view; whether the bytes live in a file mapping or in a
plain ``bytes`` object is the source's business.
"""
from __future__ import annotations

import logging
import mmap
import os
from pathlib import Path

from . import const
from .compression import decompress, is_zstd
from .errors import OutOfBounds

log = logging.getLogger(__name__)


class ByteSource:
    """Immutable, bounds-checked view over a byte buffer."""

    def __init__(self, data):
        if not hasattr(data, "find"):
            data = bytes(data)
        self._data = data
        self._view = memoryview(data).toreadonly()

    # ------------------------------------------------------------------
    def _check_open(self):
        if self._view is None:
            raise ValueError("I/O operation on closed cache")

    def __len__(self) -> int:
        self._check_open()
        return self._view.nbytes

    @property
    def buffer(self) -> memoryview:
        return self._view

    @property
    def closed(self) -> bool:
        return self._view is None

    def contains(self, offset: int, length: int) -> bool:
        self._check_open()
        return offset >= 0 and length >= 0 and offset + length <= len(self)

    def read(self, offset: int, length: int) -> bytes:
        if not self.contains(offset, length):
            raise OutOfBounds(offset, length, len(self))
        return bytes(self._view[offset:offset + length])

    def find(self, sub: bytes, start: int = 0) -> int:
        self._check_open()
        return self._data.find(sub, start)

    # ------------------------------------------------------------------
    def close(self):
        if self._view is not None:
            self._view.release()
            self._view = None
            self._data = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class MemorySource(ByteSource):
    """Source over bytes already held in memory."""

    @classmethod
    def from_file(cls, path: str | os.PathLike) -> "MemorySource":
        return cls(Path(path).read_bytes())

    @classmethod
    def from_zstd(cls, data: bytes) -> "MemorySource":
        return cls(decompress(data))


class MappedSource(ByteSource):
    """Read-only ``mmap`` of a cache file."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self.file = open(self.path, "rb")
        try:
            self.mm = mmap.mmap(self.file.fileno(), 0, access=mmap.ACCESS_READ)
        except ValueError:
            # zero-length files cannot be mapped
            self.mm = None
        except OSError:
            self.file.close()
            raise
        super().__init__(self.mm if self.mm is not None else b"")

    def close(self):
        super().close()
        if self.mm is not None:
            self.mm.close()
            self.mm = None
        self.file.close()


def load_source(path: str | os.PathLike, use_mmap: bool | None = None) -> ByteSource:
    """Open ``path`` as a byte source.

    zstd-compressed caches are inflated into memory; plain caches are mapped
    unless ``use_mmap`` (or ``ICON_CACHE_USE_MMAP``) turns mapping off.
    """
    path = Path(path)
    if use_mmap is None:
        use_mmap = const.USE_MMAP
    with open(path, "rb") as f:
        prefix = f.read(len(const.ZSTD_MAGIC))
    if is_zstd(prefix):
        log.debug("%s is zstd compressed, decompressing into memory", path)
        return MemorySource.from_zstd(path.read_bytes())
    if use_mmap:
        return MappedSource(path)
    return MemorySource.from_file(path)
