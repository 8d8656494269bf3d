# ==================================================
# icon_cache/cache.py
# ==================================================
from __future__ import annotations

import enum
import logging
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple

import numpy as np

from . import const
from .const import (CARD32_FMT, END_OF_CHAIN, HEADER_FMT, IMAGE_DTYPE,
                    NODE_FMT, OFFSET_DTYPE, SUPPORTED_MAJOR_VERSION)
from .errors import CorruptFormat, UnsupportedVersion
from .hashing import icon_name_hash
from .sources import ByteSource, load_source

log = logging.getLogger(__name__)


class IconFlags(enum.IntFlag):
    HAS_SUFFIX_XPM = 1 << 0
    HAS_SUFFIX_SVG = 1 << 1
    HAS_SUFFIX_PNG = 1 << 2
    HAS_ICON_FILE = 1 << 3


@dataclass(frozen=True)
class IconImage:
    """One image-list record of a matched icon, with its directory resolved."""
    directory: str
    directory_index: int
    flags: IconFlags
    image_data_offset: int


class IconCache:
    """Read-only view of an ``icon-theme.cache`` file.

    Everything structural (header, directory table, bucket count) is decoded
    once in the constructor; a file that fails here never yields a cache.
    Lookups afterwards only read from the source and never raise for a
    damaged hash region: bad records are skipped and a broken chain reads as
    "not found".

    Chain offsets ``0`` and ``0xFFFFFFFF`` both end a bucket chain. Any
    other offset that does not fit in the buffer is treated as corruption,
    logged at DEBUG, and also ends the walk.
    """

    def __init__(self, source: ByteSource,
                 last_modified: Optional[float] = None,
                 close_source: bool = False):
        self._source = source
        self._close_source = close_source
        self.last_modified = last_modified

        header = self._unpack(HEADER_FMT, 0)
        if header is None:
            raise CorruptFormat(f"header needs 12 bytes, file has {len(source)}")
        major, minor, hash_offset, directory_list_offset = header
        if major != SUPPORTED_MAJOR_VERSION:
            raise UnsupportedVersion(major, minor)
        self.major_version = major
        self.minor_version = minor
        self.hash_table_offset = hash_offset
        self.directory_list_offset = directory_list_offset

        self._directory_names = self._load_directories()
        self.directories: Tuple[str, ...] = tuple(self._directory_names.values())

        bucket_count = self._card32(hash_offset)
        if bucket_count is None:
            raise CorruptFormat(f"hash table offset {hash_offset} is outside the file")
        if bucket_count == 0:
            raise CorruptFormat("hash table has no buckets")
        self.bucket_count = bucket_count
        log.debug("icon cache v%d.%d: %d directories, %d buckets",
                  major, minor, len(self.directories), bucket_count)

    # ── bounds-checked accessors ──────────────────────────────────
    def _unpack(self, fmt: str, offset: int) -> Optional[tuple]:
        if not self._source.contains(offset, struct.calcsize(fmt)):
            return None
        return struct.unpack_from(fmt, self._source.buffer, offset)

    def _card32(self, offset: int) -> Optional[int]:
        fields = self._unpack(CARD32_FMT, offset)
        return None if fields is None else fields[0]

    def _cstring(self, offset: int) -> Optional[bytes]:
        """NUL-terminated string at ``offset``; empty strings count as missing."""
        if offset <= 0 or offset >= len(self._source):
            return None
        end = self._source.find(b"\0", offset)
        if end <= offset:
            return None
        return self._source.read(offset, end - offset)

    def _array(self, dtype: np.dtype, offset: int, count: int) -> list:
        """Up to ``count`` records of ``dtype``, clipped to the end of the buffer."""
        fit = max(0, (len(self._source) - offset) // dtype.itemsize)
        if fit < count:
            log.debug("%d of %d records at %d run past the end of the file",
                      count - fit, count, offset)
            count = fit
        if count <= 0:
            return []
        return np.frombuffer(self._source.buffer, dtype=dtype,
                             count=count, offset=offset).tolist()

    # ── directory table ───────────────────────────────────────────
    def _load_directories(self) -> Dict[int, str]:
        count = self._card32(self.directory_list_offset)
        if count is None:
            raise CorruptFormat(
                f"directory list offset {self.directory_list_offset} is outside the file")
        names = {}
        for offset in self._array(OFFSET_DTYPE, self.directory_list_offset + 4, count):
            raw = self._cstring(offset)
            if raw is None:
                log.debug("skipping directory entry at %d", offset)
                continue
            try:
                names[offset] = raw.decode("utf-8")
            except UnicodeDecodeError:
                log.debug("skipping directory entry at %d: not UTF-8", offset)
        return names

    def _directory_at(self, index: int) -> Optional[str]:
        offset = self._card32(self.directory_list_offset + 4 + 4 * index)
        if offset is None:
            return None
        return self._directory_names.get(offset)

    # ── bucket chains ─────────────────────────────────────────────
    def _chain(self, bucket: int) -> Iterator[Tuple[int, int, int]]:
        """Yield ``(node_offset, name_offset, image_list_offset)`` along a bucket."""
        node = self._card32(self.hash_table_offset + 4 + 4 * bucket)
        if node is None:
            log.debug("bucket %d head is outside the file", bucket)
            return
        seen = set()
        while node not in END_OF_CHAIN:
            if node in seen:
                log.debug("bucket %d chain loops back to %d", bucket, node)
                return
            seen.add(node)
            fields = self._unpack(NODE_FMT, node)
            if fields is None:
                log.debug("bucket %d chain node %d is outside the file", bucket, node)
                return
            next_offset, name_offset, list_offset = fields
            yield node, name_offset, list_offset
            node = next_offset

    def _find(self, name: bytes) -> Optional[int]:
        bucket = icon_name_hash(name) % self.bucket_count
        for _, name_offset, list_offset in self._chain(bucket):
            if self._cstring(name_offset) == name:
                return list_offset
        return None

    def _image_records(self, list_offset: int) -> list:
        count = self._card32(list_offset)
        if count is None:
            log.debug("image list at %d is outside the file", list_offset)
            return []
        return self._array(IMAGE_DTYPE, list_offset + 4, count)

    # ── public api ────────────────────────────────────────────────
    def lookup_images(self, name: str | bytes) -> Optional[List[IconImage]]:
        """Image records stored for ``name``, or None if the name is not in the cache."""
        if isinstance(name, str):
            name = name.encode("utf-8")
        list_offset = self._find(name)
        if list_offset is None:
            return None
        images = []
        for index, flags, data_offset in self._image_records(list_offset):
            directory = self._directory_at(index)
            if directory is None:
                log.debug("%r: directory index %d does not resolve", name, index)
                continue
            images.append(IconImage(directory, index, IconFlags(flags), data_offset))
        return images

    def lookup(self, name: str | bytes) -> Optional[FrozenSet[str]]:
        """Directories holding an image for ``name``.

        Returns None when the name is not in the cache. A name that is present
        but whose records all fail to resolve gives an empty frozenset.
        """
        images = self.lookup_images(name)
        if images is None:
            return None
        return frozenset(image.directory for image in images)

    def has_icon(self, name: str | bytes) -> bool:
        if isinstance(name, str):
            name = name.encode("utf-8")
        return self._find(name) is not None

    def icon_names(self) -> Iterator[str]:
        seen = set()
        for bucket in range(self.bucket_count):
            for _, name_offset, _ in self._chain(bucket):
                raw = self._cstring(name_offset)
                if raw is None or raw in seen:
                    continue
                seen.add(raw)
                try:
                    yield raw.decode("utf-8")
                except UnicodeDecodeError:
                    log.debug("skipping icon name at %d: not UTF-8", name_offset)

    def is_fresh(self, theme_dir: str | os.PathLike) -> bool:
        """True if the cache is not older than ``theme_dir``.

        A cache without a known modification time is never considered fresh.
        """
        if self.last_modified is None:
            return False
        return self.last_modified >= os.stat(theme_dir).st_mtime

    # ------------------------------------------------------------------
    def close(self):
        if self._close_source:
            self._source.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __repr__(self):
        return (f"<IconCache v{self.major_version}.{self.minor_version} "
                f"directories={len(self.directories)} buckets={self.bucket_count}>")


def open_cache(path: str | os.PathLike, use_mmap: Optional[bool] = None) -> IconCache:
    """Open an icon cache file; OSError from opening it propagates as is."""
    path = Path(path)
    source = load_source(path, use_mmap)
    try:
        cache = IconCache(source, last_modified=path.stat().st_mtime, close_source=True)
    except Exception:
        source.close()
        raise
    log.info("loaded %s (%d directories, %d buckets)",
             path, len(cache.directories), cache.bucket_count)
    return cache


def open_theme(theme_dir: str | os.PathLike, use_mmap: Optional[bool] = None) -> IconCache:
    """Open the cache of an icon theme directory, preferring the plain file over ``.zst``."""
    theme_dir = Path(theme_dir)
    path = theme_dir / const.CACHE_FILENAME
    compressed = path.with_name(path.name + ".zst")
    if not path.exists() and compressed.exists():
        path = compressed
    return open_cache(path, use_mmap)
