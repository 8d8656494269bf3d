import logging

from .cache import IconCache, IconFlags, IconImage, open_cache, open_theme
from .const import LOG_LEVEL
from .errors import CorruptFormat, IconCacheError, OutOfBounds, UnsupportedVersion
from .hashing import icon_name_hash
from .sources import ByteSource, MappedSource, MemorySource, load_source

open = open_cache

if LOG_LEVEL:
    _level = logging.getLevelName(LOG_LEVEL.upper())
    if isinstance(_level, int):
        logging.getLogger(__name__).setLevel(_level)
    else:
        logging.getLogger(__name__).warning(
            "ignoring unknown ICON_CACHE_LOG_LEVEL %r", LOG_LEVEL)

__all__ = [
    "IconCache", "IconFlags", "IconImage", "open", "open_cache", "open_theme",
    "IconCacheError", "CorruptFormat", "OutOfBounds", "UnsupportedVersion",
    "icon_name_hash",
    "ByteSource", "MappedSource", "MemorySource", "load_source",
]
