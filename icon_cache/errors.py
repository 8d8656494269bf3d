# ==================================================
# icon_cache/errors.py
# ==================================================


class IconCacheError(Exception):
    """Base class for everything this package raises."""


class OutOfBounds(IconCacheError, IndexError):
    def __init__(self, offset: int, length: int, size: int):
        super().__init__(f"read of {length} bytes at {offset} outside buffer of {size} bytes")
        self.offset = offset
        self.length = length
        self.size = size


class UnsupportedVersion(IconCacheError, ValueError):
    def __init__(self, major: int, minor: int):
        super().__init__(f"unsupported icon cache version {major}.{minor}")
        self.major = major
        self.minor = minor


class CorruptFormat(IconCacheError, ValueError):
    pass
