# ==================================================
# icon_cache/compression.py
# ==================================================
import zstandard as zstd

from .const import ZSTD_MAGIC

# -------- zstd wrappers ---------------------------------------------------

dctx = zstd.ZstdDecompressor()


def is_zstd(prefix: bytes) -> bool:
    return bytes(prefix[:4]) == ZSTD_MAGIC


def decompress(data: bytes) -> bytes:
    # decompressobj copes with frames that do not record their content size
    return dctx.decompressobj().decompress(data)
