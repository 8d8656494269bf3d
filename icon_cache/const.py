# ==================================================
# icon_cache/const.py
# ==================================================
import os

import numpy as np

# ── on-disk layout (all integers big-endian) ─────────────────
HEADER_FMT = ">HHLL"      # major_version, minor_version, hash_offset, directory_list_offset
CARD32_FMT = ">L"
NODE_FMT = ">LLL"         # next_offset, name_offset, image_list_offset

OFFSET_DTYPE = np.dtype(">u4")
IMAGE_DTYPE = np.dtype([  # 8 bytes per image-list record
    ("directory_index", ">u2"),
    ("flags", ">u2"),
    ("image_data_offset", ">u4"),
])

SUPPORTED_MAJOR_VERSION = 1
END_OF_CHAIN = (0, 0xFFFFFFFF)

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

# ── configuration ────────────────────────────────────────────
USE_MMAP = os.getenv("ICON_CACHE_USE_MMAP", "1").lower() not in ("0", "false", "no")
CACHE_FILENAME = os.getenv("ICON_CACHE_FILENAME", "icon-theme.cache")
LOG_LEVEL = os.getenv("ICON_CACHE_LOG_LEVEL")
