from collections import namedtuple

import pytest
import zstandard as zstd

from icon_cache import IconFlags, icon_name_hash

END = 0xFFFFFFFF

PNG = IconFlags.HAS_SUFFIX_PNG
SVG = IconFlags.HAS_SUFFIX_SVG
XPM = IconFlags.HAS_SUFFIX_XPM

Built = namedtuple("Built", "data hash_offset dir_list_offset dir_slots nodes lists")


def compress(data, level=3):
    return zstd.ZstdCompressor(level=level).compress(data)


class Hole:
    def __init__(self, addr, size):
        self.addr = addr
        self.size = size


class CacheWriter:
    """Appends big-endian fields, leaving holes to patch once offsets are known."""

    def __init__(self):
        self.data = bytearray()

    def alloc(self, size):
        addr = len(self.data)
        self.data.extend(b"\x5a" * size)
        return Hole(addr, size)

    def alloc32(self):
        return self.alloc(4)

    def write(self, hole, n):
        self.data[hole.addr:hole.addr + hole.size] = n.to_bytes(hole.size, "big")

    def push16(self, n):
        self.write(self.alloc(2), n)

    def push32(self, n):
        self.write(self.alloc32(), n)

    def push_strings(self, holes):
        for s, hole in holes.items():
            self.write(hole, self.curr())
            raw = s if isinstance(s, bytes) else s.encode()
            self.data.extend(raw + b"\0")

    def curr(self):
        return len(self.data)


def build_cache(icons, n_buckets=31, hash_first=False, version=(1, 0), terminator=END):
    """Serialize ``{name: [(directory, flags), ...]}`` as an icon cache.

    Returns the bytes along with the offsets tests need to damage the file.
    """
    dirs = {}
    for records in icons.values():
        for d, _ in records:
            dirs.setdefault(d, len(dirs))

    w = CacheWriter()
    w.push16(version[0])
    w.push16(version[1])
    hash_hole = w.alloc32()
    dir_list_hole = w.alloc32()
    dir_slots, nodes, lists = {}, {}, {}

    def write_dirs():
        w.write(dir_list_hole, w.curr())
        w.push32(len(dirs))
        holes = {}
        for d in dirs:
            holes[d] = w.alloc32()
            dir_slots[d] = holes[d].addr
        w.push_strings(holes)

    def write_hash():
        buckets = [[] for _ in range(n_buckets)]
        for name in icons:
            buckets[icon_name_hash(name) % n_buckets].append(name)
        w.write(hash_hole, w.curr())
        w.push32(n_buckets)
        bucket_holes = [w.alloc32() for _ in range(n_buckets)]
        name_holes, list_holes = {}, {}
        for i, bucket in enumerate(buckets):
            hole = bucket_holes[i]
            for name in bucket:
                w.write(hole, w.curr())
                nodes[name] = w.curr()
                hole = w.alloc32()
                name_holes[name] = w.alloc32()
                list_holes[name] = w.alloc32()
            w.write(hole, terminator)
        w.push_strings(name_holes)
        for name, records in icons.items():
            w.write(list_holes[name], w.curr())
            lists[name] = w.curr()
            w.push32(len(records))
            for d, flags in records:
                w.push16(dirs[d])
                w.push16(int(flags))
                w.push32(END)

    if hash_first:
        write_hash()
        write_dirs()
    else:
        write_dirs()
        write_hash()
    return Built(bytes(w.data), int.from_bytes(w.data[4:8], "big"),
                 int.from_bytes(w.data[8:12], "big"), dir_slots, nodes, lists)


TEST1_ICONS = {
    "test": [("apps/32", PNG), ("apps/48", PNG)],
    "deepin-deb-installer": [
        ("apps/16", PNG),
        ("apps/32", PNG),
        ("apps/48", PNG),
        ("apps/48", SVG),
        ("apps/scalable", SVG),
    ],
}

THEME_ICONS = {
    "web-browser": [("apps/48", PNG), ("apps/scalable", SVG)],
    "firefox": [("apps/48", PNG | XPM)],
    "image-generic": [("mimetypes/48", PNG), ("mimetypes/scalable", SVG)],
    "edit-copy": [("actions/24", PNG)],
}


@pytest.fixture
def test1_built():
    return build_cache(TEST1_ICONS)


@pytest.fixture
def theme_built():
    # firefox and image-generic share a bucket when there are 12
    return build_cache(THEME_ICONS, n_buckets=12, hash_first=True)


@pytest.fixture
def test1_path(tmp_path, test1_built):
    path = tmp_path / "test1.cache"
    path.write_bytes(test1_built.data)
    return path


@pytest.fixture
def theme_dir(tmp_path, theme_built):
    theme = tmp_path / "hicolor"
    theme.mkdir()
    (theme / "icon-theme.cache").write_bytes(theme_built.data)
    return theme


@pytest.fixture
def theme_path(theme_dir):
    return theme_dir / "icon-theme.cache"
