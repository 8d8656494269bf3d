# ==================================================
# examples/query_cache.py
# ==================================================
import argparse, logging, sys
from icon_cache import open_cache

def main(argv=None):
    p = argparse.ArgumentParser(description="look up icon names in an icon-theme.cache")
    p.add_argument("cache", help="path to icon-theme.cache")
    p.add_argument("names", nargs="*", help="icon names to look up")
    p.add_argument("--list-dirs", action="store_true", help="print the cache's directories")
    p.add_argument("--list-icons", action="store_true", help="print every icon name")
    p.add_argument("--no-mmap", action="store_true", help="read the file into memory")
    p.add_argument("-v", "--verbose", action="store_true")
    args = p.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    missing = 0
    with open_cache(args.cache, use_mmap=False if args.no_mmap else None) as cache:
        if args.list_dirs:
            for d in cache.directories:
                print(d)
        if args.list_icons:
            for name in sorted(cache.icon_names()):
                print(name)
        for name in args.names:
            dirs = cache.lookup(name)
            if dirs is None:
                missing += 1
                print(f"{name}\t-")
            else:
                print(f"{name}\t{' '.join(sorted(dirs))}")
    return 1 if missing else 0

if __name__ == "__main__":
    sys.exit(main())
