"""
Playset configurator: entry point.

Usage:
    python -m playset serve          # start web server on :8000
    python -m playset serve --port 3000
    python -m playset catalog        # load and check catalog/*.json
"""

import sys


def _check_catalog() -> int:
    from playset.catalog import load_catalog
    from playset.config import Settings

    result = load_catalog(Settings.from_env().catalog_dir)
    print(f"{len(result.components)} component(s) loaded")
    for err in result.errors:
        print(f"  {err}")
    return 0 if result.ok else 1


def main():
    args = sys.argv[1:]
    cmd = args[0] if args else "serve"

    if cmd == "serve":
        port = 8000
        host = "127.0.0.1"
        for i, a in enumerate(args):
            if a == "--port" and i + 1 < len(args):
                port = int(args[i + 1])
            elif a == "--host" and i + 1 < len(args):
                host = args[i + 1]

        from playset.web.server import main as serve
        serve(host=host, port=port)
    elif cmd == "catalog":
        sys.exit(_check_catalog())
    else:
        print(f"Unknown command: {cmd}")
        print("Usage: python -m playset serve [--port PORT] [--host HOST] | catalog")
        sys.exit(1)


if __name__ == "__main__":
    main()
