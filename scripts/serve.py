"""
Start the VRT API under uvicorn.

  python -m scripts.serve
  python -m scripts.serve --port 9000 --reload
"""

from __future__ import annotations

import argparse
import os

import uvicorn

APP_PATH = "app.main:app"


def main(argv: list[str] | None = None, *, run=uvicorn.run) -> int:
    parser = argparse.ArgumentParser(description="Serve the Maintenance VRT API.")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")
    args = parser.parse_args(argv)

    run(
        APP_PATH,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=os.getenv("LOG_LEVEL", "info").strip().lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
