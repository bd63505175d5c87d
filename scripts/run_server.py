"""Run the match tracker API from the command line.

Usage:
    python scripts/run_server.py --port 5000 --reload
"""
import uvicorn

from matchcast.config import Settings


def main(argv=None):
    import argparse

    settings = Settings.from_env()
    p = argparse.ArgumentParser()
    p.add_argument("--host", default=settings.host, help="bind address")
    p.add_argument("--port", type=int, default=settings.port, help="bind port")
    p.add_argument("--reload", action="store_true", help="restart on code changes")
    args = p.parse_args(argv)

    uvicorn.run(
        "matchcast.fastapi_app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
