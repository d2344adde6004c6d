#!/usr/bin/env python3
"""
Start EPL Hub, or prepare its database.

Usage:
    python run.py                       # Serve on API_HOST:API_PORT
    python run.py --init                # Create tables and seed data, then exit
    python run.py --port 9000 --reload  # Development server on another port
"""

import argparse
import sys

from epl_hub.config import Config
from epl_hub.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="run.py", description="EPL Hub web server")
    parser.add_argument("--init", action="store_true",
                        help="create the schema, seed teams/fixtures/admin and exit")
    parser.add_argument("--host", default=Config.API_HOST,
                        help=f"interface to bind (default: {Config.API_HOST})")
    parser.add_argument("--port", type=int, default=Config.API_PORT,
                        help=f"port to bind (default: {Config.API_PORT})")
    parser.add_argument("--reload", action="store_true", default=Config.DEBUG,
                        help="restart on code changes (default: on when DEBUG=true)")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL,
                        help=f"application log level (default: {Config.LOG_LEVEL})")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, Config.LOG_FILE)

    if args.init:
        from epl_hub.database import init_db
        init_db()
        print(f"Database ready at {Config.DATABASE_PATH}")
        return 0

    for problem in Config.validate():
        print(f"Warning: {problem}", file=sys.stderr)

    import uvicorn

    # Schema and seed data are applied by the app on startup
    print(f"EPL Hub on http://{args.host}:{args.port} (Ctrl+C to stop)")
    uvicorn.run(
        "epl_hub.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
