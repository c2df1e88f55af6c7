#!/usr/bin/env python3
"""
FreshCart Backend Runner
========================

Usage:
    python run_app.py                    # Development mode with auto-reload
    python run_app.py --mode prod        # Production mode
    python run_app.py --port 8001        # Custom port
    python run_app.py --host 127.0.0.1   # Custom host
    python run_app.py --init-db          # Create tables, then exit
"""

import argparse
import asyncio
import logging
import os
import sys

logger = logging.getLogger("run_app")

def check_environment() -> bool:
    """Check that required settings are available"""
    missing = [name for name in ("DATABASE_URL", "SECRET_KEY") if not os.getenv(name)]
    if missing and not os.path.exists(".env"):
        logger.error(f"Missing settings: {', '.join(missing)} (set them or add a .env file)")
        return False
    return True

def init_database() -> None:
    from app.core.database import close_db, init_db

    async def _run():
        try:
            await init_db()
        finally:
            await close_db()

    asyncio.run(_run())

def run_main_app(host: str, port: int, reload: bool, workers: int) -> None:
    """Run the FastAPI application under uvicorn"""
    import uvicorn

    logger.info(f"Starting FreshCart API on {host}:{port} (reload={reload})")
    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=None if reload else workers,
        log_level="info"
    )

def main() -> int:
    parser = argparse.ArgumentParser(description="FreshCart Backend Runner")
    parser.add_argument("--mode", choices=["dev", "prod"], default="dev", help="Server mode (default: dev)")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--workers", type=int, default=4, help="Worker processes in prod mode")
    parser.add_argument("--init-db", action="store_true", help="Create database tables and exit")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    if not check_environment():
        return 1

    if args.init_db:
        init_database()
        logger.info("Database tables created")
        return 0

    run_main_app(args.host, args.port, reload=args.mode == "dev", workers=args.workers)
    return 0

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
