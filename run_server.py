#!/usr/bin/env python
"""
Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py
    Gunicorn:     python run_server.py --gunicorn
"""

import argparse
import os
import subprocess


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="127.0.0.1",
        port=port,
        reload=True,
        reload_dirs=["src"],
        log_level="debug",
    )


def run_prod_server(port: int):
    """Run Uvicorn directly with several workers."""
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=port,
        workers=int(os.getenv("WORKERS", 4)),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=False,
        proxy_headers=True,
        server_header=False,
    )


def run_gunicorn(port: int):
    """Run under Gunicorn with Uvicorn workers."""
    env = dict(os.environ, BIND=f"0.0.0.0:{port}")
    subprocess.run(["gunicorn", "src.main:app", "-c", "gunicorn.conf.py"], env=env, check=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Storefront Analytics API Server")
    parser.add_argument("--dev", action="store_true", help="Run with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run under Gunicorn")
    parser.add_argument("--port", type=int, default=int(os.getenv("API_PORT", 8000)))
    args = parser.parse_args()

    if args.dev:
        run_dev_server(args.port)
    elif args.gunicorn:
        run_gunicorn(args.port)
    else:
        run_prod_server(args.port)
