#!/usr/bin/env python
"""Entry point for the agent monitor server.

Usage:
    python api_server.py [--port 3456] [--host 127.0.0.1] [--verbose]
"""

import argparse

import uvicorn

import config
from api.app import create_app
from monitor.logging import attach_log_file, setup_logging

app = create_app()


def main() -> None:
    parser = argparse.ArgumentParser(description="Agent monitor server")
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--host", type=str, default=config.HOST)
    parser.add_argument("--verbose", action="store_true", help="Show debug logging on the console")
    parser.add_argument("--no-log-file", action="store_true", help="Don't write a log file")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)
    if not args.no_log_file:
        attach_log_file()

    print(f"Agent monitor running at http://{args.host}:{args.port}")
    uvicorn.run(
        "api_server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
