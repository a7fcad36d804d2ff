#!/usr/bin/env python3
"""
Server runner for the MMR processor API (python -m backend.main).
Job records are kept in a SQLite database under data/ unless --in-memory is given.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from backend.app import App
from mmr_processor.config.config_manager import ConfigManager

ENDPOINTS = [
    ("📊 MMR Processing", [
        ("POST", "/api/mmr/process"),
        ("POST", "/api/mmr/batch"),
        ("POST", "/api/mmr/parse"),
    ]),
    ("🔧 Jobs", [
        ("GET", "/api/mmr/jobs"),
        ("GET", "/api/mmr/jobs/<job_id>"),
        ("POST", "/api/mmr/jobs/<job_id>/cancel"),
        ("DELETE", "/api/mmr/jobs/<job_id>"),
    ]),
    ("⚙️ Configuration", [
        ("GET", "/api/config/inquiry"),
        ("POST", "/api/config/update"),
        ("POST", "/api/config/reset"),
    ]),
]


def setup_logging(debug: bool = False, log_file: str = 'app.log'):
    """Log to stdout and to a file with one shared format"""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout), logging.FileHandler(log_file)]
    )


def default_db_path() -> Path:
    return Path(__file__).resolve().parent.parent / 'data' / 'mmr_jobs.db'


def remove_job_database(db_path: Path) -> None:
    """Delete the SQLite job database so the server starts with no job history"""
    if not db_path.exists():
        print(f"ℹ️ No job database at {db_path}, nothing to reset")
        return
    try:
        db_path.unlink()
    except OSError as e:
        print(f"❌ Could not remove job database {db_path}: {e}")
        sys.exit(1)
    print(f"🔄 Job database {db_path} removed")


def print_banner(host: str, port: int) -> None:
    print("🚀 Starting MMR Processor")
    print("=" * 70)
    print(f"🌐 Listening on http://{host}:{port}")
    for title, routes in ENDPOINTS:
        print(f"   {title}:")
        for method, path in routes:
            print(f"      {method:<6} {path}")
        print("")
    print("=" * 70)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='MMR Processor API server')
    parser.add_argument('--reset-db', action='store_true', help='Remove the job database before starting')
    parser.add_argument('--db-path', type=str, default=str(default_db_path()), help='SQLite job database file')
    parser.add_argument('--in-memory', action='store_true', help='Keep job records in process memory only')
    parser.add_argument('--config', type=str, default=None, help='Configuration file (JSON)')
    parser.add_argument('--host', type=str, default='localhost', help='Interface to bind')
    parser.add_argument('--port', type=int, default=5000, help='Port to listen on')
    parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode and debug logging')
    return parser


def main():
    args = build_arg_parser().parse_args()
    setup_logging(args.debug)

    if args.reset_db:
        remove_job_database(Path(args.db_path))

    # FLASK_ENV=production binds all interfaces (container deployments)
    host = "0.0.0.0" if os.getenv('FLASK_ENV') == 'production' else args.host

    try:
        server = App(
            config_manager=ConfigManager(args.config),
            db_path=None if args.in_memory else args.db_path,
        )
        print_banner(host, args.port)
        server.run(host=host, port=args.port, debug=args.debug)
    except Exception as e:
        logging.getLogger('main').error(f"Server stopped with an error: {e}", exc_info=args.debug)
        print(f"❌ Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
