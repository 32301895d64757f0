#!/usr/bin/env python3
"""
Launch script for the Track Salvage backend.

Usage:
    python run_server.py [data_folder] [--port PORT] [--host HOST]

Examples:
    python run_server.py                    # Use default ./data/sessions folder
    python run_server.py /path/to/archives  # Use custom folder
    python run_server.py --strict           # Abort streams on malformed lines
"""

import argparse
import os
import sys
from pathlib import Path

# Add the package to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="Track Salvage Backend Server")
    parser.add_argument(
        "data_folder",
        nargs="?",
        default="./data/sessions",
        help="Path to folder containing session archives (default: ./data/sessions)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort a stream on its first malformed line"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    data_folder = Path(args.data_folder)

    print("Track Salvage Backend")
    print("=" * 40)
    print(f"Data folder: {data_folder.absolute()}")
    print(f"Server: http://{args.host}:{args.port}")
    print("=" * 40)

    if not data_folder.exists():
        print(f"\nWarning: Data folder does not exist: {data_folder}")
        print("You can set it later via POST /folder")

    # Picked up by the FastAPI lifespan and DecodeOptions.from_env()
    if data_folder.exists():
        os.environ["TRACKSALVAGE_DATA_FOLDER"] = str(data_folder)
    if args.strict:
        os.environ["TRACKSALVAGE_STRICT"] = "1"

    print("\nAPI Endpoints:")
    print("  GET  /              - Health check")
    print("  GET  /health        - Detailed health")
    print("  GET  /folder        - Current folder info")
    print("  POST /folder        - Set data folder")
    print("  GET  /sessions      - List all sessions")
    print("  GET  /sessions/{id} - Get session metadata")
    print("  GET  /sessions/{id}/trackpoints - Get trackpoints")
    print("  GET  /sessions/{id}/samples     - Get accelerometer samples")
    print("  GET  /sessions/{id}/diagnostics - Get warnings and errors")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "tracksalvage.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
