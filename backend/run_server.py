#!/usr/bin/env python3
"""
Launch script for LTV Dashboard Backend.

Usage:
    python run_server.py [data_file] [--port PORT] [--host HOST]

Examples:
    python run_server.py                          # Use default ./public/data/ltv.json
    python run_server.py /path/to/ltv.json        # Use custom file
    python run_server.py --port 5000              # Run on port 5000
    python run_server.py --watch-interval 0       # Disable file watching
"""

import argparse
import os
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="LTV Dashboard Backend Server")
    parser.add_argument(
        "data_file",
        nargs="?",
        default="./public/data/ltv.json",
        help="Path to the LTV snapshot JSON (default: ./public/data/ltv.json)"
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
        "--watch-interval", "-w",
        type=float,
        default=1.0,
        help="Seconds between file change checks, 0 disables watching (default: 1.0)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    data_file = Path(args.data_file)

    print(f"LTV Dashboard Backend")
    print(f"=" * 40)
    print(f"Data file: {data_file.absolute()}")
    print(f"Server: http://{args.host}:{args.port}")
    print(f"=" * 40)

    if not data_file.exists():
        print(f"\nWarning: Data file does not exist: {data_file}")
        print("Generate one with: python -m ltvboard.utils.sample_data <path>")

    # Configure for FastAPI lifespan
    os.environ["LTV_DATA_PATH"] = str(data_file)
    if args.watch_interval > 0:
        os.environ["LTV_WATCH_INTERVAL"] = str(args.watch_interval)
    else:
        os.environ["LTV_WATCH"] = "0"

    print("\nAPI Endpoints:")
    print("  GET  /              - Health check")
    print("  GET  /health        - Detailed health")
    print("  GET  /api/data      - All records + statistics")
    print("  GET  /api/stats     - Statistics over a filtered subset")
    print("  GET  /api/records   - Filtered, sorted, paginated records")
    print("  POST /api/reload    - Reload the data file now")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "ltvboard.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
