#!/usr/bin/env python3
"""
Launch script for the Lap Trace backend.

Usage:
    python run_server.py [tracks_file] [--port PORT] [--host HOST]

Examples:
    python run_server.py                        # Use default ./data/tracks.json
    python run_server.py /path/to/tracks.json   # Use custom track file
    python run_server.py --port 5000            # Run on port 5000
"""

import argparse
import os
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="Lap Trace Backend Server")
    parser.add_argument(
        "tracks_file",
        nargs="?",
        default="./data/tracks.json",
        help="JSON file storing user tracks (default: ./data/tracks.json)"
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
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    tracks_file = Path(args.tracks_file)

    print("Lap Trace Backend")
    print("=" * 40)
    print(f"Tracks file: {tracks_file.absolute()}")
    print(f"Server: http://{args.host}:{args.port}")
    print("=" * 40)

    if not tracks_file.exists():
        print(f"\nTracks file does not exist yet: {tracks_file}")
        print("It will be created when the first user track is saved")

    # Picked up by the FastAPI lifespan
    os.environ["LAPTRACE_TRACKS_FILE"] = str(tracks_file)

    print("\nAPI Endpoints:")
    print("  GET    /                - Health check")
    print("  GET    /health          - Detailed health")
    print("  GET    /tracks          - List tracks")
    print("  POST   /tracks          - Add track")
    print("  PUT    /tracks/{id}     - Update track")
    print("  DELETE /tracks/{id}     - Delete track")
    print("  POST   /laps/extract    - Split a session into laps")
    print("  POST   /laps/rpm        - Reconstruct laps from RPM files")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "laptrace.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
