"""
Run the VaultStamp API server.

    python -m vaultstamp --host 0.0.0.0 --port 8000
"""

import argparse

import uvicorn


def main(argv=None):
    parser = argparse.ArgumentParser(description="VaultStamp registry server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    parser.add_argument("--log-level", default="info", help="uvicorn log level")
    args = parser.parse_args(argv)

    uvicorn.run(
        "vaultstamp.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
