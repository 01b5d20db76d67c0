"""Run the Poll Results API server.

Usage:
    python -m poll_results_api
    python -m poll_results_api --host 0.0.0.0 --port 8080

The contract is configured through ``POLL_RESULTS_RPC_URL`` and
``POLL_RESULTS_CONTRACT_ADDRESS`` (or a ``.env`` file).
"""

import argparse
import logging

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Poll Results API")
    parser.add_argument(
        "--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port", type=int, default=8000, help="Bind port (default: 8000)"
    )
    parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )
    parser.add_argument(
        "--log-level", default="INFO", help="Logging level (default: INFO)"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    uvicorn.run(
        "poll_results_api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
