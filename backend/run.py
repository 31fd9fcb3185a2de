"""
Development Server Entry Point
==============================

Runs the back-office API or the webhook worker under uvicorn.

Usage:
    python run.py                       # API with reload on :8000
    python run.py --no-reload
    python run.py --service worker      # Webhook worker on :8787
"""

import argparse

SERVICES = {
    "api": ("backoffice.main:app", 8000),
    "worker": ("webhook_worker.main:app", 8787),
}


def main():
    """Run the development server."""
    import uvicorn

    parser = argparse.ArgumentParser(description="Run a back-office development server")
    parser.add_argument(
        "--service",
        choices=sorted(SERVICES),
        default="api",
        help="Which app to serve (default: api)",
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind to (default: 8000 for api, 8787 for worker)",
    )
    args = parser.parse_args()

    target, default_port = SERVICES[args.service]
    port = args.port or default_port

    print(f"\n{'='*50}")
    print(f"  {args.service}: {target}")
    print(f"  Server: http://{args.host}:{port}")
    print(f"  Auto-reload: {'off' if args.no_reload else 'on'}")
    print(f"{'='*50}\n")

    uvicorn.run(
        target,
        host=args.host,
        port=port,
        reload=not args.no_reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
