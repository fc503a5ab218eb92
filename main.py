"""
Deskbot - Web Dashboard Entry Point
===================================

Run this to start the read-only dashboard:
    python main.py

Then open http://127.0.0.1:8000 in your browser.

To run the WhatsApp bot:
    python run_bot.py
"""

import os

import uvicorn

from deskbot.infrastructure.logs import configure_logging


def main():
    """Start the web server."""
    configure_logging(log_dir=None)

    host = os.getenv("DASHBOARD_HOST", "127.0.0.1")
    port = int(os.getenv("DASHBOARD_PORT", "8000"))

    print("\n" + "=" * 50)
    print("   Deskbot - Web Dashboard")
    print("=" * 50)
    print(f"\n   Starting server at http://{host}:{port}")
    print("   Press Ctrl+C to stop\n")

    uvicorn.run(
        "deskbot.web.app:app",
        host=host,
        port=port,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
