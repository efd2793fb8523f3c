"""Development server entry point for the billing API.

Loads ``.env`` before building the app so ``BILLING_*`` variables placed
there are honoured, then runs the Flask development server.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

from freight_billing import create_app

DEBUG_SWITCHES_ON = frozenset({"1", "true", "yes", "on"})


def debug_from_env(name: str = "FLASK_DEBUG") -> bool:
    """Return ``True`` only when ``name`` holds an explicit "on" switch."""

    return (os.getenv(name) or "").strip().lower() in DEBUG_SWITCHES_ON


load_dotenv()
app = create_app()
app.config["DEBUG"] = debug_from_env()


if __name__ == "__main__":
    app.run(debug=app.debug, host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
