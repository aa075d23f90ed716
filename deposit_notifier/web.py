"""HTTP trigger for scheduled deposit checks.

A scheduler (cron, Cloud Scheduler, ...) calls ``POST /`` and gets ``200``
with ``"Deposits check completed."`` or ``500`` with
``"Error executing deposits check."``. No request body is read.

Run locally::

    flask --app deposit_notifier.web run
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify

from .config import load_settings
from .logging_setup import configure_logging
from .models import RunResult
from .pipeline import invoke


def create_app(run: Callable[[], RunResult] | None = None) -> Flask:
    """Build the Flask app.

    Settings are loaded from the environment once, here; invalid values raise
    :class:`~deposit_notifier.errors.ConfigurationError` and the app is not
    built. ``run`` replaces the default :func:`deposit_notifier.pipeline.invoke`
    call bound to those settings.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()

    if run is None:
        settings = load_settings()

        def run() -> RunResult:
            return invoke(settings)

    runner = run

    app = Flask(__name__)

    @app.route("/", methods=["GET", "POST"])
    def notification_handler():
        result = runner()
        return result.summary, (200 if result.ok else 500)

    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "healthy", "timestamp": datetime.now(UTC).isoformat()})

    return app


__all__ = ["create_app"]
