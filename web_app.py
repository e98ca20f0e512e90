#!/usr/bin/env python3
"""Nova -- Assistant service.

JSON backend for the voice client: answers open-ended questions through
an OpenAI-compatible chat completion endpoint (or a canned keyword table
when no API key is configured) and stores reminders, feedback, command
history and preferences in SQLite.

Usage:
    python3 web_app.py                    # Serve on 127.0.0.1:3000
    python3 web_app.py --port 8080        # Custom port
    python3 web_app.py --db /tmp/nova.db  # Custom database file
"""

__version__ = "1.0.0"

import argparse
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import config
from core.data_store import DataStore

logger = logging.getLogger(__name__)

MOCK_WEATHER = {
    "location": "Your Location",
    "temperature": 72,
    "condition": "Sunny",
    "message": "Weather data is currently mocked for testing purposes.",
}

MOCK_NEWS = [
    {"title": "Latest technology developments",
     "description": "New advancements in AI technology."},
    {"title": "Current world events",
     "description": "Updates on global affairs."},
    {"title": "Interesting science discoveries",
     "description": "Recent findings in the field of science."},
]


def canned_response(message: str) -> str:
    """First canned reply whose key phrase appears in *message*."""
    lowered = message.lower()
    for key, reply in config.CANNED_RESPONSES:
        if key in lowered:
            return reply
    return config.DEFAULT_CANNED_RESPONSE.format(message=message)


def ask_llm(message: str, llm: Dict[str, Any]) -> str:
    """POST one chat completion and return the assistant's text.

    Raises requests.RequestException, or KeyError/IndexError/ValueError
    for a body that is not a chat completion.
    """
    resp = requests.post(
        llm["endpoint"],
        json={
            "model": llm["model"],
            "messages": [
                {"role": "system", "content": config.LLM_SYSTEM_PROMPT},
                {"role": "user", "content": message},
            ],
            "max_tokens": llm["max_tokens"],
            "temperature": llm["temperature"],
        },
        headers={
            "Authorization": f"Bearer {llm['api_key']}",
            "Content-Type": "application/json",
        },
        timeout=llm["timeout"],
    )
    resp.raise_for_status()
    text = resp.json()["choices"][0]["message"]["content"]
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Empty completion")
    return text.strip()


def _preference_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def create_app(store: Optional[DataStore] = None,
               settings: Optional[Dict[str, Dict[str, Any]]] = None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or config.load_settings(None)
    server = settings["server"]
    llm = settings["llm"]
    if store is None:
        store = DataStore(server["db_path"])

    app = Flask(__name__)
    CORS(app)
    app.config["STORE"] = store

    def _body() -> Dict[str, Any]:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    # ─── Routes: Query ───

    @app.route("/api/query", methods=["POST"])
    def query():
        message = _body().get("message")
        if not isinstance(message, str) or not message.strip():
            return jsonify({"error": "Message is required"}), 400

        entry_id = store.record_command(message)

        if llm.get("api_key"):
            try:
                response = ask_llm(message, llm)
            except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as exc:
                logger.error("LLM request failed: %s", exc)
                response = config.LLM_FAILURE_RESPONSE
        else:
            response = canned_response(message)

        store.set_command_response(entry_id, response)
        return jsonify({"response": response})

    # ─── Routes: Reminders ───

    @app.route("/api/reminders", methods=["POST"])
    def add_reminder():
        reminder = _body().get("reminder")
        if not isinstance(reminder, str) or not reminder.strip():
            return jsonify({"success": False, "message": "Reminder is required"}), 400
        try:
            store.add_reminder(reminder.strip())
            reminders = store.get_reminders()
        except sqlite3.Error as exc:
            logger.error("Error adding reminder: %s", exc)
            return jsonify({"success": False, "message": "Failed to add reminder"}), 500
        return jsonify({"success": True, "reminders": reminders})

    @app.route("/api/reminders", methods=["GET"])
    def list_reminders():
        try:
            reminders = store.get_reminders()
        except sqlite3.Error as exc:
            logger.error("Error fetching reminders: %s", exc)
            return jsonify({"success": False, "message": "Failed to fetch reminders"}), 500
        return jsonify({"reminders": reminders})

    # ─── Routes: Feedback ───

    @app.route("/api/feedback", methods=["POST"])
    def feedback():
        text = _body().get("feedback")
        if not isinstance(text, str) or not text.strip():
            return jsonify({"success": False, "message": "Feedback is required"}), 400
        try:
            store.add_feedback(text.strip())
        except sqlite3.Error as exc:
            logger.error("Error saving feedback: %s", exc)
            return jsonify({"success": False, "message": "Failed to save feedback"}), 500
        return jsonify({"success": True, "message": "Feedback received successfully"})

    # ─── Routes: History ───

    @app.route("/api/history")
    def history():
        """Most recent commands first.

        Query params:
            limit: int (default from settings, capped at max_history_limit)
        """
        default = server["history_limit"]
        try:
            limit = int(request.args.get("limit", default))
        except ValueError:
            limit = default
        if limit <= 0:
            limit = default
        limit = min(limit, server["max_history_limit"])
        return jsonify({"history": store.get_history(limit)})

    # ─── Routes: Info ───

    @app.route("/api/system")
    def system():
        return jsonify({
            "status": "online",
            "server_time": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "features": config.FEATURES,
            "llm": bool(llm.get("api_key")),
        })

    @app.route("/api/weather")
    def weather():
        return jsonify(MOCK_WEATHER)

    @app.route("/api/news")
    def news():
        return jsonify({
            "news": MOCK_NEWS,
            "message": "News data is currently mocked for testing purposes.",
        })

    # ─── Routes: Preferences ───

    @app.route("/api/preferences", methods=["GET"])
    def get_preferences():
        return jsonify({"preferences": store.get_preferences()})

    @app.route("/api/preferences", methods=["POST"])
    def set_preference():
        data = _body()
        key = data.get("key")
        if not isinstance(key, str) or not key.strip():
            return jsonify({"success": False, "message": "Key is required"}), 400
        store.set_preference(key.strip(), _preference_value(data.get("value")))
        return jsonify({"success": True, "preferences": store.get_preferences()})

    # ─── Errors ───

    @app.errorhandler(404)
    def not_found(exc):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(exc):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def internal_error(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description}), exc.code
        logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": "Internal server error"}), 500

    return app


def main():
    parser = argparse.ArgumentParser(description="Nova Assistant Service")
    parser.add_argument("--config", default="assistant.yaml", help="Settings file path")
    parser.add_argument("--host", default=None, help="Bind address")
    parser.add_argument("--port", type=int, default=None, help="Web server port")
    parser.add_argument("--db", default=None, help="SQLite database file")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    settings = config.load_settings(args.config)
    server = settings["server"]
    if args.host:
        server["host"] = args.host
    if args.port:
        server["port"] = args.port
    if args.db:
        server["db_path"] = args.db

    logger.info("Nova service v%s starting", __version__)
    if not settings["llm"]["api_key"]:
        logger.info("No OPENAI_API_KEY set, answering with canned responses")

    store = DataStore(server["db_path"])
    app = create_app(store, settings)
    logger.info("Assistant service at http://%s:%d", server["host"], server["port"])

    try:
        app.run(host=server["host"], port=server["port"], threaded=True, debug=False)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        store.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
