"""Demo Flask service with request logging shipped to a UDP log server."""

import logging
import sys
import traceback

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from src.config import Config, load_config
from src.flask_logger import RequestLogger
from src.sink import close_sinks

logger = logging.getLogger(__name__)


def create_app(config=None):
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = load_config()

    RequestLogger(app, config)

    items = {"1": {"id": "1", "name": "widget"}, "2": {"id": "2", "name": "gadget"}}

    @app.route("/health")
    def health():
        return jsonify(status="ok")

    @app.route("/api/items/<item_id>")
    def get_item(item_id):
        item = items.get(item_id)
        if item is None:
            return jsonify({"message": f"Item {item_id} does not exist"}), 404
        return item

    @app.route("/api/items", methods=["POST"])
    def create_item():
        data = request.get_json(silent=True) or {}
        item_id = str(len(items) + 1)
        items[item_id] = {"id": item_id, "name": data.get("name", "unnamed")}
        return jsonify(items[item_id]), 201

    @app.route("/api/fail")
    def fail():
        raise RuntimeError("simulated failure")

    @app.errorhandler(Exception)
    def handle_error(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"message": exc.description}), exc.code
        return jsonify({
            "error": {
                "message": str(exc),
                "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            },
        }), 500

    return app


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )
    load_dotenv()

    config: Config = load_config()
    app = create_app(config)
    logger.info(
        "Shipping request logs to %s:%d (environment=%s)",
        config.log_server_host, config.log_server_port, config.log_environment,
    )
    try:
        app.run(host=config.app_host, port=config.app_port, use_reloader=False)
    finally:
        close_sinks()


if __name__ == "__main__":
    main()
