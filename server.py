#!/usr/bin/env python3
from flask import Flask, jsonify
from flask_compress import Compress
from pathlib import Path
import logging
import os
import sys

from app import ConfigError, FactClient, Settings

PUBLIC_DIR = Path(__file__).resolve().parent / "public"
DEFAULT_PORT = 3000


def create_app(settings: Settings, fact_client=None, static_dir=PUBLIC_DIR) -> Flask:
    """Static front-end from public/ plus the random-fact endpoint."""
    app = Flask(__name__, static_folder=str(static_dir), static_url_path="")
    Compress(app)  # gzip/br

    client = fact_client or FactClient(settings)

    @app.route("/")
    def index():
        return app.send_static_file("index.html")

    @app.route("/api/random-fact")
    def random_fact():
        # Every request goes upstream; nothing is cached.
        try:
            text = client.generate(settings.endpoint_prompt)
        except Exception as e:
            logging.error(f"Error calling Gemini API: {e}")
            return jsonify({"error": "Failed to generate fact"}), 500
        return jsonify({"fact": text})

    @app.route("/health")
    def health():
        return "ok\n", 200

    return app


if __name__ == "__main__":
    try:
        settings = Settings.from_env()
    except ConfigError:
        sys.exit(1)
    if not settings.api_key:
        logging.error("GEMINI_API_KEY is not set in the environment variables.")
        sys.exit(1)

    port = int(os.environ.get("PORT", DEFAULT_PORT))
    app = create_app(settings)
    logging.info(f"Server listening at http://localhost:{port}")
    app.run(host="0.0.0.0", port=port)
