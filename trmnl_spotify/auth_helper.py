"""One-time helper that turns a browser consent into a refresh token.

Run it locally, open http://localhost:8888, authorize, and copy the
``SPOTIFY_REFRESH_TOKEN`` line it prints into your ``.env``.
"""
from __future__ import annotations

import logging
import os

from flask import Flask, redirect, render_template, request
from spotipy.oauth2 import SpotifyOAuth

from trmnl_spotify import config
from trmnl_spotify.errors import PROVIDER_ERRORS, describe_error
from trmnl_spotify.logger import setup_logging
from trmnl_spotify.token_cache import get_spotify_oauth


logger = logging.getLogger(__name__)

PLAIN_TEXT = {"Content-Type": "text/plain; charset=utf-8"}


def create_app() -> Flask:
    app = Flask(__name__)

    def get_oauth() -> SpotifyOAuth:
        return get_spotify_oauth(
            os.getenv(config.CLIENT_ID_ENV),
            os.getenv(config.CLIENT_SECRET_ENV),
        )

    @app.route("/")
    def index():
        return render_template("index.html")

    @app.route("/login")
    def login():
        try:
            oauth = get_oauth()
        except PROVIDER_ERRORS as exc:
            logger.error("Cannot start authorization: %s", describe_error(exc))
            return (
                f"Error: set {config.CLIENT_ID_ENV} and {config.CLIENT_SECRET_ENV} first",
                500,
                PLAIN_TEXT,
            )
        return redirect(oauth.get_authorize_url())

    @app.route("/callback")
    def callback():
        code = request.args.get("code")
        if not code:
            error = request.args.get("error")
            if error:
                logger.warning("Authorization was not granted: %s", error)
            return "Error: No authorization code received", 200, PLAIN_TEXT

        try:
            token_info = get_oauth().get_access_token(code, check_cache=False)
        except PROVIDER_ERRORS as exc:
            logger.error("Error exchanging code for token: %s", describe_error(exc))
            return render_template("error.html")

        refresh_token = token_info.get("refresh_token")
        logger.info("Authorization successful!")
        logger.info("Add this to your .env file:")
        logger.info("%s=%s", config.REFRESH_TOKEN_ENV, refresh_token)
        return render_template(
            "success.html",
            refresh_token=refresh_token,
            access_token=token_info.get("access_token"),
            expires_in=token_info.get("expires_in"),
            env_name=config.REFRESH_TOKEN_ENV,
        )

    return app


def main() -> None:
    config.load_environment()
    setup_logging(config.log_level())
    logger.info("Spotify Token Generator")
    logger.info("Open this URL in your browser: http://localhost:%d", config.AUTH_HELPER_PORT)
    if not os.getenv(config.CLIENT_ID_ENV) or not os.getenv(config.CLIENT_SECRET_ENV):
        logger.warning(
            "Make sure you have set %s and %s in your .env file!",
            config.CLIENT_ID_ENV,
            config.CLIENT_SECRET_ENV,
        )
    create_app().run(host="localhost", port=config.AUTH_HELPER_PORT)


if __name__ == "__main__":
    main()
