"""
Flask webhook for inbound SMS.

POST /sms/webhook takes Twilio-style form fields (From, Body) and answers
with TwiML. The route never raises: every failure still yields a reply.
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from flask import Flask, Response, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .app import BookSmsApp
from .config import BookSmsConfig
from .config_validator import mask_sender
from .exceptions import ValidationError
from .orchestration import ERROR_MESSAGE, format_twiml_response
from .security import InputValidator

logger = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Invalid request"
RATE_LIMITED_MESSAGE = "Whoa, slow down! You're sending messages too fast. Please wait a moment."

TWIML_MIMETYPE = "text/xml"


def _twiml(message: str, status: int = 200) -> Response:
    return Response(format_twiml_response(message), status=status, mimetype=TWIML_MIMETYPE)


def sender_key() -> str:
    """Rate-limit key: the sender's number, else the client address."""
    sender = request.form.get("From", "").strip()
    return sender or get_remote_address()


def create_app(book_app: BookSmsApp, config: Optional[BookSmsConfig] = None) -> Flask:
    """
    Build the Flask app around an initialized BookSmsApp.

    :param book_app: Application facade; initialized here if needed
    :param config: Service configuration (rate limit)
    :return: Flask application
    """
    config = config or BookSmsConfig()
    book_app.initialize()

    app = Flask(__name__)

    # Security: per-sender rate limiting
    limiter = Limiter(
        key_func=sender_key,
        app=app,
        default_limits=[config.rate_limit],
        storage_uri="memory://",
    )
    app.extensions["book_sms_limiter"] = limiter
    logger.info(f"Rate limiting enabled: {config.rate_limit} per sender")

    @app.errorhandler(429)
    def rate_limited(e):
        logger.warning(f"Rate limit exceeded for {mask_sender(sender_key())}")
        return _twiml(RATE_LIMITED_MESSAGE, status=429)

    @app.route("/sms/webhook", methods=["POST"])
    def sms_webhook():
        """Inbound SMS endpoint."""
        sender = request.form.get("From")
        body = request.form.get("Body")

        try:
            sender = InputValidator.clean_sender(sender)
        except ValidationError as e:
            logger.warning(f"Webhook request rejected: {e}")
            return _twiml(e.user_message, status=400)

        if body is None:
            logger.warning("Webhook request missing Body")
            return _twiml(INVALID_REQUEST_MESSAGE, status=400)

        try:
            twiml = asyncio.run(book_app.handle_inbound(sender, body))
        except Exception as e:
            logger.error(f"Webhook failed for {mask_sender(sender)}: {type(e).__name__}: {e}", exc_info=True)
            return _twiml(ERROR_MESSAGE)

        return Response(twiml, status=200, mimetype=TWIML_MIMETYPE)

    @app.route("/sms/webhook", methods=["GET"])
    @limiter.exempt
    def sms_webhook_status():
        return Response("SMS webhook is active", status=200, mimetype="text/plain")

    @app.route("/health", methods=["GET"])
    @limiter.exempt
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "book-sms",
            "timestamp": datetime.now().isoformat(),
        })

    return app
