#!/usr/bin/env python3
"""
Flask entry point for the SMS book service.

Uses environment variables for configuration (see .env.example).
"""
import logging
import os

from dotenv import load_dotenv

from book_sms.app import BookSmsApp
from book_sms.config_loader import load_config_from_env
from book_sms.webhook import create_app

# Load environment variables
load_dotenv()

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

config = load_config_from_env(use_dotenv=False)
book_app = BookSmsApp(config)
app = create_app(book_app, config)


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    logger.info(f"Starting SMS webhook on port {port}")
    app.run(host="0.0.0.0", port=port, debug=False)
