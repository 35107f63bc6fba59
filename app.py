import logging
import sys
import traceback
from typing import Any, Dict, Optional

from decouple import config
from flask import Flask, jsonify, request

from config import CONFIG, ENV_VARS
from handlers import CommandRouter, IncomingMessage
from services import RecordStore, SheetsClient, TelegramMessenger, UserDirectory
from utils import log_event

# --- Logger Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

# Initialize Flask app
app = Flask(__name__)

# Built on first use so importing the app does not need credentials
router: Optional[CommandRouter] = None


def check_environment() -> None:
    for var in ENV_VARS["required"]:
        if not config(var, default=None):
            raise EnvironmentError(f"Missing required environment variable: {var}")
    defaults = [var for var in ENV_VARS["optional"] if config(var, default=None) is None]
    if defaults:
        log_event("environment_defaults_used", variables=defaults)


def build_router() -> CommandRouter:
    """Wire the sheet stores and the Telegram messenger into a router"""
    check_environment()
    client = SheetsClient.from_service_account(config("SHEET_ID"), config("GOOGLE_SERVICE_ACCOUNT_KEY"))
    log_event("router_built", record_sheet=CONFIG["RECORD_SHEET"], user_sheet=CONFIG["USER_SHEET"])
    return CommandRouter(
        records=RecordStore(client, CONFIG["RECORD_SHEET"]),
        users=UserDirectory(client, CONFIG["USER_SHEET"]),
        messenger=TelegramMessenger(config("TELEGRAM_BOT_TOKEN")),
    )


def get_router() -> CommandRouter:
    global router
    if router is None:
        router = build_router()
    return router


def message_from_update(data: Dict[str, Any]) -> Optional[IncomingMessage]:
    """Extract the fields the router needs from a Telegram update"""
    message = data.get("message")
    if not message or "chat" not in message:
        return None
    return IncomingMessage(
        chat_id=str(message["chat"]["id"]),
        text=message.get("text") or "",
        username=(message.get("from") or {}).get("username") or "",
        chat_type=message["chat"].get("type", "private"),
        message_id=message.get("message_id"),
    )


@app.route("/webhook", methods=["POST"])
def webhook() -> tuple:
    """Handle incoming webhook from Telegram"""
    data = request.get_json(silent=True)
    if not data:
        log_event("webhook_invalid_data", error="No JSON data received")
        return "error", 400

    message = message_from_update(data)
    if message is None:
        log_event("webhook_no_message", update_id=data.get("update_id"))
        return "ok", 200

    try:
        active_router = get_router()
    except EnvironmentError as e:
        # Acknowledged so Telegram stops redelivering the update
        log_event("router_unavailable", error=str(e), update_id=data.get("update_id"))
        return "ok", 200

    try:
        handled = active_router.handle(message)
        if handled is None:
            log_event("message_ignored", chat_id=message.chat_id, chat_type=message.chat_type)
    except Exception as e:
        log_event("webhook_error", error=str(e), trace=traceback.format_exc())
        return "error", 500
    return "ok", 200


# Health check endpoint
@app.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint for load balancers and monitoring"""
    return jsonify({
        "status": "healthy",
        "version": "1.0.0",
        "telegram_configured": bool(config("TELEGRAM_BOT_TOKEN", default="")),
        "sheet_configured": bool(config("SHEET_ID", default="")),
        "record_sheet": CONFIG["RECORD_SHEET"],
    }), 200


@app.route("/", methods=["GET"])
def index():
    """Root endpoint"""
    return jsonify({
        "name": "Rekapan Quality Activation Bot",
        "status": "running",
        "endpoints": ["/webhook", "/health"]
    }), 200


# Start Flask server if running directly
if __name__ == "__main__":
    get_router()
    app.run(host="0.0.0.0", port=CONFIG["PORT"])
