import logging

import requests

log = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


def send_telegram_message(bot_token: str, chat_id: str, text: str, timeout: float = 30.0) -> bool:
    """Send a plain-text message through the Telegram Bot API.

    Returns False after logging the failure instead of raising.
    """
    url = f"{TELEGRAM_API_URL}/bot{bot_token}/sendMessage"
    try:
        resp = requests.post(url, data={"chat_id": chat_id, "text": text}, timeout=timeout)
        resp.raise_for_status()
    except requests.exceptions.RequestException as e:
        log.error("Failed to send telegram message: %s", str(e).replace(bot_token, "<token>"))
        return False

    log.info("Sent telegram message")
    return True
