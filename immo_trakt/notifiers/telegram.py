import logging
from typing import Optional

import requests

from immo_trakt.errors import ConfigError, SinkError

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"
DEFAULT_TIMEOUT = 30


def _call(token: str, method: str, payload: Optional[dict] = None, timeout: float = DEFAULT_TIMEOUT) -> dict:
    """Call a Bot API method and return its ``result``.

    Raises requests.RequestException on transport failures and ValueError
    when Telegram reports an error.
    """
    response = requests.post(
        API_URL.format(token=token, method=method),
        json=payload or {},
        timeout=timeout,
    )
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"{method} returned {type(data).__name__}, expected an object")
    if not data.get("ok"):
        raise ValueError(data.get("description") or f"{method} returned ok=false")
    return data.get("result")


def resolve_chat_id(token: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Find the chat to notify from the bot's pending updates.

    The user has to message the bot once before the first start.
    """
    try:
        updates = _call(token, "getUpdates", {"offset": 0}, timeout=timeout) or []
    except (requests.RequestException, ValueError) as e:
        raise ConfigError(f"Failed to query Telegram updates: {e}") from e

    for update in updates:
        if not isinstance(update, dict):
            continue
        message = update.get("message") or update.get("edited_message") or {}
        chat = message.get("chat") or {}
        if chat.get("id") is not None:
            chat_id = str(chat["id"])
            logger.info("Telegram chat ID found as %s", chat_id)
            return chat_id

    raise ConfigError(
        "Telegram chat not found, please send a message to the bot first and start immo-trakt again"
    )


class TelegramNotifier:
    """Sends notifications as Telegram chat messages."""

    name = "telegram"

    def __init__(self, token: str, chat_id: str, timeout: float = DEFAULT_TIMEOUT):
        self.token = token
        self.chat_id = chat_id
        self.timeout = timeout

    def send(self, text: str) -> None:
        payload = {"chat_id": self.chat_id, "text": text}
        try:
            _call(self.token, "sendMessage", payload, timeout=self.timeout)
        except (requests.RequestException, ValueError) as exc:
            raise SinkError(f"Failed to send Telegram message: {exc}") from exc
