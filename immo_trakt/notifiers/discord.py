import json

import requests

from immo_trakt.errors import SinkError

# Discord embed color (green for new listings)
EMBED_COLOR = 0x00D166

# Discord rejects message content longer than this
MAX_CONTENT_LENGTH = 2000


def _build_payload(text: str) -> dict:
    """Build a Discord message; the first line of text becomes the embed title."""
    title, _, description = text.partition("\n")
    return {
        "content": "🔔 **New listing**",
        "embeds": [
            {
                "title": title[:256],
                "description": description[:MAX_CONTENT_LENGTH],
                "color": EMBED_COLOR,
            }
        ],
    }


def _send_payload(webhook_url: str, payload: dict) -> None:
    """Send a payload to a Discord webhook.

    Raises SinkError if the webhook rejects it or cannot be reached.
    """
    try:
        response = requests.post(
            webhook_url,
            data=json.dumps(payload),
            headers={"Content-Type": "application/json"},
            timeout=30,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SinkError(f"Failed to send Discord notification: {exc}") from exc


class DiscordNotifier:
    name = "discord"

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url

    def send(self, text: str) -> None:
        _send_payload(self.webhook_url, _build_payload(text))
